"""Shared helpers: exception taxonomy and parallel execution."""
