"""Global parameters module for zkcheck.

This module provides access to global configuration and paths used throughout the project.
"""
from .paths import global_config, PROJECT_ROOT, BIN_SOLVERS_PATH, EXAMPLES_PATH
