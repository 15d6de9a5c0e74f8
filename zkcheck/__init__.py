"""Under-constrained cell detection for finite-field arithmetic circuits.

- ff: field elements and expression trees
- circuit: the in-memory circuit model, JSON loader and structural lints
- smt: constraint compiler, solver commands, transports and sessions
- analysis: the under-determinism prover and its findings
"""
import os

__version__ = "0.3.0"

# Debug flag - can be set via environment variable ZKCHECK_DEBUG
ZKCHECK_DEBUG = os.environ.get("ZKCHECK_DEBUG", "False").lower() in ("true", "1", "yes")
