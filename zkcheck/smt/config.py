"""Defaults for solver sessions, overridable from the environment."""
import os

# Per check-sat timeout in milliseconds; 0 or unset disables it
DEFAULT_TIMEOUT_MS = int(os.environ.get("ZKCHECK_SOLVER_TIMEOUT_MS", "0")) or None

# Backend used when none is requested: "z3" (in-process) or "cvc5" (external)
DEFAULT_BACKEND = os.environ.get("ZKCHECK_BACKEND", "z3")

# Encoding of field arithmetic for the z3 backend: "bv" or "int"
DEFAULT_Z3_ENCODING = os.environ.get("ZKCHECK_Z3_ENCODING", "bv")

# When set, external solver sessions write their SMT-LIB transcript here
QUERY_LOG_DIR = os.environ.get("ZKCHECK_QUERY_LOG_DIR")
ENABLE_QUERY_LOGGING = bool(QUERY_LOG_DIR)

SMT_LOGIC = "QF_FF"

# Grace period for a solver process to exit after (exit)
SHUTDOWN_GRACE_SECONDS = 1.0
