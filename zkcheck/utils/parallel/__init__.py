"""Thread pool helpers used to fan out independent solver sessions."""

from .executor import ParallelExecutor, parallel_map

__all__ = [
    "ParallelExecutor",
    "parallel_map",
]
