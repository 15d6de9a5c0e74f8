"""Where the external solver binaries and the bundled data live.

zkcheck talks to z3 through its Python bindings, so the only binary it may
need is cvc5 (for its native finite-field theory).  The binary is looked up
once, at import time, in this order:

1. the path named by the solver's environment variable (``ZKCHECK_CVC5``)
2. ``bin_solvers/`` under the project root
3. the system ``PATH``
"""
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """One external solver: how to find it and how to run it interactively."""
    name: str
    exec_name: str
    env_var: str
    args: List[str] = field(default_factory=list)
    timeout_flag: Optional[str] = None
    exec_path: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.exec_path is not None


class _Singleton(type):
    _instance = None

    def __call__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class GlobalConfig(metaclass=_Singleton):
    """Process-wide registry of solver locations and project paths.

    It only records where executables are; sessions start and own their
    solver processes themselves.
    """

    def __init__(self):
        self.project_root = Path(__file__).resolve().parent.parent.parent
        self.bin_solvers_path = self.project_root / "bin_solvers"
        self.examples_path = self.project_root / "examples" / "circuits"
        self.solvers = {
            "cvc5": SolverConfig("cvc5", "cvc5", "ZKCHECK_CVC5",
                                 args=["-q", "-i", "--lang=smt2"],
                                 timeout_flag="--tlimit-per"),
        }
        for solver in self.solvers.values():
            solver.exec_path = self._locate(solver)
            if solver.exec_path is None:
                logger.debug("%s not found (set %s to point at it)", solver.name, solver.env_var)

    def _search_order(self, solver: SolverConfig) -> Iterator[str]:
        explicit = os.environ.get(solver.env_var)
        if explicit:
            yield explicit
        yield str(self.bin_solvers_path / solver.exec_name)
        yield solver.exec_name

    def _locate(self, solver: SolverConfig) -> Optional[str]:
        for candidate in self._search_order(solver):
            found = shutil.which(candidate)
            if found:
                return found
        return None

    def solver(self, name: str) -> SolverConfig:
        try:
            return self.solvers[name]
        except KeyError:
            raise ValueError(f"Unknown solver: {name}") from None

    def set_solver_path(self, name: str, path: str) -> None:
        """Use the executable at ``path`` for solver ``name``.

        Raises:
            ValueError: unknown solver or missing path.
        """
        solver = self.solver(name)
        if not Path(path).exists():
            raise ValueError(f"Path does not exist: {path}")
        solver.exec_path = str(path)

    def get_solver_path(self, name: str) -> Optional[str]:
        return self.solver(name).exec_path

    def is_solver_available(self, name: str) -> bool:
        return self.solver(name).is_available

    def get_solver_command(self, name: str, timeout_ms: Optional[int] = None) -> Optional[List[str]]:
        """Command line of an interactive SMT-LIB session, or None if not installed."""
        solver = self.solver(name)
        if not solver.is_available:
            return None
        cmd = [solver.exec_path, *solver.args]
        if timeout_ms and solver.timeout_flag:
            cmd.append(f"{solver.timeout_flag}={int(timeout_ms)}")
        return cmd


global_config = GlobalConfig()

PROJECT_ROOT = global_config.project_root
BIN_SOLVERS_PATH = global_config.bin_solvers_path
EXAMPLES_PATH = global_config.examples_path
