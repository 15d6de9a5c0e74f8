"""Solver sessions over a compiled circuit.

A session owns exactly one transport.  It loads the base assertions of the
circuit once and then serves incremental queries inside push/pop scopes.
The session remembers every assertion it sent, so when a transport dies
(for example after a timeout kill) the next command restarts the solver and
replays the base assertions and the open scopes first.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from zkcheck.ff import Cell
from zkcheck.smt import config
from zkcheck.smt.commands import (
    Assert, CheckSat, Command, DefineSort, Formula, GetValue, Pop, Push,
)
from zkcheck.smt.compiler import CompiledCircuit
from zkcheck.smt.symbols import SymbolTable
from zkcheck.smt.transport import Response, SMTLIBProcess, Status, Transport
from zkcheck.smt.z3_backend import Z3FieldBackend
from zkcheck.utils.exceptions import SMTLIBSolverError, ScopeError, SolverUnavailable

logger = logging.getLogger(__name__)

BACKENDS = ("z3", "cvc5")


def create_transport(symbols: SymbolTable, backend: Optional[str] = None,
                     timeout_ms: Optional[int] = None,
                     solver_cmd: Optional[List[str]] = None,
                     log_dir: Optional[str] = None) -> Transport:
    """Build the transport of ``backend`` ("z3" or "cvc5")."""
    backend = backend or config.DEFAULT_BACKEND
    if backend == "z3":
        return Z3FieldBackend(symbols, timeout_ms=timeout_ms)
    if backend == "cvc5":
        return SMTLIBProcess(symbols, cmd=solver_cmd, timeout_ms=timeout_ms, log_dir=log_dir)
    raise ValueError(f"unknown backend '{backend}', expected one of {BACKENDS}")


class SolverSession:
    """Incremental solver session over one compiled circuit.

    Use as a context manager to ensure proper cleanup:
        with SolverSession(compiled) as session:
            with session.scope():
                session.add(formula)
                response = session.check(cells)
    """

    def __init__(self, compiled: CompiledCircuit, transport: Optional[Transport] = None,
                 backend: Optional[str] = None, timeout_ms: Optional[int] = None,
                 solver_cmd: Optional[List[str]] = None):
        """
        Args:
            compiled: the circuit whose base assertions the session loads.
            transport: an unstarted transport; built from ``backend`` if omitted.
            backend: "z3" or "cvc5" when no transport is given.
            timeout_ms: per check-sat timeout.
            solver_cmd: explicit command line for the external solver.
        """
        self.compiled = compiled
        if timeout_ms is None:
            timeout_ms = config.DEFAULT_TIMEOUT_MS
        self.transport = transport or create_transport(
            compiled.symbols, backend, timeout_ms, solver_cmd)
        self.check_count = 0
        self.restarts = 0
        self._base: List[Formula] = [a.formula for a in compiled.assertions]
        self._frames: List[List[Formula]] = []
        self._opened = False
        self._closed = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        if getattr(self, "_opened", False) and not self._closed:
            logger.warning("SolverSession not properly closed, using __del__ cleanup")
            self.close()

    def open(self) -> "SolverSession":
        """Start the solver and load the base assertions."""
        if self._opened:
            return self
        self._load()
        self._opened = True
        logger.debug("Session loaded %d declarations and %d assertions",
                     len(self.compiled.declarations), len(self._base))
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.transport.close()
        except OSError as e:
            logger.warning("Error stopping solver: %s", e)

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def base_assertions(self) -> List[Formula]:
        return list(self._base)

    @property
    def assertions(self) -> List[Formula]:
        """Everything currently asserted: base, then each open scope."""
        result = list(self._base)
        for frame in self._frames:
            result.extend(frame)
        return result

    def push(self) -> None:
        self._send(Push())
        self._frames.append([])

    def pop(self) -> None:
        if not self._frames:
            raise ScopeError("pop without a matching push")
        self._frames.pop()
        # A restarted solver is replayed without the dropped frame
        if self._restart_if_dead():
            return
        self._send(Pop())

    @contextmanager
    def scope(self) -> Iterator["SolverSession"]:
        """Push a scope and pop back to the current depth on exit."""
        depth = self.depth
        self.push()
        try:
            yield self
        finally:
            while self.depth > depth:
                self.pop()

    def add(self, formula: Formula) -> None:
        """Assert ``formula`` in the innermost open scope."""
        self._send(Assert(formula))
        if self._frames:
            self._frames[-1].append(formula)
        else:
            self._base.append(formula)

    def add_all(self, formulas: Iterable[Formula]) -> None:
        for formula in formulas:
            self.add(formula)

    def check(self, cells: Iterable[Cell] = ()) -> Response:
        """check-sat; on SAT also fetch the values of ``cells``."""
        self.check_count += 1
        response = self._send(CheckSat())
        cells = tuple(cells)
        if response.status is not Status.SAT or not cells:
            return response
        values = self._send(GetValue(cells))
        return Response(Status.SAT, model=values.model)

    def _load(self) -> None:
        self.transport.start()
        self._execute(DefineSort(self.compiled.field))
        for decl in self.compiled.declarations:
            self._execute(decl)
        for formula in self._base:
            self._execute(Assert(formula))

    def _restart_if_dead(self) -> bool:
        if not self._opened or self.transport.alive:
            return False
        if self._closed:
            raise SolverUnavailable("session is closed")
        self.restarts += 1
        logger.warning("Solver stopped responding; restarting and replaying %d scope(s)",
                       len(self._frames))
        self.transport.close()
        self._load()
        for frame in self._frames:
            self._execute(Push())
            for formula in frame:
                self._execute(Assert(formula))
        return True

    def _send(self, command: Command) -> Response:
        if not self._opened:
            self.open()
        self._restart_if_dead()
        return self._execute(command)

    def _execute(self, command: Command) -> Response:
        response = self.transport.execute(command)
        if response.status is Status.ERROR:
            raise SMTLIBSolverError(f"{type(command).__name__} failed: {response.reason}")
        return response
