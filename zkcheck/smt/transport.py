"""
Solver transports: execute typed commands and parse the answers.

SMTLIBProcess talks to an external solver (cvc5 by default) over its
standard input/output.  ``:print-success`` is switched on so every command
yields exactly one response, which keeps the two sides in lock step.
A check-sat that exceeds the per-query timeout kills the process; the
query is answered ``unknown`` and the transport reports itself dead so the
owning session can restart and replay it.
"""
import logging
import os
import subprocess
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from threading import Timer
from typing import Dict, List, Optional, Sequence

from zkcheck.ff import Cell
from zkcheck.global_params import global_config
from zkcheck.smt import config
from zkcheck.smt.commands import (
    CheckSat, Command, Exit, GetValue, SetLogic, SetOption, to_smtlib,
)
from zkcheck.smt.sexpr import error_message, paren_depth, parse_model
from zkcheck.smt.symbols import SymbolTable
from zkcheck.utils.exceptions import SolverUnavailable

logger = logging.getLogger(__name__)


class Status(Enum):
    """Kinds of solver responses."""
    SUCCESS = "success"
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"
    ERROR = "error"


@dataclass(frozen=True)
class Response:
    """One parsed solver response."""
    status: Status
    model: Optional[Dict[Cell, int]] = None
    reason: str = ""


SUCCESS = Response(Status.SUCCESS)


class Transport(ABC):
    """Executes solver commands for one session.

    Use as a context manager to ensure proper cleanup:
        with SMTLIBProcess(symbols) as transport:
            responses = transport.run(commands)
    """

    def __init__(self, symbols: SymbolTable):
        self.symbols = symbols

    @abstractmethod
    def start(self) -> None:
        """Bring the solver up, ready for the first declaration."""

    @abstractmethod
    def execute(self, command: Command) -> Response:
        """Send one command and return its parsed response."""

    @abstractmethod
    def close(self) -> None:
        """Release the solver; safe to call more than once."""

    @property
    @abstractmethod
    def alive(self) -> bool:
        """Whether the solver still holds the state built so far."""

    def run(self, commands: Sequence[Command]) -> List[Response]:
        """Execute ``commands`` in order and return the response stream."""
        return [self.execute(cmd) for cmd in commands]

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def terminate(process, is_timeout: List):
    """Kill a solver stuck past its deadline and flag the timeout."""
    if process.poll() is None:
        try:
            is_timeout[0] = True
            process.kill()
            logger.debug("Solver process killed due to timeout.")
        except OSError as ex:
            logger.error("Error interrupting process: %s", ex)


class SMTLIBProcess(Transport):
    """Interactive SMT-LIB session with an external solver process."""

    def __init__(self, symbols: SymbolTable, cmd: Optional[List[str]] = None,
                 timeout_ms: Optional[int] = None, log_dir: Optional[str] = None):
        """
        Args:
            symbols: symbol table of the compiled circuit.
            cmd: solver command line; defaults to the located cvc5.
            timeout_ms: per check-sat timeout; exceeding it yields unknown.
            log_dir: directory receiving the SMT-LIB transcript.
        """
        super().__init__(symbols)
        self.cmd = cmd
        self.timeout_ms = timeout_ms
        self.log_dir = log_dir if log_dir is not None else config.QUERY_LOG_DIR
        self.log_path: Optional[str] = None
        self._process: Optional[subprocess.Popen] = None
        self._dead = False
        self._log = None

    @property
    def alive(self) -> bool:
        return (self._process is not None and not self._dead
                and self._process.poll() is None)

    def start(self) -> None:
        cmd = self.cmd or global_config.get_solver_command("cvc5", self.timeout_ms)
        if not cmd:
            raise SolverUnavailable("cvc5 not found; install it or set ZKCHECK_CVC5")
        logger.debug("Starting solver: %s", cmd)
        try:
            self._process = subprocess.Popen(
                cmd, stdin=subprocess.PIPE, stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT, text=True, bufsize=1)
        except OSError as exc:
            raise SolverUnavailable(f"cannot start solver {cmd[0]}: {exc}") from exc
        self._dead = False
        self._open_log()
        for command in (SetOption("print-success", "true"),
                        SetOption("produce-models", "true"),
                        SetLogic(config.SMT_LOGIC)):
            response = self.execute(command)
            if response.status is not Status.SUCCESS:
                self.close()
                raise SolverUnavailable(
                    f"solver rejected {to_smtlib(command, self.symbols)}: {response.reason}")

    def _open_log(self) -> None:
        if not self.log_dir:
            return
        os.makedirs(self.log_dir, exist_ok=True)
        self.log_path = os.path.join(self.log_dir, f"{uuid.uuid1()}_session.smt2")
        self._log = open(self.log_path, "w", encoding="utf-8")
        logger.debug("Logging solver transcript to %s", self.log_path)

    def execute(self, command: Command) -> Response:
        if self._process is None or self._dead:
            raise SolverUnavailable("solver session is not running")
        line = to_smtlib(command, self.symbols)
        logger.debug("> %s", line)
        if self._log is not None:
            self._log.write(line + "\n")
            self._log.flush()

        is_timeout = [False]
        timer = None
        if isinstance(command, CheckSat) and self.timeout_ms:
            timer = Timer(self.timeout_ms / 1000.0, terminate,
                          args=[self._process, is_timeout])
            timer.start()
        try:
            self._process.stdin.write(line + "\n")
            self._process.stdin.flush()
            if isinstance(command, Exit):
                return SUCCESS
            text = self._read_response()
        except (BrokenPipeError, OSError, EOFError) as exc:
            if is_timeout[0]:
                text = None
            else:
                self._dead = True
                raise SolverUnavailable(f"lost connection to solver: {exc}") from exc
        finally:
            if timer is not None:
                timer.cancel()

        if is_timeout[0]:
            self._dead = True
            return Response(Status.UNKNOWN, reason="timeout")
        logger.debug("< %s", text)
        return self._parse(command, text)

    def _read_response(self) -> str:
        """Read one complete response, which may span several lines."""
        lines = []
        depth = 0
        while True:
            line = self._process.stdout.readline()
            if not line:
                raise EOFError("solver closed its output")
            if not line.strip() and not lines:
                continue
            lines.append(line)
            depth += paren_depth(line)
            if depth <= 0:
                return "".join(lines).strip()

    def _parse(self, command: Command, text: str) -> Response:
        if text.startswith("(error"):
            return Response(Status.ERROR, reason=error_message(text))
        if isinstance(command, CheckSat):
            try:
                return Response(Status(text))
            except ValueError:
                return Response(Status.ERROR, reason=f"unexpected check-sat answer: {text}")
        if isinstance(command, GetValue):
            try:
                return Response(Status.SUCCESS, model=parse_model(text, self.symbols))
            except ValueError as exc:
                return Response(Status.ERROR, reason=str(exc))
        if text == "success":
            return SUCCESS
        if text == "unsupported":
            return Response(Status.ERROR, reason=f"unsupported: {to_smtlib(command, self.symbols)}")
        return Response(Status.ERROR, reason=f"unexpected answer: {text}")

    def close(self) -> None:
        process, self._process = self._process, None
        if process is not None:
            try:
                if process.poll() is None and not self._dead:
                    process.stdin.write("(exit)\n")
                    process.stdin.flush()
            except (BrokenPipeError, OSError):
                pass
            deadline = time.time() + config.SHUTDOWN_GRACE_SECONDS
            while process.poll() is None and time.time() < deadline:
                time.sleep(0.01)
            if process.poll() is None:
                process.kill()
            process.wait()
            for stream in (process.stdin, process.stdout):
                try:
                    stream.close()
                except OSError:
                    pass
            logger.debug("Solver process cleaned up")
        self._dead = True
        if self._log is not None:
            self._log.close()
            self._log = None
