"""
In-process z3 backend.

z3 has no native prime-field sort, so field arithmetic is encoded either in
bit-vectors (default) or in integers:

* ``bv``: every cell is a bit-vector of width ``2 * bits(p)`` constrained to
  ``x < p``.  The width leaves room for the product of two reduced values,
  and every operator result is reduced with ``URem``.
* ``int``: every cell is an integer in ``[0, p)`` and results are reduced
  with ``%``.

Each backend owns a private ``z3.Context`` so sessions can run in
parallel threads.
"""
import logging
from typing import Dict, List, Optional

import z3

from zkcheck.ff import Cell, FieldExpr
from zkcheck.ff.ff_ast import FieldAdd, FieldCell, FieldConst, FieldMul, fold
from zkcheck.smt import config
from zkcheck.smt.commands import (
    And, Assert, CheckSat, Command, Declare, DefineSort, Equal, Exit, Formula,
    GetValue, NotEqual, Or, Pop, Push, SetLogic, SetOption,
)
from zkcheck.smt.symbols import SymbolTable
from zkcheck.smt.transport import SUCCESS, Response, Status, Transport
from zkcheck.utils.exceptions import (
    SolverUnavailable, UnboundCell, UnsupportedOperator,
)

logger = logging.getLogger(__name__)

ENCODINGS = ("bv", "int")


class Z3FieldBackend(Transport):
    """Executes solver commands against an in-process z3 solver."""

    def __init__(self, symbols: SymbolTable, encoding: Optional[str] = None,
                 timeout_ms: Optional[int] = None):
        super().__init__(symbols)
        encoding = encoding or config.DEFAULT_Z3_ENCODING
        if encoding not in ENCODINGS:
            raise ValueError(f"unknown z3 encoding '{encoding}', expected one of {ENCODINGS}")
        self.encoding = encoding
        self.timeout_ms = timeout_ms
        self.modulus = symbols.field.modulus
        self.width = 2 * symbols.field.bits
        self._ctx: Optional[z3.Context] = None
        self._solver: Optional[z3.Solver] = None
        self._vars: Dict[Cell, z3.ExprRef] = {}

    @property
    def alive(self) -> bool:
        return self._solver is not None

    def start(self) -> None:
        self._ctx = z3.Context()
        self._solver = z3.Solver(ctx=self._ctx)
        if self.timeout_ms:
            self._solver.set("timeout", int(self.timeout_ms))
        self._vars = {}
        logger.debug("Started z3 backend (%s encoding, width %d) for GF(%d)",
                     self.encoding, self.width, self.modulus)

    def close(self) -> None:
        self._solver = None
        self._vars = {}
        self._ctx = None

    # Encoding -------------------------------------------------------------

    def _const(self, value: int) -> z3.ExprRef:
        return self._const_raw(value % self.modulus)

    def _reduce(self, term: z3.ExprRef) -> z3.ExprRef:
        modulus = self._const_raw(self.modulus)
        if self.encoding == "bv":
            return z3.URem(term, modulus)
        return term % modulus

    def _const_raw(self, value: int) -> z3.ExprRef:
        if self.encoding == "bv":
            return z3.BitVecVal(value, self.width, self._ctx)
        return z3.IntVal(value, self._ctx)

    def _declare(self, cell: Cell) -> None:
        if cell in self._vars:
            return
        name = self.symbols.name(cell)
        modulus = self._const_raw(self.modulus)
        if self.encoding == "bv":
            var = z3.BitVec(name, self.width, self._ctx)
            self._solver.add(z3.ULT(var, modulus))
        else:
            var = z3.Int(name, self._ctx)
            self._solver.add(var >= 0, var < modulus)
        self._vars[cell] = var

    def term(self, expr: FieldExpr) -> z3.ExprRef:
        """Translate an instantiated field term."""
        return fold(expr, self._leaf, self._combine)

    def _leaf(self, node: FieldExpr) -> z3.ExprRef:
        if isinstance(node, FieldConst):
            return self._const(node.value)
        if isinstance(node, FieldCell):
            try:
                return self._vars[node.cell]
            except KeyError:
                raise UnboundCell(node.cell, "not declared in solver") from None
        raise UnsupportedOperator(node)

    def _combine(self, node: FieldExpr, args: List[z3.ExprRef]) -> z3.ExprRef:
        if isinstance(node, FieldAdd):
            return self._reduce(args[0] + args[1])
        if isinstance(node, FieldMul):
            return self._reduce(args[0] * args[1])
        return self._reduce(self._const_raw(self.modulus) - args[0])

    def formula(self, formula: Formula) -> z3.BoolRef:
        if isinstance(formula, Equal):
            return self.term(formula.lhs) == self.term(formula.rhs)
        if isinstance(formula, NotEqual):
            return self.term(formula.lhs) != self.term(formula.rhs)
        if isinstance(formula, And):
            if not formula.args:
                return z3.BoolVal(True, self._ctx)
            return z3.And([self.formula(f) for f in formula.args])
        if isinstance(formula, Or):
            if not formula.args:
                return z3.BoolVal(False, self._ctx)
            return z3.Or([self.formula(f) for f in formula.args])
        raise UnsupportedOperator(formula)

    # Commands -------------------------------------------------------------

    def execute(self, command: Command) -> Response:
        if self._solver is None:
            raise SolverUnavailable("z3 backend is not started")
        if isinstance(command, (SetOption, SetLogic, DefineSort, Exit)):
            return SUCCESS
        if isinstance(command, Declare):
            self._declare(command.cell)
            return SUCCESS
        if isinstance(command, Assert):
            self._solver.add(self.formula(command.formula))
            return SUCCESS
        if isinstance(command, Push):
            for _ in range(command.levels):
                self._solver.push()
            return SUCCESS
        if isinstance(command, Pop):
            try:
                self._solver.pop(command.levels)
            except z3.Z3Exception as exc:
                return Response(Status.ERROR, reason=str(exc))
            return SUCCESS
        if isinstance(command, CheckSat):
            result = self._solver.check()
            if result == z3.sat:
                return Response(Status.SAT)
            if result == z3.unsat:
                return Response(Status.UNSAT)
            reason = self._solver.reason_unknown()
            logger.debug("z3 returned unknown: %s", reason)
            return Response(Status.UNKNOWN, reason=reason)
        if isinstance(command, GetValue):
            try:
                model = self._solver.model()
            except z3.Z3Exception as exc:
                return Response(Status.ERROR, reason=str(exc))
            values = {}
            for cell in command.cells:
                value = model.eval(self.term(FieldCell(cell)), model_completion=True)
                values[cell] = value.as_long() % self.modulus
            return Response(Status.SUCCESS, model=values)
        raise TypeError(f"not a solver command: {command!r}")
