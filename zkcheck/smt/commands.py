"""
Typed solver commands and their SMT-LIB rendering.

Formulas are boolean combinations of field equalities; terms are the
instantiated expression trees from :mod:`zkcheck.ff.ff_ast`.  Every
command goes through :func:`to_smtlib`, the only place that knows the
textual protocol (cvc5's ``QF_FF`` dialect).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from zkcheck.ff import Cell, Field, FieldExpr
from zkcheck.ff.ff_ast import FieldAdd, FieldCell, FieldConst, FieldMul, FieldNeg, fold
from zkcheck.smt.symbols import SymbolTable
from zkcheck.utils.exceptions import UnsupportedOperator

SORT_NAME = "F"

_FF_OPS = {FieldAdd: "ff.add", FieldMul: "ff.mul", FieldNeg: "ff.neg"}


class Formula:
    """Base class for assertion formulas."""


@dataclass(frozen=True)
class Equal(Formula):
    lhs: FieldExpr
    rhs: FieldExpr


@dataclass(frozen=True)
class NotEqual(Formula):
    lhs: FieldExpr
    rhs: FieldExpr


@dataclass(frozen=True)
class And(Formula):
    args: Tuple[Formula, ...]


@dataclass(frozen=True)
class Or(Formula):
    args: Tuple[Formula, ...]


def cell_equals(cell: Cell, value: int) -> Equal:
    return Equal(FieldCell(cell), FieldConst(value))


def cell_differs(cell: Cell, value: int) -> NotEqual:
    return NotEqual(FieldCell(cell), FieldConst(value))


# Commands ---------------------------------------------------------------

@dataclass(frozen=True)
class SetOption:
    name: str
    value: str


@dataclass(frozen=True)
class SetLogic:
    logic: str = "QF_FF"


@dataclass(frozen=True)
class DefineSort:
    field: Field


@dataclass(frozen=True)
class Declare:
    cell: Cell


@dataclass(frozen=True)
class Assert:
    formula: Formula


@dataclass(frozen=True)
class Push:
    levels: int = 1


@dataclass(frozen=True)
class Pop:
    levels: int = 1


@dataclass(frozen=True)
class CheckSat:
    pass


@dataclass(frozen=True)
class GetValue:
    cells: Tuple[Cell, ...]


@dataclass(frozen=True)
class Exit:
    pass


Command = Union[SetOption, SetLogic, DefineSort, Declare, Assert, Push, Pop,
                CheckSat, GetValue, Exit]


def field_literal(value: int, field: Field) -> str:
    return f"(as ff{field.reduce(value)} {SORT_NAME})"


def term_to_smtlib(expr: FieldExpr, symbols: SymbolTable) -> str:
    def leaf(node: FieldExpr) -> str:
        if isinstance(node, FieldConst):
            return field_literal(node.value, symbols.field)
        if isinstance(node, FieldCell):
            return symbols.name(node.cell)
        # FieldQuery must have been instantiated by the compiler
        raise UnsupportedOperator(node)

    return fold(expr, leaf, lambda node, args: f"({_FF_OPS[type(node)]} {' '.join(args)})")


def formula_to_smtlib(formula: Formula, symbols: SymbolTable) -> str:
    if isinstance(formula, Equal):
        return f"(= {term_to_smtlib(formula.lhs, symbols)} {term_to_smtlib(formula.rhs, symbols)})"
    if isinstance(formula, NotEqual):
        return (f"(not (= {term_to_smtlib(formula.lhs, symbols)} "
                f"{term_to_smtlib(formula.rhs, symbols)}))")
    if isinstance(formula, And):
        if not formula.args:
            return "true"
        return "(and " + " ".join(formula_to_smtlib(f, symbols) for f in formula.args) + ")"
    if isinstance(formula, Or):
        if not formula.args:
            return "false"
        return "(or " + " ".join(formula_to_smtlib(f, symbols) for f in formula.args) + ")"
    raise UnsupportedOperator(formula)


def to_smtlib(command: Command, symbols: SymbolTable) -> str:
    """Render one command as a single line of SMT-LIB."""
    if isinstance(command, Assert):
        return f"(assert {formula_to_smtlib(command.formula, symbols)})"
    if isinstance(command, Declare):
        return f"(declare-fun {symbols.name(command.cell)} () {SORT_NAME})"
    if isinstance(command, Push):
        return f"(push {command.levels})"
    if isinstance(command, Pop):
        return f"(pop {command.levels})"
    if isinstance(command, CheckSat):
        return "(check-sat)"
    if isinstance(command, GetValue):
        return "(get-value (" + " ".join(symbols.name(c) for c in command.cells) + "))"
    if isinstance(command, DefineSort):
        return f"(define-sort {SORT_NAME} () (_ FiniteField {command.field.modulus}))"
    if isinstance(command, SetLogic):
        return f"(set-logic {command.logic})"
    if isinstance(command, SetOption):
        return f"(set-option :{command.name} {command.value})"
    if isinstance(command, Exit):
        return "(exit)"
    raise TypeError(f"not a solver command: {command!r}")
