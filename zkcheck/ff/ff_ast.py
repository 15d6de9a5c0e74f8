#!/usr/bin/env python3
"""
ff_ast.py  –  AST classes for finite-field expressions over circuit cells

The node set is closed: FieldConst, FieldCell, FieldQuery, FieldAdd,
FieldNeg and FieldMul.  FieldQuery is the row-relative form of a cell
reference used inside gate templates; ``instantiate`` turns it into a
FieldCell for a concrete row.

Long sums folded term by term produce trees thousands of levels deep, so
every traversal here runs on an explicit stack (see ``walk`` and ``fold``).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Tuple, TypeVar, Union

from zkcheck.ff.field import Field
from zkcheck.utils.exceptions import UnboundCell, UnsupportedOperator

T = TypeVar("T")


class ColumnKind(Enum):
    """Kinds of circuit columns."""
    ADVICE = "advice"
    FIXED = "fixed"
    INSTANCE = "instance"
    SELECTOR = "selector"

    @classmethod
    def from_string(cls, name: str) -> "ColumnKind":
        name = name.lower()
        for kind in cls:
            if kind.value == name:
                return kind
        raise ValueError(f"Unknown column kind: {name}")


@dataclass(frozen=True)
class Column:
    """A named circuit column."""
    name: str
    kind: ColumnKind = ColumnKind.ADVICE

    def cur(self) -> "FieldQuery":
        return FieldQuery(self, 0)

    def next(self) -> "FieldQuery":
        return FieldQuery(self, 1)

    def prev(self) -> "FieldQuery":
        return FieldQuery(self, -1)

    def rot(self, rotation: int) -> "FieldQuery":
        return FieldQuery(self, rotation)

    def at(self, row: int) -> "FieldCell":
        return FieldCell(Cell(self, row))

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Cell:
    """One witness slot, identified by its column and absolute row."""
    column: Column
    row: int

    def __str__(self) -> str:
        return f"{self.column.name}[{self.row}]"


class FieldExpr:
    """Base class for all finite-field expressions.

    The arithmetic operators build new trees; nodes are never mutated.
    """

    def __add__(self, other) -> "FieldExpr":
        return FieldAdd(self, _lift(other))

    def __radd__(self, other) -> "FieldExpr":
        return FieldAdd(_lift(other), self)

    def __sub__(self, other) -> "FieldExpr":
        return FieldAdd(self, FieldNeg(_lift(other)))

    def __rsub__(self, other) -> "FieldExpr":
        return FieldAdd(_lift(other), FieldNeg(self))

    def __mul__(self, other) -> "FieldExpr":
        return FieldMul(self, _lift(other))

    def __rmul__(self, other) -> "FieldExpr":
        return FieldMul(_lift(other), self)

    def __neg__(self) -> "FieldExpr":
        return FieldNeg(self)


@dataclass(frozen=True)
class FieldConst(FieldExpr):
    """AST node for a field constant (not yet reduced)."""
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FieldCell(FieldExpr):
    """AST node for a reference to an absolute cell."""
    cell: Cell

    def __str__(self) -> str:
        return str(self.cell)


@dataclass(frozen=True)
class FieldQuery(FieldExpr):
    """AST node for a row-relative cell reference (column at rotation)."""
    column: Column
    rotation: int = 0

    def __str__(self) -> str:
        if self.rotation == 0:
            return f"{self.column.name}[cur]"
        return f"{self.column.name}[cur{self.rotation:+d}]"


class _Compound(FieldExpr):
    """Interior node.

    The hash is computed once from the already hashed children; equality
    and printing walk the tree without recursion.
    """
    template = ""

    def __post_init__(self):
        object.__setattr__(self, "_hash", hash((type(self).__name__,) + children(self)))

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other) -> bool:
        if not isinstance(other, FieldExpr):
            return NotImplemented
        return same_tree(self, other)

    def __str__(self) -> str:
        return fold(self, str, lambda node, args: node.template.format(*args))


@dataclass(frozen=True, eq=False)
class FieldAdd(_Compound):
    """AST node for finite field addition."""
    left: FieldExpr
    right: FieldExpr
    template = "({} + {})"


@dataclass(frozen=True, eq=False)
class FieldNeg(_Compound):
    """AST node for finite field negation."""
    arg: FieldExpr
    template = "-{}"


@dataclass(frozen=True, eq=False)
class FieldMul(_Compound):
    """AST node for finite field multiplication."""
    left: FieldExpr
    right: FieldExpr
    template = "({} * {})"


NODE_TYPES = (FieldConst, FieldCell, FieldQuery, FieldAdd, FieldNeg, FieldMul)

Assignment = Mapping[Cell, int]


def _lift(value: Union[FieldExpr, int]) -> FieldExpr:
    if isinstance(value, FieldExpr):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return FieldConst(value)
    raise TypeError(f"cannot use {value!r} as a field expression")


# Constructors -----------------------------------------------------------

def constant(value: int) -> FieldConst:
    return FieldConst(value)


def cell_ref(cell: Cell) -> FieldCell:
    return FieldCell(cell)


def query(column: Column, rotation: int = 0) -> FieldQuery:
    return FieldQuery(column, rotation)


def add(lhs: FieldExpr, rhs: FieldExpr) -> FieldAdd:
    return FieldAdd(lhs, rhs)


def negate(expr: FieldExpr) -> FieldNeg:
    return FieldNeg(expr)


def multiply(lhs: FieldExpr, rhs: FieldExpr) -> FieldMul:
    return FieldMul(lhs, rhs)


def sub(lhs: FieldExpr, rhs: FieldExpr) -> FieldAdd:
    return FieldAdd(lhs, FieldNeg(rhs))


def scale(factor: int, expr: FieldExpr) -> FieldMul:
    return FieldMul(FieldConst(factor), expr)


# Traversals -------------------------------------------------------------

def children(expr: FieldExpr) -> Tuple[FieldExpr, ...]:
    if isinstance(expr, (FieldAdd, FieldMul)):
        return (expr.left, expr.right)
    if isinstance(expr, FieldNeg):
        return (expr.arg,)
    if isinstance(expr, (FieldConst, FieldCell, FieldQuery)):
        return ()
    raise UnsupportedOperator(expr)


def walk(expr: FieldExpr) -> Iterator[FieldExpr]:
    """Pre-order traversal; raises UnsupportedOperator on foreign nodes."""
    stack = [expr]
    while stack:
        node = stack.pop()
        if not isinstance(node, NODE_TYPES):
            raise UnsupportedOperator(node)
        yield node
        stack.extend(reversed(children(node)))


def fold(expr: FieldExpr, leaf: Callable[[FieldExpr], T],
         node: Callable[[FieldExpr, List[T]], T]) -> T:
    """Bottom-up evaluation of ``expr`` on an explicit stack.

    ``leaf`` maps a constant, cell or query to a value; ``node`` combines an
    interior node with the values of its children, left to right.
    """
    values: List[T] = []
    stack: List[Tuple[FieldExpr, bool]] = [(expr, False)]
    while stack:
        current, expanded = stack.pop()
        kids = children(current)
        if not kids:
            values.append(leaf(current))
        elif expanded:
            args = values[-len(kids):]
            del values[-len(kids):]
            values.append(node(current, args))
        else:
            stack.append((current, True))
            stack.extend((kid, False) for kid in reversed(kids))
    return values[0]


def same_tree(lhs: FieldExpr, rhs: FieldExpr) -> bool:
    """Structural equality of two expressions."""
    stack = [(lhs, rhs)]
    while stack:
        x, y = stack.pop()
        if x is y:
            continue
        if type(x) is not type(y):
            return False
        if isinstance(x, _Compound):
            if x._hash != y._hash:
                return False
            stack.extend(zip(children(x), children(y)))
        elif x != y:
            return False
    return True


def rebuild(node: FieldExpr, args: List[FieldExpr]) -> FieldExpr:
    """Copy of interior ``node`` over new children."""
    return type(node)(*args)


def cells_of(expr: FieldExpr) -> List[Cell]:
    """Absolute cells referenced by ``expr``, in first-occurrence order."""
    seen: Dict[Cell, None] = {}
    for node in walk(expr):
        if isinstance(node, FieldCell):
            seen.setdefault(node.cell, None)
    return list(seen)


def queries_of(expr: FieldExpr) -> List[Tuple[Column, int]]:
    seen: Dict[Tuple[Column, int], None] = {}
    for node in walk(expr):
        if isinstance(node, FieldQuery):
            seen.setdefault((node.column, node.rotation), None)
    return list(seen)


def degree(expr: FieldExpr) -> int:
    """Syntactic degree of the polynomial."""
    def combine(node: FieldExpr, args: List[int]) -> int:
        if isinstance(node, FieldMul):
            return args[0] + args[1]
        return max(args)

    return fold(expr, lambda leaf: 0 if isinstance(leaf, FieldConst) else 1, combine)


def instantiate(expr: FieldExpr, row: int) -> FieldExpr:
    """Replace every FieldQuery by the FieldCell it denotes at ``row``."""
    def leaf(node: FieldExpr) -> FieldExpr:
        if isinstance(node, FieldQuery):
            return FieldCell(Cell(node.column, row + node.rotation))
        return node

    return fold(expr, leaf, rebuild)


def substitute(expr: FieldExpr, values: Assignment) -> FieldExpr:
    """Replace the cells bound in ``values`` by constants."""
    def leaf(node: FieldExpr) -> FieldExpr:
        if isinstance(node, FieldCell) and node.cell in values:
            return FieldConst(values[node.cell])
        return node

    return fold(expr, leaf, rebuild)


def evaluate(expr: FieldExpr, assignment: Assignment, field: Field) -> int:
    """Evaluate ``expr`` under ``assignment``, reducing at every node.

    Raises:
        UnboundCell: a referenced cell has no value, or the expression still
            contains a row-relative query.
    """
    def leaf(node: FieldExpr) -> int:
        if isinstance(node, FieldConst):
            return field.reduce(node.value)
        if isinstance(node, FieldQuery):
            raise UnboundCell(node, "row-relative query must be instantiated first")
        if node.cell not in assignment:
            raise UnboundCell(node.cell, "missing from assignment")
        return field.reduce(assignment[node.cell])

    def combine(node: FieldExpr, args: List[int]) -> int:
        if isinstance(node, FieldAdd):
            return field.add(*args)
        if isinstance(node, FieldMul):
            return field.mul(*args)
        return field.neg(args[0])

    return fold(expr, leaf, combine)
