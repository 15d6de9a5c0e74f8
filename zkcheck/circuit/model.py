"""In-memory circuit model: columns, gates, lookups and copy constraints.

A circuit is a ``num_rows`` tall grid of cells, one column per
:class:`~zkcheck.ff.Column`.  Gates are polynomial templates written with
row-relative queries; they are instantiated on every row where all their
rotations stay inside the grid, unless an explicit row list is given.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from zkcheck.ff import Cell, Column, ColumnKind, Field, FieldExpr
from zkcheck.ff.ff_ast import queries_of
from zkcheck.utils.exceptions import CircuitError

logger = logging.getLogger(__name__)


def _applicable_rows(exprs: Sequence[FieldExpr], rows: Optional[Tuple[int, ...]],
                     num_rows: int) -> List[int]:
    rotations = [rot for expr in exprs for _, rot in queries_of(expr)]
    if not rotations:
        # row-independent: a single instantiation is enough
        return [0] if rows is None else list(rows[:1])
    if rows is not None:
        return list(rows)
    low, high = min(rotations), max(rotations)
    return [r for r in range(num_rows) if r + low >= 0 and r + high < num_rows]


@dataclass(frozen=True)
class Gate:
    """A named set of polynomials that must vanish on every applicable row."""
    name: str
    polys: Tuple[FieldExpr, ...]
    rows: Optional[Tuple[int, ...]] = None

    def applicable_rows(self, num_rows: int) -> List[int]:
        return _applicable_rows(self.polys, self.rows, num_rows)


@dataclass(frozen=True)
class Lookup:
    """The tuple ``inputs`` must equal one row of ``table`` on every applicable row."""
    name: str
    inputs: Tuple[FieldExpr, ...]
    table: Tuple[Tuple[int, ...], ...]
    rows: Optional[Tuple[int, ...]] = None

    def applicable_rows(self, num_rows: int) -> List[int]:
        return _applicable_rows(self.inputs, self.rows, num_rows)


@dataclass(frozen=True)
class Circuit:
    """An immutable circuit over a prime field.

    Attributes:
        field: the field all arithmetic happens in.
        columns: ordered columns; the order fixes symbol names.
        num_rows: height of the grid.
        gates: custom gates.
        lookups: lookup arguments against constant tables.
        copies: pairs of cells constrained to be equal.
        fixed: known values of fixed and selector cells; selector cells
            absent from this mapping are disabled (zero).
    """
    field: Field
    columns: Tuple[Column, ...]
    num_rows: int
    gates: Tuple[Gate, ...] = ()
    lookups: Tuple[Lookup, ...] = ()
    copies: Tuple[Tuple[Cell, Cell], ...] = ()
    fixed: Mapping[Cell, int] = dc_field(default_factory=dict)

    def __post_init__(self):
        if self.num_rows < 1:
            raise CircuitError("a circuit needs at least one row")
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise CircuitError(f"duplicate column names in {names}")
        gate_names = [g.name for g in self.gates]
        if len(set(gate_names)) != len(gate_names):
            raise CircuitError(f"duplicate gate names in {gate_names}")
        for cell in self.fixed:
            self._check_cell(cell, "fixed value")
            if cell.column.kind not in (ColumnKind.FIXED, ColumnKind.SELECTOR):
                raise CircuitError(f"{cell} is not in a fixed or selector column")
        for lhs, rhs in self.copies:
            self._check_cell(lhs, "copy constraint")
            self._check_cell(rhs, "copy constraint")
        for lookup in self.lookups:
            for row in lookup.table:
                if len(row) != len(lookup.inputs):
                    raise CircuitError(
                        f"lookup '{lookup.name}' table row {row} does not match "
                        f"{len(lookup.inputs)} inputs")

    def _check_cell(self, cell: Cell, what: str) -> None:
        if cell.column not in self.columns or not 0 <= cell.row < self.num_rows:
            raise CircuitError(f"{what} references {cell} outside the circuit")

    @property
    def modulus(self) -> int:
        return self.field.modulus

    def column(self, name: str) -> Column:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"no column named {name!r}")

    def column_index(self, column: Column) -> int:
        return self.columns.index(column)

    def cell(self, name: str, row: int) -> Cell:
        cell = Cell(self.column(name), row)
        self._check_cell(cell, "requested cell")
        return cell

    def contains(self, cell: Cell) -> bool:
        return cell.column in self.columns and 0 <= cell.row < self.num_rows

    def cells(self, kind: Optional[ColumnKind] = None) -> Iterator[Cell]:
        """All cells, column by column, rows ascending."""
        for col in self.columns:
            if kind is not None and col.kind is not kind:
                continue
            for row in range(self.num_rows):
                yield Cell(col, row)

    def known_values(self) -> Dict[Cell, int]:
        """Values of every fixed-value and selector cell."""
        values: Dict[Cell, int] = {}
        for cell in self.cells(ColumnKind.SELECTOR):
            values[cell] = self.field.reduce(self.fixed.get(cell, 0))
        for cell, value in self.fixed.items():
            values[cell] = self.field.reduce(value)
        return values


class CircuitBuilder:
    """Incremental construction of a :class:`Circuit`.

    Example:
        b = CircuitBuilder(11, rows=1)
        a = b.advice("a")
        b.gate("bool_a", a.cur() * (1 - a.cur()))
        circuit = b.build()
    """

    def __init__(self, modulus: Union[int, Field], rows: int = 1):
        self.field = modulus if isinstance(modulus, Field) else Field(modulus)
        self.num_rows = rows
        self._columns: List[Column] = []
        self._gates: List[Gate] = []
        self._lookups: List[Lookup] = []
        self._copies: List[Tuple[Cell, Cell]] = []
        self._fixed: Dict[Cell, int] = {}

    def column(self, name: str, kind: ColumnKind = ColumnKind.ADVICE) -> Column:
        col = Column(name, kind)
        self._columns.append(col)
        return col

    def advice(self, name: str) -> Column:
        return self.column(name, ColumnKind.ADVICE)

    def fixed(self, name: str) -> Column:
        return self.column(name, ColumnKind.FIXED)

    def instance(self, name: str) -> Column:
        return self.column(name, ColumnKind.INSTANCE)

    def selector(self, name: str) -> Column:
        return self.column(name, ColumnKind.SELECTOR)

    def gate(self, name: str, *polys: FieldExpr,
             rows: Optional[Iterable[int]] = None) -> Gate:
        gate = Gate(name, tuple(polys), None if rows is None else tuple(rows))
        self._gates.append(gate)
        return gate

    def lookup(self, name: str, inputs: Sequence[FieldExpr],
               table: Iterable[Sequence[int]],
               rows: Optional[Iterable[int]] = None) -> Lookup:
        lookup = Lookup(name, tuple(inputs), tuple(tuple(r) for r in table),
                        None if rows is None else tuple(rows))
        self._lookups.append(lookup)
        return lookup

    def copy(self, lhs: Cell, rhs: Cell) -> None:
        self._copies.append((lhs, rhs))

    def assign_fixed(self, column: Column, row: int, value: int) -> None:
        self._fixed[Cell(column, row)] = value

    def enable(self, selector: Column, *rows: int) -> None:
        for row in rows:
            self._fixed[Cell(selector, row)] = 1

    def build(self) -> Circuit:
        circuit = Circuit(
            field=self.field,
            columns=tuple(self._columns),
            num_rows=self.num_rows,
            gates=tuple(self._gates),
            lookups=tuple(self._lookups),
            copies=tuple(self._copies),
            fixed=dict(self._fixed),
        )
        logger.debug("Built circuit: %d columns, %d rows, %d gates over %s",
                     len(circuit.columns), circuit.num_rows, len(circuit.gates), circuit.field)
        return circuit
