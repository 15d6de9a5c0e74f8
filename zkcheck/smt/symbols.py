"""Deterministic cell-to-symbol naming."""
from typing import Dict, Iterator, Sequence

from zkcheck.ff import Cell, Column, ColumnKind, Field
from zkcheck.utils.exceptions import UnboundCell

KIND_PREFIX = {
    ColumnKind.ADVICE: "a",
    ColumnKind.FIXED: "f",
    ColumnKind.INSTANCE: "i",
    ColumnKind.SELECTOR: "s",
}


class SymbolTable:
    """Maps every declared cell to its SMT symbol and back.

    The name of a cell is ``<kind letter><column index>_<row>``, so it only
    depends on the column order of the circuit and the row: two runs over
    the same circuit produce the same names.
    """

    def __init__(self, field: Field, columns: Sequence[Column]):
        self.field = field
        self._index: Dict[Column, int] = {col: i for i, col in enumerate(columns)}
        self._names: Dict[Cell, str] = {}
        self._cells: Dict[str, Cell] = {}

    @staticmethod
    def symbol_name(kind: ColumnKind, index: int, row: int) -> str:
        return f"{KIND_PREFIX[kind]}{index}_{row}"

    def declare(self, cell: Cell) -> str:
        """Allocate (or return) the symbol of ``cell``."""
        name = self._names.get(cell)
        if name is not None:
            return name
        if cell.column not in self._index or cell.row < 0:
            raise UnboundCell(cell, "column is not part of the circuit")
        name = self.symbol_name(cell.column.kind, self._index[cell.column], cell.row)
        self._names[cell] = name
        self._cells[name] = cell
        return name

    def name(self, cell: Cell) -> str:
        try:
            return self._names[cell]
        except KeyError:
            raise UnboundCell(cell, "no symbol declared") from None

    def cell(self, name: str) -> Cell:
        return self._cells[name]

    def __contains__(self, cell: object) -> bool:
        return cell in self._names

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)
