"""Load circuits from the JSON description used by the command line tool.

Format::

    {
      "modulus": 11,
      "rows": 1,
      "columns": [{"name": "a", "kind": "advice"}, ...],
      "gates": [{"name": "bool_a",
                 "polys": [["mul", ["query", "a", 0],
                                   ["sub", ["const", 1], ["query", "a", 0]]]],
                 "rows": [0]}],
      "lookups": [{"name": "range", "inputs": [["query", "a", 0]],
                   "table": [[0], [1]]}],
      "copies": [[["a", 0], ["b", 0]]],
      "fixed": [["f", 0, 5]],
      "selectors": [["s", 0]]
    }

Expressions are nested lists: ``const``, ``query`` (column, rotation),
``cell`` (column, row), ``add``/``mul`` (n-ary, folded left), ``sub``
and ``neg``.
"""
import json
import logging
from typing import Any, Dict, List, Sequence

from zkcheck.circuit.model import Circuit, CircuitBuilder
from zkcheck.ff import Cell, Column, ColumnKind, FieldExpr
from zkcheck.ff.ff_ast import FieldAdd, FieldCell, FieldConst, FieldMul, FieldNeg, FieldQuery
from zkcheck.utils.exceptions import CircuitError, UnsupportedOperator

logger = logging.getLogger(__name__)


class _OpToken:
    """Stand-in node used to report an unknown operator name."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<op {self.name}>"


def parse_expr(data: Any, columns: Dict[str, Column]) -> FieldExpr:
    """Build an expression tree from its nested-list form."""
    if isinstance(data, int) and not isinstance(data, bool):
        return FieldConst(data)
    if not isinstance(data, list) or not data or not isinstance(data[0], str):
        raise CircuitError(f"malformed expression: {data!r}")
    op, args = data[0].lower(), data[1:]
    if op == "const":
        _expect_arity(data, 1)
        return FieldConst(int(args[0]))
    if op == "query":
        if len(args) not in (1, 2):
            raise CircuitError(f"'query' takes a column and an optional rotation: {data!r}")
        rotation = int(args[1]) if len(args) == 2 else 0
        return FieldQuery(_column(columns, args[0]), rotation)
    if op == "cell":
        _expect_arity(data, 2)
        return FieldCell(Cell(_column(columns, args[0]), int(args[1])))
    if op == "neg":
        _expect_arity(data, 1)
        return FieldNeg(parse_expr(args[0], columns))
    if op == "sub":
        _expect_arity(data, 2)
        return FieldAdd(parse_expr(args[0], columns), FieldNeg(parse_expr(args[1], columns)))
    if op in ("add", "mul"):
        if len(args) < 2:
            raise CircuitError(f"'{op}' needs at least two operands: {data!r}")
        node_type = FieldAdd if op == "add" else FieldMul
        result = parse_expr(args[0], columns)
        for arg in args[1:]:
            result = node_type(result, parse_expr(arg, columns))
        return result
    raise UnsupportedOperator(_OpToken(op))


def _expect_arity(data: List, arity: int) -> None:
    if len(data) - 1 != arity:
        raise CircuitError(f"'{data[0]}' takes {arity} operand(s): {data!r}")


def _column(columns: Dict[str, Column], name: str) -> Column:
    try:
        return columns[name]
    except KeyError:
        raise CircuitError(f"unknown column {name!r}") from None


def _rows(entry: Dict[str, Any]):
    rows = entry.get("rows")
    return None if rows is None else [int(r) for r in rows]


def circuit_from_dict(data: Dict[str, Any]) -> Circuit:
    """Build a :class:`Circuit` from an already decoded JSON object."""
    try:
        builder = CircuitBuilder(int(data["modulus"]), rows=int(data.get("rows", 1)))
        columns: Dict[str, Column] = {}
        for col in data["columns"]:
            kind = ColumnKind.from_string(col.get("kind", "advice"))
            columns[col["name"]] = builder.column(col["name"], kind)
    except (KeyError, TypeError) as exc:
        raise CircuitError(f"missing or malformed circuit header: {exc}") from exc

    for gate in data.get("gates", []):
        polys = [parse_expr(p, columns) for p in gate["polys"]]
        builder.gate(gate["name"], *polys, rows=_rows(gate))
    for lookup in data.get("lookups", []):
        inputs = [parse_expr(e, columns) for e in lookup["inputs"]]
        builder.lookup(lookup["name"], inputs, lookup["table"], rows=_rows(lookup))
    for lhs, rhs in data.get("copies", []):
        builder.copy(Cell(_column(columns, lhs[0]), int(lhs[1])),
                     Cell(_column(columns, rhs[0]), int(rhs[1])))
    for name, row, value in data.get("fixed", []):
        builder.assign_fixed(_column(columns, name), int(row), int(value))
    for name, row in data.get("selectors", []):
        builder.enable(_column(columns, name), int(row))
    return builder.build()


def load_circuit(path: str) -> Circuit:
    """Read a circuit description from a JSON file."""
    logger.debug("Loading circuit from %s", path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise CircuitError(f"{path}: invalid JSON: {exc}") from exc
    return circuit_from_dict(data)


def parse_cell(text: str, circuit: Circuit) -> Cell:
    """Parse ``column:row`` into a cell of ``circuit``."""
    name, sep, row = text.rpartition(":")
    if not sep or not name:
        raise ValueError(f"expected COLUMN:ROW, got {text!r}")
    try:
        return circuit.cell(name, int(row))
    except (KeyError, CircuitError) as exc:
        raise ValueError(str(exc)) from exc


def parse_cells(texts: Sequence[str], circuit: Circuit) -> List[Cell]:
    return [parse_cell(t, circuit) for t in texts]


def parse_assignments(texts: Sequence[str], circuit: Circuit) -> Dict[Cell, int]:
    """Parse ``column:row=value`` items into a cell assignment."""
    values: Dict[Cell, int] = {}
    for text in texts:
        cell_text, sep, value = text.partition("=")
        if not sep:
            raise ValueError(f"expected COLUMN:ROW=VALUE, got {text!r}")
        try:
            values[parse_cell(cell_text, circuit)] = int(value, 0)
        except ValueError as exc:
            raise ValueError(f"bad assignment {text!r}: {exc}") from exc
    return values
