"""Structural lints that need no solver.

These mirror the cheap passes run before the SMT based analysis:

- unused gates: gates whose polynomials vanish identically on every row
  once the known fixed and selector values are substituted
- unused columns: advice columns that no gate or lookup queries
- unconstrained cells: advice cells that occur in no non-vanishing gate
  instance, no lookup and no copy constraint

A polynomial "vanishes" when it is the zero polynomial over GF(p); this is
decided with sympy after substitution.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import sympy

from zkcheck.circuit.model import Circuit, Gate
from zkcheck.ff import Cell, Column, ColumnKind, FieldExpr
from zkcheck.ff.ff_ast import (
    FieldAdd, FieldCell, FieldConst, FieldMul, cells_of, fold, instantiate, queries_of,
    substitute,
)
from zkcheck.utils.exceptions import UnsupportedOperator

logger = logging.getLogger(__name__)


def to_sympy(expr: FieldExpr, symbols: Dict[Cell, sympy.Symbol]) -> sympy.Expr:
    """Translate an instantiated expression, allocating symbols on demand."""
    def leaf(node: FieldExpr) -> sympy.Expr:
        if isinstance(node, FieldConst):
            return sympy.Integer(node.value)
        if isinstance(node, FieldCell):
            if node.cell not in symbols:
                symbols[node.cell] = sympy.Symbol(f"{node.cell.column.name}_{node.cell.row}")
            return symbols[node.cell]
        raise UnsupportedOperator(node)

    def combine(node: FieldExpr, args: List[sympy.Expr]) -> sympy.Expr:
        if isinstance(node, FieldAdd):
            return args[0] + args[1]
        if isinstance(node, FieldMul):
            return args[0] * args[1]
        return -args[0]

    return fold(expr, leaf, combine)


def vanishes(expr: FieldExpr, modulus: int) -> bool:
    """True if ``expr`` is the zero polynomial over GF(modulus)."""
    symbols: Dict[Cell, sympy.Symbol] = {}
    sym = sympy.expand(to_sympy(expr, symbols))
    if not symbols:
        return int(sym) % modulus == 0
    return sympy.Poly(sym, *symbols.values(), modulus=modulus).is_zero


def _gate_instances(circuit: Circuit, gate: Gate, known: Dict[Cell, int]):
    for row in gate.applicable_rows(circuit.num_rows):
        for poly in gate.polys:
            yield row, substitute(instantiate(poly, row), known)


@dataclass
class LintReport:
    """Results of the structural passes."""
    unused_gates: List[str] = field(default_factory=list)
    unused_columns: List[Column] = field(default_factory=list)
    unconstrained_cells: List[Cell] = field(default_factory=list)

    def messages(self) -> List[str]:
        out = [f"unused gate: \"{name}\" (consider removing the gate or checking "
               f"selectors)" for name in self.unused_gates]
        out += [f"unused column: {col.name}" for col in self.unused_columns]
        out += [f"unconstrained cell: {cell} -- very likely a bug"
                for cell in self.unconstrained_cells]
        return out

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "unused_gates": list(self.unused_gates),
            "unused_columns": [c.name for c in self.unused_columns],
            "unconstrained_cells": [str(c) for c in self.unconstrained_cells],
        }


def unused_gates(circuit: Circuit) -> List[str]:
    known = circuit.known_values()
    unused = []
    for gate in circuit.gates:
        if all(vanishes(poly, circuit.modulus)
               for _, poly in _gate_instances(circuit, gate, known)):
            unused.append(gate.name)
    logger.info("Finished analysis: %d unused gates found.", len(unused))
    return unused


def unused_columns(circuit: Circuit) -> List[Column]:
    queried: Set[Column] = set()
    exprs = [p for g in circuit.gates for p in g.polys]
    exprs += [e for lk in circuit.lookups for e in lk.inputs]
    for expr in exprs:
        queried.update(col for col, _ in queries_of(expr))
        queried.update(cell.column for cell in cells_of(expr))
    unused = [col for col in circuit.columns
              if col.kind is ColumnKind.ADVICE and col not in queried]
    logger.info("Finished analysis: %d unused columns found.", len(unused))
    return unused


def unconstrained_cells(circuit: Circuit, cells: Optional[List[Cell]] = None) -> List[Cell]:
    """Advice cells (or ``cells``) that no live constraint mentions."""
    known = circuit.known_values()
    constrained: Set[Cell] = set()
    for gate in circuit.gates:
        for _, poly in _gate_instances(circuit, gate, known):
            if not vanishes(poly, circuit.modulus):
                constrained.update(cells_of(poly))
    for lookup in circuit.lookups:
        for row in lookup.applicable_rows(circuit.num_rows):
            for expr in lookup.inputs:
                constrained.update(cells_of(instantiate(expr, row)))
    for lhs, rhs in circuit.copies:
        constrained.update((lhs, rhs))

    candidates = cells if cells is not None else list(circuit.cells(ColumnKind.ADVICE))
    result = [c for c in candidates if c not in constrained]
    logger.info("Finished analysis: %d unconstrained cells found.", len(result))
    return result


def lint(circuit: Circuit) -> LintReport:
    """Run every structural pass."""
    return LintReport(
        unused_gates=unused_gates(circuit),
        unused_columns=unused_columns(circuit),
        unconstrained_cells=unconstrained_cells(circuit),
    )
