"""Lower a circuit into finite-field SMT assertions.

Every cell of the circuit gets one declared symbol.  Base assertions are
emitted in a fixed order:

1. gate polynomials, gate by gate, polynomial by polynomial, rows ascending
2. lookups (a disjunction over table rows of conjunctions of equalities)
3. copy constraints
4. known fixed and selector values

Structurally equal assertions are emitted once.  The compiler only builds
terms; it never evaluates them.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List

from zkcheck.circuit.model import Circuit
from zkcheck.ff import FieldExpr
from zkcheck.ff.ff_ast import FieldCell, FieldConst, cells_of, instantiate, walk
from zkcheck.smt.commands import (
    And, Assert, Command, Declare, DefineSort, Equal, Formula, Or, to_smtlib,
)
from zkcheck.smt.symbols import SymbolTable
from zkcheck.utils.exceptions import UnboundCell, UnsupportedOperator

logger = logging.getLogger(__name__)


@dataclass
class CompiledCircuit:
    """Symbols and base assertions of one circuit."""
    circuit: Circuit
    symbols: SymbolTable
    declarations: List[Declare]
    assertions: List[Assert]

    @property
    def field(self):
        return self.circuit.field

    def commands(self) -> List[Command]:
        """Sort definition, declarations and base assertions, in order."""
        return [DefineSort(self.circuit.field), *self.declarations, *self.assertions]

    def to_smtlib(self) -> str:
        return "\n".join(to_smtlib(cmd, self.symbols) for cmd in self.commands()) + "\n"


class ConstraintCompiler:
    """Compiles one :class:`Circuit`."""

    def __init__(self, circuit: Circuit):
        self.circuit = circuit
        self.symbols = SymbolTable(circuit.field, circuit.columns)
        self._assertions: List[Assert] = []
        self._seen: Dict[Formula, None] = {}

    def compile(self) -> CompiledCircuit:
        circuit = self.circuit
        declarations = [Declare(cell) for cell in circuit.cells()]
        for decl in declarations:
            self.symbols.declare(decl.cell)

        for gate in circuit.gates:
            for poly in gate.polys:
                self._validate(poly, gate.name)
            for row in gate.applicable_rows(circuit.num_rows):
                for poly in gate.polys:
                    term = self._instantiate(poly, row, f"gate '{gate.name}' row {row}")
                    self._emit(Equal(term, FieldConst(0)))

        for lookup in circuit.lookups:
            for expr in lookup.inputs:
                self._validate(expr, lookup.name)
            for row in lookup.applicable_rows(circuit.num_rows):
                inputs = [self._instantiate(e, row, f"lookup '{lookup.name}' row {row}")
                          for e in lookup.inputs]
                options = tuple(
                    And(tuple(Equal(term, FieldConst(v)) for term, v in zip(inputs, table_row)))
                    for table_row in lookup.table
                )
                self._emit(Or(options))

        for lhs, rhs in circuit.copies:
            self._emit(Equal(FieldCell(lhs), FieldCell(rhs)))

        for cell, value in circuit.known_values().items():
            self._emit(Equal(FieldCell(cell), FieldConst(value)))

        logger.debug("Compiled %d symbols and %d assertions", len(declarations),
                     len(self._assertions))
        return CompiledCircuit(circuit, self.symbols, declarations, list(self._assertions))

    @staticmethod
    def _validate(expr: FieldExpr, name: str) -> None:
        try:
            for _ in walk(expr):
                pass
        except UnsupportedOperator as exc:
            raise UnsupportedOperator(exc.node, name) from None

    def _instantiate(self, expr: FieldExpr, row: int, context: str) -> FieldExpr:
        term = instantiate(expr, row)
        for cell in cells_of(term):
            if not self.circuit.contains(cell):
                raise UnboundCell(cell, context)
        return term

    def _emit(self, formula: Formula) -> None:
        if formula in self._seen:
            return
        self._seen[formula] = None
        self._assertions.append(Assert(formula))


def compile_circuit(circuit: Circuit) -> CompiledCircuit:
    return ConstraintCompiler(circuit).compile()
