import pytest

from zkcheck.circuit import CircuitBuilder
from zkcheck.circuit.structural import (
    lint, unconstrained_cells, unused_columns, unused_gates, vanishes,
)
from zkcheck.ff import Cell, Column, FieldCell, FieldConst
from zkcheck.tests import bit_circuit


def test_vanishes_over_the_field():
    x = FieldCell(Cell(Column("x"), 0))
    assert vanishes(FieldConst(0), 11)
    assert vanishes(FieldConst(22), 11)
    assert not vanishes(FieldConst(3), 11)
    assert vanishes(11 * x, 11)
    assert vanishes(x * x - x * x, 11)
    assert not vanishes(x * (1 - x), 11)


def test_disabled_selector_makes_gate_unused():
    b = CircuitBuilder(11, rows=2)
    a = b.advice("a")
    q = b.selector("q")
    b.gate("guarded", q.cur() * (a.cur() - 1))
    b.gate("live", a.cur() * (1 - a.cur()))
    circuit = b.build()
    assert unused_gates(circuit) == ["guarded"]

    b.enable(q, 1)
    assert unused_gates(b.build()) == []


def test_unused_columns():
    b = CircuitBuilder(11)
    a = b.advice("a")
    b.advice("spare")
    b.instance("pub")
    b.gate("bool_a", a.cur() * (1 - a.cur()))
    circuit = b.build()
    assert [c.name for c in unused_columns(circuit)] == ["spare"]


def test_unconstrained_cells():
    circuit = bit_circuit(compose=False)
    assert [str(c) for c in unconstrained_cells(circuit)] == ["c[0]"]
    assert unconstrained_cells(bit_circuit()) == []


def test_copy_and_lookup_constrain_cells():
    b = CircuitBuilder(11, rows=2)
    a = b.advice("a")
    c = b.advice("c")
    b.lookup("range", [a.cur()], [(0,), (1,)])
    b.copy(Cell(c, 0), Cell(c, 1))
    circuit = b.build()
    assert unconstrained_cells(circuit) == []


def test_lint_report():
    report = lint(bit_circuit(compose=False))
    assert report.unused_gates == []
    assert [c.name for c in report.unused_columns] == ["c"]
    assert [str(c) for c in report.unconstrained_cells] == ["c[0]"]
    assert report.to_dict()["unconstrained_cells"] == ["c[0]"]
    assert any("c[0]" in m for m in report.messages())


@pytest.mark.parametrize("modulus", [2, 3, 101])
def test_vanishes_fermat(modulus):
    # x^p - x vanishes as a function but not as a polynomial
    x = FieldCell(Cell(Column("x"), 0))
    expr = x
    for _ in range(modulus - 1):
        expr = expr * x
    assert not vanishes(expr - x, modulus)
