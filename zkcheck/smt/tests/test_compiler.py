# coding: utf-8
"""
Tests for lowering circuits into SMT assertions
"""
from zkcheck.circuit import CircuitBuilder
from zkcheck.ff import Cell, FieldAdd, FieldConst
from zkcheck.smt.commands import And, Equal, Or
from zkcheck.smt.compiler import compile_circuit
from zkcheck.tests import TestCase, bit_circuit, main
from zkcheck.utils.exceptions import UnboundCell, UnsupportedOperator


class TestConstraintCompiler(TestCase):

    def test_declares_every_cell(self):
        compiled = compile_circuit(bit_circuit())
        self.assertEqual([d.cell for d in compiled.declarations], list(compiled.circuit.cells()))
        self.assertEqual(len(compiled.symbols), 3)

    def test_gate_assertions_in_order(self):
        compiled = compile_circuit(bit_circuit())
        text = compiled.to_smtlib().splitlines()
        self.assertEqual(text[0], "(define-sort F () (_ FiniteField 11))")
        self.assertEqual(text[1:4], ["(declare-fun a0_0 () F)", "(declare-fun a1_0 () F)",
                                     "(declare-fun a2_0 () F)"])
        self.assertEqual(len(compiled.assertions), 3)
        self.assertIn("a0_0", text[4])
        self.assertIn("a1_0", text[5])
        self.assertIn("a2_0", text[6])

    def test_compilation_is_deterministic(self):
        self.assertEqual(compile_circuit(bit_circuit()).to_smtlib(),
                         compile_circuit(bit_circuit()).to_smtlib())

    def test_long_sum_renders(self):
        b = CircuitBuilder(11)
        x = b.advice("x")
        total = x.cur()
        for _ in range(1499):
            total = total + x.cur()
        b.gate("long_sum", total)
        text = compile_circuit(b.build()).to_smtlib()
        self.assertEqual(text.count("(ff.add a0_0 "), 1)
        self.assertEqual(text.count("ff.add"), 1499)

    def test_rotations_instantiate_per_row(self):
        b = CircuitBuilder(13, rows=3)
        x = b.advice("x")
        b.gate("step", x.next() - x.cur() - 1)
        compiled = compile_circuit(b.build())
        cells = [Cell(x, r) for r in range(3)]
        self.assertEqual(len(compiled.assertions), 2)
        first = compiled.assertions[0].formula
        self.assertIsInstance(first, Equal)
        self.assertEqual(first.rhs, FieldConst(0))
        self.assertIsInstance(first.lhs, FieldAdd)
        self.assertIn("a0_1", compiled.to_smtlib())
        self.assertEqual([d.cell for d in compiled.declarations], cells)

    def test_duplicate_assertions_are_emitted_once(self):
        b = CircuitBuilder(11)
        a = b.advice("a")
        b.gate("one", a.cur() * (1 - a.cur()))
        b.gate("two", a.cur() * (1 - a.cur()))
        compiled = compile_circuit(b.build())
        self.assertEqual(len(compiled.assertions), 1)

    def test_lookups_copies_and_pins(self):
        b = CircuitBuilder(11, rows=2)
        a = b.advice("a")
        q = b.selector("q")
        f = b.fixed("f")
        b.lookup("range", [a.cur()], [(0,), (1,)], rows=[0])
        b.copy(Cell(a, 0), Cell(a, 1))
        b.assign_fixed(f, 1, 4)
        b.enable(q, 0)
        compiled = compile_circuit(b.build())
        formulas = [x.formula for x in compiled.assertions]

        self.assertIsInstance(formulas[0], Or)
        self.assertEqual(len(formulas[0].args), 2)
        self.assertIsInstance(formulas[0].args[0], And)
        self.assertEqual(formulas[1], Equal(a.at(0), a.at(1)))
        pins = formulas[2:]
        self.assertIn(Equal(q.at(0), FieldConst(1)), pins)
        self.assertIn(Equal(q.at(1), FieldConst(0)), pins)
        self.assertIn(Equal(f.at(1), FieldConst(4)), pins)
        self.assertEqual(len(pins), 3)

    def test_unsupported_operator_names_the_gate(self):
        class Exp:
            pass

        b = CircuitBuilder(11)
        a = b.advice("a")
        b.gate("bad", FieldAdd(a.cur(), Exp()))
        with self.assertRaises(UnsupportedOperator) as ctx:
            compile_circuit(b.build())
        self.assertEqual(ctx.exception.gate_name, "bad")
        self.assertIn("bad", str(ctx.exception))

    def test_reference_outside_grid(self):
        b = CircuitBuilder(11, rows=2)
        a = b.advice("a")
        b.gate("far", a.cur() - a.rot(1), rows=[1])
        with self.assertRaises(UnboundCell):
            compile_circuit(b.build())


if __name__ == '__main__':
    main()
