# coding: utf-8
"""
Tests for the under-determinism prover
"""
import pytest

from zkcheck.analysis import (
    Outcome, ProverConfig, UnderDeterminismProver, analyze_circuit, default_targets,
    exclude_target,
)
from zkcheck.circuit import CircuitBuilder
from zkcheck.ff import evaluate
from zkcheck.ff.ff_ast import instantiate
from zkcheck.smt.compiler import compile_circuit
from zkcheck.smt.session import SolverSession
from zkcheck.smt.transport import Response, Status
from zkcheck.tests import TestCase, bit_circuit, main


class TestBitComposition(TestCase):
    """a(1-a) = 0, b(1-b) = 0, a + 2b - c = 0 over GF(11)."""

    def setUp(self):
        self.circuit = bit_circuit()
        self.a = self.circuit.cell("a", 0)
        self.b = self.circuit.cell("b", 0)
        self.c = self.circuit.cell("c", 0)

    def _prover(self, session, **kwargs):
        return UnderDeterminismProver(session, ProverConfig(**kwargs))

    def test_composition_is_determined(self):
        with SolverSession(compile_circuit(self.circuit), backend="z3") as session:
            prover = self._prover(session)
            zero = prover.check_candidate(self.c, ((self.a, 0), (self.b, 0)))
            one = prover.check_candidate(self.c, ((self.a, 1), (self.b, 0)))
            self.assertEqual(session.depth, 0)
        self.assertEqual(zero.outcome, Outcome.DETERMINED)
        self.assertEqual(zero.value, 0)
        self.assertEqual(one.outcome, Outcome.DETERMINED)
        self.assertEqual(one.value, 1)

    def test_all_candidates(self):
        report = analyze_circuit(self.circuit, [self.c], [self.a, self.b])
        cell_report = report.report_for(self.c)
        self.assertEqual(len(cell_report.findings), 4)
        self.assertEqual([f.value for f in cell_report.findings], [0, 2, 1, 3])
        self.assertFalse(report.problematic_cells)
        self.assertTrue(report.satisfiable)

    def test_without_composition_every_candidate_is_under_constrained(self):
        circuit = bit_circuit(compose=False)
        report = analyze_circuit(circuit, [self.c], [self.a, self.b])
        findings = report.report_for(self.c).findings
        self.assertEqual(len(findings), 4)
        for finding in findings:
            self.assertEqual(finding.outcome, Outcome.UNDER_CONSTRAINED)
            self.assertNotEqual(finding.value, finding.alternate)
        self.assertEqual(report.problematic_cells, [self.c])

    def test_witnesses_satisfy_every_gate(self):
        circuit = bit_circuit(compose=False)
        report = analyze_circuit(circuit, [self.c], [self.a, self.b])
        for finding in report.findings:
            for value in (finding.value, finding.alternate):
                assignment = dict(finding.assignment)
                assignment[self.c] = value
                for gate in circuit.gates:
                    for poly in gate.polys:
                        self.assertEqual(evaluate(instantiate(poly, 0), assignment, circuit.field), 0)

    def test_vacuous_candidates(self):
        config = ProverConfig(candidate_bound=3)
        report = analyze_circuit(self.circuit, [self.c], [self.a, self.b], config)
        outcomes = report.report_for(self.c).outcomes()
        self.assertEqual(len(outcomes), 9)
        self.assertEqual(outcomes.count(Outcome.VACUOUS), 5)
        self.assertEqual(outcomes.count(Outcome.DETERMINED), 4)

    def test_idempotent_findings(self):
        first = analyze_circuit(self.circuit, [self.c], [self.a, self.b])
        second = analyze_circuit(self.circuit, [self.c], [self.a, self.b])
        self.assertEqual(first.report_for(self.c).outcomes(), second.report_for(self.c).outcomes())
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_scope_balance_after_queries(self):
        with SolverSession(compile_circuit(self.circuit), backend="z3") as session:
            base = session.assertions
            prover = self._prover(session)
            prover.check_cell(self.c, [self.a, self.b])
            prover.check_consistency()
            self.assertEqual(session.depth, 0)
            self.assertEqual(session.assertions, base)

    def test_target_cannot_drive_itself(self):
        with SolverSession(compile_circuit(self.circuit), backend="z3") as session:
            with self.assertRaises(ValueError):
                self._prover(session).check_cell(self.c, [self.c])

    def test_analyze_drops_target_from_driving(self):
        report = analyze_circuit(self.circuit, [self.a], [self.a, self.b])
        findings = report.report_for(self.a).findings
        self.assertEqual(len(findings), 2)
        self.assertTrue(all(f.candidate[0][0] == self.b for f in findings))

    def test_analyze_projects_explicit_candidates_for_driving_target(self):
        config = ProverConfig(candidates=[(0, 1), (1, 1)])
        report = analyze_circuit(self.circuit, [self.a, self.c], [self.a, self.b], config)
        a_findings = report.report_for(self.a).findings
        self.assertEqual([f.candidate for f in a_findings], [((self.b, 1),)])
        c_findings = report.report_for(self.c).findings
        self.assertEqual([f.outcome for f in c_findings], [Outcome.DETERMINED] * 2)
        self.assertEqual([f.value for f in c_findings], [2, 3])

    def test_stop_on_first(self):
        circuit = bit_circuit(compose=False)
        config = ProverConfig(stop_on_first=True)
        report = analyze_circuit(circuit, [self.c], [self.a, self.b], config)
        self.assertEqual(len(report.report_for(self.c).findings), 1)


def test_exclude_target():
    circuit = bit_circuit()
    a, b, c = (circuit.cell(name, 0) for name in "abc")
    config = ProverConfig(candidates=[(0, 0), (1, 0), (0, 1)])

    drivers, projected = exclude_target(a, [a, b], config)
    assert drivers == [b]
    assert projected.candidates == [(0,), (1,)]
    assert config.candidates == [(0, 0), (1, 0), (0, 1)]

    assert exclude_target(c, [a, b], config) == ([a, b], config)
    with pytest.raises(ValueError):
        exclude_target(a, [a, b], ProverConfig(candidates=[(0,)]))


def test_empty_driving_set_is_one_candidate():
    circuit = bit_circuit()
    a = circuit.cell("a", 0)
    report = analyze_circuit(circuit, [a])
    findings = report.report_for(a).findings
    assert len(findings) == 1
    assert findings[0].candidate == ()
    assert findings[0].outcome is Outcome.UNDER_CONSTRAINED
    assert {findings[0].value, findings[0].alternate} == {0, 1}


def test_pinned_cell_is_determined():
    b = CircuitBuilder(13)
    x = b.advice("x")
    b.gate("bool", x.cur() * (1 - x.cur()))
    b.gate("pin", x.cur() - 1)
    circuit = b.build()
    report = analyze_circuit(circuit)
    finding = report.report_for(circuit.cell("x", 0)).findings[0]
    assert finding.outcome is Outcome.DETERMINED
    assert finding.value == 1


def test_long_sum_gate():
    b = CircuitBuilder(11)
    x, y = b.advice("x"), b.advice("y")
    total = x.cur()
    for _ in range(1499):
        total = total + x.cur()
    b.gate("long_sum", total - y.cur())
    circuit = b.build()
    x0, y0 = circuit.cell("x", 0), circuit.cell("y", 0)
    report = analyze_circuit(circuit, [y0], [x0])
    findings = report.report_for(y0).findings
    assert [f.outcome for f in findings] == [Outcome.DETERMINED] * 2
    assert [f.value for f in findings] == [0, 1500 % 11]


def test_unsatisfiable_circuit_is_vacuous_everywhere():
    b = CircuitBuilder(11)
    x = b.advice("x")
    b.gate("one", x.cur() - 1)
    b.gate("two", x.cur() - 2)
    circuit = b.build()
    report = analyze_circuit(circuit)
    assert report.satisfiable is False
    assert report.report_for(circuit.cell("x", 0)).outcomes() == [Outcome.VACUOUS]


def test_explicit_candidates():
    circuit = bit_circuit()
    a, b, c = (circuit.cell(n, 0) for n in "abc")
    config = ProverConfig(candidates=[(1, 1), (12, 0)])
    report = analyze_circuit(circuit, [c], [a, b], config)
    findings = report.report_for(c).findings
    assert [f.assignment for f in findings] == [{a: 1, b: 1}, {a: 1, b: 0}]
    assert [f.value for f in findings] == [3, 1]


def test_candidate_arity_is_checked():
    circuit = bit_circuit()
    a, b, c = (circuit.cell(n, 0) for n in "abc")
    with pytest.raises(ValueError):
        analyze_circuit(circuit, [c], [a, b], ProverConfig(candidates=[(1,)]))


def test_max_candidates_caps_enumeration():
    circuit = bit_circuit()
    a, b, c = (circuit.cell(n, 0) for n in "abc")
    report = analyze_circuit(circuit, [c], [a, b], ProverConfig(candidate_bound=11, max_candidates=5))
    assert len(report.report_for(c).findings) == 5


def test_unknown_is_recorded():
    circuit = bit_circuit(compose=False)
    c = circuit.cell("c", 0)
    with SolverSession(compile_circuit(circuit), backend="z3") as session:
        session.check = lambda cells=(): Response(Status.UNKNOWN, reason="incomplete")
        report = UnderDeterminismProver(session).check_cell(c)
        assert session.depth == 0
    assert report.outcomes() == [Outcome.UNKNOWN]
    assert report.findings[0].reason == "incomplete"
    assert not report.is_under_constrained


def test_default_targets():
    circuit = bit_circuit()
    a = circuit.cell("a", 0)
    assert [str(c) for c in default_targets(circuit, [a])] == ["b[0]", "c[0]"]


def test_invalid_config():
    with pytest.raises(ValueError):
        ProverConfig(candidate_bound=0)
    with pytest.raises(ValueError):
        ProverConfig(max_candidates=0)


if __name__ == '__main__':
    main()
