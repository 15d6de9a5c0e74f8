# coding: utf-8
"""
End-to-end checks against a real cvc5 binary (skipped when it is missing)
"""
from zkcheck.analysis import Outcome, ProverConfig, analyze_circuit
from zkcheck.global_params import global_config
from zkcheck.smt.commands import cell_equals
from zkcheck.smt.compiler import compile_circuit
from zkcheck.smt.session import SolverSession
from zkcheck.smt.transport import Status
from zkcheck.tests import TestCase, bit_circuit, main, skipIf

HAS_CVC5 = global_config.is_solver_available("cvc5")


@skipIf(not HAS_CVC5, "cvc5 not installed")
class TestCVC5(TestCase):

    def test_native_finite_field_session(self):
        compiled = compile_circuit(bit_circuit())
        a, b, c = (compiled.circuit.cell(n, 0) for n in "abc")
        with SolverSession(compiled, backend="cvc5") as session:
            with session.scope():
                session.add(cell_equals(a, 1))
                session.add(cell_equals(b, 1))
                response = session.check([c])
            self.assertEqual(response.status, Status.SAT)
            self.assertEqual(response.model[c], 3)
            self.assertEqual(session.depth, 0)

    def test_analysis_matches_z3(self):
        circuit = bit_circuit(compose=False)
        driving = [circuit.cell("a", 0), circuit.cell("b", 0)]
        target = circuit.cell("c", 0)
        config = ProverConfig(candidate_bound=2)
        native = analyze_circuit(circuit, [target], driving, config, backend="cvc5")
        encoded = analyze_circuit(circuit, [target], driving, config, backend="z3")
        self.assertEqual(native.report_for(target).outcomes(),
                         encoded.report_for(target).outcomes())
        self.assertTrue(all(o is Outcome.UNDER_CONSTRAINED
                            for o in native.report_for(target).outcomes()))


if __name__ == '__main__':
    main()
