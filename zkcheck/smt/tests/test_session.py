# coding: utf-8
"""
Tests for scoped solver sessions
"""
from zkcheck.smt.commands import Assert, CheckSat, cell_equals
from zkcheck.smt.compiler import compile_circuit
from zkcheck.smt.session import SolverSession, create_transport
from zkcheck.smt.transport import Response, Status, Transport
from zkcheck.smt.z3_backend import Z3FieldBackend
from zkcheck.tests import TestCase, bit_circuit, main
from zkcheck.utils.exceptions import SMTLIBSolverError, ScopeError


class FlakyZ3(Z3FieldBackend):
    """z3 backend that dies on a chosen check-sat, like a killed process."""

    def __init__(self, symbols, fail_on_check=None):
        super().__init__(symbols, encoding="bv")
        self.fail_on_check = fail_on_check
        self.checks = 0
        self.starts = 0
        self.dead = False

    @property
    def alive(self):
        return self._solver is not None and not self.dead

    def start(self):
        super().start()
        self.starts += 1
        self.dead = False

    def execute(self, command):
        if isinstance(command, CheckSat):
            self.checks += 1
            if self.checks == self.fail_on_check:
                self.dead = True
                return Response(Status.UNKNOWN, reason="timeout")
        return super().execute(command)


class RejectingTransport(Transport):
    """Answers success to everything but one rejected assertion."""

    rejected = None

    def __init__(self, symbols):
        super().__init__(symbols)
        self.started = False

    @property
    def alive(self):
        return self.started

    def start(self):
        self.started = True

    def close(self):
        self.started = False

    def execute(self, command):
        if isinstance(command, Assert) and self.started and command.formula == self.rejected:
            return Response(Status.ERROR, reason="rejected")
        return Response(Status.SUCCESS)


class TestSolverSession(TestCase):

    def setUp(self):
        self.compiled = compile_circuit(bit_circuit())
        self.a = self.compiled.circuit.cell("a", 0)
        self.c = self.compiled.circuit.cell("c", 0)

    def test_scope_restores_base_assertions(self):
        with SolverSession(self.compiled, backend="z3") as session:
            base = session.assertions
            with session.scope():
                session.add(cell_equals(self.a, 1))
                self.assertEqual(session.depth, 1)
                self.assertEqual(len(session.assertions), len(base) + 1)
                response = session.check([self.c])
                self.assertEqual(response.status, Status.SAT)
                self.assertIn(response.model[self.c], (1, 3))
            self.assertEqual(session.depth, 0)
            self.assertEqual(session.assertions, base)

    def test_scope_pops_on_exception(self):
        with SolverSession(self.compiled, backend="z3") as session:
            with self.assertRaises(RuntimeError):
                with session.scope():
                    session.push()
                    session.add(cell_equals(self.a, 5))
                    raise RuntimeError("boom")
            self.assertEqual(session.depth, 0)
            self.assertEqual(session.check().status, Status.SAT)

    def test_unbalanced_pop(self):
        with SolverSession(self.compiled, backend="z3") as session:
            with self.assertRaises(ScopeError):
                session.pop()

    def test_add_at_depth_zero_extends_base(self):
        with SolverSession(self.compiled, backend="z3") as session:
            session.add(cell_equals(self.a, 5))
            self.assertEqual(len(session.base_assertions), len(self.compiled.assertions) + 1)
            self.assertEqual(session.check().status, Status.UNSAT)

    def test_add_all_fills_the_innermost_scope(self):
        b = self.compiled.circuit.cell("b", 0)
        with SolverSession(self.compiled, backend="z3") as session:
            with session.scope():
                session.add_all(cell_equals(cell, 1) for cell in (self.a, b))
                self.assertEqual(len(session.assertions), len(session.base_assertions) + 2)
                response = session.check([self.c])
            self.assertEqual(response.model[self.c], 3)
            self.assertEqual(session.assertions, session.base_assertions)

    def test_restart_replays_open_scopes(self):
        backend = FlakyZ3(self.compiled.symbols)
        with SolverSession(self.compiled, transport=backend) as session:
            session.push()
            session.add(cell_equals(self.a, 1))
            backend.dead = True
            response = session.check([self.a])
            self.assertEqual(response.status, Status.SAT)
            self.assertEqual(response.model[self.a], 1)
            self.assertEqual(session.restarts, 1)
            self.assertEqual(backend.starts, 2)
            session.pop()

    def test_timeout_then_pop_replays_without_frame(self):
        backend = FlakyZ3(self.compiled.symbols, fail_on_check=1)
        with SolverSession(self.compiled, transport=backend) as session:
            with session.scope():
                session.add(cell_equals(self.a, 5))
                self.assertEqual(session.check().status, Status.UNKNOWN)
            self.assertEqual(session.restarts, 1)
            # the unsatisfiable pin was dropped with its scope
            self.assertEqual(session.check().status, Status.SAT)

    def test_error_response_raises(self):
        transport = RejectingTransport(self.compiled.symbols)
        transport.rejected = cell_equals(self.a, 1)
        with SolverSession(self.compiled, transport=transport) as session:
            with self.assertRaises(SMTLIBSolverError):
                session.add(cell_equals(self.a, 1))
            self.assertEqual(session.base_assertions, [x.formula for x in self.compiled.assertions])

    def test_create_transport(self):
        self.assertIsInstance(create_transport(self.compiled.symbols, "z3"), Z3FieldBackend)
        with self.assertRaises(ValueError):
            create_transport(self.compiled.symbols, "yices")

    def test_close_is_idempotent(self):
        session = SolverSession(self.compiled, backend="z3").open()
        session.close()
        session.close()
        self.assertFalse(session.transport.alive)


if __name__ == '__main__':
    main()
