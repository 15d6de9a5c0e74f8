# coding: utf-8
"""
Public subclasses of different Exceptions
"""


class ZKCheckException(Exception):
    """Base class for zkcheck exceptions"""

    pass


class CircuitError(ZKCheckException):
    """A circuit or expression is malformed"""

    pass


class UnboundCell(CircuitError):
    """An expression references a cell that has no value or no symbol."""

    def __init__(self, cell, context: str = ""):
        self.cell = cell
        self.context = context
        msg = f"unbound cell {cell}"
        if context:
            msg += f" ({context})"
        super().__init__(msg)


class UnsupportedOperator(CircuitError):
    """A gate uses a node outside constant/cell/add/negate/multiply."""

    def __init__(self, node, gate_name: str = ""):
        self.node = node
        self.gate_name = gate_name
        where = f" in gate '{gate_name}'" if gate_name else ""
        super().__init__(f"unsupported operator {type(node).__name__}{where}: {node!r}")


class SMTError(ZKCheckException):
    """Errors raised while talking to a solver"""

    pass


class SolverUnavailable(SMTError):
    """The solver process cannot be started or stopped answering."""

    pass


class SMTLIBSolverError(SMTError):
    """The solver answered a command with (error ...)"""

    pass


class ScopeError(SMTError):
    """Unbalanced push/pop on a solver session."""

    pass


class SMTUnknown(ZKCheckException):
    """The solver could not decide a query"""

    pass


class SolverUnknown(SMTUnknown):
    """A single query timed out or the solver gave up on it."""

    def __init__(self, reason: str = ""):
        self.reason = reason
        super().__init__(reason or "solver returned unknown")


class VacuousPremise(ZKCheckException):
    """The hypotheses of a query contradict the base constraints."""

    pass
