"""SMT layer: symbols, typed commands, circuit compilation and solver sessions."""
from .symbols import SymbolTable
from .commands import (
    And,
    Assert,
    CheckSat,
    Declare,
    DefineSort,
    Equal,
    GetValue,
    NotEqual,
    Or,
    Pop,
    Push,
    cell_differs,
    cell_equals,
    to_smtlib,
)
from .compiler import CompiledCircuit, ConstraintCompiler, compile_circuit
from .transport import Response, SMTLIBProcess, Status, Transport
from .z3_backend import Z3FieldBackend
from .session import SolverSession, create_transport
