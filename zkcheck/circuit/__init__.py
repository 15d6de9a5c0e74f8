"""Circuit model, JSON loader and solver-free structural lints."""
from .model import Circuit, CircuitBuilder, Gate, Lookup
from .loader import (
    circuit_from_dict, load_circuit, parse_assignments, parse_cell, parse_cells,
)
