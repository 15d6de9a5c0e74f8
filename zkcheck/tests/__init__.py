# coding: utf-8
"""Shared test helpers."""
import unittest
from unittest import TestCase, main

from zkcheck.circuit import Circuit, CircuitBuilder

__all__ = ["TestCase", "main", "skipIf", "bit_circuit"]

skipIf = unittest.skipIf


def bit_circuit(compose: bool = True, modulus: int = 11) -> Circuit:
    """a(1-a) = 0, b(1-b) = 0 and, optionally, a + 2b - c = 0 on one row."""
    b = CircuitBuilder(modulus, rows=1)
    a_col, b_col, c_col = b.advice("a"), b.advice("b"), b.advice("c")
    a, bb, c = a_col.cur(), b_col.cur(), c_col.cur()
    b.gate("bool_a", a * (1 - a))
    b.gate("bool_b", bb * (1 - bb))
    if compose:
        b.gate("compose", a + 2 * bb - c)
    return b.build()
