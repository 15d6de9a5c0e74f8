"""Prime field arithmetic used by the expression model and the backends."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

import sympy


@dataclass(frozen=True)
class Field:
    """The prime field GF(p) shared by a whole analysis run.

    Values are plain Python ints; every operation returns the canonical
    representative in ``[0, p)``.
    """

    modulus: int

    def __post_init__(self):
        if isinstance(self.modulus, bool) or not isinstance(self.modulus, int):
            raise TypeError(f"field modulus must be an int, got {self.modulus!r}")
        if self.modulus < 2 or not sympy.isprime(self.modulus):
            raise ValueError(f"field modulus must be prime, got {self.modulus}")

    @property
    def bits(self) -> int:
        return self.modulus.bit_length()

    def reduce(self, value: int) -> int:
        return value % self.modulus

    def add(self, lhs: int, rhs: int) -> int:
        return (lhs + rhs) % self.modulus

    def mul(self, lhs: int, rhs: int) -> int:
        return (lhs * rhs) % self.modulus

    def neg(self, value: int) -> int:
        return (-value) % self.modulus

    def sub(self, lhs: int, rhs: int) -> int:
        return (lhs - rhs) % self.modulus

    def elements(self, bound: Optional[int] = None) -> Iterator[int]:
        """Yield ``0, 1, ...`` up to ``bound`` (exclusive), never past ``p``."""
        stop = self.modulus if bound is None else min(bound, self.modulus)
        return iter(range(max(stop, 0)))

    def __str__(self) -> str:
        return f"GF({self.modulus})"
