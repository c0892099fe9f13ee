"""Monic cubic polynomials described by their three roots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple


class RootSet(NamedTuple):
    """The roots ``a``, ``b`` and ``c`` of ``f(x) = (x - a)(x - b)(x - c)``."""

    a: complex
    b: complex
    c: complex

    @classmethod
    def default(cls) -> "RootSet":
        return cls(complex(-2.0, 1.0), complex(2.0, 2.0), complex(-1.0, -2.0))

    @classmethod
    def from_values(cls, a: Any, b: Any, c: Any) -> "RootSet":
        return cls(complex(a), complex(b), complex(c))

    def replace_root(self, index: int, value: Any) -> "RootSet":
        if not 0 <= index < 3:
            raise IndexError(f"root index {index} out of range")
        values = list(self)
        values[index] = complex(value)
        return RootSet(*values)


def evaluate_cubic(x, total, pair_sum, product):
    """``x^3 - total*x^2 + pair_sum*x - product`` for scalars or arrays."""

    sqr = x * x
    return sqr * x - total * sqr + pair_sum * x - product


def evaluate_derivative(x, total, pair_sum):
    """``3x^2 - 2*total*x + pair_sum`` for scalars or arrays."""

    sqr = x * x
    return sqr * 3 - total * x * 2 + pair_sum


@dataclass(frozen=True)
class SymmetricCoefficients:
    """Elementary symmetric functions of a :class:`RootSet`."""

    total: complex
    pair_sum: complex
    product: complex

    @classmethod
    def from_roots(cls, roots: RootSet) -> "SymmetricCoefficients":
        a, b, c = roots
        return cls(
            total=a + b + c,
            pair_sum=a * b + a * c + b * c,
            product=a * b * c,
        )

    def as_tuple(self) -> tuple[complex, complex, complex]:
        return self.total, self.pair_sum, self.product

    def evaluate(self, x):
        return evaluate_cubic(x, self.total, self.pair_sum, self.product)

    def derivative(self, x):
        return evaluate_derivative(x, self.total, self.pair_sum)

    def newton_step(self, x):
        """One Newton-Raphson update. A vanishing derivative is not trapped."""

        return x - self.evaluate(x) / self.derivative(x)
