"""
Fixed‑point decimal arithmetic on plain Python integers.

A :class:`FixedPoint` is an integer ``raw`` paired with an explicit decimal
``scale``: the represented value is ``raw / 10**scale``. Every conversion
into the type and every multiplication **truncates toward zero**, so a
value survives any number of round trips without representation drift.

Subgraph amounts arrive as decimal strings ("1234.5678…"); they are turned
into ``Decimal`` first and then into ``FixedPoint`` through the digit
tuple, never through a float or a formatted string.
"""
from __future__ import annotations

from decimal import Decimal
from functools import total_ordering
from typing import Union

from config import TOKEN_DECIMALS

Number = Union[Decimal, int, str]


def _truncdiv(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero (Python's ``//`` floors)."""
    q = abs(numerator) // abs(denominator)
    return q if (numerator >= 0) == (denominator > 0) else -q


def _scaled_int(value: Decimal, scale: int) -> int:
    """``value * 10**scale`` truncated to an integer, computed exactly."""
    if not value.is_finite():
        raise ValueError(f"Cannot represent non-finite value {value!r}")
    sign, digits, exponent = value.as_tuple()
    coefficient = int("".join(map(str, digits))) if digits else 0
    shift = exponent + scale
    if shift >= 0:
        raw = coefficient * 10**shift
    else:
        raw = coefficient // 10**-shift
    return -raw if sign else raw


@total_ordering
class FixedPoint:
    """Integer ``raw`` at ``scale`` fractional decimal digits."""

    __slots__ = ("raw", "scale")

    def __init__(self, raw: int, scale: int = TOKEN_DECIMALS) -> None:
        if scale < 0:
            raise ValueError("scale must be non-negative")
        self.raw = int(raw)
        self.scale = int(scale)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #
    @classmethod
    def from_decimal(cls, value: Number, scale: int = TOKEN_DECIMALS) -> "FixedPoint":
        """Parse a decimal amount, truncating digits beyond ``scale``."""
        return cls(_scaled_int(Decimal(value), scale), scale)

    @classmethod
    def ratio(
        cls, numerator: Number, denominator: Number, scale: int = TOKEN_DECIMALS
    ) -> "FixedPoint":
        """
        ``numerator / denominator`` truncated to ``scale`` fractional digits.

        Both operands are lifted to a common integer grid first, so the
        quotient is exact before the single truncation step.
        """
        num, den = Decimal(numerator), Decimal(denominator)
        if den == 0:
            raise ZeroDivisionError("ratio denominator is zero")
        grid = max(0, -num.as_tuple().exponent, -den.as_tuple().exponent)
        n = _scaled_int(num, grid)
        d = _scaled_int(den, grid)
        return cls(_truncdiv(n * 10**scale, d), scale)

    @classmethod
    def one(cls, scale: int = TOKEN_DECIMALS) -> "FixedPoint":
        return cls(10**scale, scale)

    # ------------------------------------------------------------------ #
    # Arithmetic (same scale only)
    # ------------------------------------------------------------------ #
    def _check(self, other: "FixedPoint") -> None:
        if not isinstance(other, FixedPoint):
            raise TypeError(f"Expected FixedPoint, got {type(other).__name__}")
        if other.scale != self.scale:
            raise ValueError(f"Scale mismatch: {self.scale} vs {other.scale}")

    def __add__(self, other: "FixedPoint") -> "FixedPoint":
        self._check(other)
        return FixedPoint(self.raw + other.raw, self.scale)

    def __sub__(self, other: "FixedPoint") -> "FixedPoint":
        self._check(other)
        return FixedPoint(self.raw - other.raw, self.scale)

    def __mul__(self, other: "FixedPoint") -> "FixedPoint":
        self._check(other)
        return FixedPoint(_truncdiv(self.raw * other.raw, 10**self.scale), self.scale)

    def __abs__(self) -> "FixedPoint":
        return FixedPoint(abs(self.raw), self.scale)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedPoint):
            return NotImplemented
        return self.scale == other.scale and self.raw == other.raw

    def __lt__(self, other: "FixedPoint") -> bool:
        self._check(other)
        return self.raw < other.raw

    def __hash__(self) -> int:
        return hash((self.raw, self.scale))

    # ------------------------------------------------------------------ #
    # Conversion
    # ------------------------------------------------------------------ #
    def to_decimal(self) -> Decimal:
        return Decimal(f"{self.raw}e-{self.scale}")

    def __int__(self) -> int:
        return self.raw

    def __repr__(self) -> str:
        return f"FixedPoint({self.to_decimal()}, scale={self.scale})"
