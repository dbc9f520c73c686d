"""
Interest rates tagged with a compounding convention.

    Rate(0.05, Periodic(2))     # semi-annual bond equivalent
    Rate(0.05, Continuous())
    Rate(0.05)                  # annual effective, Periodic(1)

A compounding object is also a constructor/converter:

    Periodic(2)(0.05)           -> Rate(0.05, Periodic(2))
    Continuous()(Rate(0.05))    -> Rate(0.04879..., Continuous())
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Union

from .errors import DomainViolation, InvalidFrequency


@dataclass(frozen=True)
class Continuous:
    """Continuous compounding."""

    def __call__(self, value) -> "Rate":
        if isinstance(value, Rate):
            return convert(self, value)
        return Rate(float(value), self)

    def to_continuous(self, value: float) -> float:
        return value

    def from_continuous(self, value: float) -> float:
        return value

    def discount(self, value: float, t: float) -> float:
        return math.exp(-value * t)


@dataclass(frozen=True)
class Periodic:
    """Compounding ``frequency`` times per year."""

    frequency: int

    def __post_init__(self) -> None:
        f = self.frequency
        if isinstance(f, bool) or not isinstance(f, numbers.Real):
            raise InvalidFrequency(f"Compounding frequency must be a positive integer, got {f!r}")
        if not math.isfinite(f) or f <= 0 or float(f) != int(f):
            raise InvalidFrequency(f"Compounding frequency must be a positive integer, got {f!r}")
        object.__setattr__(self, "frequency", int(f))

    def __call__(self, value) -> "Rate":
        if isinstance(value, Rate):
            return convert(self, value)
        return Rate(float(value), self)

    def to_continuous(self, value: float) -> float:
        m = self.frequency
        base = 1.0 + value / m
        if base <= 0.0:
            raise DomainViolation(f"Rate {value} with frequency {m} has no continuous equivalent.")
        return m * math.log(base)

    def from_continuous(self, value: float) -> float:
        m = self.frequency
        return m * math.expm1(value / m)

    def discount(self, value: float, t: float) -> float:
        m = self.frequency
        base = 1.0 + value / m
        if base <= 0.0:
            raise DomainViolation(f"Rate {value} with frequency {m} cannot be discounted.")
        return base ** (-m * t)


Compounding = Union[Periodic, Continuous]


def as_compounding(c) -> Compounding:
    """Coerce a compounding object, an integer frequency or ``inf`` into a convention."""
    if isinstance(c, (Periodic, Continuous)):
        return c
    if isinstance(c, numbers.Real) and not isinstance(c, bool) and math.isinf(c) and c > 0:
        return Continuous()
    return Periodic(c)


@dataclass(frozen=True)
class Rate:
    """
    A rate value paired with its compounding convention.

    Ordering compares the continuously compounded equivalents, while ``==``
    is field by field: ``Rate(0.05)`` and its continuous restatement order
    as equal but are not ``==``. Use ``isclose`` to compare rates quoted in
    different conventions.
    """
    value: float
    compounding: Compounding = Periodic(1)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))
        object.__setattr__(self, "compounding", as_compounding(self.compounding))

    # ---- conversions ----

    def convert(self, to) -> "Rate":
        return convert(to, self)

    @property
    def continuous(self) -> float:
        """Value of the equivalent continuously compounded rate."""
        return self.compounding.to_continuous(self.value)

    def discount(self, t: float, to: float | None = None) -> float:
        if to is not None:
            t = to - t
        return self.compounding.discount(self.value, t)

    def accumulation(self, t: float, to: float | None = None) -> float:
        return 1.0 / self.discount(t, to)

    def isclose(self, other: "Rate", rel_tol: float = 1e-9, abs_tol: float = 0.0) -> bool:
        return math.isclose(self.continuous, _as_rate(other).continuous, rel_tol=rel_tol, abs_tol=abs_tol)

    # ---- arithmetic ----

    def _combine(self, other, op) -> "Rate":
        if isinstance(other, Rate):
            if other.compounding == self.compounding:
                return Rate(op(self.value, other.value), self.compounding)
            return Rate(op(self.continuous, other.continuous), Continuous())
        if isinstance(other, numbers.Real):
            return Rate(op(self.value, float(other)), self.compounding)
        return NotImplemented

    def __add__(self, other):
        return self._combine(other, lambda a, b: a + b)

    def __radd__(self, other):
        return self._combine(other, lambda a, b: b + a)

    def __sub__(self, other):
        return self._combine(other, lambda a, b: a - b)

    def __rsub__(self, other):
        return self._combine(other, lambda a, b: b - a)

    def __mul__(self, other):
        return self._combine(other, lambda a, b: a * b)

    def __rmul__(self, other):
        return self._combine(other, lambda a, b: b * a)

    def __truediv__(self, other):
        if isinstance(other, Rate):
            if other.compounding == self.compounding:
                return self.value / other.value
            return self.continuous / other.continuous
        return self._combine(other, lambda a, b: a / b)

    def __neg__(self) -> "Rate":
        return Rate(-self.value, self.compounding)

    # ---- ordering on the continuous basis ----

    def __lt__(self, other):
        return self.continuous < _as_rate(other).continuous

    def __le__(self, other):
        return self.continuous <= _as_rate(other).continuous

    def __gt__(self, other):
        return self.continuous > _as_rate(other).continuous

    def __ge__(self, other):
        return self.continuous >= _as_rate(other).continuous

    def __float__(self) -> float:
        return self.value


def _as_rate(x) -> Rate:
    return x if isinstance(x, Rate) else Rate(x)


def convert(to, rate) -> Rate:
    """Return a Rate with the same discounting behaviour expressed in ``to``."""
    to = as_compounding(to)
    rate = _as_rate(rate)
    if rate.compounding == to:
        return rate
    return Rate(to.from_continuous(rate.continuous), to)


def discount_factor(rate, t: float, to: float | None = None) -> float:
    """Discount factor of ``rate`` over ``t`` (or over ``[t, to]``).

    A bare number is read as an annual effective rate.
    """
    return _as_rate(rate).discount(t, to)


def accumulation_factor(rate, t: float, to: float | None = None) -> float:
    return 1.0 / discount_factor(rate, t, to)
