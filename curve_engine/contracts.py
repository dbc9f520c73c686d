"""
Contracts: obligations that project into timed cashflows.

All contracts assume a unit notional. Scaling and sign flips are a map over
the produced cashflow stream (see ``Scaled``), never a field of the contract.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import singledispatch
from typing import Hashable, List, Union

from .errors import DomainViolation, UnsupportedInstrument
from .rates import Periodic, as_compounding


class Contract:
    """Base class for every contract variant."""

    def __neg__(self) -> "Scaled":
        return Scaled(self, -1.0)

    def __mul__(self, factor) -> "Scaled":
        return Scaled(self, float(factor))

    __rmul__ = __mul__


def _periodic(frequency) -> Periodic:
    c = as_compounding(frequency)
    if not isinstance(c, Periodic):
        raise DomainViolation("Coupon frequency must be periodic.")
    return c


@dataclass(frozen=True)
class Cashflow(Contract):
    amount: float
    time: float

    def __post_init__(self) -> None:
        if self.time < 0:
            raise DomainViolation(f"Cashflow time must be >= 0, got {self.time}.")

    def __add__(self, other):
        if isinstance(other, Cashflow):
            if other.time == self.time:
                return Cashflow(self.amount + other.amount, self.time)
            return Composite(self, other)
        return NotImplemented

    def shifted(self, dt: float) -> "Cashflow":
        return Cashflow(self.amount, self.time + dt)

    def scaled(self, factor: float) -> "Cashflow":
        return Cashflow(self.amount * factor, self.time)

    def isclose(self, other: "Cashflow", rel_tol: float = 1e-9, abs_tol: float = 1e-12) -> bool:
        return (
            math.isclose(self.amount, other.amount, rel_tol=rel_tol, abs_tol=abs_tol)
            and math.isclose(self.time, other.time, rel_tol=rel_tol, abs_tol=abs_tol)
        )


@dataclass(frozen=True)
class FixedBond(Contract):
    """Bullet bond paying ``coupon_rate / frequency`` per period plus principal at maturity."""
    coupon_rate: float
    frequency: Periodic
    maturity: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", _periodic(self.frequency))
        if self.maturity <= 0:
            raise DomainViolation("Bond maturity must be positive.")


@dataclass(frozen=True)
class FloatingBond(Contract):
    """Pays the forward of curve ``reference_key`` over each accrual period plus ``spread``."""
    spread: float
    frequency: Periodic
    maturity: float
    reference_key: Hashable

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", _periodic(self.frequency))
        if self.maturity <= 0:
            raise DomainViolation("Bond maturity must be positive.")


@dataclass(frozen=True)
class Forward(Contract):
    """``inner`` re-indexed so that its time zero is ``start_time``."""
    start_time: float
    inner: Contract

    def __post_init__(self) -> None:
        if self.start_time < 0:
            raise DomainViolation("Forward start must be >= 0.")


@dataclass(frozen=True)
class Composite(Contract):
    leg1: Contract
    leg2: Contract


@dataclass(frozen=True)
class Scaled(Contract):
    """Any contract with every cashflow amount multiplied by ``factor``."""
    contract: Contract
    factor: float


# ---- option-style contracts (priced by models, never projected) ----

@dataclass(frozen=True)
class CommonEquity(Contract):
    """A unit of equity with spot normalised to 1."""


@dataclass(frozen=True)
class EuroCall(Contract):
    underlying: Contract
    strike: float
    maturity: float


@dataclass(frozen=True)
class ZCBOption(Contract):
    """Option expiring at ``expiry`` on a unit zero-coupon bond maturing at ``maturity``."""
    strike: float
    expiry: float
    maturity: float
    call: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.expiry < self.maturity:
            raise DomainViolation("ZCB option needs 0 <= expiry < bond maturity.")


@dataclass(frozen=True)
class Cap(Contract):
    strike: float
    frequency: Periodic
    maturity: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", _periodic(self.frequency))


@dataclass(frozen=True)
class Floor(Contract):
    strike: float
    frequency: Periodic
    maturity: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", _periodic(self.frequency))


@dataclass(frozen=True)
class Swaption(Contract):
    """European option at ``expiry`` to enter a swap of length ``tenor`` fixed at ``strike``."""
    strike: float
    expiry: float
    tenor: float
    frequency: Periodic = Periodic(1)
    payer: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", _periodic(self.frequency))
        if self.expiry < 0 or self.tenor <= 0:
            raise DomainViolation("Swaption needs expiry >= 0 and a positive tenor.")

    def payment_times(self) -> List[float]:
        return [self.expiry + t for t in coupon_times(self.tenor, self.frequency.frequency)]


BondLike = Union[FixedBond, FloatingBond]


def coupon_times(maturity: float, frequency: float) -> List[float]:
    """
    Coupon times ending at ``maturity``, stepping back by ``min(1/frequency, maturity)``.

    The first (stub) coupon can be shorter than a full period; no time is <= 0.
    """
    if maturity <= 0:
        raise DomainViolation("Maturity must be positive.")
    dt = min(1.0 / frequency, maturity)
    n = int(math.ceil(maturity / dt - 1e-9))
    return [maturity - k * dt for k in reversed(range(n))]


@singledispatch
def maturity(contract) -> float:
    raise UnsupportedInstrument(f"No maturity defined for {type(contract).__name__}.")


@maturity.register
def _(contract: Cashflow) -> float:
    return contract.time


@maturity.register(FixedBond)
@maturity.register(FloatingBond)
@maturity.register(EuroCall)
@maturity.register(ZCBOption)
@maturity.register(Cap)
@maturity.register(Floor)
def _(contract) -> float:
    return contract.maturity


@maturity.register
def _(contract: Swaption) -> float:
    return contract.expiry + contract.tenor


@maturity.register
def _(contract: Forward) -> float:
    return contract.start_time + maturity(contract.inner)


@maturity.register
def _(contract: Composite) -> float:
    return max(maturity(contract.leg1), maturity(contract.leg2))


@maturity.register
def _(contract: Scaled) -> float:
    return maturity(contract.contract)
