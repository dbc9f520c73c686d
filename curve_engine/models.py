"""
Model abstraction.

Every yield model implements a single primitive, ``df(t)``: the discount
factor from time zero to ``t``. Everything else (``discount`` between two
times, ``accumulation``, ``zero``, ``forward``, ``par`` and
``present_value``) is derived here once for all variants.
"""
from __future__ import annotations

import dataclasses
import math
import numbers
import operator
from dataclasses import dataclass
from functools import singledispatch
from typing import List, Sequence, Union

import numpy as np

from .config import DEFAULT_COMPOUNDING, SHORT_END_TIME
from .contracts import Composite, Contract, Forward, Scaled, coupon_times
from .errors import DomainViolation, UnsupportedInstrument
from .rates import Continuous, Periodic, Rate, _as_rate, as_compounding, convert


@dataclass(frozen=True)
class Parameter:
    """A free model field seen by the optimizer, with its box bounds."""
    name: str
    lower: float = -math.inf
    upper: float = math.inf


class Model:
    """Base class for anything that can value a contract."""

    # ---- parameter vector <-> model ----

    def parameters(self) -> List[Parameter]:
        """Default free parameters (and bounds) used when ``fit`` is given none."""
        return []

    def pack(self, names: Sequence[str]) -> np.ndarray:
        return np.array([float(getattr(self, n)) for n in names], dtype=float)

    def unpack(self, names: Sequence[str], x) -> "Model":
        return dataclasses.replace(self, **{n: float(v) for n, v in zip(names, x)})

    # ---- valuation ----

    def present_value(self, contract: Contract, cur_time: float = 0.0, projection_models=None) -> float:
        return price_contract(contract, self, cur_time, projection_models)

    pv = present_value


class NullModel(Model):
    """Stand-in model for projections whose cashflows do not depend on rates."""

    def discount(self, t, to=None):
        raise UnsupportedInstrument("The null model cannot discount cashflows.")

    def __repr__(self) -> str:
        return "NullModel()"


NULL_MODEL = NullModel()


@singledispatch
def price_contract(contract, model, cur_time: float = 0.0, projection_models=None) -> float:
    """
    Value ``contract`` under ``model``.

    The default rule projects the contract (against ``projection_models`` if
    given) and discounts each cashflow at or after ``cur_time`` back to
    ``cur_time``. Contracts that cannot be projected (options) register their
    own rule.
    """
    from .projection import PresentValueProjection, Projection

    proj_model = model if projection_models is None else projection_models
    return Projection(contract, proj_model, PresentValueProjection(model, cur_time)).collect()


@price_contract.register
def _(contract: Forward, model, cur_time: float = 0.0, projection_models=None) -> float:
    # valued at time zero, a forward is discounted back to its own start
    if cur_time == 0:
        cur_time = contract.start_time
    return price_contract.dispatch(Contract)(contract, model, cur_time, projection_models)


@price_contract.register
def _(contract: Scaled, model, cur_time: float = 0.0, projection_models=None) -> float:
    return contract.factor * price_contract(contract.contract, model, cur_time, projection_models)


@price_contract.register
def _(contract: Composite, model, cur_time: float = 0.0, projection_models=None) -> float:
    return (
        price_contract(contract.leg1, model, cur_time, projection_models)
        + price_contract(contract.leg2, model, cur_time, projection_models)
    )


class YieldModel(Model):
    """A model that can discount: subclasses implement ``df(t)``."""

    def df(self, t: float) -> float:
        raise NotImplementedError

    def discount(self, t: float, to: float | None = None) -> float:
        """``discount(t)`` from zero, or ``discount(t, to)`` between two times."""
        if to is None:
            return self.df(t)
        if t == 0:
            return self.df(to)
        return self.df(to) / self.df(t)

    def accumulation(self, t: float, to: float | None = None) -> float:
        return 1.0 / self.discount(t, to)

    def zero(self, t: float, compounding=DEFAULT_COMPOUNDING) -> Rate:
        if t <= 0:
            t = SHORT_END_TIME
        z = -math.log(self.df(t)) / t
        return convert(compounding, Rate(z, Continuous()))

    def forward(self, t1: float, t2: float | None = None, compounding=DEFAULT_COMPOUNDING) -> Rate:
        if t2 is None:
            t2 = t1 + 1.0
        if t2 <= t1:
            raise DomainViolation(f"Forward period must have t2 > t1, got [{t1}, {t2}].")
        z = math.log(self.discount(t1) / self.discount(t2)) / (t2 - t1)
        return convert(compounding, Rate(z, Continuous()))

    def par(self, t: float, frequency=2) -> Rate:
        """
        Coupon rate at which a unit bond maturing at ``t`` prices at par.

        A bond shorter than one coupon period pays a single stub coupon; its
        simple stub rate is restated in ``Periodic(frequency)``.
        """
        freq = as_compounding(frequency)
        if not isinstance(freq, Periodic):
            raise DomainViolation("Par rates need a periodic coupon frequency.")
        f = freq.frequency
        times = coupon_times(t, f)
        dt = min(1.0 / f, t)
        annuity = dt * sum(self.df(ti) for ti in times)
        c = (1.0 - self.df(t)) / annuity
        if dt < 1.0 / f:
            z = math.log1p(c * dt) / dt
            return convert(freq, Rate(z, Continuous()))
        return Rate(c, freq)

    # ---- composition at the zero-rate level ----

    def __add__(self, other):
        return _compose(self, other, "+")

    def __radd__(self, other):
        return _compose(other, self, "+")

    def __sub__(self, other):
        return _compose(self, other, "-")

    def __rsub__(self, other):
        return _compose(other, self, "-")

    def __mul__(self, other):
        return _compose(self, other, "*")

    def __rmul__(self, other):
        return _compose(other, self, "*")

    def __truediv__(self, other):
        return _compose(self, other, "/")

    def __rtruediv__(self, other):
        return _compose(other, self, "/")


Operand = Union[YieldModel, float]

_OPS = {"+": operator.add, "-": operator.sub, "*": operator.mul, "/": operator.truediv}


def _compose(left, right, op: str):
    for side in (left, right):
        if not isinstance(side, (YieldModel, Rate, numbers.Real)):
            return NotImplemented
    return CompositeYield(_operand(left), _operand(right), op)


def _operand(x) -> Operand:
    if isinstance(x, YieldModel):
        return x
    if isinstance(x, Rate):
        return x.continuous
    # bare scalars in curve arithmetic are continuous zero rates
    return float(x)


def _zero_cc(x: Operand, t: float) -> float:
    if isinstance(x, YieldModel):
        return x.zero(t, Continuous()).value
    return x


@dataclass(frozen=True)
class CompositeYield(YieldModel):
    """
    Two operands combined through their continuously compounded zero rates.

    ``zero(a + b, t) == zero(a, t) + zero(b, t)``. This composes spot curves
    correctly; par rates of the result are not the sum of par rates.
    """
    left: Operand
    right: Operand
    op: str = "+"

    def __post_init__(self) -> None:
        if self.op not in _OPS:
            raise ValueError(f"Unknown curve operator {self.op!r}")

    def df(self, t: float) -> float:
        if t <= 0:
            return 1.0
        z = _OPS[self.op](_zero_cc(self.left, t), _zero_cc(self.right, t))
        return math.exp(-z * t)


@dataclass(frozen=True)
class Constant(YieldModel):
    """Flat curve; a bare number is an annual effective rate."""
    rate: Rate = Rate(0.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", _as_rate(self.rate))

    def df(self, t: float) -> float:
        return self.rate.discount(t)

    def parameters(self) -> List[Parameter]:
        return [Parameter("rate", -1.0, 1.0)]

    def pack(self, names: Sequence[str]) -> np.ndarray:
        return np.array([self.rate.value], dtype=float)

    def unpack(self, names: Sequence[str], x) -> "Constant":
        return Constant(Rate(float(x[0]), self.rate.compounding))


@dataclass(frozen=True)
class ForwardStarting(YieldModel):
    """``curve`` seen from ``start``: ``df(t) = discount(curve, start, start + t)``."""
    curve: YieldModel
    start: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise DomainViolation("Forward start must be >= 0.")

    def df(self, t: float) -> float:
        return self.curve.discount(self.start, self.start + t)
