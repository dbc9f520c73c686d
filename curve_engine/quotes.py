"""
Quotes: an observed price paired with the contract it prices.

The convenience constructors accept either scalars (one Quote) or sequences
(a list of Quotes). When maturities are omitted for a sequence they default
to ``1, 2, ..., n``.
"""
from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .contracts import Cashflow, Contract, FixedBond, maturity
from .rates import Periodic, Rate, as_compounding, discount_factor


@dataclass(frozen=True)
class Quote:
    price: float
    instrument: Contract

    @property
    def maturity(self) -> float:
        return maturity(self.instrument)

    @classmethod
    def from_model(cls, model, contract: Contract) -> "Quote":
        """Quote ``contract`` at the price ``model`` gives it."""
        return cls(model.present_value(contract), contract)

    def isclose(self, other: "Quote", rel_tol: float = 1e-9) -> bool:
        return math.isclose(self.price, other.price, rel_tol=rel_tol) and self.instrument == other.instrument


def _is_sequence(x) -> bool:
    return isinstance(x, (list, tuple, np.ndarray))


def _broadcast(fn):
    @functools.wraps(fn)
    def wrapper(values, maturities=None, **kwargs):
        if _is_sequence(values):
            if maturities is None:
                maturities = range(1, len(values) + 1)
            if len(maturities) != len(values):
                raise ValueError("values and maturities must have the same length")
            return [fn(v, m, **kwargs) for v, m in zip(values, maturities)]
        if maturities is None:
            raise TypeError(f"{fn.__name__} needs a maturity for a scalar quote")
        return fn(values, maturities, **kwargs)

    return wrapper


@_broadcast
def ZCBPrice(price: float, time: float) -> Quote:
    """Price of a unit zero-coupon bond (a discount factor)."""
    return Quote(float(price), Cashflow(1.0, float(time)))


@_broadcast
def ZCBYield(rate, time: float) -> Quote:
    """Zero (spot) rate; a bare number is annual effective."""
    return Quote(discount_factor(rate, time), Cashflow(1.0, float(time)))


def _coupon_frequency(rate, frequency) -> Periodic:
    if isinstance(rate, Rate) and isinstance(rate.compounding, Periodic):
        return rate.compounding
    return as_compounding(frequency)


@_broadcast
def ParYield(rate, time: float, frequency=2) -> Quote:
    """
    Par yield of a bond priced at 1.

    Coupons are paid at ``frequency`` unless ``rate`` is a periodic ``Rate``,
    in which case its own frequency is used.
    """
    freq = _coupon_frequency(rate, frequency)
    coupon = freq(rate).value
    return Quote(1.0, FixedBond(coupon, freq, float(time)))


@_broadcast
def ParSwapYield(rate, time: float, frequency=4) -> Quote:
    """Fixed leg of a par swap (quarterly by default)."""
    return ParYield(rate, time, frequency=frequency)


@_broadcast
def CMTYield(rate, time: float) -> Quote:
    """
    Constant maturity treasury yield.

    Maturities up to one year are discount instruments; longer ones are
    semi-annual par bonds.
    """
    if time <= 1:
        return Quote(discount_factor(rate, time), FixedBond(0.0, Periodic(1), float(time)))
    r = Periodic(2)(rate)
    return Quote(1.0, FixedBond(r.value, r.compounding, float(time)))


@_broadcast
def OISYield(rate, time: float) -> Quote:
    """Overnight index swap rate: single settlement up to a year, quarterly beyond."""
    if time <= 1:
        return Quote(discount_factor(rate, time), FixedBond(0.0, Periodic(1), float(time)))
    r = Periodic(4)(rate)
    return Quote(1.0, FixedBond(r.value, r.compounding, float(time)))


def ForwardYields(rates: Sequence, times: Sequence[float] | None = None) -> List[Quote]:
    """
    Quotes for consecutive forward rates.

    ``rates[i]`` is the rate from ``times[i-1]`` (0 for the first) to
    ``times[i]``. The forwards are chained into spot discount factors, so
    each quote prices a unit zero-coupon bond maturing at ``times[i]``.
    """
    if times is None:
        times = range(1, len(rates) + 1)
    if len(times) != len(rates):
        raise ValueError("rates and times must have the same length")
    quotes = []
    df = 1.0
    t_prior = 0.0
    for r, t in zip(rates, times):
        df *= discount_factor(r, float(t) - t_prior)
        t_prior = float(t)
        quotes.append(Quote(df, Cashflow(1.0, t_prior)))
    return quotes


ForwardYield = ForwardYields


def cashflow_matrix(quotes: Sequence[Quote]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cashflows of each quoted instrument on the union of their payment times.

    Returns ``(times, matrix)`` with ``matrix[i, j]`` the amount paid at
    ``times[i]`` by instrument ``j``.
    """
    from .projection import Projection

    flows = [list(Projection(q.instrument)) for q in quotes]
    times = np.array(sorted({cf.time for cfs in flows for cf in cfs}), dtype=float)
    index = {t: i for i, t in enumerate(times)}

    m = np.zeros((len(times), len(quotes)), dtype=float)
    for j, cfs in enumerate(flows):
        for cf in cfs:
            m[index[cf.time], j] += cf.amount
    return times, m
