"""
Closed-form option pricing.

Options have no projection rule; they are valued through ``price_contract``
rules registered here, so ``model.present_value(option)`` works exactly like
valuing a bond.

- ZCB options, caps/floors and swaptions under Gaussian short-rate models
  (Vasicek, Hull-White): Black's formula on the bond forward, caplets as ZCB
  puts, swaptions by Jamshidian's decomposition.
- European calls on equity under Black-Scholes-Merton.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Union

from scipy.optimize import brentq
from scipy.stats import norm

from .contracts import Cap, CommonEquity, EuroCall, Floor, Swaption, ZCBOption, coupon_times
from .errors import DomainViolation, FitDidNotConverge, UnsupportedInstrument
from .models import Parameter, YieldModel, price_contract
from .short_rate import SMALL_A, HullWhite, Vasicek

GaussianModel = Union[Vasicek, HullWhite]


def black(forward: float, strike: float, stdev: float, discount: float = 1.0, call: bool = True) -> float:
    """
    Black's formula with total standard deviation ``stdev`` (sigma * sqrt(T)).

    With zero deviation the discounted intrinsic value is returned.
    """
    sign = 1.0 if call else -1.0
    if stdev <= 0.0:
        return discount * max(sign * (forward - strike), 0.0)
    d1 = (math.log(forward / strike) + 0.5 * stdev * stdev) / stdev
    d2 = d1 - stdev
    return discount * sign * (forward * norm.cdf(sign * d1) - strike * norm.cdf(sign * d2))


# ---- Black-Scholes-Merton equity model ----

@dataclass(frozen=True)
class BlackScholesMerton(YieldModel):
    """Lognormal equity with continuous rate ``r``, dividend yield ``q`` and volatility ``sigma``."""
    r: float
    q: float
    sigma: float

    def __post_init__(self) -> None:
        if self.sigma < 0:
            raise DomainViolation("BlackScholesMerton sigma must be >= 0.")

    def df(self, t: float) -> float:
        return math.exp(-self.r * t)

    def parameters(self) -> List[Parameter]:
        return [Parameter("sigma", 0.0, 10.0)]


def eurocall(spot: float, strike: float, tau: float, r: float, q: float, sigma: float) -> float:
    forward = spot * math.exp((r - q) * tau)
    return black(forward, strike, sigma * math.sqrt(tau), math.exp(-r * tau), call=True)


@price_contract.register
def _(contract: EuroCall, model, cur_time: float = 0.0, projection_models=None) -> float:
    if not isinstance(model, BlackScholesMerton) or not isinstance(contract.underlying, CommonEquity):
        raise UnsupportedInstrument(
            f"No pricing rule for EuroCall on {type(contract.underlying).__name__} under {type(model).__name__}."
        )
    return eurocall(1.0, contract.strike, contract.maturity - cur_time, model.r, model.q, model.sigma)


# ---- Gaussian short-rate derivatives ----

def _gaussian(model, contract) -> GaussianModel:
    if not isinstance(model, (Vasicek, HullWhite)):
        raise UnsupportedInstrument(
            f"No closed-form rule for {type(contract).__name__} under {type(model).__name__}."
        )
    return model


def _spot_only(cur_time: float, contract) -> None:
    if cur_time != 0:
        raise UnsupportedInstrument(f"{type(contract).__name__} is only valued at time zero.")


def bond_option_stdev(model: GaussianModel, expiry: float, maturity: float) -> float:
    """Total standard deviation of ln P(expiry, maturity)."""
    a, s = model.a, model.sigma
    tau = maturity - expiry
    if abs(a) < SMALL_A:
        return s * tau * math.sqrt(expiry)
    B = -math.expm1(-a * tau) / a
    return s * math.sqrt(-math.expm1(-2.0 * a * expiry) / (2.0 * a)) * B


def zcb_option(model: GaussianModel, expiry: float, maturity: float, strike: float, call: bool = True) -> float:
    """Option expiring at ``expiry`` on a unit zero-coupon bond paying at ``maturity``."""
    p_expiry = model.discount(expiry)
    p_maturity = model.discount(maturity)
    stdev = bond_option_stdev(model, expiry, maturity)
    return black(p_maturity / p_expiry, strike, stdev, p_expiry, call=call)


@price_contract.register
def _(contract: ZCBOption, model, cur_time: float = 0.0, projection_models=None) -> float:
    model = _gaussian(model, contract)
    _spot_only(cur_time, contract)
    return zcb_option(model, contract.expiry, contract.maturity, contract.strike, contract.call)


def _caplets(model: GaussianModel, contract, call: bool) -> float:
    f = contract.frequency.frequency
    dt = min(1.0 / f, contract.maturity)
    total = 0.0
    for t in coupon_times(contract.maturity, f):
        start = max(t - dt, 0.0)
        growth = 1.0 + contract.strike * (t - start)
        total += growth * zcb_option(model, start, t, 1.0 / growth, call=call)
    return total


@price_contract.register
def _(contract: Cap, model, cur_time: float = 0.0, projection_models=None) -> float:
    model = _gaussian(model, contract)
    _spot_only(cur_time, contract)
    # a caplet is a put on the zero-coupon bond over its accrual period
    return _caplets(model, contract, call=False)


@price_contract.register
def _(contract: Floor, model, cur_time: float = 0.0, projection_models=None) -> float:
    model = _gaussian(model, contract)
    _spot_only(cur_time, contract)
    return _caplets(model, contract, call=True)


def _critical_rate(model: GaussianModel, expiry: float, times, coupons) -> float:
    """Short rate at expiry at which the fixed leg (coupons plus principal) is worth par."""

    def excess(r: float) -> float:
        return sum(c * float(model.conditional_discount(expiry, t, r)) for c, t in zip(coupons, times)) - 1.0

    lo, hi = -1.0, 1.0
    for _ in range(20):
        if excess(lo) > 0 > excess(hi):
            return brentq(excess, lo, hi, xtol=1e-14, maxiter=300)
        lo, hi = 2.0 * lo, 2.0 * hi
    raise FitDidNotConverge("Could not bracket the Jamshidian critical rate.")


def swaption(model: GaussianModel, contract: Swaption) -> float:
    f = contract.frequency.frequency
    times = contract.payment_times()
    coupons = [contract.strike / f] * len(times)
    coupons[-1] += 1.0

    r_star = _critical_rate(model, contract.expiry, times, coupons)
    total = 0.0
    for c, t in zip(coupons, times):
        strike = float(model.conditional_discount(contract.expiry, t, r_star))
        # payer swaption = puts on the fixed-leg bonds
        total += c * zcb_option(model, contract.expiry, t, strike, call=not contract.payer)
    return total


@price_contract.register
def _(contract: Swaption, model, cur_time: float = 0.0, projection_models=None) -> float:
    model = _gaussian(model, contract)
    _spot_only(cur_time, contract)
    return swaption(model, contract)
