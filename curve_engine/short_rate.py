"""
Stochastic short-rate models and Monte-Carlo scenarios.

Vasicek:            dr = a (b - r) dt + sigma dW
Cox-Ingersoll-Ross: dr = a (b - r) dt + sigma sqrt(r) dW
Hull-White:         dr = (theta(t) - a r) dt + sigma dW, theta fitted to ``curve``

Each model discounts in closed form from time zero (``df``) and conditionally
on the short rate at a later time (``conditional_discount``). ``simulate``
turns a model into ``RatePath`` scenarios, which are yield models themselves.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List

import numpy as np
from scipy.integrate import cumulative_trapezoid

from .config import SimulationConfig
from .contracts import Contract, maturity
from .errors import DomainViolation
from .models import Parameter, YieldModel
from .rates import Rate

logger = logging.getLogger(__name__)

_SIM = SimulationConfig()

# Below this mean-reversion speed the a -> 0 limits are used.
SMALL_A = 1e-12

# Step used for numerical derivatives of the initial curve.
FD_STEP = 1e-5
SLOPE_STEP = 1e-4


def _continuous(r0) -> float:
    return r0.continuous if isinstance(r0, Rate) else float(r0)


class ShortRateModel(YieldModel):
    """Common simulation interface for one-factor short-rate models."""

    @property
    def initial_rate(self) -> float:
        raise NotImplementedError

    def drift(self, r: np.ndarray, t: float) -> np.ndarray:
        raise NotImplementedError

    def volatility(self, r: np.ndarray, t: float) -> np.ndarray:
        raise NotImplementedError

    def conditional_discount(self, t: float, T: float, r):
        """Price at ``t`` of a unit paid at ``T`` given ``r(t) = r``."""
        raise NotImplementedError

    def euler_step(self, r: np.ndarray, t: float, dt: float, z: np.ndarray) -> np.ndarray:
        return r + self.drift(r, t) * dt + self.volatility(r, t) * math.sqrt(dt) * z


@dataclass(frozen=True)
class Vasicek(ShortRateModel):
    a: float
    b: float
    sigma: float
    r0: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "r0", _continuous(self.r0))
        if self.sigma < 0:
            raise DomainViolation("Vasicek sigma must be >= 0.")

    @property
    def initial_rate(self) -> float:
        return self.r0

    def _B_lnA(self, tau: float):
        a, b, s = self.a, self.b, self.sigma
        if abs(a) < SMALL_A:
            return tau, s * s * tau ** 3 / 6.0
        B = -math.expm1(-a * tau) / a
        lnA = (B - tau) * (a * a * b - 0.5 * s * s) / (a * a) - s * s * B * B / (4.0 * a)
        return B, lnA

    def conditional_discount(self, t: float, T: float, r):
        B, lnA = self._B_lnA(T - t)
        return np.exp(lnA - B * np.asarray(r, dtype=float))

    def df(self, t: float) -> float:
        return float(self.conditional_discount(0.0, t, self.r0))

    def drift(self, r, t):
        return self.a * (self.b - r)

    def volatility(self, r, t):
        return np.full_like(r, self.sigma, dtype=float)

    def parameters(self) -> List[Parameter]:
        return [
            Parameter("a", 1e-6, 10.0),
            Parameter("b", -1.0, 1.0),
            Parameter("sigma", 0.0, 1.0),
            Parameter("r0", -1.0, 1.0),
        ]


@dataclass(frozen=True)
class CoxIngersollRoss(ShortRateModel):
    a: float
    b: float
    sigma: float
    r0: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "r0", _continuous(self.r0))
        if self.sigma <= 0:
            raise DomainViolation("CIR sigma must be positive.")

    @property
    def initial_rate(self) -> float:
        return self.r0

    @property
    def feller(self) -> bool:
        """``2ab > sigma^2``: the process stays strictly positive."""
        return 2.0 * self.a * self.b > self.sigma ** 2

    def conditional_discount(self, t: float, T: float, r):
        a, b, s = self.a, self.b, self.sigma
        tau = T - t
        gamma = math.sqrt(a * a + 2.0 * s * s)
        em1 = math.expm1(gamma * tau)
        denom = (gamma + a) * em1 + 2.0 * gamma
        B = 2.0 * em1 / denom
        lnA = (2.0 * a * b / (s * s)) * (math.log(2.0 * gamma / denom) + 0.5 * (a + gamma) * tau)
        return np.exp(lnA - B * np.asarray(r, dtype=float))

    def df(self, t: float) -> float:
        return float(self.conditional_discount(0.0, t, self.r0))

    def drift(self, r, t):
        return self.a * (self.b - np.maximum(r, 0.0))

    def volatility(self, r, t):
        return self.sigma * np.sqrt(np.maximum(r, 0.0))

    def euler_step(self, r, t, dt, z):
        # full truncation; absorbed at zero when the Feller condition fails
        r_next = super().euler_step(r, t, dt, z)
        if not self.feller:
            r_next = np.maximum(r_next, 0.0)
        return r_next

    def parameters(self) -> List[Parameter]:
        return [
            Parameter("a", 1e-6, 10.0),
            Parameter("b", 0.0, 1.0),
            Parameter("sigma", 1e-6, 1.0),
            Parameter("r0", 0.0, 1.0),
        ]


@dataclass(frozen=True)
class HullWhite(ShortRateModel):
    """
    Hull-White one-factor model fitted to the initial curve ``curve``.

    ``discount(hw, t) == discount(curve, t)`` for every t: the drift
    ``theta(t)`` is chosen so the model reproduces the curve.
    """
    a: float
    sigma: float
    curve: YieldModel

    def __post_init__(self) -> None:
        if not self.a > 0:
            raise DomainViolation("Hull-White mean reversion a must be positive.")
        if self.sigma < 0:
            raise DomainViolation("Hull-White sigma must be >= 0.")

    def df(self, t: float) -> float:
        return self.curve.discount(t)

    def inst_forward(self, t: float) -> float:
        """f(0, t) = -d/dt ln P(0, t), by finite differences on the curve."""
        lo = max(t - FD_STEP, 0.0)
        hi = t + FD_STEP
        return -(math.log(self.curve.discount(hi)) - math.log(self.curve.discount(lo))) / (hi - lo)

    def theta(self, t: float) -> float:
        a, s = self.a, self.sigma
        lo = max(t - SLOPE_STEP, 0.0)
        hi = t + SLOPE_STEP
        slope = (self.inst_forward(hi) - self.inst_forward(lo)) / (hi - lo)
        return slope + a * self.inst_forward(t) + s * s / (2.0 * a) * -math.expm1(-2.0 * a * t)

    @property
    def initial_rate(self) -> float:
        return -math.log(self.curve.discount(FD_STEP)) / FD_STEP

    def _B(self, tau: float) -> float:
        return -math.expm1(-self.a * tau) / self.a

    def conditional_discount(self, t: float, T: float, r):
        a, s = self.a, self.sigma
        B = self._B(T - t)
        p_t = self.curve.discount(t)
        p_T = self.curve.discount(T)
        lnA = (
            math.log(p_T / p_t)
            + B * self.inst_forward(t)
            - s * s / (4.0 * a) * -math.expm1(-2.0 * a * t) * B * B
        )
        return np.exp(lnA - B * np.asarray(r, dtype=float))

    def drift(self, r, t):
        return self.theta(t) - self.a * r

    def volatility(self, r, t):
        return np.full_like(r, self.sigma, dtype=float)

    def parameters(self) -> List[Parameter]:
        return [Parameter("a", 1e-6, 5.0), Parameter("sigma", 0.0, 1.0)]


@dataclass(frozen=True, eq=False)
class RatePath(YieldModel):
    """
    A realised short-rate path used as a yield model.

    ``discount(t) = exp(-integral of r over [0, t])``, integrating the path
    with the trapezoid rule; past the last time the final rate is held flat.
    """
    times: np.ndarray
    rates: np.ndarray
    _cumulative: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        times = np.asarray(self.times, dtype=float)
        rates = np.asarray(self.rates, dtype=float)
        if len(times) == 0 or len(times) != len(rates):
            raise DomainViolation("RatePath needs matching, non-empty times and rates.")
        if times[0] != 0.0 or np.any(np.diff(times) <= 0):
            raise DomainViolation("RatePath times must start at 0 and increase.")
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "rates", rates)
        object.__setattr__(self, "_cumulative", cumulative_trapezoid(rates, times, initial=0.0))

    def integral(self, t: float) -> float:
        t_last = self.times[-1]
        if t > t_last:
            return float(self._cumulative[-1] + self.rates[-1] * (t - t_last))
        return float(np.interp(t, self.times, self._cumulative))

    def df(self, t: float) -> float:
        if t <= 0:
            return 1.0
        return math.exp(-self.integral(t))


def simulate(
    model: ShortRateModel,
    n_scenarios: int = _SIM.n_scenarios,
    timestep: float = _SIM.timestep,
    horizon: float = _SIM.horizon,
    rng=None,
) -> List[RatePath]:
    """
    Euler-Maruyama scenarios of ``model``'s short rate.

    Paths are advanced together (one vectorised step per time point) and
    returned as independent ``RatePath`` models.

    Parameters
    ----------
    rng : numpy.random.Generator, int or None
        Passed through ``numpy.random.default_rng``.
    """
    if n_scenarios < 1:
        raise ValueError("n_scenarios must be >= 1")
    if timestep <= 0 or horizon <= 0:
        raise ValueError("timestep and horizon must be positive")

    rng = np.random.default_rng(rng)
    n_steps = max(int(round(horizon / timestep)), 1)
    times = np.arange(n_steps + 1, dtype=float) * timestep

    if isinstance(model, CoxIngersollRoss) and not model.feller:
        logger.warning(
            f"CIR Feller condition 2ab > sigma^2 fails ({2 * model.a * model.b:.6g} <= {model.sigma ** 2:.6g}); "
            "paths are absorbed at zero."
        )

    paths = np.empty((n_steps + 1, n_scenarios), dtype=float)
    paths[0] = model.initial_rate
    for k in range(n_steps):
        z = rng.standard_normal(size=n_scenarios)
        paths[k + 1] = model.euler_step(paths[k], times[k], timestep, z)

    logger.debug(f"Simulated {n_scenarios} paths x {n_steps} steps for {type(model).__name__}")
    return [RatePath(times, paths[:, i]) for i in range(n_scenarios)]


def pv_mc(
    model: ShortRateModel,
    contract: Contract,
    n_scenarios: int = _SIM.n_scenarios,
    timestep: float = _SIM.timestep,
    horizon: float | None = None,
    rng=None,
) -> float:
    """Monte-Carlo mean of ``present_value`` across simulated scenarios."""
    if horizon is None:
        horizon = maturity(contract) + 1.0
    scenarios = simulate(model, n_scenarios=n_scenarios, timestep=timestep, horizon=horizon, rng=rng)
    return float(np.mean([sc.present_value(contract) for sc in scenarios]))
