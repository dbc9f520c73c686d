"""
Zero-rate curves interpolated between knots.

    ZeroRateCurve(times, rates, SplineKind.CUBIC)

``rates`` are continuously compounded zero rates at strictly increasing
``times``. Outside the knot range the zero rate is held flat (short end and
long end); the monotone-convex interpolant instead extends its terminal
instantaneous forward, which is the method's natural extension.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import numpy as np
from scipy.interpolate import Akima1DInterpolator, PchipInterpolator, make_interp_spline

from .errors import DomainViolation
from .models import YieldModel


class SplineKind(Enum):
    LINEAR = "linear"
    QUADRATIC = "quadratic"
    CUBIC = "cubic"
    PCHIP = "pchip"
    AKIMA = "akima"
    MONOTONE_CONVEX = "monotone_convex"


_SPLINE_ORDER = {SplineKind.LINEAR: 1, SplineKind.QUADRATIC: 2, SplineKind.CUBIC: 3}


class MonotoneConvex:
    """
    Hagan-West monotone-convex interpolation of zero rates.

    Knot times must be positive; an implicit knot at t=0 carries no
    information (r*t = 0) and is dropped. When every discrete forward is
    non-negative the instantaneous forwards at the knots are collared so the
    forward curve stays non-negative.
    """

    def __init__(self, times, rates):
        times = np.asarray(times, dtype=float)
        rates = np.asarray(rates, dtype=float)
        if times[0] == 0.0:
            times, rates = times[1:], rates[1:]
        if len(times) == 0:
            raise DomainViolation("Monotone-convex interpolation needs a knot after t=0.")

        tau = np.r_[0.0, times]
        rt = np.r_[0.0, rates * times]
        fd = np.diff(rt) / np.diff(tau)  # discrete forward of each segment
        n = len(fd)

        f = np.empty(n + 1)
        if n == 1:
            f[:] = fd[0]
        else:
            for i in range(1, n):
                w = (tau[i] - tau[i - 1]) / (tau[i + 1] - tau[i - 1])
                f[i] = w * fd[i] + (1.0 - w) * fd[i - 1]
            f[0] = fd[0] - 0.5 * (f[1] - fd[0])
            f[n] = fd[n - 1] - 0.5 * (f[n - 1] - fd[n - 1])

        if np.all(fd >= 0.0):
            f[0] = min(max(f[0], 0.0), 2.0 * fd[0])
            for i in range(1, n):
                f[i] = min(max(f[i], 0.0), 2.0 * min(fd[i - 1], fd[i]))
            f[n] = min(max(f[n], 0.0), 2.0 * fd[n - 1])

        self.tau = tau
        self.rt = rt
        self.fd = fd
        self.f = f

    def _segment(self, t: float):
        i = int(np.searchsorted(self.tau, t, side="left"))
        i = min(max(i, 1), len(self.fd))
        lo, hi = self.tau[i - 1], self.tau[i]
        x = (t - lo) / (hi - lo)
        fd = self.fd[i - 1]
        return i, lo, hi - lo, x, fd, self.f[i - 1] - fd, self.f[i] - fd

    def forward(self, t: float) -> float:
        """Instantaneous forward rate at ``t``."""
        if t >= self.tau[-1]:
            return float(self.f[-1])
        _, _, _, x, fd, g0, g1 = self._segment(max(t, 0.0))
        return float(fd + _g(x, g0, g1))

    def zero(self, t: float) -> float:
        """Continuously compounded zero rate to ``t``."""
        t_last = self.tau[-1]
        if t >= t_last:
            return float((self.rt[-1] + self.f[-1] * (t - t_last)) / t)
        if t <= 0.0:
            return float(self.f[0])
        i, lo, width, x, fd, g0, g1 = self._segment(t)
        integral = self.rt[i - 1] + fd * (t - lo) + width * _g_integral(x, g0, g1)
        return float(integral / t)


def _sector(g0: float, g1: float) -> int:
    if (g0 > 0 and -0.5 * g0 >= g1 >= -2.0 * g0) or (g0 < 0 and -0.5 * g0 <= g1 <= -2.0 * g0):
        return 1
    if (g0 < 0 and g1 > -2.0 * g0) or (g0 > 0 and g1 < -2.0 * g0):
        return 2
    if (g0 > 0 and 0 > g1 > -0.5 * g0) or (g0 < 0 and 0 < g1 < -0.5 * g0):
        return 3
    return 4


def _g(x: float, g0: float, g1: float) -> float:
    if g0 == 0.0 and g1 == 0.0:
        return 0.0
    s = _sector(g0, g1)
    if s == 1:
        return g0 * (1 - 4 * x + 3 * x * x) + g1 * (-2 * x + 3 * x * x)
    if s == 2:
        eta = (g1 + 2 * g0) / (g1 - g0)
        if x <= eta:
            return g0
        return g0 + (g1 - g0) * ((x - eta) / (1 - eta)) ** 2
    if s == 3:
        eta = 3 * g1 / (g1 - g0)
        if x < eta:
            return g1 + (g0 - g1) * ((eta - x) / eta) ** 2
        return g1
    eta = g1 / (g1 + g0)
    a = -g0 * g1 / (g0 + g1)
    if x <= eta:
        return a + (g0 - a) * ((eta - x) / eta) ** 2
    return a + (g1 - a) * ((x - eta) / (1 - eta)) ** 2


def _g_integral(x: float, g0: float, g1: float) -> float:
    """Integral of ``_g`` over ``[0, x]`` in segment units."""
    if g0 == 0.0 and g1 == 0.0:
        return 0.0
    s = _sector(g0, g1)
    if s == 1:
        return g0 * (x - 2 * x ** 2 + x ** 3) + g1 * (-x ** 2 + x ** 3)
    if s == 2:
        eta = (g1 + 2 * g0) / (g1 - g0)
        if x <= eta:
            return g0 * x
        return g0 * x + (g1 - g0) * (x - eta) ** 3 / (3 * (1 - eta) ** 2)
    if s == 3:
        eta = 3 * g1 / (g1 - g0)
        if x < eta:
            return g1 * x + (g0 - g1) * eta / 3 * (1 - ((eta - x) / eta) ** 3)
        return g1 * x + (g0 - g1) * eta / 3
    eta = g1 / (g1 + g0)
    a = -g0 * g1 / (g0 + g1)
    if x <= eta:
        head = (g0 - a) * eta / 3 * (1 - ((eta - x) / eta) ** 3) if eta > 0 else 0.0
        return a * x + head
    return a * x + (g0 - a) * eta / 3 + (g1 - a) * (x - eta) ** 3 / (3 * (1 - eta) ** 2)


def _interpolant(kind: SplineKind, x: np.ndarray, y: np.ndarray) -> Callable[[float], float]:
    n = len(x)
    if kind is SplineKind.MONOTONE_CONVEX:
        return MonotoneConvex(x, y).zero
    if n == 1:
        return lambda t: float(y[0])
    if kind is SplineKind.PCHIP:
        interp = PchipInterpolator(x, y)
    elif kind is SplineKind.AKIMA and n >= 3:
        interp = Akima1DInterpolator(x, y)
    else:
        # spline order drops while there are too few knots to support it
        k = min(_SPLINE_ORDER.get(kind, 1), n - 1)
        interp = make_interp_spline(x, y, k=k)

    lo, hi = x[0], x[-1]

    def zero(t: float) -> float:
        return float(interp(min(max(t, lo), hi)))

    return zero


@dataclass(frozen=True, eq=False)
class ZeroRateCurve(YieldModel):
    times: np.ndarray
    rates: np.ndarray
    kind: SplineKind = SplineKind.CUBIC
    _zero_cc: Callable[[float], float] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        times = np.atleast_1d(np.asarray(self.times, dtype=float))
        rates = np.atleast_1d(np.asarray(self.rates, dtype=float))
        kind = SplineKind(self.kind)

        if len(times) == 0 or len(times) != len(rates):
            raise DomainViolation("ZeroRateCurve needs matching, non-empty times and rates.")
        if np.any(times < 0):
            raise DomainViolation("Knot times must be >= 0.")
        if np.any(np.diff(times) <= 0):
            raise DomainViolation("Knot times must be strictly increasing.")

        object.__setattr__(self, "times", times)
        object.__setattr__(self, "rates", rates)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "_zero_cc", _interpolant(kind, times, rates))

    def zero_cc(self, t: float) -> float:
        return self._zero_cc(t)

    def df(self, t: float) -> float:
        if t <= 0:
            return 1.0
        return math.exp(-self._zero_cc(t) * t)

    def with_rates(self, rates) -> "ZeroRateCurve":
        return ZeroRateCurve(self.times, rates, self.kind)
