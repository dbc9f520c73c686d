"""
Nelson-Siegel and Nelson-Siegel-Svensson parametric curves.

    z(t) = b0 + b1 * h(t/tau1) + b2 * (h(t/tau1) - exp(-t/tau1))            NS
         + b3 * (h(t/tau2) - exp(-t/tau2))                                   NSS

with ``h(x) = (1 - exp(-x)) / x``; ``z`` is a continuously compounded zero
rate. ``h`` is evaluated through its series near zero so ``t=0`` is well
defined (the zero rate tends to ``b0 + b1``).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from .errors import DomainViolation
from .models import Parameter, YieldModel

BETA_BOUNDS = (-10.0, 10.0)
TAU_BOUNDS = (1e-6, 100.0)


def _h(x: float) -> float:
    if abs(x) < 1e-6:
        return 1.0 - 0.5 * x + x * x / 6.0
    return -math.expm1(-x) / x


def _hump(x: float) -> float:
    return _h(x) - math.exp(-x)


@dataclass(frozen=True)
class NelsonSiegel(YieldModel):
    beta0: float = 0.0
    beta1: float = 0.0
    beta2: float = 0.0
    tau1: float = 1.0

    def __post_init__(self) -> None:
        if not self.tau1 > 0:
            raise DomainViolation(f"Nelson-Siegel tau1 must be positive, got {self.tau1}.")

    def zero_cc(self, t: float) -> float:
        x = max(t, 0.0) / self.tau1
        return self.beta0 + self.beta1 * _h(x) + self.beta2 * _hump(x)

    def df(self, t: float) -> float:
        if t <= 0:
            return 1.0
        return math.exp(-self.zero_cc(t) * t)

    def parameters(self) -> List[Parameter]:
        return [
            Parameter("beta0", *BETA_BOUNDS),
            Parameter("beta1", *BETA_BOUNDS),
            Parameter("beta2", *BETA_BOUNDS),
            Parameter("tau1", *TAU_BOUNDS),
        ]


@dataclass(frozen=True)
class NelsonSiegelSvensson(YieldModel):
    """Nelson-Siegel with a second hump (``beta3``, ``tau2``)."""
    beta0: float = 0.0
    beta1: float = 0.0
    beta2: float = 0.0
    beta3: float = 0.0
    tau1: float = 1.0
    tau2: float = 1.0

    def __post_init__(self) -> None:
        if not (self.tau1 > 0 and self.tau2 > 0):
            raise DomainViolation("Nelson-Siegel-Svensson taus must be positive.")

    def zero_cc(self, t: float) -> float:
        t = max(t, 0.0)
        x1 = t / self.tau1
        x2 = t / self.tau2
        return self.beta0 + self.beta1 * _h(x1) + self.beta2 * _hump(x1) + self.beta3 * _hump(x2)

    def df(self, t: float) -> float:
        if t <= 0:
            return 1.0
        return math.exp(-self.zero_cc(t) * t)

    def parameters(self) -> List[Parameter]:
        return [Parameter(f"beta{i}", *BETA_BOUNDS) for i in range(4)] + [
            Parameter("tau1", *TAU_BOUNDS),
            Parameter("tau2", *TAU_BOUNDS),
        ]
