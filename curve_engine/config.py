"""
Documented defaults.

Nothing here is mutated at runtime: callers that want different settings pass
their own objects into ``zero``/``fit``/``simulate``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .rates import Continuous

# Compounding used by zero/forward when the caller does not pass one.
DEFAULT_COMPOUNDING = Continuous()

# Stand-in for t=0 where a rate is only defined as a right limit.
SHORT_END_TIME = 1e-8


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Knobs for the sequential spline bootstrap.

    Parameters
    ----------
    bracket : (float, float)
        Continuous zero-rate interval searched for each new knot.
    xtol : float
        Brent tolerance on the zero rate.
    maxiter : int
        Brent iteration budget per knot.
    price_tol : float
        Maximum absolute repricing error accepted after a sweep.
    max_sweeps : int
        Extra Gauss-Seidel sweeps allowed for non-local interpolants.
    """
    bracket: Tuple[float, float] = (-0.5, 1.0)
    xtol: float = 1e-14
    maxiter: int = 300
    price_tol: float = 1e-10
    max_sweeps: int = 50


@dataclass(frozen=True)
class SimulationConfig:
    n_scenarios: int = 1000
    timestep: float = 1.0 / 12.0
    horizon: float = 30.0
