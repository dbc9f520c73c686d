"""
Calibration of models to quotes.

    fit(model, quotes, method=LeastSquares(), variables=None, optimizer=None)

``fit`` dispatches on the type of ``model``:

- any ``Model`` with free parameters: minimise
  ``sum(loss(present_value(model(theta), q.instrument) - q.price))``
- a ``SplineKind``: sequential bootstrap (exact repricing) or a joint
  least-squares fit of the knot zero rates
- ``SmithWilson``: closed-form linear solve

Failures raise; no partially calibrated model is ever returned.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import singledispatch
from typing import Callable, List, Optional, Sequence

import numpy as np
from scipy.optimize import brentq, differential_evolution, minimize

from .config import BootstrapConfig
from .errors import DomainViolation, FitDidNotConverge
from .models import Model, Parameter
from .quotes import Quote, cashflow_matrix
from .smith_wilson import SmithWilson
from .splines import SplineKind, ZeroRateCurve

logger = logging.getLogger(__name__)


def _squared(e: float) -> float:
    return e * e


@dataclass(frozen=True)
class Loss:
    """Sum of ``fn(model price - quoted price)`` over the quotes."""
    fn: Callable[[float], float] = _squared


@dataclass(frozen=True)
class LeastSquares(Loss):
    pass


@dataclass(frozen=True)
class Bootstrap:
    config: BootstrapConfig = field(default_factory=BootstrapConfig)


# ---- optimizers ----

def _scipy_bounds(params: Sequence[Parameter]):
    return [
        (None if np.isinf(p.lower) else p.lower, None if np.isinf(p.upper) else p.upper)
        for p in params
    ]


@dataclass(frozen=True)
class LocalOptimizer:
    """
    Deterministic local search with ``scipy.optimize.minimize``.

    The default (derivative-free, bounded Powell) needs no gradients, which
    suits pricing functions built from root searches and interpolants.
    """
    method: str = "Powell"
    maxiter: int = 20000
    xtol: float = 1e-10
    ftol: float = 1e-15

    def minimize(self, objective, x0: np.ndarray, params: Sequence[Parameter]):
        options = {"maxiter": self.maxiter}
        if self.method == "Powell":
            options.update(xtol=self.xtol, ftol=self.ftol)
        return minimize(objective, x0, method=self.method, bounds=_scipy_bounds(params), options=options)


@dataclass(frozen=True)
class GlobalOptimizer:
    """
    Seeded ``scipy.optimize.differential_evolution``; every bound must be finite.

    The population has converged once the spread of its losses falls below
    ``atol + tol * |mean loss|``; ``atol`` matters because a perfect fit has
    zero loss.
    """
    seed: int
    maxiter: int = 1000
    tol: float = 1e-8
    atol: float = 1e-14
    polish: bool = True

    def minimize(self, objective, x0: np.ndarray, params: Sequence[Parameter]):
        bounds = [(p.lower, p.upper) for p in params]
        if not np.all(np.isfinite(bounds)):
            raise ValueError("GlobalOptimizer needs finite bounds on every parameter.")
        return differential_evolution(
            objective,
            bounds,
            x0=x0,
            seed=self.seed,
            maxiter=self.maxiter,
            tol=self.tol,
            atol=self.atol,
            polish=self.polish,
        )


DEFAULT_OPTIMIZER = LocalOptimizer()


# ---- parameter selection ----

def resolve_parameters(model: Model, variables=None) -> List[Parameter]:
    """
    Free parameters for ``model``.

    ``variables`` may be None (the model's defaults), a list of names (a
    subset of the defaults, or unbounded fields) or a list of ``Parameter``.
    """
    defaults = {p.name: p for p in model.parameters()}
    if variables is None:
        params = list(defaults.values())
    else:
        params = []
        for v in variables:
            if isinstance(v, Parameter):
                params.append(v)
            elif v in defaults:
                params.append(defaults[v])
            elif hasattr(model, v):
                params.append(Parameter(v))
            else:
                raise ValueError(f"{type(model).__name__} has no parameter {v!r}")
    if not params:
        raise ValueError(f"No free parameters to fit on {type(model).__name__}.")
    return params


def _loss_fn(method) -> Callable[[float], float]:
    if method is None:
        return _squared
    if isinstance(method, Loss):
        return method.fn
    raise TypeError(f"{type(method).__name__} is not a loss-based fit method for this model.")


def _check_result(res, what: str) -> None:
    if not res.success or not np.isfinite(res.fun):
        raise FitDidNotConverge(f"{what} did not converge: {res.message}")


# ---- fit ----

@singledispatch
def fit(model, quotes: Sequence[Quote], method=None, *, variables=None, optimizer=None):
    """Generic optimisation over ``model``'s free parameters."""
    loss = _loss_fn(method)
    optimizer = DEFAULT_OPTIMIZER if optimizer is None else optimizer
    params = resolve_parameters(model, variables)
    names = [p.name for p in params]

    lower = np.array([p.lower for p in params])
    upper = np.array([p.upper for p in params])
    x0 = np.clip(model.pack(names), lower, upper)

    def objective(x) -> float:
        try:
            m = model.unpack(names, x)
        except DomainViolation:
            # optimizer probed outside the model's valid domain
            return np.inf
        return float(sum(loss(m.present_value(q.instrument) - q.price) for q in quotes))

    # first evaluation surfaces unsupported model/contract pairings
    objective(x0)

    res = optimizer.minimize(objective, x0, params)
    _check_result(res, f"Fit of {type(model).__name__}")
    fitted = model.unpack(names, res.x)
    logger.info(f"Fitted {type(model).__name__} {dict(zip(names, np.round(res.x, 10)))} loss={res.fun:.3e} nfev={res.nfev}")
    return fitted


def _with_anchor(kind: SplineKind, times: Sequence[float], rates: Sequence[float]) -> ZeroRateCurve:
    """Curve over the solved knots plus a t=0 knot carrying the first rate."""
    return ZeroRateCurve(np.r_[0.0, times], np.r_[rates[0], rates], kind)


def _sorted_quotes(quotes: Sequence[Quote]):
    qs = sorted(quotes, key=lambda q: q.maturity)
    times = np.array([q.maturity for q in qs], dtype=float)
    if len(times) == 0:
        raise ValueError("Need at least one quote to fit a curve.")
    if times[0] <= 0 or np.any(np.diff(times) <= 0):
        raise DomainViolation("Curve knots need distinct, positive quote maturities.")
    return qs, times


def _solve_knot(kind, times, rates, i, quote, config: BootstrapConfig) -> float:
    n = len(rates)

    def residual(z: float) -> float:
        trial = list(rates)
        trial[i] = z
        curve = _with_anchor(kind, times[:n], trial)
        return curve.present_value(quote.instrument) - quote.price

    lo, hi = config.bracket
    f_lo, f_hi = residual(lo), residual(hi)
    if f_lo * f_hi > 0:
        raise FitDidNotConverge(
            f"Root not bracketed for quote maturing at {times[i]}: inconsistent market data."
        )
    try:
        return brentq(residual, lo, hi, xtol=config.xtol, maxiter=config.maxiter)
    except RuntimeError as e:
        raise FitDidNotConverge(str(e)) from e


def bootstrap(kind: SplineKind, quotes: Sequence[Quote], config: Optional[BootstrapConfig] = None) -> ZeroRateCurve:
    """
    Sequential bootstrap: one knot per quote, solved so that quote reprices.

    Interpolants where a new knot moves the curve before the previous knot
    are then swept (Gauss-Seidel over all knots) until every quote reprices
    within ``config.price_tol``.
    """
    config = BootstrapConfig() if config is None else config
    kind = SplineKind(kind)
    qs, times = _sorted_quotes(quotes)

    rates: List[float] = []
    for i, q in enumerate(qs):
        rates.append(0.0)
        rates[i] = _solve_knot(kind, times, rates, i, q, config)
        logger.debug(f"Bootstrap knot t={times[i]:.6g} zero={rates[i]:.10f}")

    def max_error() -> float:
        curve = _with_anchor(kind, times, rates)
        return max(abs(curve.present_value(q.instrument) - q.price) for q in qs)

    err = max_error()
    sweeps = 0
    while err > config.price_tol:
        if sweeps >= config.max_sweeps:
            raise FitDidNotConverge(
                f"Bootstrap repricing error {err:.3e} above {config.price_tol:.1e} after {sweeps} sweeps."
            )
        for i, q in enumerate(qs):
            rates[i] = _solve_knot(kind, times, rates, i, q, config)
        sweeps += 1
        err = max_error()

    logger.info(f"Bootstrapped {kind.value} curve on {len(qs)} quotes, max error {err:.2e}, {sweeps} sweeps")
    return _with_anchor(kind, times, rates)


@fit.register
def _(model: SplineKind, quotes: Sequence[Quote], method=None, *, variables=None, optimizer=None):
    if method is None or isinstance(method, Bootstrap):
        config = None if method is None else method.config
        return bootstrap(model, quotes, config)

    loss = _loss_fn(method)
    optimizer = DEFAULT_OPTIMIZER if optimizer is None else optimizer
    qs, times = _sorted_quotes(quotes)
    start = bootstrap(SplineKind.LINEAR, qs)
    x0 = start.rates[1:]
    params = [Parameter(f"z{i}", -1.0, 1.0) for i in range(len(times))]

    def objective(x) -> float:
        curve = _with_anchor(model, times, x)
        return float(sum(loss(curve.present_value(q.instrument) - q.price) for q in qs))

    res = optimizer.minimize(objective, x0, params)
    _check_result(res, f"Least-squares {model.value} spline fit")
    logger.info(f"Fitted {model.value} spline on {len(qs)} quotes, loss={res.fun:.3e}")
    return _with_anchor(model, times, res.x)


@fit.register
def _(model: ZeroRateCurve, quotes: Sequence[Quote], method=None, *, variables=None, optimizer=None):
    return fit(model.kind, quotes, method, variables=variables, optimizer=optimizer)


@fit.register
def _(model: SmithWilson, quotes: Sequence[Quote], method=None, *, variables=None, optimizer=None):
    if method is not None or variables is not None or optimizer is not None:
        raise TypeError("Smith-Wilson calibration is a closed-form solve; it takes no method, variables or optimizer.")
    times, cashflows = cashflow_matrix(quotes)
    prices = [q.price for q in quotes]
    fitted = SmithWilson.calibrate(times, cashflows, prices, model.ufr, model.alpha)
    logger.info(f"Calibrated Smith-Wilson on {len(quotes)} quotes and {len(times)} cashflow times")
    return fitted
