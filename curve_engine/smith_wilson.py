"""
Smith-Wilson kernel curve.

    discount(t) = exp(-ufr * t) * (1 + sum_i H(alpha, u_i, t) * coefficients_i)

The curve converges to the ultimate forward rate ``ufr`` (continuous) with
speed ``alpha``. Calibration is a single linear solve; see ``calibrate``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .errors import CalibrationSingular, DomainViolation
from .models import YieldModel

# Condition number beyond which Q'HQ is treated as singular.
MAX_CONDITION = 1e12


def H(alpha: float, t1, t2) -> np.ndarray:
    """Wilson kernel, broadcast over ``t1`` and ``t2``."""
    t1 = np.asarray(t1, dtype=float)
    t2 = np.asarray(t2, dtype=float)
    lo = np.minimum(t1, t2)
    hi = np.maximum(t1, t2)
    return alpha * lo + 0.5 * (np.exp(-alpha * (lo + hi)) - np.exp(-alpha * (hi - lo)))


@dataclass(frozen=True, eq=False)
class SmithWilson(YieldModel):
    times: np.ndarray
    coefficients: np.ndarray
    ufr: float
    alpha: float

    def __post_init__(self) -> None:
        times = np.asarray(self.times, dtype=float).ravel()
        coefficients = np.asarray(self.coefficients, dtype=float).ravel()
        if len(times) != len(coefficients):
            raise DomainViolation("SmithWilson times and coefficients must have equal length.")
        if self.alpha <= 0:
            raise DomainViolation("SmithWilson alpha must be positive.")
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "coefficients", coefficients)

    @classmethod
    def unfitted(cls, ufr: float, alpha: float) -> "SmithWilson":
        """Placeholder carrying only ``ufr``/``alpha``; discounts flat at ``ufr`` until fitted."""
        return cls(np.empty(0), np.empty(0), ufr, alpha)

    @classmethod
    def calibrate(cls, times, cashflows, prices, ufr: float, alpha: float) -> "SmithWilson":
        """
        Solve the curve from a ``(times, cashflow matrix, prices)`` triple.

        ``cashflows[i, j]`` is what instrument ``j`` pays at ``times[i]``.
        With ``Q = diag(exp(-ufr * times)) @ cashflows`` and ``q = Q' 1`` the
        coefficients are ``Q b`` where ``(Q' H Q) b = prices - q``.
        """
        times = np.asarray(times, dtype=float).ravel()
        cashflows = np.asarray(cashflows, dtype=float)
        if cashflows.ndim == 1:
            cashflows = cashflows.reshape(-1, 1)
        prices = np.asarray(prices, dtype=float).ravel()
        if cashflows.shape != (len(times), len(prices)):
            raise DomainViolation(
                f"Cashflow matrix shape {cashflows.shape} does not match "
                f"{len(times)} times x {len(prices)} prices."
            )

        Q = np.exp(-ufr * times)[:, None] * cashflows
        q = Q.sum(axis=0)
        QHQ = Q.T @ H(alpha, times[:, None], times[None, :]) @ Q

        if not np.all(np.isfinite(QHQ)) or np.linalg.cond(QHQ) > MAX_CONDITION:
            raise CalibrationSingular("Q'HQ is singular; calibration instruments are not independent.")
        try:
            b = np.linalg.solve(QHQ, prices - q)
        except np.linalg.LinAlgError as e:
            raise CalibrationSingular(str(e)) from e

        return cls(times, Q @ b, ufr, alpha)

    def df(self, t: float) -> float:
        base = math.exp(-self.ufr * t)
        if len(self.times) == 0:
            return base
        return base * (1.0 + float(H(self.alpha, self.times, t) @ self.coefficients))
