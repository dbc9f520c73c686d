"""
Bump-and-reprice sensitivities.

Rate shocks are applied by curve composition: adding a shift to a model
moves its continuously compounded zero rates, so the same functions work
for any yield model (bootstrapped, parametric, short-rate, ...).
"""
from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from .models import YieldModel
from .portfolio import price_portfolio
from .splines import SplineKind, ZeroRateCurve

BP = 1e-4


def parallel_shift_bp(bp: float) -> float:
    return bp * BP


def key_rate_shift_bp(key_times: Sequence[float], k: int, bp: float) -> ZeroRateCurve:
    """
    Hat-shaped zero shift of ``bp`` peaking at ``key_times[k]``.

    Linear between neighbouring key times and flat beyond the ends, so the
    shifts over all ``k`` sum to a parallel shift.
    """
    key_times = np.asarray(key_times, dtype=float)
    n = len(key_times)
    if not (0 <= k < n):
        raise ValueError("k out of range")
    shifts = np.zeros(n)
    shifts[k] = bp * BP
    return ZeroRateCurve(key_times, shifts, SplineKind.LINEAR)


def shifted(model: YieldModel, shift) -> YieldModel:
    """``model`` with its zero rates moved by ``shift`` (a number or a zero-rate curve)."""
    return model + shift


def dv01(model: YieldModel, portfolio: pd.DataFrame, cur_time: float = 0.0) -> pd.DataFrame:
    """Price change per 100 face for a +1bp parallel zero shift."""
    base = price_portfolio(model, portfolio, cur_time)
    up = price_portfolio(shifted(model, parallel_shift_bp(1.0)), portfolio, cur_time)

    out = base[["bond_id", "price"]].merge(up[["bond_id", "price"]], on="bond_id", suffixes=("_base", "_up1bp"))
    out["dv01"] = out["price_up1bp"] - out["price_base"]
    return out


def convexity(model: YieldModel, portfolio: pd.DataFrame, cur_time: float = 0.0) -> pd.DataFrame:
    base = price_portfolio(model, portfolio, cur_time)
    up = price_portfolio(shifted(model, parallel_shift_bp(1.0)), portfolio, cur_time)
    down = price_portfolio(shifted(model, parallel_shift_bp(-1.0)), portfolio, cur_time)

    out = base[["bond_id", "price"]].merge(
        up[["bond_id", "price"]], on="bond_id", suffixes=("_base", "_up")
    ).merge(
        down[["bond_id", "price"]].rename(columns={"price": "price_down"}), on="bond_id"
    )

    out["convexity"] = (out["price_up"] + out["price_down"] - 2 * out["price_base"]) / (out["price_base"] * BP ** 2)
    return out[["bond_id", "convexity"]]


def duration(dv01_df: pd.DataFrame) -> pd.DataFrame:
    """Modified duration from a ``dv01`` table."""
    df = dv01_df.copy()
    df["mod_duration"] = -df["dv01"] / (df["price_base"] * BP)
    return df[["bond_id", "mod_duration"]]


def key_rate_dv01(
    model: YieldModel,
    portfolio: pd.DataFrame,
    key_times: Sequence[float],
    bp: float = 1.0,
    cur_time: float = 0.0,
) -> Tuple[np.ndarray, float]:
    """
    Portfolio P&L for a ``bp`` hat shock at each key time, and for the
    matching parallel shock. The buckets reconcile to the parallel number.
    """
    base_total = price_portfolio(model, portfolio, cur_time)["price"].sum()

    bucket_pnl = []
    for k in range(len(key_times)):
        bumped = shifted(model, key_rate_shift_bp(key_times, k, bp))
        shocked_total = price_portfolio(bumped, portfolio, cur_time)["price"].sum()
        bucket_pnl.append(shocked_total - base_total)

    par_total = price_portfolio(shifted(model, parallel_shift_bp(bp)), portfolio, cur_time)["price"].sum()
    return np.array(bucket_pnl, dtype=float), par_total - base_total
