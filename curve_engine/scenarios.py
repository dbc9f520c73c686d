from __future__ import annotations

import logging
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from .models import YieldModel
from .portfolio import price_portfolio
from .risk import BP, parallel_shift_bp, shifted
from .short_rate import ShortRateModel, simulate
from .splines import SplineKind, ZeroRateCurve

logger = logging.getLogger(__name__)


def steepener_shift_bp(bp: float, pivot: float = 2.0, long: float = 10.0) -> ZeroRateCurve:
    """+bp up to ``pivot``, -bp from ``long`` on, linear in between."""
    A = bp * BP
    return ZeroRateCurve([pivot, long], [+A, -A], SplineKind.LINEAR)


def flattener_shift_bp(bp: float, pivot: float = 2.0, long: float = 10.0) -> ZeroRateCurve:
    A = bp * BP
    return ZeroRateCurve([pivot, long], [-A, +A], SplineKind.LINEAR)


def standard_rate_scenarios(model: YieldModel) -> Dict[str, YieldModel]:
    return {
        "PAR_-50bp": shifted(model, parallel_shift_bp(-50)),
        "PAR_-25bp": shifted(model, parallel_shift_bp(-25)),
        "PAR_+25bp": shifted(model, parallel_shift_bp(+25)),
        "PAR_+50bp": shifted(model, parallel_shift_bp(+50)),
        "STEEPENER_25bp": shifted(model, steepener_shift_bp(25)),
        "FLATTENER_25bp": shifted(model, flattener_shift_bp(25)),
    }


def run_rate_scenarios(
    model: YieldModel,
    portfolio: pd.DataFrame,
    cur_time: float = 0.0,
    scenarios: Dict[str, YieldModel] | None = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Reprice the portfolio under each scenario curve; per-bond table and totals."""
    base = price_portfolio(model, portfolio, cur_time)[["bond_id", "price"]].rename(columns={"price": "base"})

    if scenarios is None:
        scenarios = standard_rate_scenarios(model)

    per_bond = base.copy()
    for name, scurve in scenarios.items():
        px = price_portfolio(scurve, portfolio, cur_time)[["bond_id", "price"]].rename(columns={"price": name})
        per_bond = per_bond.merge(px, on="bond_id", how="left")
        per_bond[name + "_PnL"] = per_bond[name] - per_bond["base"]

    pnl_cols = [c for c in per_bond.columns if c.endswith("_PnL")]
    summary = pd.DataFrame({"scenario": pnl_cols, "total_pnl_per_100_notional": [per_bond[c].sum() for c in pnl_cols]})

    return per_bond, summary


def run_simulated_scenarios(
    model: ShortRateModel,
    portfolio: pd.DataFrame,
    n_scenarios: int = 500,
    timestep: float = 1.0 / 12.0,
    rng=None,
) -> pd.DataFrame:
    """
    Portfolio value on each simulated short-rate path.

    The horizon covers the longest bond plus one year.
    """
    horizon = float(portfolio["maturity"].max()) + 1.0
    paths = simulate(model, n_scenarios=n_scenarios, timestep=timestep, horizon=horizon, rng=rng)

    totals = np.array([price_portfolio(p, portfolio)["price"].sum() for p in paths])
    logger.info(f"Priced portfolio on {n_scenarios} simulated paths, mean total {totals.mean():.4f}")

    return pd.DataFrame({"scenario": np.arange(n_scenarios), "total_price": totals})
