from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np
import pandas as pd

from .contracts import FixedBond
from .models import YieldModel
from .projection import Projection
from .quotes import Quote

PORTFOLIO_COLUMNS = ["bond_id", "maturity", "coupon_rate", "freq", "face"]


def qc_flags_for_bond(row, cur_time: float = 0.0) -> List[str]:
    flags: List[str] = []

    if cur_time >= float(row["maturity"]):
        flags.append("MATURED")

    if int(row["freq"]) not in (1, 2, 4, 12):
        flags.append("BAD_FREQ")

    if row["coupon_rate"] < -0.01 or row["coupon_rate"] > 0.25:
        flags.append("BAD_COUPON")

    return flags


def bond_contract(row) -> FixedBond:
    return FixedBond(float(row["coupon_rate"]), int(row["freq"]), float(row["maturity"]))


def build_cashflow_table(portfolio: pd.DataFrame, cur_time: float = 0.0) -> pd.DataFrame:
    """
    One row per (bond, payment) for every bond alive after ``cur_time``.

    Portfolio columns: bond_id, maturity (years), coupon_rate, freq, face.
    """
    rows = []

    for _, r in portfolio.iterrows():
        bond_id = str(r["bond_id"])
        maturity = float(r["maturity"])
        face = float(r["face"])

        if cur_time >= maturity:
            continue

        for cf in Projection(bond_contract(r)):
            if cf.time < cur_time:
                continue
            rows.append((bond_id, maturity, float(r["coupon_rate"]), int(r["freq"]), face, cf.time, face * cf.amount))

    return pd.DataFrame(
        rows,
        columns=PORTFOLIO_COLUMNS + ["time", "cashflow"],
    )


def price_portfolio(model: YieldModel, portfolio: pd.DataFrame, cur_time: float = 0.0) -> pd.DataFrame:
    """
    Vectorised portfolio valuation: each distinct payment time is discounted once.

    ``price`` is per 100 face, valued at ``cur_time``.
    """
    cf = build_cashflow_table(portfolio, cur_time)
    if cf.empty:
        raise ValueError("Cashflow table is empty. Check portfolio maturities against cur_time.")

    unique_times = sorted(cf["time"].unique())
    df_map = {t: model.discount(cur_time, t) for t in unique_times}

    cf["df"] = cf["time"].map(df_map).astype(float)
    cf["pv_cf"] = cf["cashflow"] * cf["df"]

    pv_by_bond = cf.groupby("bond_id", as_index=False)["pv_cf"].sum().rename(columns={"pv_cf": "pv"})

    out = portfolio[PORTFOLIO_COLUMNS].astype({"bond_id": str}).merge(pv_by_bond, on="bond_id", how="left")
    out["price"] = 100.0 * out["pv"] / out["face"]
    out["flags"] = ["|".join(f) for f in (qc_flags_for_bond(r, cur_time) for _, r in out.iterrows())]

    return out


def curve_report(model: YieldModel, times: Iterable[float]) -> pd.DataFrame:
    """Discount factors, zero/forward/par rates and sanity flags on a time grid."""
    times = np.asarray(list(times), dtype=float)
    dfs = np.array([model.discount(t) for t in times])
    zeros = np.array([model.zero(t).value for t in times])
    fwds = np.array([model.forward(t, t + 1.0).value for t in times])
    pars = np.array([model.par(t).value if t > 0 else np.nan for t in times])

    return pd.DataFrame(
        {
            "t": times,
            "df": dfs,
            "zero_cc": zeros,
            "fwd_1y_cc": fwds,
            "par_semi": pars,
            "df_positive": dfs > 0,
            "df_monotone": np.r_[True, np.diff(dfs) <= 1e-10],
        }
    )


def quote_report(model, quotes: Sequence[Quote]) -> pd.DataFrame:
    """Model price against quoted price for each calibration quote."""
    rows = []
    for q in quotes:
        model_price = model.present_value(q.instrument)
        rows.append(
            {
                "instrument": type(q.instrument).__name__,
                "maturity": q.maturity,
                "quote_price": q.price,
                "model_price": model_price,
                "error": model_price - q.price,
            }
        )
    out = pd.DataFrame(rows)
    out["abs_error"] = out["error"].abs()
    return out


def make_sample_portfolio(n: int = 20, seed: int = 7) -> pd.DataFrame:
    """
    Synthetic fixed-rate bond portfolio for demos and tests.

    - Maturities: integer years 1..10
    - Coupons: uniform in [2%, 8%]
    - Frequency: semiannual
    - Face: 100
    """
    rng = np.random.default_rng(seed)

    return pd.DataFrame({
        "bond_id": [f"BOND_{i:03d}" for i in range(n)],
        "maturity": rng.integers(1, 11, size=n).astype(float),
        "coupon_rate": rng.uniform(0.02, 0.08, size=n),
        "freq": np.full(n, 2),
        "face": 100.0,
    })
