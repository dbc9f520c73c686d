import numpy as np
import pandas as pd
import pytest

from curve_engine.fit import fit
from curve_engine.portfolio import (
    PORTFOLIO_COLUMNS,
    bond_contract,
    build_cashflow_table,
    curve_report,
    make_sample_portfolio,
    price_portfolio,
    qc_flags_for_bond,
    quote_report,
)
from curve_engine.quotes import CMTYield
from curve_engine.splines import SplineKind


@pytest.fixture(scope="module")
def market_quotes():
    # bills up to one year, semi-annual notes beyond
    return CMTYield(
        [0.0525, 0.0520, 0.0515, 0.0505, 0.0485, 0.0450, 0.0430, 0.0425],
        [0.02, 0.08, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
    )


@pytest.fixture(scope="module")
def curve(market_quotes):
    return fit(SplineKind.MONOTONE_CONVEX, market_quotes)


@pytest.fixture(scope="module")
def portfolio_df():
    coupons = [0.04, 0.045, 0.05, 0.055, 0.06, 0.035, 0.065, 0.07, 0.03, 0.075]
    return pd.DataFrame(
        {
            "bond_id": [f"BOND_{i:03d}" for i in range(10)],
            "maturity": [float(m) for m in range(1, 11)],
            "coupon_rate": coupons,
            "freq": [2] * 10,
            "face": [100.0] * 10,
        }
    )


def test_cashflow_table_layout(portfolio_df):
    cf = build_cashflow_table(portfolio_df)
    assert list(cf.columns) == PORTFOLIO_COLUMNS + ["time", "cashflow"]
    assert len(cf) == sum(2 * m for m in range(1, 11))
    first = cf[cf["bond_id"] == "BOND_000"]
    assert first["cashflow"].tolist() == pytest.approx([2.0, 102.0])


def test_cashflow_table_drops_past_payments(portfolio_df):
    cf = build_cashflow_table(portfolio_df, cur_time=1.25)
    assert "BOND_000" not in set(cf["bond_id"]), "Matured bonds have no cashflows"
    assert cf["time"].min() >= 1.25


def test_portfolio_pricing_outputs(curve, portfolio_df):
    priced = price_portfolio(curve, portfolio_df)
    assert {"bond_id", "pv", "price", "flags"}.issubset(priced.columns)
    assert priced["price"].notna().all()
    assert np.isfinite(priced["price"]).all()
    assert (priced["flags"] == "").all()


def test_portfolio_price_matches_present_value(curve, portfolio_df):
    priced = price_portfolio(curve, portfolio_df).set_index("bond_id")
    for _, row in portfolio_df.iterrows():
        expected = 100.0 * curve.present_value(bond_contract(row))
        assert priced.loc[row["bond_id"], "price"] == pytest.approx(expected, rel=1e-12)


def test_par_bond_prices_at_100(curve):
    c = curve.par(5.0).value
    book = pd.DataFrame({"bond_id": ["PAR5"], "maturity": [5.0], "coupon_rate": [c], "freq": [2], "face": [250.0]})
    priced = price_portfolio(curve, book)
    assert priced.loc[0, "price"] == pytest.approx(100.0, abs=1e-8)
    assert priced.loc[0, "pv"] == pytest.approx(250.0, abs=1e-8)


def test_matured_and_bad_rows_are_flagged(curve, portfolio_df):
    priced = price_portfolio(curve, portfolio_df, cur_time=1.5)
    row = priced.set_index("bond_id").loc["BOND_000"]
    assert "MATURED" in row["flags"]
    assert np.isnan(row["pv"])

    bad = {"maturity": 3.0, "freq": 3, "coupon_rate": 0.5}
    assert qc_flags_for_bond(bad) == ["BAD_FREQ", "BAD_COUPON"]


def test_fully_matured_portfolio_raises(curve, portfolio_df):
    with pytest.raises(ValueError):
        price_portfolio(curve, portfolio_df, cur_time=20.0)


def test_curve_report(curve):
    grid = [0.0, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0]
    rep = curve_report(curve, grid)
    assert list(rep.columns) == ["t", "df", "zero_cc", "fwd_1y_cc", "par_semi", "df_positive", "df_monotone"]
    assert rep["df_positive"].all()
    assert rep["df_monotone"].all(), "Positive rates give decreasing discount factors"
    assert rep.loc[0, "df"] == 1.0
    assert np.isnan(rep.loc[0, "par_semi"])


def test_quote_report_shows_exact_bootstrap(curve, market_quotes):
    rep = quote_report(curve, market_quotes)
    assert len(rep) == len(market_quotes)
    assert rep["abs_error"].max() < 1e-9
    assert set(rep["instrument"]) == {"FixedBond"}


def test_sample_portfolio_is_seeded():
    a = make_sample_portfolio(15, seed=3)
    b = make_sample_portfolio(15, seed=3)
    pd.testing.assert_frame_equal(a, b)
    assert list(a.columns) == PORTFOLIO_COLUMNS
    assert a["maturity"].between(1, 10).all()
    assert a["coupon_rate"].between(0.02, 0.08).all()
