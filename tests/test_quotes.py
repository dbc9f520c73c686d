import math

import numpy as np
import pytest

from curve_engine.contracts import Cashflow, FixedBond
from curve_engine.quotes import (
    CMTYield,
    ForwardYields,
    OISYield,
    ParSwapYield,
    ParYield,
    Quote,
    ZCBPrice,
    ZCBYield,
    cashflow_matrix,
)
from curve_engine.rates import Continuous, Periodic, Rate


def test_zcb_price_broadcasts():
    qs = ZCBPrice([0.99, 0.97, 0.94])
    assert [q.maturity for q in qs] == [1.0, 2.0, 3.0], "Maturities default to 1..n"
    assert qs[1] == Quote(0.97, Cashflow(1.0, 2.0))
    single = ZCBPrice(0.9, 4)
    assert isinstance(single, Quote)
    assert single.maturity == 4.0


def test_scalar_without_maturity_is_an_error():
    with pytest.raises(TypeError):
        ZCBPrice(0.9)
    with pytest.raises(ValueError):
        ZCBPrice([0.9, 0.8], [1.0])


def test_zcb_yield_prices_are_discount_factors():
    q = ZCBYield(0.05, 2)
    assert q.price == pytest.approx(1.05 ** -2, rel=1e-15)
    q = ZCBYield(Rate(0.04, Continuous()), 3)
    assert q.price == pytest.approx(math.exp(-0.12), rel=1e-15)
    assert q.instrument == Cashflow(1.0, 3.0)


def test_par_yield_is_a_bond_at_par():
    q = ParYield(0.05, 5)
    assert q.price == 1.0
    assert q.instrument == FixedBond(0.05, Periodic(2), 5.0)

    # a periodic rate carries its own coupon frequency
    q = ParYield(Rate(0.05, Periodic(4)), 5)
    assert q.instrument.frequency == Periodic(4)

    # a continuous rate is restated at the coupon frequency
    q = ParYield(Rate(0.05, Continuous()), 5)
    assert q.instrument.frequency == Periodic(2)
    assert q.instrument.coupon_rate == pytest.approx(2 * math.expm1(0.025), abs=1e-15)


def test_par_swap_yield_is_quarterly():
    qs = ParSwapYield([0.03, 0.035], [2, 5])
    assert [q.instrument.frequency for q in qs] == [Periodic(4), Periodic(4)]
    assert [q.maturity for q in qs] == [2.0, 5.0]


def test_cmt_yield_switches_at_one_year():
    bill, note = CMTYield([0.04, 0.045], [0.5, 2])
    assert bill.instrument == FixedBond(0.0, Periodic(1), 0.5)
    assert bill.price == pytest.approx(1.04 ** -0.5, rel=1e-15)
    assert note.price == 1.0
    assert note.instrument.frequency == Periodic(2)
    assert note.instrument.coupon_rate == 0.045, "Bare CMT rates are tagged, not converted"


def test_ois_yield_switches_at_one_year():
    short, long = OISYield([0.03, 0.032], [1, 3])
    assert short.instrument == FixedBond(0.0, Periodic(1), 1.0)
    assert short.price == pytest.approx(1 / 1.03, rel=1e-15)
    assert long.instrument.frequency == Periodic(4)


def test_forward_yields_chain_into_spot_discount_factors():
    qs = ForwardYields([0.02, 0.03, 0.04], [1, 2, 4])
    assert [q.maturity for q in qs] == [1.0, 2.0, 4.0]
    assert qs[0].price == pytest.approx(1 / 1.02, rel=1e-15)
    assert qs[1].price == pytest.approx(1 / (1.02 * 1.03), rel=1e-15)
    assert qs[2].price == pytest.approx(1 / (1.02 * 1.03 * 1.04 ** 2), rel=1e-15)
    assert all(isinstance(q.instrument, Cashflow) for q in qs)


def test_quote_isclose():
    a = ZCBPrice(0.9, 2)
    assert a.isclose(Quote(0.9 + 1e-12, Cashflow(1.0, 2.0)))
    assert not a.isclose(ZCBPrice(0.9, 3))


def test_cashflow_matrix_unions_payment_times():
    quotes = [ZCBPrice(0.98, 1), Quote(1.0, FixedBond(0.04, 1, 2))]
    times, m = cashflow_matrix(quotes)
    assert np.allclose(times, [1.0, 2.0])
    assert np.allclose(m, [[1.0, 0.04], [0.0, 1.04]])
