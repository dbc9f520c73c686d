import pytest

from curve_engine.contracts import (
    Cashflow,
    CommonEquity,
    Composite,
    EuroCall,
    FixedBond,
    FloatingBond,
    Forward,
    Scaled,
    Swaption,
    coupon_times,
    maturity,
)
from curve_engine.errors import DomainViolation, UnknownReferenceKey, UnsupportedInstrument
from curve_engine.models import Constant
from curve_engine.projection import (
    CumulativeProjection,
    PresentValueProjection,
    Projection,
    collect,
    project,
)
from curve_engine.rates import Periodic, Rate


@pytest.fixture(scope="module")
def bond():
    return FixedBond(0.04, Periodic(2), 3)


@pytest.fixture(scope="module")
def semi_curve():
    return Constant(Rate(0.04, Periodic(2)))


def test_fixed_bond_projection(bond):
    cfs = collect(Projection(bond))
    assert len(cfs) == 6
    assert [cf.time for cf in cfs] == pytest.approx([0.5, 1.0, 1.5, 2.0, 2.5, 3.0])
    assert [cf.amount for cf in cfs[:-1]] == pytest.approx([0.02] * 5)
    assert cfs[-1].amount == pytest.approx(1.02), "Final cashflow carries the principal"


def test_projection_is_deterministic_and_restartable(bond):
    p = Projection(bond)
    first = collect(p)
    second = collect(p)
    assert first == second
    assert list(p) == list(p), "Iterating twice must restart the projection"


def test_coupon_times_stub_and_short_bonds():
    assert coupon_times(1.25, 2) == pytest.approx([0.25, 0.75, 1.25])
    assert coupon_times(0.25, 2) == pytest.approx([0.25])
    assert coupon_times(1, 1) == pytest.approx([1.0])
    assert all(t > 0 for t in coupon_times(3.3, 4))


def test_frequency_validation():
    with pytest.raises(DomainViolation):
        FixedBond(0.04, float("inf"), 3)
    assert FixedBond(0.04, 4, 1).frequency == Periodic(4)


def test_floating_bond_pays_forward_plus_spread(semi_curve):
    frn = FloatingBond(0.01, Periodic(2), 2, "rf")
    cfs = collect(Projection(frn, {"rf": semi_curve}))
    assert [cf.time for cf in cfs] == pytest.approx([0.5, 1.0, 1.5, 2.0])
    assert [cf.amount for cf in cfs[:-1]] == pytest.approx([0.025] * 3, abs=1e-14)
    assert cfs[-1].amount == pytest.approx(1.025, abs=1e-14)


def test_par_floater_prices_at_par(semi_curve):
    frn = FloatingBond(0.0, Periodic(2), 5, "rf")
    pv = semi_curve.present_value(frn, projection_models={"rf": semi_curve})
    assert pv == pytest.approx(1.0, abs=1e-12)


def test_floating_bond_reference_errors(semi_curve):
    frn = FloatingBond(0.0, Periodic(2), 2, "sofr")
    with pytest.raises(UnknownReferenceKey):
        collect(Projection(frn, {"rf": semi_curve}))
    with pytest.raises(KeyError):
        collect(Projection(frn, semi_curve))


def test_forward_shifts_inner_cashflows():
    cfs = collect(Projection(Forward(1.0, FixedBond(0.02, 1, 2))))
    assert [cf.time for cf in cfs] == pytest.approx([2.0, 3.0])
    assert [cf.amount for cf in cfs] == pytest.approx([0.02, 1.02])


def test_composite_concatenates_without_sorting():
    swap = Composite(-FixedBond(0.03, 1, 2), Cashflow(1.0, 0.5))
    cfs = collect(Projection(swap))
    assert [cf.time for cf in cfs] == pytest.approx([1.0, 2.0, 0.5])
    assert [cf.amount for cf in cfs] == pytest.approx([-0.03, -1.03, 1.0])


def test_scaling_is_a_map_over_the_stream(bond):
    scaled = collect(Projection(bond * 100))
    base = collect(Projection(bond))
    assert [cf.amount for cf in scaled] == pytest.approx([100 * cf.amount for cf in base])
    assert isinstance(-bond, Scaled)
    assert collect(Projection(-Cashflow(2.0, 1.0))) == [Cashflow(-2.0, 1.0)]


def test_cashflow_addition():
    assert Cashflow(1.0, 2.0) + Cashflow(0.5, 2.0) == Cashflow(1.5, 2.0)
    combined = Cashflow(1.0, 1.0) + Cashflow(1.0, 2.0)
    assert isinstance(combined, Composite)
    assert maturity(combined) == 2.0


def test_cashflow_time_must_be_non_negative():
    with pytest.raises(DomainViolation):
        Cashflow(1.0, -0.1)


def test_cumulative_projection_tracks_running_total(bond):
    rows = collect(Projection(bond, kind=CumulativeProjection()))
    assert len(rows) == 6
    assert rows[0].cumulative == pytest.approx(0.02)
    assert rows[-1].cumulative == pytest.approx(1.12)
    assert rows[-1].time == pytest.approx(3.0)


def test_present_value_projection_matches_explicit_sum(bond):
    curve = Constant(0.05)
    folded = collect(Projection(bond, curve, PresentValueProjection(curve)))
    explicit = sum(cf.amount * 1.05 ** -cf.time for cf in collect(Projection(bond)))
    assert folded == pytest.approx(explicit, rel=1e-14)


def test_present_value_projection_drops_past_cashflows(bond):
    curve = Constant(0.05)
    folded = collect(Projection(bond, curve, PresentValueProjection(curve, cur_time=1.0)))
    explicit = sum(cf.amount * 1.05 ** -(cf.time - 1.0) for cf in collect(Projection(bond)) if cf.time >= 1.0)
    assert folded == pytest.approx(explicit, rel=1e-14)


def test_options_have_no_projection_rule():
    with pytest.raises(UnsupportedInstrument):
        collect(Projection(EuroCall(CommonEquity(), 1.0, 1.0)))
    with pytest.raises(TypeError):
        list(project(object(), None))


def test_maturity_of_variants(bond):
    assert maturity(bond) == 3
    assert maturity(Forward(2.0, Cashflow(1.0, 3.0))) == 5.0
    assert maturity(Swaption(0.03, 1.0, 5.0)) == 6.0
    assert maturity(-bond) == 3
