import math

import numpy as np
import pytest
from scipy.integrate import trapezoid

from curve_engine.errors import DomainViolation
from curve_engine.splines import MonotoneConvex, SplineKind, ZeroRateCurve

KNOT_TIMES = [1.0, 2.0, 3.0, 4.0, 5.0]
KNOT_RATES = [0.03, 0.04, 0.047, 0.06, 0.06]


@pytest.fixture(scope="module")
def mc():
    return MonotoneConvex(KNOT_TIMES, KNOT_RATES)


def test_monotone_convex_forwards(mc):
    expected = {
        0.5: 0.02875,
        1.0: 0.04,
        2.0: 0.0555,
        2.5: 0.0571254591368226,
        5.0: 0.05025,
        5.2: 0.05025,
    }
    for t, f in expected.items():
        assert mc.forward(t) == pytest.approx(f, abs=1e-12), f"forward({t})"


def test_monotone_convex_reproduces_knot_zeros(mc):
    for t, r in zip(KNOT_TIMES, KNOT_RATES):
        assert mc.zero(t) == pytest.approx(r, abs=1e-13), f"zero({t})"


def test_monotone_convex_zero_integrates_forward(mc):
    # zero(t) * t is the integral of the instantaneous forward
    t = 2.5
    grid = np.linspace(2.0, t, 2001)
    integral = trapezoid([mc.forward(u) for u in grid], grid)
    assert mc.zero(t) * t == pytest.approx(mc.zero(2.0) * 2.0 + integral, abs=1e-8)


def test_monotone_convex_drops_zero_knot():
    with_zero = MonotoneConvex([0.0] + KNOT_TIMES, [0.03] + KNOT_RATES)
    plain = MonotoneConvex(KNOT_TIMES, KNOT_RATES)
    assert with_zero.zero(3.3) == pytest.approx(plain.zero(3.3), abs=1e-15)


@pytest.mark.parametrize("kind", list(SplineKind))
def test_curves_pass_through_knots(kind):
    times = [0.5, 1.0, 2.0, 5.0, 10.0]
    rates = [0.02, 0.022, 0.025, 0.03, 0.031]
    curve = ZeroRateCurve(times, rates, kind)
    for t, r in zip(times, rates):
        assert curve.zero(t).value == pytest.approx(r, abs=1e-12), f"{kind.value} at knot {t}"
        assert curve.discount(t) == pytest.approx(math.exp(-r * t), rel=1e-12)


@pytest.mark.parametrize("kind", [SplineKind.LINEAR, SplineKind.CUBIC, SplineKind.PCHIP, SplineKind.AKIMA])
def test_flat_zero_extrapolation(kind):
    curve = ZeroRateCurve([1.0, 2.0, 5.0], [0.02, 0.03, 0.035], kind)
    assert curve.zero(20.0).value == pytest.approx(0.035, abs=1e-14)
    assert curve.zero(0.25).value == pytest.approx(0.02, abs=1e-14)


def test_monotone_convex_curve_extends_terminal_forward():
    curve = ZeroRateCurve(KNOT_TIMES, KNOT_RATES, SplineKind.MONOTONE_CONVEX)
    assert curve.forward(6.0, 7.0).value == pytest.approx(0.05025, abs=1e-12)


def test_linear_curve_interpolates_zero_rates():
    curve = ZeroRateCurve([1.0, 3.0], [0.02, 0.04], SplineKind.LINEAR)
    assert curve.zero(2.0).value == pytest.approx(0.03, abs=1e-15)


def test_single_knot_is_flat():
    for kind in SplineKind:
        curve = ZeroRateCurve([2.0], [0.03], kind)
        assert curve.zero(7.0).value == pytest.approx(0.03, abs=1e-14), kind.value


def test_kind_accepts_string_value():
    assert ZeroRateCurve([1.0, 2.0], [0.01, 0.02], "pchip").kind is SplineKind.PCHIP


def test_with_rates_keeps_knots_and_kind():
    curve = ZeroRateCurve([1.0, 2.0], [0.01, 0.02], SplineKind.LINEAR)
    moved = curve.with_rates([0.02, 0.03])
    assert np.array_equal(moved.times, curve.times)
    assert moved.kind is SplineKind.LINEAR
    assert moved.zero(1.5).value == pytest.approx(0.025)


@pytest.mark.parametrize(
    "times, rates",
    [
        ([], []),
        ([1.0, 2.0], [0.01]),
        ([-1.0, 2.0], [0.01, 0.02]),
        ([1.0, 1.0], [0.01, 0.02]),
        ([2.0, 1.0], [0.01, 0.02]),
    ],
)
def test_invalid_knots(times, rates):
    with pytest.raises(DomainViolation):
        ZeroRateCurve(times, rates, SplineKind.LINEAR)
