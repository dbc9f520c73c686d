import math

import pytest

from curve_engine.errors import DomainViolation, InvalidFrequency
from curve_engine.rates import (
    Continuous,
    Periodic,
    Rate,
    accumulation_factor,
    as_compounding,
    convert,
    discount_factor,
)


@pytest.fixture(scope="module")
def sample_rates():
    return [
        Rate(0.05, Periodic(2)),
        Rate(-0.01, Continuous()),
        Rate(0.03),
        Rate(0.12, Periodic(12)),
    ]


@pytest.mark.parametrize("bad", [0, -2, 1.5, float("nan")])
def test_invalid_frequency_raises(bad):
    with pytest.raises(InvalidFrequency):
        Periodic(bad)


def test_invalid_frequency_is_a_value_error():
    with pytest.raises(ValueError):
        Rate(0.05, 0)


def test_compounding_coercion():
    assert as_compounding(2) == Periodic(2)
    assert as_compounding(math.inf) == Continuous()
    assert Rate(0.05, 4).compounding == Periodic(4)
    assert Rate(0.05).compounding == Periodic(1), "Bare rates are annual effective"


@pytest.mark.parametrize("target", [Continuous(), Periodic(1), Periodic(2), Periodic(365)])
def test_round_trip_conversion(sample_rates, target):
    for r in sample_rates:
        back = convert(r.compounding, convert(target, r))
        assert back.compounding == r.compounding
        assert back.value == pytest.approx(r.value, abs=1e-14), f"Round trip via {target} lost precision for {r}"


def test_conversion_values():
    assert Continuous()(Rate(0.05)).value == pytest.approx(math.log(1.05), abs=1e-15)
    assert Periodic(1)(Rate(0.05, Continuous())).value == pytest.approx(math.expm1(0.05), abs=1e-15)
    assert Periodic(2)(0.04) == Rate(0.04, Periodic(2)), "A bare number is tagged, not converted"


def test_conversion_preserves_discounting(sample_rates):
    for r in sample_rates:
        for target in (Continuous(), Periodic(4)):
            assert convert(target, r).discount(7.3) == pytest.approx(r.discount(7.3), rel=1e-13)


def test_discount_factor_formulas():
    assert discount_factor(Rate(0.05, Periodic(2)), 2) == pytest.approx(1.025 ** -4, rel=1e-15)
    assert discount_factor(Rate(0.05, Continuous()), 2) == pytest.approx(math.exp(-0.1), rel=1e-15)
    assert discount_factor(0.05, 1) == pytest.approx(1 / 1.05, rel=1e-15)
    assert discount_factor(0.05, 1, 3) == pytest.approx(1.05 ** -2, rel=1e-15)


def test_discount_times_accumulation_is_one(sample_rates):
    for r in sample_rates:
        for t in (0.0, 0.25, 1.0, 10.0):
            assert discount_factor(r, t) * accumulation_factor(r, t) == pytest.approx(1.0, abs=1e-14)


def test_same_compounding_arithmetic_keeps_convention():
    s = Rate(0.01, Periodic(2)) + Rate(0.02, Periodic(2))
    assert s.compounding == Periodic(2)
    assert s.value == pytest.approx(0.03, abs=1e-15)
    assert (Rate(0.05, Periodic(2)) - 0.01).value == pytest.approx(0.04, abs=1e-15)
    assert (2 * Rate(0.02, Continuous())).value == pytest.approx(0.04, abs=1e-15)


def test_mixed_compounding_arithmetic_is_continuous():
    s = Rate(0.05) + Rate(0.01, Continuous())
    assert s.compounding == Continuous()
    assert s.value == pytest.approx(math.log(1.05) + 0.01, abs=1e-15)


def test_rate_ratio_is_a_number():
    assert Rate(0.04, Periodic(2)) / Rate(0.02, Periodic(2)) == pytest.approx(2.0)
    assert isinstance(Rate(0.04) / 2, Rate)


def test_comparisons_use_continuous_basis():
    # 5% annual is ~4.879% continuous
    assert Rate(0.05) < Rate(0.049, Continuous())
    assert Rate(0.05, Periodic(1)) > Rate(0.0487, Continuous())
    assert Rate(0.05).isclose(Continuous()(Rate(0.05)))


def test_negative_rates_allowed_until_degenerate():
    assert discount_factor(Rate(-0.01, Periodic(2)), 1) > 1.0
    with pytest.raises(DomainViolation):
        Rate(-3.0, Periodic(2)).continuous


def test_equality_is_by_convention_isclose_by_value():
    annual = Rate(0.05)
    continuous = Rate(math.log(1.05), Continuous())
    assert annual != continuous, "== compares value and compounding field by field"
    assert annual.isclose(continuous)
    assert annual == Rate(0.05, Periodic(1))
