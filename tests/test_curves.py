# tests/test_curves.py

import math

import numpy as np
import pytest

from curve_calibration import (
    AnalyticModel,
    DiscountCurveInterpolation,
    FlatDiscountCurve,
    ForwardCurveFromDiscountCurve,
    ForwardCurveInterpolation,
    InterpolationEntity,
    VolatilitySurfaceInterpolation,
)
from curve_calibration.market import DiscountCurve, ForwardCurve
from curve_calibration.numerics import InterpolationMethod


def test_flat_curve_discount_factor() -> None:
    c = FlatDiscountCurve("discount", 0.05)
    assert c.df(2.0) == pytest.approx(math.exp(-0.1))
    assert c(0.0) == 1.0
    np.testing.assert_allclose(c.get_parameter(), [0.05])


def test_zero_rate_curve_reproduces_knots(zero_curve) -> None:
    c = zero_curve((1.0, 2.0, 5.0), (0.01, 0.02, 0.03))
    for t, r in [(1.0, 0.01), (2.0, 0.02), (5.0, 0.03)]:
        assert c.get_discount_factor(t) == pytest.approx(math.exp(-r * t))
        assert c.get_zero_rate(t) == pytest.approx(r)
    assert c.get_discount_factor(0.0) == 1.0


def test_zero_rate_curve_requires_positive_times() -> None:
    with pytest.raises(ValueError):
        DiscountCurveInterpolation.from_zero_rates("d", [0.0, 1.0], [0.01, 0.02])


def test_negative_time_rejected(zero_curve) -> None:
    with pytest.raises(ValueError):
        zero_curve().get_discount_factor(-1.0)


def test_from_discount_factors_prepends_fixed_unit_knot() -> None:
    c = DiscountCurveInterpolation.from_discount_factors("d", [1.0, 2.0], [0.97, 0.94])

    assert c.entity == InterpolationEntity.LOG_DISCOUNT_FACTOR
    assert c.times[0] == 0.0
    np.testing.assert_allclose(c.get_parameter(), np.log([0.97, 0.94]))
    assert c.df(1.0) == pytest.approx(0.97)
    assert c.df(0.5) == pytest.approx(math.sqrt(0.97))


def test_parameter_mask_selects_free_knots(zero_curve) -> None:
    c = zero_curve((1.0, 2.0, 3.0), (0.01, 0.02, 0.03), is_parameter=(True, False, True))

    np.testing.assert_allclose(c.get_parameter(), [0.01, 0.03])

    clone = c.get_clone_for_parameter([0.05, 0.06])
    np.testing.assert_allclose(clone.values, [0.05, 0.02, 0.06])
    np.testing.assert_allclose(c.values, [0.01, 0.02, 0.03])
    assert clone is not c
    assert clone.name == c.name


def test_clone_rejects_wrong_length(zero_curve) -> None:
    with pytest.raises(ValueError):
        zero_curve().get_clone_for_parameter([0.01])


def test_curve_arrays_are_read_only(zero_curve) -> None:
    c = zero_curve()
    with pytest.raises(ValueError):
        c.values[0] = 1.0
    with pytest.raises(ValueError):
        c.get_parameter()[0] = 1.0


def test_monotone_cubic_curve_interpolates(zero_curve) -> None:
    c = zero_curve(
        (1.0, 2.0, 3.0, 5.0),
        (0.01, 0.015, 0.02, 0.022),
        method=InterpolationMethod.MONOTONE_CUBIC,
    )
    assert c.get_zero_rate(2.0) == pytest.approx(0.015)
    assert 0.015 < c.get_zero_rate(2.5) < 0.02


def test_forward_curve_from_discount_curve() -> None:
    discount = FlatDiscountCurve("discount", 0.03)
    forward = ForwardCurveFromDiscountCurve("forward", "discount", payment_offset=0.5)
    model = AnalyticModel.from_market_objects(discount, forward)

    expected = (math.exp(0.03 * 0.5) - 1.0) / 0.5
    assert forward.get_forward(model, 1.0) == pytest.approx(expected)
    assert forward.get_parameter().size == 0


def test_forward_curve_from_discount_curve_needs_model() -> None:
    forward = ForwardCurveFromDiscountCurve("forward", "discount")
    with pytest.raises(ValueError):
        forward.get_forward(None, 1.0)
    with pytest.raises(ValueError):
        forward.get_forward(AnalyticModel(), 1.0)


def test_forward_curve_interpolation_parameters() -> None:
    f = ForwardCurveInterpolation("forward", [0.5, 1.0], [0.02, 0.03])
    assert f.get_forward(None, 0.75) == pytest.approx(0.025)
    clone = f.get_clone_for_parameter([0.04, 0.05])
    assert clone.get_forward(None, 1.0) == pytest.approx(0.05)
    assert f.get_forward(None, 1.0) == pytest.approx(0.03)


def test_runtime_protocols_distinguish_curve_roles(zero_curve) -> None:
    assert isinstance(zero_curve(), DiscountCurve)
    assert not isinstance(zero_curve(), ForwardCurve)
    f = ForwardCurveInterpolation("forward", [1.0], [0.02])
    assert isinstance(f, ForwardCurve)
    assert not isinstance(f, DiscountCurve)


def test_volatility_surface_linear_in_total_variance() -> None:
    s = VolatilitySurfaceInterpolation("vol", [1.0, 2.0], [0.2, 0.3])

    assert s.get_value(1.0, 0.03) == pytest.approx(0.2)
    assert s.get_value(0.5, 0.03) == pytest.approx(0.2)
    assert s.get_value(3.0, 0.03) == pytest.approx(0.3)

    w = 0.5 * (1.0 * 0.04 + 2.0 * 0.09)
    assert s.get_value(1.5, 0.01) == pytest.approx(math.sqrt(w / 1.5))

    clone = s.get_clone_for_parameter([0.25, 0.25])
    assert clone.get_value(1.5, 0.0) == pytest.approx(0.25)
