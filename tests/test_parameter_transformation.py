# tests/test_parameter_transformation.py

import numpy as np
import pytest

from curve_calibration import (
    BoundedTransformation,
    ChainedTransformation,
    ConfigurationError,
    IdentityTransformation,
    MonotoneKnotTransformation,
    ParameterTransformation,
    PositiveTransformation,
)


@pytest.mark.parametrize(
    "transformation, p",
    [
        (IdentityTransformation(), [-1.0, 0.0, 2.5]),
        (PositiveTransformation(), [1e-4, 0.2, 3.0]),
        (BoundedTransformation(0.0, 1.0), [0.1, 0.5, 0.9]),
        (BoundedTransformation(lower=0.01), [0.02, 0.5, 4.0]),
        (BoundedTransformation(upper=0.5), [-3.0, 0.0, 0.49]),
        (BoundedTransformation([0.0, -1.0, -np.inf], [1.0, np.inf, np.inf]), [0.3, 2.0, -7.0]),
    ],
)
def test_solver_space_round_trip(transformation, p) -> None:
    assert isinstance(transformation, ParameterTransformation)
    x = transformation.to_solver_space(p)
    np.testing.assert_allclose(transformation.to_model_space(x), p, rtol=1e-9, atol=1e-12)


def test_bounded_transformation_stays_inside_bounds() -> None:
    t = BoundedTransformation(0.0, 0.5)
    x = np.linspace(-50.0, 50.0, 101)
    p = t.to_model_space(x)
    assert np.all(p >= 0.0)
    assert np.all(p <= 0.5)
    assert np.all(np.diff(p) >= 0.0)


def test_bounded_transformation_validates_bounds() -> None:
    with pytest.raises(ValueError):
        BoundedTransformation(1.0, 0.0)
    with pytest.raises(ConfigurationError):
        BoundedTransformation([0.0, 0.0], [1.0, 1.0]).to_model_space([0.1, 0.2, 0.3])


def test_positive_transformation_rejects_non_positive() -> None:
    with pytest.raises(ConfigurationError):
        PositiveTransformation().to_solver_space([0.1, 0.0])


def test_monotone_knot_transformation_keeps_slopes_in_range(rng) -> None:
    times = (0.5, 1.0, 2.0, 5.0, 10.0)
    t = MonotoneKnotTransformation(0.0, 0.1, times)

    for x in rng(17).normal(scale=5.0, size=(20, len(times))):
        p = t.to_model_space(x)
        slopes = np.diff(p) / np.diff(times)
        assert p[0] == x[0]
        assert np.all(slopes >= -1e-12)
        assert np.all(slopes <= 0.1 + 1e-12)


def test_monotone_knot_transformation_round_trip() -> None:
    times = (1.0, 2.0, 4.0)
    t = MonotoneKnotTransformation(0.0, np.inf, times)
    p = np.array([0.01, 0.03, 0.08])

    np.testing.assert_allclose(t.to_model_space(t.to_solver_space(p)), p, rtol=1e-12)


def test_monotone_knot_transformation_checks_length() -> None:
    t = MonotoneKnotTransformation(0.0, 1.0, (1.0, 2.0))
    with pytest.raises(ConfigurationError):
        t.to_model_space([0.1, 0.2, 0.3])


def test_monotone_knot_transformation_validates_arguments() -> None:
    with pytest.raises(ValueError):
        MonotoneKnotTransformation(1.0, 0.0, (1.0, 2.0))
    with pytest.raises(ValueError):
        MonotoneKnotTransformation(0.0, 1.0, (2.0, 1.0))
    with pytest.raises(ValueError):
        MonotoneKnotTransformation(-np.inf, np.inf, (1.0, 2.0))


def test_chained_transformation_applies_per_slice() -> None:
    t = ChainedTransformation(
        (PositiveTransformation(), None, BoundedTransformation(0.0, 1.0)),
        (2, 1, 1),
    )
    x = np.array([0.0, np.log(2.0), -3.0, 0.0])

    p = t.to_model_space(x)

    np.testing.assert_allclose(p, [1.0, 2.0, -3.0, 0.5])
    np.testing.assert_allclose(t.to_solver_space(p), x, atol=1e-12)


def test_chained_transformation_checks_length() -> None:
    t = ChainedTransformation((None,), (2,))
    with pytest.raises(ConfigurationError):
        t.to_model_space([1.0])
    with pytest.raises(ValueError):
        ChainedTransformation((None, None), (1,))
