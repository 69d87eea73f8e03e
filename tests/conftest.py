"""Pytest helpers for the curve_calibration library."""

from __future__ import annotations

import math

import numpy as np
import pytest

from curve_calibration import (
    AnalyticModel,
    DiscountBond,
    DiscountCurveInterpolation,
)


@pytest.fixture
def zero_curve():
    """Factory fixture for a ZERO_RATE-interpolated discount curve."""

    def _make(
        times=(1.0, 2.0),
        rates=(0.0, 0.0),
        *,
        name: str = "discount",
        **kwargs,
    ) -> DiscountCurveInterpolation:
        return DiscountCurveInterpolation.from_zero_rates(name, times, rates, **kwargs)

    return _make


@pytest.fixture
def two_knot_problem(zero_curve):
    """Two-knot zero curve and bonds quoted at a flat 3% annual rate."""
    curve = zero_curve((1.0, 2.0), (0.0, 0.0))
    model = AnalyticModel.from_market_objects(curve)
    products = [DiscountBond("discount", 1.0), DiscountBond("discount", 2.0)]
    targets = [1.0 / 1.03, 1.0 / 1.03**2]
    return model, curve, products, targets


@pytest.fixture
def flat_rate() -> float:
    return math.log(1.03)


@pytest.fixture
def rng():
    """Seeded RNG factory."""

    def _rng(seed: int) -> np.random.Generator:
        return np.random.default_rng(seed)

    return _rng
