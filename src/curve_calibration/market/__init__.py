"""curve_calibration.market

Market data objects: curves, volatility surfaces and the immutable model
that holds them by name.
"""

from .curves import (
    Curve,
    DiscountCurve,
    DiscountCurveInterpolation,
    FlatDiscountCurve,
    ForwardCurve,
    ForwardCurveFromDiscountCurve,
    ForwardCurveInterpolation,
    InterpolationEntity,
)
from .model import AnalyticModel, MarketObject
from .surfaces import VolatilitySurface, VolatilitySurfaceInterpolation

__all__ = [
    "AnalyticModel",
    "MarketObject",
    # Curves
    "Curve",
    "DiscountCurve",
    "ForwardCurve",
    "InterpolationEntity",
    "FlatDiscountCurve",
    "DiscountCurveInterpolation",
    "ForwardCurveInterpolation",
    "ForwardCurveFromDiscountCurve",
    # Surfaces
    "VolatilitySurface",
    "VolatilitySurfaceInterpolation",
]
