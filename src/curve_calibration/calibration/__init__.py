# src/curve_calibration/calibration/__init__.py
"""
Calibration of curves and surfaces to product quotes.
"""

from .objective import CalibrationObjective
from .parameter_aggregation import ParameterAggregation
from .parameter_transformation import (
    BoundedTransformation,
    ChainedTransformation,
    IdentityTransformation,
    MonotoneKnotTransformation,
    ParameterTransformation,
    PositiveTransformation,
)
from .solver import Solver

__all__ = [
    "ParameterAggregation",
    "ParameterTransformation",
    "IdentityTransformation",
    "PositiveTransformation",
    "BoundedTransformation",
    "MonotoneKnotTransformation",
    "ChainedTransformation",
    "CalibrationObjective",
    "Solver",
]
