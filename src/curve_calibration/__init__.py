"""
curve_calibration

Calibration of interest-rate curves and volatility surfaces to market quotes.

The package exposes the main user-facing objects at the top level, so you can
write, for example:

    from curve_calibration import AnalyticModel, DiscountBond, Solver
"""

from .calibration import (
    BoundedTransformation,
    CalibrationObjective,
    ChainedTransformation,
    IdentityTransformation,
    MonotoneKnotTransformation,
    ParameterAggregation,
    ParameterTransformation,
    PositiveTransformation,
    Solver,
)
from .config import LevenbergMarquardtConfig
from .exceptions import (
    CalibrationError,
    ConfigurationError,
    EvaluationError,
    NonConvergenceError,
    NumericalError,
)
from .market import (
    AnalyticModel,
    DiscountCurveInterpolation,
    FlatDiscountCurve,
    ForwardCurveFromDiscountCurve,
    ForwardCurveInterpolation,
    InterpolationEntity,
    VolatilitySurfaceInterpolation,
)
from .optimizer import (
    LevenbergMarquardt,
    LevenbergMarquardtFactory,
    OptimizerResult,
    OptimizerStatus,
)
from .parameters import ParameterHandle, ParameterObject
from .products import (
    BlackCaplet,
    Deposit,
    DiscountBond,
    ForwardRateAgreement,
    Swap,
)

__all__ = [
    # Model
    "AnalyticModel",
    "FlatDiscountCurve",
    "DiscountCurveInterpolation",
    "ForwardCurveInterpolation",
    "ForwardCurveFromDiscountCurve",
    "InterpolationEntity",
    "VolatilitySurfaceInterpolation",
    # Products
    "DiscountBond",
    "Deposit",
    "ForwardRateAgreement",
    "Swap",
    "BlackCaplet",
    # Calibration
    "ParameterObject",
    "ParameterHandle",
    "ParameterAggregation",
    "ParameterTransformation",
    "IdentityTransformation",
    "PositiveTransformation",
    "BoundedTransformation",
    "MonotoneKnotTransformation",
    "ChainedTransformation",
    "CalibrationObjective",
    "Solver",
    # Optimizer
    "LevenbergMarquardtConfig",
    "LevenbergMarquardt",
    "LevenbergMarquardtFactory",
    "OptimizerResult",
    "OptimizerStatus",
    # Errors
    "CalibrationError",
    "ConfigurationError",
    "EvaluationError",
    "NumericalError",
    "NonConvergenceError",
]
