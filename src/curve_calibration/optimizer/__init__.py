# src/curve_calibration/optimizer/__init__.py
"""
Least-squares optimizers.

The calibration Solver talks to optimizers only through
:class:`OptimizerFactory` and :class:`Optimizer`.
"""

from .base import (
    ObjectiveFunction,
    Optimizer,
    OptimizerFactory,
    OptimizerResult,
    OptimizerStatus,
)
from .levenberg_marquardt import (
    LevenbergMarquardt,
    LevenbergMarquardtFactory,
    default_thread_count,
)

__all__ = [
    "ObjectiveFunction",
    "Optimizer",
    "OptimizerFactory",
    "OptimizerResult",
    "OptimizerStatus",
    "LevenbergMarquardt",
    "LevenbergMarquardtFactory",
    "default_thread_count",
]
