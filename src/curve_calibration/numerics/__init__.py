# src/curve_calibration/numerics/__init__.py
"""
Numerical building blocks (advanced API).

Top-level package `curve_calibration` exposes the everyday calibration API.
This subpackage exposes reusable numerical primitives.
"""

from .interpolation import (
    ExtrapolationMethod,
    InterpolationMethod,
    build_interpolator,
    fritsch_carlson_slopes,
)
from .linalg import (
    damp,
    normal_equations,
    solve_damped_normal_equations,
    solve_symmetric,
)
from .transforms import logit, sigmoid, softplus, softplus_inv

__all__ = [
    # Interpolation
    "InterpolationMethod",
    "ExtrapolationMethod",
    "build_interpolator",
    "fritsch_carlson_slopes",
    # Linear algebra
    "normal_equations",
    "damp",
    "solve_symmetric",
    "solve_damped_normal_equations",
    # Transforms
    "sigmoid",
    "logit",
    "softplus",
    "softplus_inv",
]
