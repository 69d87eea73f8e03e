"""One-dimensional knot interpolation used by curves.

Two schemes are supported on the interior, piecewise linear and the
Fritsch-Carlson monotone cubic Hermite. Beyond the first and last knot the
value is either held flat or continued along the end slope.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from .fd import diff1_nonuniform


class InterpolationMethod(str, Enum):
    LINEAR = "linear"
    MONOTONE_CUBIC = "monotone_cubic"  # Fritsch-Carlson


class ExtrapolationMethod(str, Enum):
    CONSTANT = "constant"
    LINEAR = "linear"


def _as_knots(x: NDArray, y: NDArray) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    xs = np.asarray(x, dtype=np.float64)
    ys = np.asarray(y, dtype=np.float64)
    if xs.ndim != 1 or xs.shape != ys.shape:
        raise ValueError("x and y must be 1D arrays with the same shape")
    if xs.size < 1:
        raise ValueError("Need at least 1 point")
    if np.any(np.diff(xs) <= 0.0):
        raise ValueError("x must be strictly increasing")
    return xs, ys


def fritsch_carlson_slopes(x: NDArray, y: NDArray) -> NDArray[np.float64]:
    """Node slopes of the piecewise monotone cubic Hermite interpolant.

    Starts from second-order finite-difference slopes and limits them interval
    by interval: slopes that disagree in sign with an adjacent secant are set
    to zero (so local extrema get zero slope), and pairs outside the circle of
    radius 3 in the (alpha, beta) plane are scaled back onto it. The data need
    not be globally monotone.
    """
    xs, ys = _as_knots(x, y)
    if xs.size < 2:
        return np.zeros_like(ys)

    secant = np.diff(ys) / np.diff(xs)
    slopes = diff1_nonuniform(ys, xs).copy()

    left_ok = slopes[:-1] * secant > 0.0
    right_ok = slopes[1:] * secant > 0.0
    slopes[:-1][~left_ok] = 0.0
    slopes[1:][~right_ok] = 0.0

    # Sequential: a knot shared by two intervals may be scaled twice.
    for i in np.flatnonzero(secant != 0.0):
        alpha = slopes[i] / secant[i]
        beta = slopes[i + 1] / secant[i]
        radius = max(abs(alpha), abs(beta))
        if radius > 3.0:
            slopes[i] *= 3.0 / radius
            slopes[i + 1] *= 3.0 / radius

    return slopes


@dataclass(frozen=True, slots=True)
class _KnotInterpolator:
    x: NDArray[np.float64]
    y: NDArray[np.float64]
    slopes: NDArray[np.float64] | None  # None: linear between knots
    end_slopes: tuple[float, float] | None  # None: flat extrapolation

    def _interior(self, q: NDArray[np.float64]) -> NDArray[np.float64]:
        i = np.clip(np.searchsorted(self.x, q, side="right") - 1, 0, self.x.size - 2)
        x0, x1 = self.x[i], self.x[i + 1]
        y0, y1 = self.y[i], self.y[i + 1]
        h = x1 - x0
        s = (q - x0) / h
        if self.slopes is None:
            return y0 + s * (y1 - y0)

        s2 = s * s
        s3 = s2 * s
        return (
            y0 * (1.0 - 3.0 * s2 + 2.0 * s3)
            + y1 * (3.0 * s2 - 2.0 * s3)
            + h * self.slopes[i] * (s - 2.0 * s2 + s3)
            + h * self.slopes[i + 1] * (s3 - s2)
        )

    def __call__(self, xq: NDArray | float) -> NDArray[np.float64]:
        q = np.asarray(xq, dtype=np.float64)
        flat = q.reshape(-1)

        lo, hi = self.x[0], self.x[-1]
        below = flat <= lo
        above = flat >= hi
        inside = ~(below | above)

        result = np.where(below, self.y[0], self.y[-1]).astype(np.float64)
        if self.end_slopes is not None:
            result[below] += self.end_slopes[0] * (flat[below] - lo)
            result[above] += self.end_slopes[1] * (flat[above] - hi)
        if inside.any():
            result[inside] = self._interior(flat[inside])

        return result.reshape(q.shape)


def build_interpolator(
    x: NDArray,
    y: NDArray,
    method: InterpolationMethod = InterpolationMethod.LINEAR,
    extrapolation: ExtrapolationMethod = ExtrapolationMethod.CONSTANT,
) -> Callable[[NDArray | float], NDArray[np.float64]]:
    """Return ``p(xq)`` interpolating the knots ``(x, y)``.

    ``p`` accepts scalars or arrays and returns an array of the same shape (a
    0-d array for a scalar). A single knot gives a constant function.
    """
    xs, ys = _as_knots(x, y)
    method = InterpolationMethod(method)
    extrapolation = ExtrapolationMethod(extrapolation)

    if xs.size == 1:
        return _KnotInterpolator(xs, ys, None, None)

    slopes = None
    if method == InterpolationMethod.MONOTONE_CUBIC:
        slopes = fritsch_carlson_slopes(xs, ys)
        end_slopes = (float(slopes[0]), float(slopes[-1]))
    else:
        secant = np.diff(ys) / np.diff(xs)
        end_slopes = (float(secant[0]), float(secant[-1]))

    if extrapolation == ExtrapolationMethod.CONSTANT:
        end_slopes = None
    return _KnotInterpolator(xs, ys, slopes, end_slopes)
