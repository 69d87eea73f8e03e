"""First derivative of knot data on a nonuniform 1D grid.

Every node gets the slope of the quadratic through itself and its two
nearest neighbours on the grid (one-sided at the ends), which is second-order
accurate on irregular spacing. Two knots degrade to the secant slope.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def central_weights(hm, hp):
    """Weights ``(wl, wc, wr)`` with ``y'(x_i) ~ wl*y_{i-1} + wc*y_i + wr*y_{i+1}``.

    ``hm = x_i - x_{i-1}`` and ``hp = x_{i+1} - x_i`` may be scalars or arrays.
    """
    span = hm + hp
    wl = -hp / (hm * span)
    wr = hm / (hp * span)
    return wl, -(wl + wr), wr


def quadratic_slope_weights(nodes: NDArray, at: float) -> NDArray[np.float64]:
    """Weights of ``q'(at)`` for the quadratic ``q`` through three ``nodes``."""
    nodes = np.asarray(nodes, dtype=np.float64)
    weights = np.empty(3, dtype=np.float64)
    for k in range(3):
        others = np.delete(nodes, k)
        weights[k] = (2.0 * at - others.sum()) / np.prod(nodes[k] - others)
    return weights


def diff1_nonuniform(y: NDArray, x: NDArray) -> NDArray[np.float64]:
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.ndim != 1 or y.shape != x.shape:
        raise ValueError("x and y must be 1D arrays of the same shape")
    if x.size < 2:
        raise ValueError("x must have at least 2 points")
    h = np.diff(x)
    if np.any(h <= 0.0):
        raise ValueError("x must be strictly increasing")

    if x.size == 2:
        return np.full(2, (y[1] - y[0]) / h[0])

    wl, wc, wr = central_weights(h[:-1], h[1:])
    interior = wl * y[:-2] + wc * y[1:-1] + wr * y[2:]

    first = quadratic_slope_weights(x[:3], x[0]) @ y[:3]
    last = quadratic_slope_weights(x[-3:], x[-1]) @ y[-3:]
    return np.concatenate([[first], interior, [last]])
