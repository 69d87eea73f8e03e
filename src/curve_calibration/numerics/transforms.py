"""Elementwise bijections behind the parameter transformations.

Scalars map to ``float``, arrays to arrays of the same shape (empty included).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import special

EPS = 1e-12

type _Values = float | NDArray[np.float64]


def _unwrap(out: np.ndarray) -> _Values:
    return float(out) if out.ndim == 0 else out


def sigmoid(x: _Values) -> _Values:
    """Logistic function, ``R -> (0, 1)``."""
    return _unwrap(special.expit(np.asarray(x, dtype=np.float64)))


def logit(u: _Values) -> _Values:
    """Inverse of :func:`sigmoid`; ``u`` is kept ``EPS`` away from 0 and 1."""
    clipped = np.clip(np.asarray(u, dtype=np.float64), EPS, 1.0 - EPS)
    return _unwrap(special.logit(clipped))


def softplus(x: _Values) -> _Values:
    """``log(1 + exp(x))``, ``R -> (0, inf)``."""
    return _unwrap(np.logaddexp(0.0, np.asarray(x, dtype=np.float64)))


def softplus_inv(y: _Values) -> _Values:
    # log(exp(y) - 1), with y floored at EPS
    y_arr = np.maximum(np.asarray(y, dtype=np.float64), EPS)
    return _unwrap(y_arr + np.log(-np.expm1(-y_arr)))
