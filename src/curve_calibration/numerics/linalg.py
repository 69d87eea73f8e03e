from __future__ import annotations

import logging
from typing import cast

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import LinAlgError, cho_factor, cho_solve, lstsq

from ..exceptions import ConfigurationError, NumericalError

__all__ = [
    "normal_equations",
    "damp",
    "solve_symmetric",
    "solve_damped_normal_equations",
]

logger = logging.getLogger(__name__)


def normal_equations(
    jacobian: NDArray[np.floating],
    residual: NDArray[np.floating],
    weights: NDArray[np.floating] | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Return ``(JtWJ, -JtW r)`` for a Jacobian of shape (n_values, n_params).
    """
    J = np.asarray(jacobian, dtype=np.float64)
    r = np.asarray(residual, dtype=np.float64)
    if J.ndim != 2:
        raise ConfigurationError("jacobian must be 2D")
    if r.shape != (J.shape[0],):
        raise ConfigurationError(
            f"residual must have shape {(J.shape[0],)} got {r.shape}"
        )
    w = np.ones_like(r) if weights is None else np.asarray(weights, dtype=np.float64)
    if w.shape != r.shape:
        raise ConfigurationError("weights must have the same shape as residual")

    JtW = J.T * w
    return JtW @ J, -(JtW @ r)


def damp(hessian: NDArray[np.floating], lam: float) -> NDArray[np.float64]:
    """
    Marquardt damping ``H + lam * diag(H)``.

    Zero diagonal entries (parameters the values do not depend on) are
    replaced by 1 so the damped matrix stays nonsingular in that direction.
    """
    H = np.array(hessian, dtype=np.float64, copy=True)
    diag = np.diag(H).copy()
    zero = diag == 0.0
    diag[zero] = 1.0
    diag[~zero] *= 1.0 + lam
    np.fill_diagonal(H, diag)
    return H


def solve_symmetric(
    a: NDArray[np.floating], b: NDArray[np.floating]
) -> NDArray[np.float64]:
    """
    Solve ``a x = b`` for symmetric ``a``.

    Cholesky first; on failure (not positive definite, near singular) fall
    back to an SVD least-squares solve. Raises :class:`NumericalError` if
    neither produces a finite solution.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ConfigurationError("a must be a square matrix")
    if b.shape != (a.shape[0],):
        raise ConfigurationError(f"b must have shape {(a.shape[0],)} got {b.shape}")
    if a.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        raise NumericalError("Normal equations contain non-finite entries.")

    try:
        factor = cho_factor(a, lower=False, check_finite=False)
        x = cho_solve(factor, b, check_finite=False)
        if np.all(np.isfinite(x)):
            return cast(NDArray[np.float64], np.asarray(x, dtype=np.float64))
    except LinAlgError:
        logger.debug("Cholesky failed, falling back to SVD least squares.")

    try:
        x, _, rank, _ = lstsq(a, b, lapack_driver="gelsd", check_finite=False)
    except (LinAlgError, ValueError) as e:
        raise NumericalError("Normal equations could not be solved.") from e

    x = np.asarray(x, dtype=np.float64)
    if not np.all(np.isfinite(x)):
        raise NumericalError("Normal equations produced a non-finite step.")
    logger.debug("SVD least squares solve (rank %d of %d).", rank, a.shape[0])
    return x


def solve_damped_normal_equations(
    jacobian: NDArray[np.floating],
    residual: NDArray[np.floating],
    lam: float,
    weights: NDArray[np.floating] | None = None,
) -> NDArray[np.float64]:
    """Levenberg-Marquardt step ``delta`` with ``(JtWJ + lam diag(JtWJ)) delta = -JtW r``."""
    hessian, gradient = normal_equations(jacobian, residual, weights)
    return solve_symmetric(damp(hessian, lam), gradient)
