# tests/test_linalg.py

import numpy as np
import pytest

from curve_calibration.exceptions import ConfigurationError, NumericalError
from curve_calibration.numerics.linalg import (
    damp,
    normal_equations,
    solve_damped_normal_equations,
    solve_symmetric,
)


def test_normal_equations_match_explicit_products(rng) -> None:
    g = rng(3)
    J = g.normal(size=(7, 3))
    r = g.normal(size=7)
    w = g.uniform(0.5, 2.0, size=7)

    H, grad = normal_equations(J, r, w)

    W = np.diag(w)
    np.testing.assert_allclose(H, J.T @ W @ J, rtol=1e-12)
    np.testing.assert_allclose(grad, -(J.T @ W @ r), rtol=1e-12)


def test_damp_scales_diagonal_and_replaces_zeros() -> None:
    H = np.array([[4.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 0.0]])
    D = damp(H, 0.5)

    np.testing.assert_allclose(np.diag(D), [6.0, 3.0, 1.0])
    assert D[0, 1] == 1.0
    assert H[0, 0] == 4.0  # input untouched


def test_solve_symmetric_positive_definite() -> None:
    a = np.array([[4.0, 1.0], [1.0, 3.0]])
    b = np.array([1.0, 2.0])
    np.testing.assert_allclose(solve_symmetric(a, b), np.linalg.solve(a, b))


def test_solve_symmetric_falls_back_for_singular_matrix() -> None:
    """A singular (semi-definite) system gets the minimum-norm least-squares step."""
    a = np.array([[1.0, 1.0], [1.0, 1.0]])
    b = np.array([2.0, 2.0])

    x = solve_symmetric(a, b)

    np.testing.assert_allclose(a @ x, b, atol=1e-12)
    np.testing.assert_allclose(x, [1.0, 1.0], atol=1e-12)


def test_solve_symmetric_rejects_non_finite() -> None:
    with pytest.raises(NumericalError):
        solve_symmetric(np.array([[np.nan]]), np.array([1.0]))


def test_solve_symmetric_empty_system() -> None:
    x = solve_symmetric(np.zeros((0, 0)), np.zeros(0))
    assert x.shape == (0,)


def test_shape_mismatch_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        normal_equations(np.ones((3, 2)), np.ones(2))


def test_damped_step_on_linear_problem_is_gauss_newton_for_tiny_lambda(rng) -> None:
    g = rng(5)
    J = g.normal(size=(6, 2))
    r = g.normal(size=6)

    delta = solve_damped_normal_equations(J, r, 1e-14)
    expected, *_ = np.linalg.lstsq(J, -r, rcond=None)

    np.testing.assert_allclose(delta, expected, rtol=1e-8)
