# tests/test_levenberg_marquardt.py

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from curve_calibration import (
    ConfigurationError,
    EvaluationError,
    LevenbergMarquardt,
    LevenbergMarquardtConfig,
    LevenbergMarquardtFactory,
    NonConvergenceError,
    OptimizerStatus,
)
from curve_calibration.optimizer import Optimizer, OptimizerFactory, default_thread_count


def _rosenbrock(theta: np.ndarray) -> np.ndarray:
    return np.array([10.0 * (theta[1] - theta[0] ** 2), 1.0 - theta[0]])


def test_linear_least_squares(rng) -> None:
    g = rng(42)
    A = g.normal(size=(8, 3))
    b = g.normal(size=8)

    lm = LevenbergMarquardt(lambda x: A @ x, np.zeros(3), b)
    result = lm.run()

    expected, *_ = np.linalg.lstsq(A, b, rcond=None)
    assert result.status == OptimizerStatus.CONVERGED
    np.testing.assert_allclose(result.best_fit_parameters, expected, atol=1e-6)
    assert lm.get_root_mean_squared_error() == pytest.approx(
        np.sqrt(np.mean((A @ expected - b) ** 2)), rel=1e-6
    )


def test_rosenbrock_converges_with_monotone_chi2() -> None:
    lm = LevenbergMarquardt(_rosenbrock, [-1.2, 1.0])
    result = lm.run()

    assert result.converged
    np.testing.assert_allclose(result.best_fit_parameters, [1.0, 1.0], atol=1e-6)
    history = np.asarray(result.chi2_history)
    assert history.size >= 2
    assert np.all(np.diff(history) < 0.0)
    assert result.chi2 == history[-1]
    assert result.n_evaluations > result.iterations


def test_threaded_and_serial_runs_agree() -> None:
    serial = LevenbergMarquardt(
        _rosenbrock, [-1.2, 1.0], config=LevenbergMarquardtConfig(n_threads=1)
    ).run()
    threaded = LevenbergMarquardt(
        _rosenbrock, [-1.2, 1.0], config=LevenbergMarquardtConfig(n_threads=2)
    ).run()

    np.testing.assert_array_equal(serial.best_fit_parameters, threaded.best_fit_parameters)
    assert serial.iterations == threaded.iterations
    assert serial.chi2_history == threaded.chi2_history


def test_every_evaluation_respects_bounds() -> None:
    """The optimum lies outside the box; proposals and FD shifts stay inside."""
    seen: list[np.ndarray] = []
    lock = threading.Lock()

    def objective(theta):
        with lock:
            seen.append(theta.copy())
        return np.array([theta[0], theta[1]])

    lm = LevenbergMarquardt(
        objective,
        [0.5, 0.5],
        [2.0, -2.0],
        lower_bound=[0.0, -1.0],
        upper_bound=[1.0, 1.0],
        config=LevenbergMarquardtConfig(max_iter=200),
    )
    result = lm.run()

    points = np.array(seen)
    assert np.all(points[:, 0] >= 0.0) and np.all(points[:, 0] <= 1.0)
    assert np.all(points[:, 1] >= -1.0) and np.all(points[:, 1] <= 1.0)
    np.testing.assert_allclose(result.best_fit_parameters, [1.0, -1.0])
    # the Gauss-Newton step points out of the box, so it is clipped to zero
    assert result.converged


def test_initial_parameters_are_clipped() -> None:
    lm = LevenbergMarquardt(lambda x: x, [5.0], [0.0], upper_bound=[1.0])
    np.testing.assert_array_equal(lm.get_best_fit_parameters(), [1.0])


def test_diverges_when_no_step_is_ever_accepted() -> None:
    """Every proposed step is worse than the start; lambda runs past its ceiling."""
    lm = LevenbergMarquardt(
        lambda x: np.array([1.0 + 1e6 * x[0] ** 2]),
        [0.0],
        config=LevenbergMarquardtConfig(step_tolerance=0.0),
    )
    result = lm.run()

    assert result.status == OptimizerStatus.DIVERGED
    np.testing.assert_array_equal(result.best_fit_parameters, [0.0])
    assert result.lambda_final > lm.config.lambda_max
    with pytest.raises(NonConvergenceError) as excinfo:
        result.raise_for_status()
    assert excinfo.value.status == "diverged"


def test_inconsistent_targets_hit_max_iterations() -> None:
    lm = LevenbergMarquardt(
        lambda x: np.array([x[0], x[0]]),
        [5.0],
        [0.0, 1.0],
        config=LevenbergMarquardtConfig(max_iter=7, step_tolerance=0.0),
    )
    result = lm.run()

    assert result.status == OptimizerStatus.MAX_ITERATIONS_REACHED
    assert result.iterations == 7
    assert result.best_fit_parameters[0] == pytest.approx(0.5, abs=1e-6)
    assert result.rms_error == pytest.approx(0.5, rel=1e-6)
    assert result.lambda_final <= lm.config.lambda_max


def test_error_tolerance_stops_early() -> None:
    """A small RMS improvement on an accepted step ends the run."""
    loose = LevenbergMarquardt(
        lambda x: x,
        [0.0],
        [1.0],
        config=LevenbergMarquardtConfig(error_tolerance=1e-2),
    ).run()
    tight = LevenbergMarquardt(lambda x: x, [0.0], [1.0]).run()

    assert loose.converged
    assert loose.iterations == 2
    assert tight.iterations > loose.iterations


def test_rejected_proposals_are_not_small_steps() -> None:
    """Every damped proposal from the kink is worse; none may count as convergence."""
    lm = LevenbergMarquardt(lambda x: np.array([x[0] + 1e6 * abs(x[0] - 1.0)]), [1.0])
    result = lm.run()

    assert result.status == OptimizerStatus.DIVERGED
    assert result.chi2 == 1.0
    np.testing.assert_array_equal(result.best_fit_parameters, [1.0])


def test_converges_at_minimum_with_nonzero_residual() -> None:
    result = LevenbergMarquardt(lambda x: np.array([x[0], x[0]]), [5.0], [0.0, 1.0]).run()

    assert result.converged
    assert result.iterations < 50
    assert result.rms_error == pytest.approx(0.5, rel=1e-6)


def test_residual_tolerance_stops_once_targets_are_met() -> None:
    config = LevenbergMarquardtConfig(residual_tolerance=0.1, step_tolerance=0.0)
    result = LevenbergMarquardt(lambda x: x, [0.0], [1.0], config=config).run()

    assert result.converged
    assert result.iterations == 1
    assert result.rms_error <= 0.1


def test_non_finite_trial_point_is_rejected() -> None:
    def objective(theta):
        return np.array([np.log(theta[0]) if theta[0] > 0.0 else np.nan])

    result = LevenbergMarquardt(objective, [1.0], [np.log(0.1)]).run()

    assert result.converged
    assert result.best_fit_parameters[0] == pytest.approx(0.1, abs=1e-9)


def test_weights_change_the_fit() -> None:
    result = LevenbergMarquardt(
        lambda x: np.array([x[0], x[0]]), [0.0], [0.0, 1.0], weights=[1.0, 3.0]
    ).run()
    assert result.best_fit_parameters[0] == pytest.approx(0.75, abs=1e-6)


def test_parameter_steps_are_used() -> None:
    shifts: list[float] = []

    def objective(theta):
        shifts.append(float(theta[0]))
        return np.array([theta[0] ** 2 - 2.0])

    LevenbergMarquardt(
        objective,
        [1.0],
        parameter_steps=[1e-4],
        config=LevenbergMarquardtConfig(max_iter=1),
    ).run()

    assert shifts[1] == pytest.approx(1.0 + 1e-4)


def test_run_twice_raises() -> None:
    lm = LevenbergMarquardt(lambda x: x, [1.0])
    lm.run()
    assert lm.status.is_terminal
    with pytest.raises(RuntimeError):
        lm.run()


def test_clone_with_modified_targets_warm_starts() -> None:
    lm = LevenbergMarquardt(lambda x: np.array([x[0] ** 3]), [1.0], [8.0])
    first = lm.run()
    assert first.best_fit_parameters[0] == pytest.approx(2.0, abs=1e-8)

    clone = lm.get_clone_with_modified_target_values(
        [27.0], use_best_parameters_as_initial=True
    )
    np.testing.assert_allclose(clone.get_best_fit_parameters(), first.best_fit_parameters)

    second = clone.run()
    assert second.best_fit_parameters[0] == pytest.approx(3.0, abs=1e-8)
    assert lm.get_best_fit_parameters()[0] == pytest.approx(2.0, abs=1e-8)


def test_objective_failure_in_worker_is_evaluation_error() -> None:
    def objective(theta):
        if theta[1] != 0.0:
            raise ZeroDivisionError("shifted")
        return np.array([theta[0], theta[1]])

    lm = LevenbergMarquardt(
        objective, [1.0, 0.0], config=LevenbergMarquardtConfig(n_threads=2)
    )
    with pytest.raises(EvaluationError) as excinfo:
        lm.run()

    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)
    assert lm.status == OptimizerStatus.ERROR


def test_external_executor_is_left_running() -> None:
    with ThreadPoolExecutor(max_workers=2) as executor:
        result = LevenbergMarquardt(_rosenbrock, [-1.2, 1.0], executor=executor).run()
        assert result.converged
        assert executor.submit(lambda: 41 + 1).result() == 42


def test_length_checks() -> None:
    with pytest.raises(ConfigurationError):
        LevenbergMarquardt(lambda x: x, [1.0, 2.0], lower_bound=[0.0])
    with pytest.raises(ConfigurationError):
        LevenbergMarquardt(lambda x: x, [1.0], lower_bound=[2.0], upper_bound=[1.0])
    with pytest.raises(ConfigurationError):
        LevenbergMarquardt(lambda x: x, [1.0], [0.0], weights=[1.0, 1.0])
    with pytest.raises(ConfigurationError):
        LevenbergMarquardt(lambda x: x, [1.0], [0.0, 0.0]).run()


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        LevenbergMarquardtConfig(max_iter=0)
    with pytest.raises(ValueError):
        LevenbergMarquardtConfig(lambda_divisor=1.0)
    with pytest.raises(ValueError):
        LevenbergMarquardtConfig(n_threads=0)
    with pytest.raises(ValueError):
        LevenbergMarquardtConfig(residual_tolerance=-1.0)


def test_factory_and_protocols() -> None:
    factory = LevenbergMarquardtFactory(LevenbergMarquardtConfig(max_iter=5))
    optimizer = factory.get_optimizer(lambda x: x, [1.0], None, None, [0.0])

    assert isinstance(factory, OptimizerFactory)
    assert isinstance(optimizer, Optimizer)
    assert optimizer.config.max_iter == 5


def test_default_thread_count() -> None:
    assert default_thread_count(1) == 1
    assert default_thread_count(0) == 1
    assert 1 <= default_thread_count(10_000) <= 10_000
