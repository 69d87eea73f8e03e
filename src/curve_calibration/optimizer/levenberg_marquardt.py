"""Levenberg-Marquardt least-squares optimizer with a threaded Jacobian.

The optimizer minimizes

    chi2(theta) = sum_i w_i * (f_i(theta) - target_i)^2

for an arbitrary objective ``f`` (a callable mapping a parameter vector to a
value vector). The Jacobian is estimated by forward finite differences; its
columns are independent objective calls and are evaluated concurrently on a
thread pool. Everything else (base-point evaluation, the linear solve, the
accept/reject decision) runs on the calling thread.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

import numpy as np

from ..config import LevenbergMarquardtConfig
from ..exceptions import CalibrationError, ConfigurationError, EvaluationError
from ..numerics.linalg import damp, normal_equations, solve_symmetric
from ..typing import FloatArray
from .base import ObjectiveFunction, OptimizerResult, OptimizerStatus

__all__ = [
    "LevenbergMarquardt",
    "LevenbergMarquardtFactory",
    "default_thread_count",
]

logger = logging.getLogger(__name__)

# Keeps lambda from underflowing to zero after many accepted steps.
_LAMBDA_MIN = 1e-16


def default_thread_count(number_of_parameters: int) -> int:
    """``min(2 * available cores, number_of_parameters)``, at least 1."""
    cores = max(os.cpu_count() or 1, 1)
    return max(min(2 * cores, int(number_of_parameters)), 1)


def _as_vector(name: str, values: Sequence[float] | np.ndarray | None, n: int, fill: float) -> FloatArray:
    if values is None:
        return np.full(n, fill, dtype=np.float64)
    arr = np.array(values, dtype=np.float64, copy=True).reshape(-1)
    if arr.size != n:
        raise ConfigurationError(f"{name} must have length {n}, got {arr.size}")
    return arr


@dataclass(slots=True)
class _RunState:
    theta: FloatArray
    values: FloatArray
    chi2: float
    lam: float
    iteration: int = 0
    accepted_any: bool = False
    n_evaluations: int = 0
    jacobian: FloatArray | None = None
    history: list[float] = field(default_factory=list)


class LevenbergMarquardt:
    """Levenberg-Marquardt optimizer for ``f(theta) ~ target``.

    Parameters
    ----------
    objective : callable
        ``objective(theta) -> values``. Called concurrently from worker threads
        for Jacobian columns, so it must not rely on shared mutable state.
    initial_parameters : array_like
        Starting point. Components outside the bounds are clipped into them.
    target_values : array_like, optional
        Values to reproduce. ``None`` means zeros of the length returned by the
        first objective call.
    lower_bound, upper_bound : array_like, optional
        Box constraints; ``None`` means unbounded. Every proposed point and
        every finite-difference shift stays inside the box.
    weights : array_like, optional
        Non-negative weights of the squared deviations (default ones).
    parameter_steps : array_like, optional
        Per-parameter finite-difference steps. Default
        ``max(|theta_i| * rel_step, abs_step)``.
    config : LevenbergMarquardtConfig, optional
        Iteration cap, tolerances, damping constants and thread count.
    executor : concurrent.futures.Executor, optional
        Pool used for Jacobian columns. When given it is used as is and not
        shut down; otherwise ``run`` owns a ``ThreadPoolExecutor`` for its
        duration.

    Notes
    -----
    An instance runs once. Use :meth:`get_clone_with_modified_target_values`
    to re-run with new targets (optionally warm-started).
    """

    def __init__(
        self,
        objective: ObjectiveFunction,
        initial_parameters: Sequence[float] | np.ndarray,
        target_values: Sequence[float] | np.ndarray | None = None,
        *,
        lower_bound: Sequence[float] | np.ndarray | None = None,
        upper_bound: Sequence[float] | np.ndarray | None = None,
        weights: Sequence[float] | np.ndarray | None = None,
        parameter_steps: Sequence[float] | np.ndarray | None = None,
        config: LevenbergMarquardtConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._objective = objective
        self._config = LevenbergMarquardtConfig() if config is None else config
        self._executor = executor

        initial = np.array(initial_parameters, dtype=np.float64, copy=True).reshape(-1)
        if not np.all(np.isfinite(initial)):
            raise ConfigurationError("initial_parameters must be finite")
        n = initial.size

        self._lower = _as_vector("lower_bound", lower_bound, n, -np.inf)
        self._upper = _as_vector("upper_bound", upper_bound, n, np.inf)
        if np.any(self._lower > self._upper):
            raise ConfigurationError("lower_bound must be <= upper_bound")
        self._initial = np.clip(initial, self._lower, self._upper)

        self._steps = None
        if parameter_steps is not None:
            self._steps = _as_vector("parameter_steps", parameter_steps, n, 0.0)
            if np.any(self._steps <= 0.0) or not np.all(np.isfinite(self._steps)):
                raise ConfigurationError("parameter_steps must be finite and > 0")

        self._targets = None
        if target_values is not None:
            self._targets = np.array(target_values, dtype=np.float64, copy=True).reshape(-1)

        self._weights = None
        if weights is not None:
            self._weights = np.array(weights, dtype=np.float64, copy=True).reshape(-1)
            if np.any(self._weights < 0.0) or not np.all(np.isfinite(self._weights)):
                raise ConfigurationError("weights must be finite and >= 0")
            if self._targets is not None and self._weights.shape != self._targets.shape:
                raise ConfigurationError("weights must have the same length as target_values")

        self._status = OptimizerStatus.INITIALIZED
        self._result: OptimizerResult | None = None

    # -------------------------
    # Accessors
    # -------------------------
    @property
    def config(self) -> LevenbergMarquardtConfig:
        return self._config

    @property
    def status(self) -> OptimizerStatus:
        return self._status

    @property
    def result(self) -> OptimizerResult | None:
        return self._result

    @property
    def number_of_threads(self) -> int:
        if self._config.n_threads is not None:
            return min(self._config.n_threads, max(self._initial.size, 1))
        return default_thread_count(self._initial.size)

    def get_best_fit_parameters(self) -> FloatArray:
        if self._result is None:
            return self._initial.copy()
        return self._result.best_fit_parameters.copy()

    def get_iterations(self) -> int:
        return 0 if self._result is None else self._result.iterations

    def get_root_mean_squared_error(self) -> float:
        return math.inf if self._result is None else self._result.rms_error

    def get_lambda(self) -> float:
        if self._result is None:
            return self._config.lambda_initial
        return self._result.lambda_final

    def get_clone_with_modified_target_values(
        self,
        target_values: Sequence[float] | np.ndarray,
        weights: Sequence[float] | np.ndarray | None = None,
        *,
        use_best_parameters_as_initial: bool = False,
    ) -> LevenbergMarquardt:
        """Fresh optimizer with the same objective, bounds and settings but new targets.

        With ``use_best_parameters_as_initial`` and a finished run, the clone
        starts from this run's best-fit parameters.
        """
        initial = self._initial
        if use_best_parameters_as_initial and self._status.is_terminal and self._result is not None:
            initial = self._result.best_fit_parameters
        return LevenbergMarquardt(
            self._objective,
            initial,
            target_values,
            lower_bound=self._lower,
            upper_bound=self._upper,
            weights=weights,
            parameter_steps=self._steps,
            config=self._config,
            executor=self._executor,
        )

    # -------------------------
    # Run
    # -------------------------
    def run(self) -> OptimizerResult:
        if self._status != OptimizerStatus.INITIALIZED:
            raise RuntimeError(
                f"Optimizer already run (status {self._status.value}); "
                "use get_clone_with_modified_target_values for another run."
            )
        self._status = OptimizerStatus.ITERATING

        executor = self._executor
        owns_executor = False
        n_threads = self.number_of_threads
        if executor is None and n_threads > 1:
            executor = ThreadPoolExecutor(
                max_workers=n_threads, thread_name_prefix="lm-jacobian"
            )
            owns_executor = True

        try:
            result = self._iterate(executor)
        except Exception:
            self._status = OptimizerStatus.ERROR
            raise
        finally:
            if owns_executor:
                executor.shutdown(wait=True)

        self._result = result
        self._status = result.status
        logger.info("Levenberg-Marquardt finished: %s", result.summary())
        return result

    def _iterate(self, executor: Executor | None) -> OptimizerResult:
        cfg = self._config

        theta = self._initial.copy()
        values = self._evaluate_base(theta)
        state = _RunState(
            theta=theta,
            values=values,
            chi2=self._chi2(values),
            lam=cfg.lambda_initial,
            n_evaluations=1,
        )
        state.history.append(state.chi2)

        status: OptimizerStatus | None = None
        if self._fits(state.chi2):
            status = OptimizerStatus.CONVERGED

        while status is None:
            if state.iteration >= cfg.max_iter:
                status = OptimizerStatus.MAX_ITERATIONS_REACHED
                break
            state.iteration += 1
            status = self._iteration(state, executor)

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Iteration: %d\tLambda=%.3e\tError Current=%.6e\tParameters=%s",
                    state.iteration,
                    state.lam,
                    self._rms(state.chi2),
                    np.array2string(state.theta, precision=10),
                )

        return OptimizerResult(
            status=status,
            best_fit_parameters=state.theta.copy(),
            iterations=state.iteration,
            chi2=state.chi2,
            rms_error=self._rms(state.chi2),
            lambda_final=state.lam,
            chi2_history=tuple(state.history),
            n_evaluations=state.n_evaluations,
        )

    def _iteration(self, state: _RunState, executor: Executor | None) -> OptimizerStatus | None:
        """One outer iteration: Jacobian (if stale), then damped steps until one is accepted."""
        cfg = self._config

        if state.jacobian is None:
            state.jacobian = self._jacobian(state.theta, state.values, executor)
            state.n_evaluations += state.theta.size

        hessian, gradient = normal_equations(
            state.jacobian, state.values - self._targets, self._weights
        )
        if cfg.step_tolerance > 0.0 and self._is_stationary(state, hessian, gradient):
            return OptimizerStatus.CONVERGED

        for _ in range(cfg.max_retries + 1):
            delta = solve_symmetric(damp(hessian, state.lam), gradient)
            theta_test = np.clip(state.theta + delta, self._lower, self._upper)
            values_test = self._evaluate_trial(theta_test)
            state.n_evaluations += 1
            chi2_test = math.inf if values_test is None else self._chi2(values_test)

            if chi2_test < state.chi2:
                improvement = self._rms(state.chi2) - self._rms(chi2_test)

                state.theta = theta_test
                state.values = values_test
                state.chi2 = chi2_test
                state.jacobian = None
                state.accepted_any = True
                state.history.append(chi2_test)
                state.lam = max(state.lam / cfg.lambda_divisor, _LAMBDA_MIN)

                if self._fits(chi2_test):
                    return OptimizerStatus.CONVERGED
                if cfg.error_tolerance > 0.0 and improvement <= cfg.error_tolerance:
                    return OptimizerStatus.CONVERGED
                return None

            state.lam *= cfg.lambda_multiplicator
            if state.lam > cfg.lambda_max:
                if not state.accepted_any:
                    return OptimizerStatus.DIVERGED
                state.lam = cfg.lambda_max
                return None

        return None

    def _is_stationary(self, state: _RunState, hessian: FloatArray, gradient: FloatArray) -> bool:
        """Whether the undamped (``lambda = 0``) Gauss-Newton step is negligible.

        It is when, clipped to the box, it moves ``theta`` by at most
        ``step_tolerance * (||theta|| + step_tolerance)``, or when the chi2
        decrease it predicts is at most ``step_tolerance * chi2``.
        """
        tol = self._config.step_tolerance
        step = solve_symmetric(damp(hessian, 0.0), gradient)
        moved = np.clip(state.theta + step, self._lower, self._upper) - state.theta
        if float(np.linalg.norm(moved)) <= tol * (float(np.linalg.norm(state.theta)) + tol):
            return True
        return float(gradient @ step) <= tol * state.chi2

    def _fits(self, chi2: float) -> bool:
        return chi2 == 0.0 or self._rms(chi2) <= self._config.residual_tolerance

    # -------------------------
    # Objective evaluation
    # -------------------------
    def _raw_call(self, theta: FloatArray) -> FloatArray:
        try:
            values = self._objective(theta.copy())
        except CalibrationError:
            raise
        except Exception as e:
            raise EvaluationError("Objective function evaluation failed.") from e
        return np.asarray(values, dtype=np.float64).reshape(-1)

    def _call(self, theta: FloatArray) -> FloatArray:
        values = self._raw_call(theta)
        if values.shape != self._targets.shape:
            raise ConfigurationError(
                f"Objective returned {values.size} values, expected {self._targets.size}."
            )
        return values

    def _evaluate_base(self, theta: FloatArray) -> FloatArray:
        values = self._raw_call(theta)
        if self._targets is None:
            self._targets = np.zeros(values.size, dtype=np.float64)
        elif values.shape != self._targets.shape:
            raise ConfigurationError(
                f"Objective returned {values.size} values, expected {self._targets.size}."
            )
        if self._weights is None:
            self._weights = np.ones_like(self._targets)
        elif self._weights.shape != self._targets.shape:
            raise ConfigurationError("weights must have the same length as the objective values")

        if not np.all(np.isfinite(values)):
            raise EvaluationError("Objective function is not finite at the initial parameters.")
        return values

    def _evaluate_trial(self, theta: FloatArray) -> FloatArray | None:
        values = self._call(theta)
        # A non-finite trial point is treated as a rejected step.
        return values if np.all(np.isfinite(values)) else None

    def _chi2(self, values: FloatArray) -> float:
        deviation = values - self._targets
        return float(np.sum(self._weights * deviation * deviation))

    def _rms(self, chi2: float) -> float:
        n = max(self._targets.size, 1)
        return math.sqrt(chi2 / n)

    # -------------------------
    # Jacobian
    # -------------------------
    def _finite_difference_step(self, theta: FloatArray, i: int) -> float:
        """Signed shift for column ``i``; backwards when the forward shift leaves the box."""
        if self._steps is not None:
            eps = float(self._steps[i])
        else:
            eps = max(abs(float(theta[i])) * self._config.rel_step, self._config.abs_step)

        room_up = float(self._upper[i] - theta[i])
        room_down = float(theta[i] - self._lower[i])
        if room_up >= eps:
            return eps
        if room_down >= eps:
            return -eps
        return room_up if room_up >= room_down else -room_down

    def _jacobian_column(self, theta: FloatArray, i: int, base_values: FloatArray) -> FloatArray:
        h = self._finite_difference_step(theta, i)
        if h == 0.0:
            return np.zeros_like(base_values)
        shifted = theta.copy()
        shifted[i] += h
        return (self._call(shifted) - base_values) / h

    def _jacobian(
        self, theta: FloatArray, base_values: FloatArray, executor: Executor | None
    ) -> FloatArray:
        n_params = theta.size
        jacobian = np.empty((base_values.size, n_params), dtype=np.float64)
        if n_params == 0:
            return jacobian

        if executor is None:
            for i in range(n_params):
                jacobian[:, i] = self._jacobian_column(theta, i, base_values)
            return jacobian

        futures: list[Future[FloatArray]] = [
            executor.submit(self._jacobian_column, theta, i, base_values)
            for i in range(n_params)
        ]
        wait(futures)
        for i, future in enumerate(futures):
            jacobian[:, i] = future.result()
        return jacobian


@dataclass(frozen=True, slots=True)
class LevenbergMarquardtFactory:
    """Optimizer factory producing :class:`LevenbergMarquardt` instances."""

    config: LevenbergMarquardtConfig = field(default_factory=LevenbergMarquardtConfig)

    def get_optimizer(
        self,
        objective: ObjectiveFunction,
        initial_parameters: Sequence[float] | np.ndarray,
        lower_bound: Sequence[float] | np.ndarray | None,
        upper_bound: Sequence[float] | np.ndarray | None,
        target_values: Sequence[float] | np.ndarray,
        *,
        parameter_steps: Sequence[float] | np.ndarray | None = None,
        executor: Executor | None = None,
    ) -> LevenbergMarquardt:
        return LevenbergMarquardt(
            objective,
            initial_parameters,
            target_values,
            lower_bound=lower_bound,
            upper_bound=upper_bound,
            parameter_steps=parameter_steps,
            config=self.config,
            executor=executor,
        )
