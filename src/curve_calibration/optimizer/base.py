from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

import numpy as np

from ..exceptions import NonConvergenceError
from ..typing import FloatArray, ObjectiveFunction


class OptimizerStatus(str, Enum):
    """Lifecycle of one optimizer run.

    ``INITIALIZED -> ITERATING -> {CONVERGED, MAX_ITERATIONS_REACHED, DIVERGED, ERROR}``
    """

    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    DIVERGED = "diverged"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self not in (OptimizerStatus.INITIALIZED, OptimizerStatus.ITERATING)


@dataclass(frozen=True, slots=True)
class OptimizerResult:
    """Outcome of an optimizer run.

    Attributes
    ----------
    status : OptimizerStatus
        Terminal status.
    best_fit_parameters : FloatArray
        Best parameters found (solver space).
    iterations : int
        Outer iterations performed.
    chi2 : float
        Weighted sum of squared deviations at ``best_fit_parameters``.
    rms_error : float
        ``sqrt(chi2 / n_values)``.
    lambda_final : float
        Damping factor at termination.
    chi2_history : tuple[float, ...]
        chi2 of the initial point followed by every accepted point.
    n_evaluations : int
        Objective function calls, including Jacobian columns.
    """

    status: OptimizerStatus
    best_fit_parameters: FloatArray
    iterations: int
    chi2: float
    rms_error: float
    lambda_final: float
    chi2_history: tuple[float, ...] = field(default_factory=tuple)
    n_evaluations: int = 0

    @property
    def converged(self) -> bool:
        return self.status == OptimizerStatus.CONVERGED

    def raise_for_status(self) -> None:
        """Raise :class:`NonConvergenceError` unless the run converged."""
        if not self.converged:
            raise NonConvergenceError(
                f"Optimizer stopped with status {self.status.value} after "
                f"{self.iterations} iterations (rms error {self.rms_error:.3g}).",
                status=self.status.value,
                accuracy=self.rms_error,
            )

    def summary(self) -> str:
        return (
            f"status={self.status.value} iterations={self.iterations} "
            f"rms={self.rms_error:.3e} lambda={self.lambda_final:.3e} "
            f"nfev={self.n_evaluations}"
        )


@runtime_checkable
class Optimizer(Protocol):
    def run(self) -> OptimizerResult: ...

    def get_best_fit_parameters(self) -> FloatArray: ...

    def get_iterations(self) -> int: ...

    def get_root_mean_squared_error(self) -> float: ...


@runtime_checkable
class OptimizerFactory(Protocol):
    """Builds an optimizer for one objective function.

    ``target_values`` are the values the objective should reproduce (the
    Solver passes zeros because its objective already returns residuals).
    """

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
    ) -> Optimizer: ...
