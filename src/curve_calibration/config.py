from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LevenbergMarquardtConfig:
    """Tunable defaults of the Levenberg-Marquardt optimizer.

    Termination
    -----------
    max_iter:
        Cap on outer iterations (one Jacobian per iteration).
    residual_tolerance:
        Converged once the RMS error is at or below this. ``0.0`` requires an
        exact fit.
    error_tolerance:
        Converged once an accepted step improves the RMS error by no more than
        this amount. ``0.0`` disables the test (solve to machine precision).
    step_tolerance:
        Converged once the undamped Gauss-Newton step is negligible: clipped
        to the bounds it satisfies
        ``||step|| <= step_tolerance * (||theta|| + step_tolerance)``, or the
        chi2 decrease it predicts is at most ``step_tolerance * chi2``. This
        also stops least-squares problems at a minimum with a nonzero residual.
        ``0.0`` disables the test.

    Damping
    -------
    lambda_initial, lambda_divisor, lambda_multiplicator:
        Start value; divide on an accepted step, multiply on a rejected one.
    lambda_max:
        Ceiling. Exceeding it before any step was accepted ends the run as
        diverged; afterwards lambda is capped here.
    max_retries:
        Rejected proposals allowed per outer iteration.

    Finite differences
    ------------------
    rel_step, abs_step:
        ``eps_i = max(|theta_i| * rel_step, abs_step)``.

    Threads
    -------
    n_threads:
        Worker count for Jacobian columns. ``None`` means
        ``min(2 * cpu_count, number_of_parameters)``.
    """

    max_iter: int = 1000
    residual_tolerance: float = 0.0
    error_tolerance: float = 0.0
    step_tolerance: float = 1e-12

    lambda_initial: float = 1e-3
    lambda_divisor: float = 3.0
    lambda_multiplicator: float = 2.0
    lambda_max: float = 1e16
    max_retries: int = 20

    rel_step: float = 1e-8
    abs_step: float = 1e-8

    n_threads: int | None = None

    def __post_init__(self) -> None:
        if self.max_iter <= 0:
            raise ValueError("max_iter must be > 0")
        if min(self.residual_tolerance, self.error_tolerance, self.step_tolerance) < 0.0:
            raise ValueError("residual_tolerance, error_tolerance and step_tolerance must be >= 0")
        if self.lambda_initial <= 0.0:
            raise ValueError("lambda_initial must be > 0")
        if self.lambda_divisor <= 1.0:
            raise ValueError("lambda_divisor must be > 1")
        if self.lambda_multiplicator <= 1.0:
            raise ValueError("lambda_multiplicator must be > 1")
        if not (self.lambda_max > self.lambda_initial) or math.isinf(self.lambda_max):
            raise ValueError("lambda_max must be finite and > lambda_initial")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.rel_step <= 0.0 or self.abs_step <= 0.0:
            raise ValueError("rel_step and abs_step must be > 0")
        if self.n_threads is not None and self.n_threads <= 0:
            raise ValueError("n_threads must be > 0")
