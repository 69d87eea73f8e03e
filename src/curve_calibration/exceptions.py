"""Error taxonomy of the calibration engine.

Every error raised by the library on purpose derives from
:class:`CalibrationError`, so callers can catch the whole family at once.
"""


class CalibrationError(Exception):
    """Base class for calibration failures."""


class ConfigurationError(CalibrationError, ValueError):
    """Raised when the inputs of a calibration are inconsistent.

    Typical causes are length mismatches (targets vs. products, a flat
    parameter vector vs. the aggregate length, bounds vs. parameters), an empty
    set of objects to calibrate while products are given (or vice versa), and
    market objects of an unsupported kind.
    """


class EvaluationError(CalibrationError):
    """Raised when an objective-function evaluation fails.

    Wraps the underlying cause (``__cause__``): a product that could not be
    priced, a non-finite price, or a model that could not be cloned for a
    parameter vector. There is no partial result once this is raised.
    """

    def __init__(self, message: str, *, product_index: int | None = None) -> None:
        super().__init__(message)
        self.product_index = product_index


class NumericalError(CalibrationError, ArithmeticError):
    """Raised when the damped normal equations cannot be solved.

    The linear solve first tries a Cholesky factorization and then falls back
    to an SVD-based least-squares solve; this is raised only when both fail or
    produce a non-finite step.
    """


class NonConvergenceError(CalibrationError):
    """Raised on request when an optimizer run did not converge.

    The :class:`~curve_calibration.calibration.solver.Solver` never raises this
    itself: it returns the best model found and exposes the status. Callers
    that want a hard failure use ``OptimizerResult.raise_for_status()``.
    """

    def __init__(self, message: str, *, status: str, accuracy: float) -> None:
        super().__init__(message)
        self.status = status
        self.accuracy = accuracy
