"""Calibration of model objects to market quotes.

A :class:`Solver` finds parameters of a set of curves and surfaces such that a
list of products, valued against the model, reproduces given target values
(typically zero for par instruments). It wires together

1. a :class:`ParameterAggregation` of the objects to calibrate,
2. an optional :class:`ParameterTransformation` into an unconstrained space,
3. a :class:`CalibrationObjective` returning product residuals, and
4. an optimizer built by an :class:`OptimizerFactory`
   (Levenberg-Marquardt by default).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

import numpy as np

from ..config import LevenbergMarquardtConfig
from ..exceptions import ConfigurationError
from ..market.model import AnalyticModel
from ..optimizer.base import OptimizerFactory, OptimizerResult, OptimizerStatus
from ..optimizer.levenberg_marquardt import LevenbergMarquardtFactory
from ..parameters import ParameterObject
from ..products.base import AnalyticProduct
from ..typing import ArrayLike, FloatArray
from .objective import CalibrationObjective
from .parameter_aggregation import ParameterAggregation
from .parameter_transformation import ParameterTransformation

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1000
# RMS at which a calibration with calibration_accuracy = 0 counts as exact
DEFAULT_RESIDUAL_TOLERANCE = 1e-12


class Solver:
    """Calibrates objects of an :class:`AnalyticModel` to product targets.

    Parameters
    ----------
    model : AnalyticModel
        Model holding every curve/surface the products need. Never modified.
    calibration_products : Sequence[AnalyticProduct]
        Products whose values should match the targets.
    calibration_target_values : ArrayLike, optional
        One target per product; defaults to zeros.
    parameter_transformation : ParameterTransformation, optional
        Map from solver space to model space for the aggregated parameters.
    evaluation_time : float
        Valuation time passed to the products.
    calibration_accuracy : float
        Error tolerance of the default optimizer (RMS improvement per accepted
        step). ``0.0`` solves to machine precision.
    optimizer_factory : OptimizerFactory, optional
        Defaults to Levenberg-Marquardt with ``max_iter=1000``,
        ``error_tolerance=calibration_accuracy`` and ``residual_tolerance``
        ``max(calibration_accuracy, 1e-12)``. The step-size test is off, so a
        calibration whose targets cannot all be met ends as
        ``MAX_ITERATIONS_REACHED``.
    parameter_steps : ArrayLike, optional
        Finite-difference step per solver-space parameter, passed to the
        optimizer. ``None`` uses the optimizer's default rule.

    Notes
    -----
    After :meth:`get_calibrated_model`, :attr:`iterations`, :attr:`accuracy`
    (RMS of the residuals of the returned model), :attr:`status` and
    :attr:`last_result` describe the last run. A Solver runs one calibration
    at a time.

    Examples
    --------
    >>> curve = DiscountCurveInterpolation.from_zero_rates("discount", [1.0, 2.0], [0.0, 0.0])
    >>> model = AnalyticModel.from_market_objects(curve)
    >>> bonds = [DiscountBond("discount", 1.0), DiscountBond("discount", 2.0)]
    >>> solver = Solver(model, bonds, [1 / 1.03, 1 / 1.03**2])
    >>> calibrated = solver.get_calibrated_model([curve])
    """

    def __init__(
        self,
        model: AnalyticModel,
        calibration_products: Sequence[AnalyticProduct],
        calibration_target_values: ArrayLike | None = None,
        *,
        parameter_transformation: ParameterTransformation | None = None,
        evaluation_time: float = 0.0,
        calibration_accuracy: float = 0.0,
        optimizer_factory: OptimizerFactory | None = None,
        parameter_steps: ArrayLike | None = None,
    ) -> None:
        products = tuple(calibration_products)
        if calibration_target_values is None:
            targets = np.zeros(len(products), dtype=np.float64)
        else:
            targets = np.array(calibration_target_values, dtype=np.float64, copy=True).reshape(-1)
        if targets.size != len(products):
            raise ConfigurationError(
                f"Got {targets.size} target values for {len(products)} calibration products"
            )
        if not (calibration_accuracy >= 0.0):
            raise ConfigurationError("calibration_accuracy must be >= 0")
        targets.setflags(write=False)

        self._model = model
        self._products = products
        self._targets = targets
        self._transformation = parameter_transformation
        self._evaluation_time = float(evaluation_time)
        self._calibration_accuracy = float(calibration_accuracy)
        self._optimizer_factory = optimizer_factory
        self._parameter_steps = (
            None
            if parameter_steps is None
            else np.array(parameter_steps, dtype=np.float64, copy=True).reshape(-1)
        )

        self._iterations = 0
        self._accuracy = math.inf
        self._status = OptimizerStatus.INITIALIZED
        self._last_result: OptimizerResult | None = None

    # -------------------------
    # Accessors
    # -------------------------
    @property
    def model(self) -> AnalyticModel:
        return self._model

    @property
    def calibration_products(self) -> tuple[AnalyticProduct, ...]:
        return self._products

    @property
    def calibration_target_values(self) -> FloatArray:
        return self._targets

    @property
    def evaluation_time(self) -> float:
        return self._evaluation_time

    @property
    def calibration_accuracy(self) -> float:
        return self._calibration_accuracy

    @property
    def iterations(self) -> int:
        """Optimizer iterations of the last calibration."""
        return self._iterations

    @property
    def accuracy(self) -> float:
        """RMS residual of the last calibrated model (``inf`` before any run)."""
        return self._accuracy

    @property
    def status(self) -> OptimizerStatus:
        return self._status

    @property
    def last_result(self) -> OptimizerResult | None:
        return self._last_result

    def optimizer_factory(self) -> OptimizerFactory:
        if self._optimizer_factory is not None:
            return self._optimizer_factory
        return LevenbergMarquardtFactory(
            LevenbergMarquardtConfig(
                max_iter=DEFAULT_MAX_ITERATIONS,
                residual_tolerance=max(self._calibration_accuracy, DEFAULT_RESIDUAL_TOLERANCE),
                error_tolerance=self._calibration_accuracy,
                step_tolerance=0.0,
            )
        )

    # -------------------------
    # Calibration
    # -------------------------
    def get_calibrated_model(
        self, objects_to_calibrate: Iterable[ParameterObject]
    ) -> AnalyticModel:
        """Return a clone of the model with ``objects_to_calibrate`` calibrated.

        Non-convergence is not an error: the best model found is returned,
        :attr:`status` tells whether the optimizer converged and
        :attr:`accuracy` how well the targets are met.

        Raises
        ------
        ConfigurationError
            If there are products but no free parameters to calibrate, or
            parameters to calibrate but no products. A wrong number of
            ``parameter_steps`` is reported by the optimizer.
        EvaluationError
            If a product cannot be valued (the cause is chained).
        NumericalError
            If the optimizer's linear solve fails.
        """
        aggregation = ParameterAggregation(objects_to_calibrate)
        n_products = len(self._products)

        if n_products == 0 and len(aggregation) == 0:
            self._iterations = 0
            self._accuracy = 0.0
            self._status = OptimizerStatus.CONVERGED
            self._last_result = None
            return self._model
        if len(aggregation) == 0:
            raise ConfigurationError(
                f"{n_products} calibration products given but no free parameters to calibrate"
            )
        if n_products == 0:
            raise ConfigurationError(
                f"{len(aggregation)} parameters to calibrate but no calibration products"
            )

        objective = CalibrationObjective(
            self._model,
            self._products,
            self._targets,
            aggregation,
            transformation=self._transformation,
            evaluation_time=self._evaluation_time,
        )

        initial = aggregation.get_parameter()
        if self._transformation is not None:
            initial = np.asarray(self._transformation.to_solver_space(initial), dtype=np.float64)
        n_params = initial.size

        optimizer = self.optimizer_factory().get_optimizer(
            objective,
            initial,
            np.full(n_params, -np.inf),
            np.full(n_params, np.inf),
            np.zeros(n_products),
            parameter_steps=self._parameter_steps,
        )

        logger.debug(
            "Calibrating %s to %d products (%d parameters)",
            aggregation,
            n_products,
            n_params,
        )
        result = optimizer.run()

        calibrated = objective.model_for_parameter(optimizer.get_best_fit_parameters())
        residuals = objective.residuals(calibrated)

        self._last_result = result
        self._status = result.status
        self._iterations = optimizer.get_iterations()
        self._accuracy = float(np.sqrt(np.mean(residuals**2)))

        if result.converged:
            logger.info(
                "Calibration converged after %d iterations (accuracy %.3e)",
                self._iterations,
                self._accuracy,
            )
        else:
            logger.warning(
                "Calibration did not converge (%s) after %d iterations; "
                "returning best model found (accuracy %.3e)",
                result.status.value,
                self._iterations,
                self._accuracy,
            )
        return calibrated
