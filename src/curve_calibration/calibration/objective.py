from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from ..exceptions import CalibrationError, ConfigurationError, EvaluationError
from ..market.model import AnalyticModel
from ..products.base import AnalyticProduct
from ..typing import ArrayLike, FloatArray
from .parameter_aggregation import ParameterAggregation
from .parameter_transformation import ParameterTransformation


class CalibrationObjective:
    """Residuals of a set of products as a function of solver-space parameters.

    ``objective(x)[i] = products[i].get_value(evaluation_time, model(x)) - targets[i]``

    where ``model(x)`` is the base model with every aggregated object replaced
    by its clone for the corresponding slice of ``to_model_space(x)``. The base
    model and the objects are never modified, so the objective can be called
    from several threads at once.

    Parameters
    ----------
    model : AnalyticModel
        Base model; objects not being calibrated are taken from here.
    products : Sequence[AnalyticProduct]
        Calibration products.
    target_values : ArrayLike
        One target per product.
    aggregation : ParameterAggregation
        Layout of the flat parameter vector.
    transformation : ParameterTransformation, optional
        Solver-space to model-space map. ``None`` means identity.
    evaluation_time : float
        Time passed to every product valuation.
    """

    __slots__ = (
        "_model",
        "_products",
        "_targets",
        "_aggregation",
        "_transformation",
        "_evaluation_time",
    )

    def __init__(
        self,
        model: AnalyticModel,
        products: Sequence[AnalyticProduct],
        target_values: ArrayLike,
        aggregation: ParameterAggregation,
        transformation: ParameterTransformation | None = None,
        evaluation_time: float = 0.0,
    ) -> None:
        self._products = tuple(products)
        targets = np.array(target_values, dtype=np.float64, copy=True).reshape(-1)
        if targets.size != len(self._products):
            raise ConfigurationError(
                f"Got {targets.size} target values for {len(self._products)} products"
            )
        targets.setflags(write=False)

        self._model = model
        self._targets = targets
        self._aggregation = aggregation
        self._transformation = transformation
        self._evaluation_time = float(evaluation_time)

    @property
    def number_of_values(self) -> int:
        return len(self._products)

    @property
    def target_values(self) -> FloatArray:
        return self._targets

    def model_parameters(self, x: ArrayLike) -> FloatArray:
        """Model-space parameters for the solver-space vector ``x``."""
        x = np.asarray(x, dtype=np.float64).reshape(-1)
        if self._transformation is None:
            return x.copy()
        return np.asarray(self._transformation.to_model_space(x), dtype=np.float64)

    def model_for_parameter(self, x: ArrayLike) -> AnalyticModel:
        """Clone of the base model for the solver-space vector ``x``."""
        mapping = self._aggregation.get_objects_to_modify_for_parameter(
            self.model_parameters(x)
        )
        return self._model.get_clone_for_parameter(mapping)

    def _price(self, model: AnalyticModel, *, finite: bool) -> FloatArray:
        out = np.empty(len(self._products), dtype=np.float64)
        for i, product in enumerate(self._products):
            try:
                value = float(product.get_value(self._evaluation_time, model))
            except Exception as e:
                raise EvaluationError(
                    f"Valuation of calibration product {i} ({type(product).__name__}) failed.",
                    product_index=i,
                ) from e
            if finite and not math.isfinite(value):
                raise EvaluationError(
                    f"Calibration product {i} ({type(product).__name__}) returned {value}.",
                    product_index=i,
                )
            out[i] = value
        return out

    def values(self, model: AnalyticModel) -> FloatArray:
        """Product values against ``model``.

        Raises
        ------
        EvaluationError
            If a product fails to price or returns a non-finite value.
        """
        return self._price(model, finite=True)

    def residuals(self, model: AnalyticModel) -> FloatArray:
        return self.values(model) - self._targets

    def __call__(self, x: ArrayLike) -> FloatArray:
        """Residuals at ``x``.

        Non-finite prices are returned as they are and the optimizer rejects
        such trial points. A product that raises is an :class:`EvaluationError`.
        """
        try:
            model = self.model_for_parameter(x)
        except CalibrationError:
            raise
        except Exception as e:
            raise EvaluationError("Could not build the model for the given parameters.") from e
        return self._price(model, finite=False) - self._targets
