"""
curve_calibration.diagnostics.report

Tables for inspecting a calibration:
- per-product fit of a (calibrated) model against its targets
- one-row summary of a Solver run
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd

from ..calibration.solver import Solver
from ..exceptions import ConfigurationError
from ..market.model import AnalyticModel
from ..products.base import AnalyticProduct
from ..typing import ArrayLike


def calibration_report(
    model: AnalyticModel,
    products: Sequence[AnalyticProduct],
    targets: ArrayLike,
    evaluation_time: float = 0.0,
    labels: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Value every product against ``model`` and compare with its target.

    Columns: ``label``, ``target``, ``value``, ``residual`` (value - target),
    ``abs_residual``. Labels default to ``"<ProductClass>[i]"``.
    """
    products = list(products)
    t = np.asarray(targets, dtype=np.float64).reshape(-1)
    if t.size != len(products):
        raise ConfigurationError(f"Got {t.size} targets for {len(products)} products")
    if labels is None:
        labels = [f"{type(p).__name__}[{i}]" for i, p in enumerate(products)]
    elif len(labels) != len(products):
        raise ConfigurationError(f"Got {len(labels)} labels for {len(products)} products")

    rows = []
    for label, product, target in zip(labels, products, t):
        value = float(product.get_value(evaluation_time, model))
        residual = value - float(target)
        rows.append(
            {
                "label": str(label),
                "target": float(target),
                "value": value,
                "residual": residual,
                "abs_residual": abs(residual),
            }
        )

    return pd.DataFrame(
        rows, columns=["label", "target", "value", "residual", "abs_residual"]
    )


def solver_summary(solver: Solver) -> pd.DataFrame:
    """One-row table with the outcome of the solver's last calibration."""
    result = solver.last_result
    return pd.DataFrame(
        [
            {
                "status": solver.status.value,
                "iterations": int(solver.iterations),
                "accuracy": float(solver.accuracy),
                "chi2": float(result.chi2) if result is not None else np.nan,
                "lambda_final": float(result.lambda_final) if result is not None else np.nan,
                "n_evaluations": int(result.n_evaluations) if result is not None else 0,
            }
        ]
    )
