# tests/test_report.py

import numpy as np
import pandas as pd
import pytest

from curve_calibration import ConfigurationError, Solver
from curve_calibration.diagnostics import calibration_report, solver_summary


def test_report_columns_and_residuals(two_knot_problem) -> None:
    model, _, products, targets = two_knot_problem

    df = calibration_report(model, products, targets, labels=["1y", "2y"])

    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["label", "target", "value", "residual", "abs_residual"]
    assert list(df["label"]) == ["1y", "2y"]
    np.testing.assert_allclose(df["value"], [1.0, 1.0])
    np.testing.assert_allclose(df["residual"], df["value"] - df["target"])
    assert (df["abs_residual"] >= 0.0).all()


def test_report_on_calibrated_model(two_knot_problem) -> None:
    model, curve, products, targets = two_knot_problem
    calibrated = Solver(model, products, targets).get_calibrated_model([curve])

    df = calibration_report(calibrated, products, targets)

    assert list(df["label"]) == ["DiscountBond[0]", "DiscountBond[1]"]
    assert df["abs_residual"].max() < 1e-10


def test_report_length_checks(two_knot_problem) -> None:
    model, _, products, targets = two_knot_problem
    with pytest.raises(ConfigurationError):
        calibration_report(model, products, targets[:1])
    with pytest.raises(ConfigurationError):
        calibration_report(model, products, targets, labels=["only one"])


def test_solver_summary(two_knot_problem) -> None:
    model, curve, products, targets = two_knot_problem
    solver = Solver(model, products, targets)

    before = solver_summary(solver)
    assert before.loc[0, "status"] == "initialized"
    assert np.isnan(before.loc[0, "chi2"])

    solver.get_calibrated_model([curve])
    after = solver_summary(solver)

    assert after.loc[0, "status"] == "converged"
    assert after.loc[0, "iterations"] == solver.iterations
    assert after.loc[0, "n_evaluations"] > 0
