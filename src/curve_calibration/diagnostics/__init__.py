"""curve_calibration.diagnostics

Tabular diagnostics (pandas) for calibrated models.
"""

from .report import calibration_report, solver_summary

__all__ = ["calibration_report", "solver_summary"]
