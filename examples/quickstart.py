from __future__ import annotations


def main() -> None:
    # [START README_QUICKSTART]
    from curve_calibration import (
        AnalyticModel,
        DiscountCurveInterpolation,
        Solver,
        Swap,
    )
    from curve_calibration.diagnostics import calibration_report

    curve = DiscountCurveInterpolation.from_zero_rates(
        "discount", times=[1.0, 2.0, 3.0, 5.0], zero_rates=[0.02, 0.02, 0.02, 0.02]
    )
    model = AnalyticModel.from_market_objects(curve)

    quotes = {1: 0.0300, 2: 0.0320, 3: 0.0335, 5: 0.0350}
    swaps = [Swap(list(range(n + 1)), rate, "discount") for n, rate in quotes.items()]

    solver = Solver(model, swaps)
    calibrated = solver.get_calibrated_model([curve])

    print("Status:", solver.status.value, "after", solver.iterations, "iterations")
    print("Accuracy:", solver.accuracy)
    print("Zero rates:", calibrated.get_curve("discount").get_parameter())
    print(calibration_report(calibrated, swaps, [0.0] * len(swaps)))
    # [END README_QUICKSTART]


if __name__ == "__main__":
    main()
