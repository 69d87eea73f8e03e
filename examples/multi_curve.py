from __future__ import annotations

import logging


def main() -> None:
    # [START README_MULTI_CURVE]
    from curve_calibration import (
        AnalyticModel,
        BlackCaplet,
        Deposit,
        DiscountCurveInterpolation,
        ForwardCurveInterpolation,
        ForwardRateAgreement,
        MonotoneKnotTransformation,
        PositiveTransformation,
        Solver,
        VolatilitySurfaceInterpolation,
    )
    from curve_calibration.calibration import ChainedTransformation, ParameterAggregation
    from curve_calibration.diagnostics import solver_summary

    logging.basicConfig(level=logging.INFO)

    # Discount curve on log discount factors, kept monotone (non-negative rates).
    times = [0.5, 1.0, 2.0]
    discount = DiscountCurveInterpolation.from_discount_factors(
        "discount", times, [0.99, 0.98, 0.95]
    )
    forward = ForwardCurveInterpolation("forward", [0.5, 1.0, 2.0], [0.03, 0.03, 0.03])
    vols = VolatilitySurfaceInterpolation("vol", [1.0, 2.0], [0.3, 0.3])
    model = AnalyticModel.from_market_objects(discount, forward, vols)

    products = [
        Deposit("discount", 0.0, 0.5, rate=0.030),
        Deposit("discount", 0.0, 1.0, rate=0.032),
        Deposit("discount", 0.0, 2.0, rate=0.034),
        ForwardRateAgreement("forward", "discount", 0.5, rate=0.036),
        ForwardRateAgreement("forward", "discount", 1.0, rate=0.038),
        ForwardRateAgreement("forward", "discount", 2.0, rate=0.040),
        BlackCaplet("forward", "discount", "vol", 1.0, strike=0.038),
        BlackCaplet("forward", "discount", "vol", 2.0, strike=0.040),
    ]
    targets = [0.0] * 6 + [0.00045, 0.00070]

    objects = [discount, forward, vols]
    aggregation = ParameterAggregation(objects)
    transformation = ChainedTransformation(
        (
            # log df knots decrease: slopes in [-1, 0] keep forward rates in [0, 100%]
            MonotoneKnotTransformation(-1.0, 0.0, times),
            None,
            PositiveTransformation(),
        ),
        aggregation.lengths,
    )

    solver = Solver(model, products, targets, parameter_transformation=transformation)
    calibrated = solver.get_calibrated_model(objects)

    print(solver_summary(solver))
    print("Forwards:", calibrated.get_curve("forward").get_parameter())
    print("Vols:", calibrated.get_volatility_surface("vol").get_parameter())
    # [END README_MULTI_CURVE]


if __name__ == "__main__":
    main()
