from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scipy.stats import norm

from .base import (
    require_discount_curve,
    require_forward_curve,
    require_volatility_surface,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..market.model import AnalyticModel


def black76_price(
    *, forward: float, strike: float, sigma: float, tau: float, is_call: bool = True
) -> float:
    """
    Undiscounted Black-76 price of a call (or put) on a lognormal forward.
    """
    if forward <= 0.0:
        raise ValueError("forward must be positive")
    if strike <= 0.0:
        raise ValueError("strike must be positive")
    if sigma < 0.0 or tau < 0.0:
        raise ValueError("sigma and tau must be >= 0")

    vol_sqrt_t = sigma * math.sqrt(tau)
    if vol_sqrt_t == 0.0:
        intrinsic = forward - strike if is_call else strike - forward
        return max(intrinsic, 0.0)

    d1 = (math.log(forward / strike) + 0.5 * vol_sqrt_t * vol_sqrt_t) / vol_sqrt_t
    d2 = d1 - vol_sqrt_t
    if is_call:
        return float(forward * norm.cdf(d1) - strike * norm.cdf(d2))
    return float(strike * norm.cdf(-d2) - forward * norm.cdf(-d1))


@dataclass(frozen=True, slots=True)
class BlackCaplet:
    """Caplet (or floorlet) on the forward curve's rate, priced with Black-76.

    The volatility is read from the surface at ``(fixing_time, strike)``;
    the period is the forward curve's ``payment_offset``.
    """

    forward_curve_name: str
    discount_curve_name: str
    volatility_surface_name: str
    fixing_time: float
    strike: float
    is_cap: bool = True
    notional: float = 1.0

    def __post_init__(self) -> None:
        if self.fixing_time <= 0.0:
            raise ValueError("fixing_time must be > 0")

    def get_value(self, evaluation_time: float, model: AnalyticModel) -> float:
        forward_curve = require_forward_curve(model, self.forward_curve_name)
        discount = require_discount_curve(model, self.discount_curve_name)
        surface = require_volatility_surface(model, self.volatility_surface_name)

        period = forward_curve.payment_offset
        forward = forward_curve.get_forward(model, self.fixing_time)
        sigma = surface.get_value(self.fixing_time, self.strike)
        tau = self.fixing_time - float(evaluation_time)

        undiscounted = black76_price(
            forward=forward,
            strike=self.strike,
            sigma=sigma,
            tau=max(tau, 0.0),
            is_call=self.is_cap,
        )
        df_pay = discount.get_discount_factor(self.fixing_time + period)
        return (
            self.notional
            * period
            * undiscounted
            * df_pay
            / discount.get_discount_factor(evaluation_time)
        )
