from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ..typing import FloatArray
from .base import require_discount_curve, require_forward_curve

if TYPE_CHECKING:  # pragma: no cover
    from ..market.model import AnalyticModel


@dataclass(frozen=True, slots=True)
class ForwardRateAgreement:
    """FRA on the forward curve's rate fixing at ``fixing_time``.

    The accrual period is the forward curve's ``payment_offset``; payment is
    at the end of the period. Value at ``t`` (receiver of the floating rate):
    ``notional * period * (F - rate) * df(fixing + period) / df(t)``.
    """

    forward_curve_name: str
    discount_curve_name: str
    fixing_time: float
    rate: float
    notional: float = 1.0

    def __post_init__(self) -> None:
        if self.fixing_time < 0.0:
            raise ValueError("fixing_time must be >= 0")

    def get_value(self, evaluation_time: float, model: AnalyticModel) -> float:
        forward_curve = require_forward_curve(model, self.forward_curve_name)
        discount = require_discount_curve(model, self.discount_curve_name)

        period = forward_curve.payment_offset
        forward = forward_curve.get_forward(model, self.fixing_time)
        df_pay = discount.get_discount_factor(self.fixing_time + period)
        value = self.notional * period * (forward - self.rate) * df_pay
        return value / discount.get_discount_factor(evaluation_time)


@dataclass(frozen=True, slots=True, eq=False)
class Swap:
    """Fixed-for-floating swap on an explicit period grid.

    ``period_times = [t_0, t_1, ..., t_n]``: period ``i`` accrues from
    ``t_{i-1}`` to ``t_i``, fixes the floating rate at ``t_{i-1}`` and pays at
    ``t_i``. Both legs share the grid. Value (payer of fixed):

        sum_i (F(t_{i-1}) - fixed_rate) * (t_i - t_{i-1}) * df(t_i) / df(t)

    If ``forward_curve_name`` is ``None`` the forwards are implied by the
    discount curve (single-curve setup).
    """

    period_times: FloatArray
    fixed_rate: float
    discount_curve_name: str
    forward_curve_name: str | None = None

    def __post_init__(self) -> None:
        times = np.array(self.period_times, dtype=np.float64, copy=True).reshape(-1)
        if times.size < 2:
            raise ValueError("period_times needs at least 2 entries")
        if times[0] < 0.0 or np.any(np.diff(times) <= 0.0):
            raise ValueError("period_times must be >= 0 and strictly increasing")
        times.setflags(write=False)
        object.__setattr__(self, "period_times", times)

    def _legs(self, model: AnalyticModel) -> tuple[float, float]:
        discount = require_discount_curve(model, self.discount_curve_name)
        starts = self.period_times[:-1]
        ends = self.period_times[1:]
        accruals = ends - starts
        dfs = np.array([discount.get_discount_factor(t) for t in ends])

        if self.forward_curve_name is None:
            df_starts = np.array([discount.get_discount_factor(t) for t in starts])
            forwards = (df_starts / dfs - 1.0) / accruals
        else:
            forward_curve = require_forward_curve(model, self.forward_curve_name)
            forwards = np.array([forward_curve.get_forward(model, t) for t in starts])

        annuity = float(np.sum(accruals * dfs))
        float_leg = float(np.sum(forwards * accruals * dfs))
        return float_leg, annuity

    def get_value(self, evaluation_time: float, model: AnalyticModel) -> float:
        float_leg, annuity = self._legs(model)
        discount = require_discount_curve(model, self.discount_curve_name)
        value = float_leg - self.fixed_rate * annuity
        return value / discount.get_discount_factor(evaluation_time)

    def par_rate(self, model: AnalyticModel) -> float:
        float_leg, annuity = self._legs(model)
        return float_leg / annuity
