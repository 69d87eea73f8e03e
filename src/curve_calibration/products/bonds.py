from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .base import require_discount_curve

if TYPE_CHECKING:  # pragma: no cover
    from ..market.model import AnalyticModel


@dataclass(frozen=True, slots=True)
class DiscountBond:
    """Zero-coupon bond paying ``notional`` at ``maturity``.

    Value at ``t``: ``notional * df(maturity) / df(t)``.
    """

    discount_curve_name: str
    maturity: float
    notional: float = 1.0

    def __post_init__(self) -> None:
        if self.maturity < 0.0:
            raise ValueError("maturity must be >= 0")

    def get_value(self, evaluation_time: float, model: AnalyticModel) -> float:
        curve = require_discount_curve(model, self.discount_curve_name)
        df_t = curve.get_discount_factor(evaluation_time)
        return self.notional * curve.get_discount_factor(self.maturity) / df_t


@dataclass(frozen=True, slots=True)
class Deposit:
    """Money-market deposit from ``start`` to ``maturity`` at simple ``rate``.

    The lender pays 1 at ``start`` and receives ``1 + rate * (maturity - start)``
    at ``maturity``; a deposit quoted at the market rate has value 0.
    """

    discount_curve_name: str
    start: float
    maturity: float
    rate: float

    def __post_init__(self) -> None:
        if self.start < 0.0 or self.maturity <= self.start:
            raise ValueError("require 0 <= start < maturity")

    def get_value(self, evaluation_time: float, model: AnalyticModel) -> float:
        curve = require_discount_curve(model, self.discount_curve_name)
        accrual = self.maturity - self.start
        value = -curve.get_discount_factor(self.start) + (
            1.0 + self.rate * accrual
        ) * curve.get_discount_factor(self.maturity)
        return value / curve.get_discount_factor(evaluation_time)
