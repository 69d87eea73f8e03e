"""Analytic product interface.

A calibration product is anything that can value itself against a model
snapshot: ``get_value(evaluation_time, model) -> float``. Products are
stateless and must not modify the model they are given.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from ..market.curves import DiscountCurve, ForwardCurve
    from ..market.model import AnalyticModel
    from ..market.surfaces import VolatilitySurface


@runtime_checkable
class AnalyticProduct(Protocol):
    def get_value(self, evaluation_time: float, model: AnalyticModel) -> float: ...


def require_discount_curve(model: AnalyticModel, name: str) -> DiscountCurve:
    curve = model.get_discount_curve(name)
    if curve is None:
        raise ValueError(f"Model has no discount curve '{name}'")
    return curve


def require_forward_curve(model: AnalyticModel, name: str) -> ForwardCurve:
    curve = model.get_forward_curve(name)
    if curve is None:
        raise ValueError(f"Model has no forward curve '{name}'")
    return curve


def require_volatility_surface(model: AnalyticModel, name: str) -> VolatilitySurface:
    surface = model.get_volatility_surface(name)
    if surface is None:
        raise ValueError(f"Model has no volatility surface '{name}'")
    return surface
