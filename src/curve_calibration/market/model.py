"""Immutable collection of named curves and volatility surfaces.

An :class:`AnalyticModel` is never modified after construction. Every
"add" returns a new model whose name maps are copies of the old ones while the
curve and surface objects themselves are shared. Calibration builds trial
models through :meth:`AnalyticModel.get_clone_for_parameter`, which replaces
only the objects whose parameters change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..exceptions import ConfigurationError, EvaluationError
from ..parameters import MarketObjectKind, ParameterHandle, ParameterObject
from ..typing import ArrayLike
from .curves import Curve, DiscountCurve, ForwardCurve
from .surfaces import VolatilitySurface

type MarketObject = Curve | VolatilitySurface
type ParameterMapping = Mapping[ParameterHandle, ArrayLike] | Mapping[
    ParameterObject, ArrayLike
]


@dataclass(frozen=True, slots=True, eq=False)
class AnalyticModel:
    """Named curves and volatility surfaces used to value analytic products.

    Parameters
    ----------
    curves : Mapping[str, Curve]
        Curves by name.
    volatility_surfaces : Mapping[str, VolatilitySurface]
        Volatility surfaces by name.

    Notes
    -----
    The mappings are stored as read-only views of private copies, so neither
    the caller's dictionaries nor the model can be changed afterwards.
    """

    curves: Mapping[str, Curve] = field(default_factory=dict)
    volatility_surfaces: Mapping[str, VolatilitySurface] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "curves", MappingProxyType(dict(self.curves)))
        object.__setattr__(
            self,
            "volatility_surfaces",
            MappingProxyType(dict(self.volatility_surfaces)),
        )

    @classmethod
    def from_market_objects(cls, *objects: MarketObject) -> AnalyticModel:
        return cls()._with_market_objects(objects)

    # -------------------------
    # Lookup
    # -------------------------
    def get_curve(self, name: str) -> Curve | None:
        return self.curves.get(name)

    def get_discount_curve(self, name: str) -> DiscountCurve | None:
        curve = self.curves.get(name)
        return curve if isinstance(curve, DiscountCurve) else None

    def get_forward_curve(self, name: str) -> ForwardCurve | None:
        curve = self.curves.get(name)
        return curve if isinstance(curve, ForwardCurve) else None

    def get_volatility_surface(self, name: str) -> VolatilitySurface | None:
        return self.volatility_surfaces.get(name)

    # -------------------------
    # Builders (copy-on-write)
    # -------------------------
    def add_curve(self, curve: Curve, name: str | None = None) -> AnalyticModel:
        if name is None:
            return self._with_market_objects([curve])
        curves = dict(self.curves)
        curves[name] = curve
        return AnalyticModel(curves=curves, volatility_surfaces=self.volatility_surfaces)

    def add_curves(self, *curves: Curve | Iterable[Curve]) -> AnalyticModel:
        return self._with_market_objects(_flatten(curves))

    def add_volatility_surface(self, surface: VolatilitySurface) -> AnalyticModel:
        return self._with_market_objects([surface])

    def add_volatility_surfaces(
        self, *surfaces: VolatilitySurface | Iterable[VolatilitySurface]
    ) -> AnalyticModel:
        return self._with_market_objects(_flatten(surfaces))

    def _with_market_objects(self, objects: Iterable[MarketObject]) -> AnalyticModel:
        curves = dict(self.curves)
        surfaces = dict(self.volatility_surfaces)
        for obj in objects:
            match getattr(obj, "kind", None):
                case MarketObjectKind.CURVE:
                    curves[obj.name] = obj
                case MarketObjectKind.VOLATILITY_SURFACE:
                    surfaces[obj.name] = obj
                case _:
                    raise ConfigurationError(
                        f"Unsupported market object {obj!r}: expected a curve or a volatility surface."
                    )
        return AnalyticModel(curves=curves, volatility_surfaces=surfaces)

    # -------------------------
    # Calibration support
    # -------------------------
    def get_clone_for_parameter(self, mapping: ParameterMapping) -> AnalyticModel:
        """Return a model in which every listed object is replaced by its clone.

        Keys are :class:`ParameterHandle` instances (as produced by a parameter
        aggregation) or parameter objects; values are the new parameter
        vectors. The clone takes every name under which this model holds the
        original object, including aliases given to :meth:`add_curve`. An
        object the model does not hold is added under its own name. Objects
        not listed are shared with this model.

        Raises
        ------
        EvaluationError
            If an object cannot produce a clone for its parameter vector.
        ConfigurationError
            If a clone is neither a curve nor a volatility surface.
        """
        curves = dict(self.curves)
        surfaces = dict(self.volatility_surfaces)
        for key, values in mapping.items():
            match key:
                case ParameterHandle(target=target):
                    pass
                case _:
                    target = key
            try:
                clone = target.get_clone_for_parameter(values)
            except Exception as e:
                raise EvaluationError(
                    f"Could not clone '{getattr(target, 'name', target)}' for the given parameters."
                ) from e

            match getattr(clone, "kind", None):
                case MarketObjectKind.CURVE:
                    table = curves
                case MarketObjectKind.VOLATILITY_SURFACE:
                    table = surfaces
                case _:
                    raise ConfigurationError(
                        f"Unsupported market object {clone!r}: expected a curve or a volatility surface."
                    )
            names = [name for name, obj in table.items() if obj is target]
            for name in names or [clone.name]:
                table[name] = clone
        return AnalyticModel(curves=curves, volatility_surfaces=surfaces)

    def __repr__(self) -> str:
        return (
            f"AnalyticModel(curves={sorted(self.curves)}, "
            f"volatility_surfaces={sorted(self.volatility_surfaces)})"
        )


def _flatten(items: tuple) -> list:
    out: list = []
    for item in items:
        if hasattr(item, "kind"):
            out.append(item)
        else:
            out.extend(item)
    return out
