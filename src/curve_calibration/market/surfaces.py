from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import ClassVar, Protocol, runtime_checkable

import numpy as np

from ..parameters import MarketObjectKind, as_parameter_vector
from ..typing import ArrayLike, FloatArray


@runtime_checkable
class VolatilitySurface(Protocol):
    kind: ClassVar[MarketObjectKind]

    @property
    def name(self) -> str: ...

    def get_value(self, maturity: float, strike: float) -> float: ...

    def get_parameter(self) -> FloatArray: ...

    def get_clone_for_parameter(self, values: ArrayLike) -> VolatilitySurface: ...


@dataclass(frozen=True, slots=True, eq=False)
class VolatilitySurfaceInterpolation:
    """At-the-money volatility term structure, flat in strike.

    Parameters
    ----------
    name : str
        Key of the surface inside a model.
    maturities : FloatArray
        Strictly increasing maturities (years), ``> 0``.
    volatilities : FloatArray
        Lognormal volatilities at ``maturities``; these are the free parameters.

    Notes
    -----
    Interpolation is linear in total variance ``w(T) = T * sigma(T)^2``, so the
    implied volatility between pillars is ``sqrt(w(T) / T)``. Beyond the first
    and last pillar the volatility is held flat.
    """

    kind: ClassVar[MarketObjectKind] = MarketObjectKind.VOLATILITY_SURFACE

    name: str
    maturities: FloatArray
    volatilities: FloatArray

    def __post_init__(self) -> None:
        maturities = np.array(self.maturities, dtype=np.float64, copy=True).reshape(-1)
        vols = np.array(self.volatilities, dtype=np.float64, copy=True).reshape(-1)
        if maturities.shape != vols.shape:
            raise ValueError("maturities and volatilities must have the same shape")
        if maturities.size < 1:
            raise ValueError("Need at least 1 pillar")
        if maturities[0] <= 0.0 or np.any(np.diff(maturities) <= 0.0):
            raise ValueError("maturities must be > 0 and strictly increasing")
        maturities.setflags(write=False)
        vols.setflags(write=False)
        object.__setattr__(self, "maturities", maturities)
        object.__setattr__(self, "volatilities", vols)

    def get_value(self, maturity: float, strike: float) -> float:
        T = float(maturity)
        if T <= self.maturities[0]:
            return float(self.volatilities[0])
        if T >= self.maturities[-1]:
            return float(self.volatilities[-1])

        w = self.maturities * self.volatilities**2
        wq = float(np.interp(T, self.maturities, w))
        return math.sqrt(max(wq / T, 0.0))

    def get_parameter(self) -> FloatArray:
        return as_parameter_vector(self.volatilities)

    def get_clone_for_parameter(
        self, values: ArrayLike
    ) -> VolatilitySurfaceInterpolation:
        vols = as_parameter_vector(values, expected=self.volatilities.size)
        return replace(self, volatilities=vols)
