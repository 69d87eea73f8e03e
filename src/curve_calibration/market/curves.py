from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

import numpy as np

from ..numerics.interpolation import (
    ExtrapolationMethod,
    InterpolationMethod,
    build_interpolator,
)
from ..parameters import MarketObjectKind, as_parameter_vector
from ..typing import ArrayLike, FloatArray

if TYPE_CHECKING:  # pragma: no cover
    from .model import AnalyticModel


@runtime_checkable
class Curve(Protocol):
    kind: ClassVar[MarketObjectKind]

    @property
    def name(self) -> str: ...

    def get_parameter(self) -> FloatArray: ...

    def get_clone_for_parameter(self, values: ArrayLike) -> Curve: ...


@runtime_checkable
class DiscountCurve(Curve, Protocol):
    def get_discount_factor(self, T: float) -> float: ...
    def df(self, T: float) -> float: ...
    def __call__(self, T: float) -> float: ...


@runtime_checkable
class ForwardCurve(Curve, Protocol):
    @property
    def payment_offset(self) -> float: ...

    def get_forward(self, model: AnalyticModel | None, fixing_time: float) -> float: ...


class InterpolationEntity(str, Enum):
    """Quantity stored at the knots of an interpolated discount curve.

    - DISCOUNT_FACTOR: ``df(T)``
    - LOG_DISCOUNT_FACTOR: ``log df(T)``
    - ZERO_RATE: continuously compounded ``-log df(T) / T`` (knots must have T > 0)
    """

    DISCOUNT_FACTOR = "discount_factor"
    LOG_DISCOUNT_FACTOR = "log_discount_factor"
    ZERO_RATE = "zero_rate"


def _frozen(values: ArrayLike) -> FloatArray:
    arr = np.array(values, dtype=np.float64, copy=True).reshape(-1)
    arr.setflags(write=False)
    return arr


def _check_knots(times: FloatArray, values: FloatArray) -> None:
    if times.shape != values.shape:
        raise ValueError("times and values must have the same shape")
    if times.size < 1:
        raise ValueError("Need at least 1 knot")
    if np.any(np.diff(times) <= 0.0):
        raise ValueError("times must be strictly increasing")
    if times[0] < 0.0:
        raise ValueError("times must be >= 0")


# ---------------------------
# Discount curves
# ---------------------------


@dataclass(frozen=True, slots=True, eq=False)
class FlatDiscountCurve:
    """Discount curve with a single continuously compounded rate.

    ``df(T) = exp(-r * T)``. The single free parameter is ``r``.
    """

    kind: ClassVar[MarketObjectKind] = MarketObjectKind.CURVE

    name: str
    r: float

    def get_discount_factor(self, T: float) -> float:
        T = float(T)
        if T < 0:
            raise ValueError("T must be >= 0")
        return math.exp(-self.r * T)

    def df(self, T: float) -> float:
        return self.get_discount_factor(T)

    def __call__(self, T: float) -> float:
        return self.get_discount_factor(T)

    def get_parameter(self) -> FloatArray:
        return as_parameter_vector([self.r])

    def get_clone_for_parameter(self, values: ArrayLike) -> FlatDiscountCurve:
        (r,) = as_parameter_vector(values, expected=1)
        return replace(self, r=float(r))


@dataclass(frozen=True, slots=True, eq=False)
class DiscountCurveInterpolation:
    """Discount curve interpolated between knots.

    Parameters
    ----------
    name : str
        Key of the curve inside a model.
    times : FloatArray
        Strictly increasing knot times (years), ``>= 0``.
    values : FloatArray
        Knot values in units of ``entity``.
    is_parameter : tuple[bool, ...] or None
        Which knots are free parameters. ``None`` means all knots.
    entity : InterpolationEntity
        Quantity the knot values represent; interpolation happens in that space.
    method, extrapolation :
        Interpolation scheme between knots and extrapolation beyond them.

    Notes
    -----
    ``get_parameter`` returns the values of the free knots in knot order;
    ``get_clone_for_parameter`` returns a new curve with those values
    replaced. Instances are never modified.
    """

    kind: ClassVar[MarketObjectKind] = MarketObjectKind.CURVE

    name: str
    times: FloatArray
    values: FloatArray
    is_parameter: tuple[bool, ...] | None = None
    entity: InterpolationEntity = InterpolationEntity.ZERO_RATE
    method: InterpolationMethod = InterpolationMethod.LINEAR
    extrapolation: ExtrapolationMethod = ExtrapolationMethod.CONSTANT
    _mask: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        times = _frozen(self.times)
        values = _frozen(self.values)
        _check_knots(times, values)

        if self.is_parameter is None:
            mask = np.ones(times.size, dtype=bool)
        else:
            mask = np.asarray(self.is_parameter, dtype=bool).reshape(-1)
            if mask.shape != times.shape:
                raise ValueError("is_parameter must have one flag per knot")
        mask.setflags(write=False)

        entity = InterpolationEntity(self.entity)
        if entity == InterpolationEntity.ZERO_RATE and times[0] <= 0.0:
            raise ValueError("ZERO_RATE knots require times > 0")

        object.__setattr__(self, "times", times)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "entity", entity)
        object.__setattr__(self, "method", InterpolationMethod(self.method))
        object.__setattr__(
            self, "extrapolation", ExtrapolationMethod(self.extrapolation)
        )
        object.__setattr__(self, "_mask", mask)

    @classmethod
    def from_zero_rates(
        cls,
        name: str,
        times: ArrayLike,
        zero_rates: ArrayLike,
        **kwargs,
    ) -> DiscountCurveInterpolation:
        return cls(
            name=name,
            times=np.asarray(times, dtype=np.float64),
            values=np.asarray(zero_rates, dtype=np.float64),
            entity=InterpolationEntity.ZERO_RATE,
            **kwargs,
        )

    @classmethod
    def from_discount_factors(
        cls,
        name: str,
        times: ArrayLike,
        discount_factors: ArrayLike,
        *,
        entity: InterpolationEntity = InterpolationEntity.LOG_DISCOUNT_FACTOR,
        **kwargs,
    ) -> DiscountCurveInterpolation:
        """Build from discount factors; a fixed knot ``df(0) = 1`` is prepended if missing."""
        t = np.asarray(times, dtype=np.float64).reshape(-1)
        df = np.asarray(discount_factors, dtype=np.float64).reshape(-1)
        if t.shape != df.shape:
            raise ValueError("times and discount_factors must have the same shape")
        if np.any(df <= 0.0):
            raise ValueError("discount factors must be > 0")

        entity = InterpolationEntity(entity)
        if entity == InterpolationEntity.ZERO_RATE:
            return cls.from_zero_rates(name, t, -np.log(df) / t, **kwargs)

        is_parameter = kwargs.pop("is_parameter", None)
        flags = [True] * t.size if is_parameter is None else list(is_parameter)
        if t.size == 0 or t[0] > 0.0:
            t = np.concatenate([[0.0], t])
            df = np.concatenate([[1.0], df])
            flags = [False] + flags

        values = df if entity == InterpolationEntity.DISCOUNT_FACTOR else np.log(df)
        return cls(
            name=name,
            times=t,
            values=values,
            is_parameter=tuple(flags),
            entity=entity,
            **kwargs,
        )

    def get_value(self, T: float) -> float:
        """Interpolated value of ``entity`` at ``T``."""
        p = build_interpolator(self.times, self.values, self.method, self.extrapolation)
        return float(p(float(T)))

    def get_discount_factor(self, T: float) -> float:
        T = float(T)
        if T < 0:
            raise ValueError("T must be >= 0")
        v = self.get_value(T)
        if self.entity == InterpolationEntity.DISCOUNT_FACTOR:
            return v
        if self.entity == InterpolationEntity.LOG_DISCOUNT_FACTOR:
            return math.exp(v)
        return math.exp(-v * T)

    def get_zero_rate(self, T: float) -> float:
        T = float(T)
        if T <= 0:
            raise ValueError("T must be > 0")
        return -math.log(self.get_discount_factor(T)) / T

    def df(self, T: float) -> float:
        return self.get_discount_factor(T)

    def __call__(self, T: float) -> float:
        return self.get_discount_factor(T)

    def get_parameter(self) -> FloatArray:
        return as_parameter_vector(self.values[self._mask])

    def get_clone_for_parameter(self, values: ArrayLike) -> DiscountCurveInterpolation:
        new_params = as_parameter_vector(values, expected=int(self._mask.sum()))
        new_values = self.values.copy()
        new_values[self._mask] = new_params
        return replace(
            self, values=new_values, is_parameter=tuple(bool(f) for f in self._mask)
        )


# ---------------------------
# Forward curves
# ---------------------------


@dataclass(frozen=True, slots=True, eq=False)
class ForwardCurveInterpolation:
    """Forward rates interpolated over fixing times; every knot is a parameter.

    ``payment_offset`` is the accrual period of the rate, in years.
    """

    kind: ClassVar[MarketObjectKind] = MarketObjectKind.CURVE

    name: str
    times: FloatArray
    forwards: FloatArray
    payment_offset: float = 0.5
    method: InterpolationMethod = InterpolationMethod.LINEAR
    extrapolation: ExtrapolationMethod = ExtrapolationMethod.CONSTANT

    def __post_init__(self) -> None:
        times = _frozen(self.times)
        forwards = _frozen(self.forwards)
        _check_knots(times, forwards)
        if self.payment_offset <= 0.0:
            raise ValueError("payment_offset must be > 0")
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "forwards", forwards)
        object.__setattr__(self, "method", InterpolationMethod(self.method))
        object.__setattr__(
            self, "extrapolation", ExtrapolationMethod(self.extrapolation)
        )

    def get_forward(self, model: AnalyticModel | None, fixing_time: float) -> float:
        p = build_interpolator(
            self.times, self.forwards, self.method, self.extrapolation
        )
        return float(p(float(fixing_time)))

    def get_parameter(self) -> FloatArray:
        return as_parameter_vector(self.forwards)

    def get_clone_for_parameter(self, values: ArrayLike) -> ForwardCurveInterpolation:
        forwards = as_parameter_vector(values, expected=self.forwards.size)
        return replace(self, forwards=forwards)


@dataclass(frozen=True, slots=True, eq=False)
class ForwardCurveFromDiscountCurve:
    """
    Forward curve implied by a discount curve of the same model.

    F(t) = (df(t) / df(t + offset) - 1) / offset

    Carries no free parameters: it follows whatever discount curve the model
    it is evaluated against holds under ``discount_curve_name``.
    """

    kind: ClassVar[MarketObjectKind] = MarketObjectKind.CURVE

    name: str
    discount_curve_name: str
    payment_offset: float = 0.5

    def __post_init__(self) -> None:
        if self.payment_offset <= 0.0:
            raise ValueError("payment_offset must be > 0")

    def get_forward(self, model: AnalyticModel | None, fixing_time: float) -> float:
        if model is None:
            raise ValueError(f"{self.name}: a model is required to resolve the discount curve")
        discount = model.get_discount_curve(self.discount_curve_name)
        if discount is None:
            raise ValueError(
                f"{self.name}: model has no discount curve '{self.discount_curve_name}'"
            )
        t = float(fixing_time)
        df_start = discount.get_discount_factor(t)
        df_end = discount.get_discount_factor(t + self.payment_offset)
        return (df_start / df_end - 1.0) / self.payment_offset

    def get_parameter(self) -> FloatArray:
        return as_parameter_vector([])

    def get_clone_for_parameter(
        self, values: ArrayLike
    ) -> ForwardCurveFromDiscountCurve:
        as_parameter_vector(values, expected=0)
        return replace(self)
