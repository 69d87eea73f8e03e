"""Bijections between the optimizer's (solver) space and model parameters.

The optimizer works on an unconstrained vector ``x``; models receive
``p = to_model_space(x)``. A transformation lets constrained parameters
(positive volatilities, bounded rates, monotone knot values) be calibrated by
an unconstrained optimizer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

from ..exceptions import ConfigurationError
from ..numerics.transforms import EPS, logit, sigmoid, softplus, softplus_inv
from ..typing import ArrayLike, FloatArray


@runtime_checkable
class ParameterTransformation(Protocol):
    def to_model_space(self, x: ArrayLike) -> FloatArray: ...

    def to_solver_space(self, p: ArrayLike) -> FloatArray: ...


def _vec(values: ArrayLike) -> FloatArray:
    return np.array(values, dtype=np.float64, copy=True).reshape(-1)


def _broadcast(bound: ArrayLike, n: int, name: str) -> FloatArray:
    arr = np.asarray(bound, dtype=np.float64).reshape(-1)
    if arr.size == 1:
        return np.full(n, float(arr[0]), dtype=np.float64)
    if arr.size != n:
        raise ConfigurationError(f"{name} has length {arr.size}, expected 1 or {n}")
    return arr


@dataclass(frozen=True, slots=True)
class IdentityTransformation:
    def to_model_space(self, x: ArrayLike) -> FloatArray:
        return _vec(x)

    def to_solver_space(self, p: ArrayLike) -> FloatArray:
        return _vec(p)


@dataclass(frozen=True, slots=True)
class PositiveTransformation:
    """``p = exp(x)``; model parameters must be strictly positive."""

    def to_model_space(self, x: ArrayLike) -> FloatArray:
        return np.exp(_vec(x))

    def to_solver_space(self, p: ArrayLike) -> FloatArray:
        p = _vec(p)
        if np.any(p <= 0.0):
            raise ConfigurationError("PositiveTransformation requires parameters > 0")
        return np.log(p)


@dataclass(frozen=True, slots=True)
class BoundedTransformation:
    """Componentwise map of ``R`` into ``[lower, upper]``.

    - both bounds finite: ``p = lower + (upper - lower) * sigmoid(x)``
    - only ``lower`` finite: ``p = lower + softplus(x)``
    - only ``upper`` finite: ``p = upper - softplus(x)``
    - neither: identity

    Bounds may be scalars (broadcast) or one value per parameter. Parameters
    on (or beyond) a finite bound are mapped to a point just inside it.
    """

    lower: float | Sequence[float] | FloatArray = -np.inf
    upper: float | Sequence[float] | FloatArray = np.inf

    def __post_init__(self) -> None:
        lo = np.asarray(self.lower, dtype=np.float64).reshape(-1)
        hi = np.asarray(self.upper, dtype=np.float64).reshape(-1)
        if lo.size > 1 and hi.size > 1 and lo.size != hi.size:
            raise ValueError("lower and upper must have matching lengths")
        if np.any(lo >= hi):
            raise ValueError("lower must be < upper")

    def _bounds(self, n: int) -> tuple[FloatArray, FloatArray]:
        return _broadcast(self.lower, n, "lower"), _broadcast(self.upper, n, "upper")

    def to_model_space(self, x: ArrayLike) -> FloatArray:
        x = _vec(x)
        lo, hi = self._bounds(x.size)
        out = x.copy()

        both = np.isfinite(lo) & np.isfinite(hi)
        lo_only = np.isfinite(lo) & ~np.isfinite(hi)
        hi_only = ~np.isfinite(lo) & np.isfinite(hi)

        out[both] = lo[both] + (hi[both] - lo[both]) * sigmoid(x[both])
        out[lo_only] = lo[lo_only] + softplus(x[lo_only])
        out[hi_only] = hi[hi_only] - softplus(x[hi_only])
        return out

    def to_solver_space(self, p: ArrayLike) -> FloatArray:
        p = _vec(p)
        lo, hi = self._bounds(p.size)
        out = p.copy()

        both = np.isfinite(lo) & np.isfinite(hi)
        lo_only = np.isfinite(lo) & ~np.isfinite(hi)
        hi_only = ~np.isfinite(lo) & np.isfinite(hi)

        out[both] = logit((p[both] - lo[both]) / (hi[both] - lo[both]))
        out[lo_only] = softplus_inv(p[lo_only] - lo[lo_only])
        out[hi_only] = softplus_inv(hi[hi_only] - p[hi_only])
        return out


@dataclass(frozen=True, slots=True)
class MonotoneKnotTransformation:
    """Keeps knot values monotone with bounded slopes.

    The first component passes through unchanged. Component ``i > 0`` sets the
    slope between knot ``i - 1`` and knot ``i``:

        p_i = p_{i-1} + (t_i - t_{i-1}) * s_i,   s_i in [lower_slope, upper_slope]

    where ``s_i`` is ``x_i`` mapped by a :class:`BoundedTransformation` onto
    the slope interval. With ``lower_slope = 0`` the knot values are
    non-decreasing, e.g. ``-log df`` of a discount curve.

    Parameters
    ----------
    lower_slope, upper_slope : float
        Slope interval; either side may be infinite, not both.
    times : sequence of float
        Strictly increasing knot times, one per parameter.
    """

    lower_slope: float
    upper_slope: float
    times: tuple[float, ...]
    _slope: BoundedTransformation = field(init=False, repr=False)

    def __post_init__(self) -> None:
        times = tuple(float(t) for t in self.times)
        if len(times) < 1:
            raise ValueError("Need at least 1 knot time")
        if np.any(np.diff(times) <= 0.0):
            raise ValueError("times must be strictly increasing")
        if not (self.lower_slope < self.upper_slope):
            raise ValueError("lower_slope must be < upper_slope")
        if np.isinf(self.lower_slope) and np.isinf(self.upper_slope):
            raise ValueError("at least one slope bound must be finite")
        object.__setattr__(self, "times", times)
        object.__setattr__(
            self,
            "_slope",
            BoundedTransformation(lower=self.lower_slope, upper=self.upper_slope),
        )

    def _check(self, n: int) -> FloatArray:
        if n != len(self.times):
            raise ConfigurationError(
                f"Expected {len(self.times)} parameters (one per knot), got {n}"
            )
        return np.diff(np.asarray(self.times, dtype=np.float64))

    def to_model_space(self, x: ArrayLike) -> FloatArray:
        x = _vec(x)
        dt = self._check(x.size)
        slopes = self._slope.to_model_space(x[1:])
        return np.concatenate([x[:1], x[0] + np.cumsum(dt * slopes)])

    def to_solver_space(self, p: ArrayLike) -> FloatArray:
        p = _vec(p)
        dt = self._check(p.size)
        slopes = np.diff(p) / dt
        lo, hi = self.lower_slope, self.upper_slope
        # Slopes on a bound have no finite preimage; nudge them inside.
        margin = np.maximum(np.abs(slopes), 1.0) * EPS
        slopes = np.clip(slopes, lo + margin, hi - margin)
        return np.concatenate([p[:1], self._slope.to_solver_space(slopes)])


@dataclass(frozen=True, slots=True)
class ChainedTransformation:
    """Applies one transformation per consecutive slice of the flat vector.

    ``lengths`` are the slice lengths (for a calibration, the aggregation's
    ``lengths``); ``None`` in ``transformations`` means identity for that
    slice.
    """

    transformations: tuple[ParameterTransformation | None, ...]
    lengths: tuple[int, ...]

    def __post_init__(self) -> None:
        transformations = tuple(self.transformations)
        lengths = tuple(int(n) for n in self.lengths)
        if len(transformations) != len(lengths):
            raise ValueError("Need one transformation per slice")
        if any(n < 0 for n in lengths):
            raise ValueError("slice lengths must be >= 0")
        object.__setattr__(self, "transformations", transformations)
        object.__setattr__(self, "lengths", lengths)

    def _apply(self, values: ArrayLike, forward: bool) -> FloatArray:
        v = _vec(values)
        if v.size != sum(self.lengths):
            raise ConfigurationError(
                f"Expected {sum(self.lengths)} parameters, got {v.size}"
            )
        out = np.empty_like(v)
        offset = 0
        for transformation, n in zip(self.transformations, self.lengths):
            part = v[offset : offset + n]
            if transformation is not None and n > 0:
                part = (
                    transformation.to_model_space(part)
                    if forward
                    else transformation.to_solver_space(part)
                )
            out[offset : offset + n] = part
            offset += n
        return out

    def to_model_space(self, x: ArrayLike) -> FloatArray:
        return self._apply(x, forward=True)

    def to_solver_space(self, p: ArrayLike) -> FloatArray:
        return self._apply(p, forward=False)
