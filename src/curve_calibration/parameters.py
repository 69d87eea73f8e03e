"""Interfaces shared by everything that carries calibratable parameters.

A *parameter object* owns a fixed-length vector of free parameters (for a
curve: its knot values) and can produce an independent clone for a new
vector. The calibration engine never mutates a parameter object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Self, runtime_checkable

import numpy as np

from .typing import ArrayLike, FloatArray


class MarketObjectKind(str, Enum):
    """Tag of the market object variants a model can hold."""

    CURVE = "curve"
    VOLATILITY_SURFACE = "volatility_surface"


@runtime_checkable
class ParameterObject(Protocol):
    """Owner of a fixed-length vector of free numeric parameters."""

    @property
    def name(self) -> str: ...

    def get_parameter(self) -> FloatArray: ...

    def get_clone_for_parameter(self, values: ArrayLike) -> Self: ...


@dataclass(frozen=True, slots=True)
class ParameterHandle:
    """Stable index of a parameter object inside one aggregation.

    Handles compare and hash on ``index`` only; ``target`` is the object the
    index refers to in the aggregation (the arena).
    """

    index: int
    target: ParameterObject = field(compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.target.name


def as_parameter_vector(values: ArrayLike, *, expected: int | None = None) -> FloatArray:
    """Copy ``values`` into a read-only 1D float64 array (length-checked)."""
    arr = np.array(values, dtype=np.float64, copy=True).reshape(-1)
    if expected is not None and arr.size != expected:
        raise ValueError(f"Expected {expected} parameters, got {arr.size}")
    arr.setflags(write=False)
    return arr
