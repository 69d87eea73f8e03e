"""Flat view over the parameters of several parameter objects."""

from __future__ import annotations

from collections.abc import Iterable, Set

import numpy as np

from ..exceptions import ConfigurationError
from ..parameters import ParameterHandle, ParameterObject
from ..typing import ArrayLike, FloatArray


class ParameterAggregation:
    """Concatenates the parameter vectors of an ordered collection of objects.

    The order is fixed at construction. Sequences keep the order they are
    given in; unordered collections (``set``/``frozenset``) are ordered by
    object name so that the flat layout is reproducible. An object listed twice
    is kept once.

    Each object owns the slice ``[offset, offset + length)`` of the flat
    vector. Objects without parameters take no slot in the flat vector.

    Parameters
    ----------
    objects : Iterable[ParameterObject]
        Objects whose parameters are calibrated together.

    Raises
    ------
    ConfigurationError
        If an element is not a parameter object, or two distinct objects share
        a name.
    """

    __slots__ = ("_handles", "_offsets", "_lengths", "_size")

    def __init__(self, objects: Iterable[ParameterObject]) -> None:
        items = list(objects)
        if isinstance(objects, Set):
            items.sort(key=lambda obj: obj.name)

        unique: list[ParameterObject] = []
        by_name: dict[str, ParameterObject] = {}
        for obj in items:
            if not isinstance(obj, ParameterObject):
                raise ConfigurationError(f"{obj!r} does not carry calibratable parameters")
            seen = by_name.get(obj.name)
            if seen is obj:
                continue
            if seen is not None:
                raise ConfigurationError(
                    f"Two different objects named '{obj.name}' cannot be calibrated together"
                )
            by_name[obj.name] = obj
            unique.append(obj)

        offsets: list[int] = []
        lengths: list[int] = []
        offset = 0
        for obj in unique:
            n = int(np.asarray(obj.get_parameter()).size)
            offsets.append(offset)
            lengths.append(n)
            offset += n

        self._handles = tuple(ParameterHandle(i, obj) for i, obj in enumerate(unique))
        self._offsets = tuple(offsets)
        self._lengths = tuple(lengths)
        self._size = offset

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        names = ", ".join(f"{h.name}[{n}]" for h, n in zip(self._handles, self._lengths))
        return f"ParameterAggregation({names})"

    @property
    def handles(self) -> tuple[ParameterHandle, ...]:
        return self._handles

    @property
    def objects(self) -> tuple[ParameterObject, ...]:
        return tuple(h.target for h in self._handles)

    @property
    def lengths(self) -> tuple[int, ...]:
        """Parameter count of each object, in aggregation order."""
        return self._lengths

    def get_parameter(self) -> FloatArray:
        """Concatenated parameters of all objects, in aggregation order."""
        parts = [
            np.asarray(h.target.get_parameter(), dtype=np.float64).reshape(-1)
            for h, n in zip(self._handles, self._lengths)
            if n > 0
        ]
        if not parts:
            return np.zeros(0, dtype=np.float64)
        return np.concatenate(parts)

    def get_objects_to_modify_for_parameter(
        self, parameters: ArrayLike
    ) -> dict[ParameterHandle, FloatArray]:
        """Split a flat vector back into per-object parameter vectors.

        Returns a mapping from handle to a copy of the object's slice. Objects
        without parameters are omitted.

        Raises
        ------
        ConfigurationError
            If ``len(parameters) != len(self)``.
        """
        flat = np.asarray(parameters, dtype=np.float64).reshape(-1)
        if flat.size != self._size:
            raise ConfigurationError(
                f"Expected {self._size} parameters, got {flat.size}"
            )
        return {
            h: flat[offset : offset + n].copy()
            for h, offset, n in zip(self._handles, self._offsets, self._lengths)
            if n > 0
        }

    def get_clones_for_parameter(
        self, parameters: ArrayLike
    ) -> dict[ParameterHandle, ParameterObject]:
        """Clone every object with parameters for its slice of ``parameters``."""
        return {
            h: h.target.get_clone_for_parameter(values)
            for h, values in self.get_objects_to_modify_for_parameter(parameters).items()
        }
