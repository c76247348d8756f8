"""
Array Registry

Dense arrays of symbolic values keyed by base name, allocated on first
reference and grown when a later reference reaches past the current extent.

Index specifications passed to the registry are already resolved:
an ``int`` (1-based), a ``range`` of 1-based indices, or ``FULL_RANGE`` for
every valid index along the axis.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Sequence, Tuple, Union

import numpy as np

from ..shared.errors import ArrayConsistencyError
from ..utils.config import ARRAY_INDEX_BASE, FULL_RANGE_DEFAULT_EXTENT
from .values import SymbolicValue

logger = logging.getLogger(__name__)

FULL_RANGE = slice(None)

IndexSpec = Union[int, range, slice]


@dataclass(frozen=True)
class ArrayHandle:
    """Reference to one generation of a registered array."""
    name: str
    generation: int


def _allocate(name: str, shape: Tuple[int, ...]) -> np.ndarray:
    array = np.empty(shape, dtype=object)
    for position in np.ndindex(*shape):
        array[position] = SymbolicValue.cell(name, tuple(p + ARRAY_INDEX_BASE for p in position))
    return array


def _required_extent(spec: IndexSpec, current: int) -> int:
    if isinstance(spec, range):
        return max(current, spec.stop - 1)
    if isinstance(spec, slice):
        return max(current, FULL_RANGE_DEFAULT_EXTENT)
    return max(current, spec)


def _to_numpy_index(spec: IndexSpec):
    if isinstance(spec, range):
        return slice(spec.start - ARRAY_INDEX_BASE, spec.stop - ARRAY_INDEX_BASE)
    if isinstance(spec, slice):
        return spec
    return spec - ARRAY_INDEX_BASE


class ArrayRegistry:
    """
    Base name -> numpy object array of ``SymbolicValue``.

    Each grow allocates a new array and bumps the array's generation; handles
    taken before the grow are stale and ``get`` refuses them.
    """

    def __init__(self):
        self._arrays: Dict[str, np.ndarray] = {}
        self._generations: Dict[str, int] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._arrays

    def __iter__(self) -> Iterator[str]:
        return iter(self._arrays)

    def __len__(self) -> int:
        return len(self._arrays)

    def shape(self, name: str) -> Tuple[int, ...]:
        return self._arrays[name].shape

    def generation(self, name: str) -> int:
        return self._generations[name]

    def register_data(self, name: str, shape: Tuple[int, ...]) -> np.ndarray:
        """Allocate ``name`` with the shape of a data array."""
        if name in self._arrays:
            raise ArrayConsistencyError(f"array `{name}` is already registered")
        self._arrays[name] = _allocate(name, tuple(shape))
        self._generations[name] = 0
        return self._arrays[name]

    def reference_array(self, name: str, indices: Sequence[IndexSpec]):
        """
        Cell or sub-array of ``name`` at ``indices``.

        The first reference fixes the rank and allocates the array; later
        references must use the same rank and grow it when needed. Returns a
        ``SymbolicValue`` when every index is an integer, otherwise a numpy
        object array of them.
        """
        for spec in indices:
            self._check_spec(name, spec)
        rank = len(indices)

        if name not in self._arrays:
            shape = tuple(_required_extent(spec, 0) for spec in indices)
            logger.debug(f"Allocating array `{name}` with shape {shape}")
            self._arrays[name] = _allocate(name, shape)
            self._generations[name] = 0
        else:
            array = self._arrays[name]
            if array.ndim != rank:
                raise ArrayConsistencyError(
                    f"dimension doesn't match for `{name}`: "
                    f"array has {array.ndim} dimension(s), reference uses {rank}"
                )
            needed = tuple(_required_extent(spec, cur) for spec, cur in zip(indices, array.shape))
            if needed != array.shape:
                self.grow(name, needed)

        return self._arrays[name][tuple(_to_numpy_index(spec) for spec in indices)]

    def grow(self, name: str, shape: Tuple[int, ...]) -> ArrayHandle:
        """Reallocate ``name`` with ``shape``; known cells keep their place."""
        old = self._arrays[name]
        if any(new < cur for new, cur in zip(shape, old.shape)):
            raise ArrayConsistencyError(f"array `{name}` cannot shrink from {old.shape} to {shape}")
        new = _allocate(name, shape)
        new[tuple(slice(0, extent) for extent in old.shape)] = old
        self._arrays[name] = new
        self._generations[name] += 1
        logger.debug(f"Grew array `{name}` from {old.shape} to {shape} (generation {self._generations[name]})")
        return self.handle(name)

    def handle(self, name: str) -> ArrayHandle:
        return ArrayHandle(name, self._generations[name])

    def get(self, handle: ArrayHandle) -> np.ndarray:
        current = self._generations.get(handle.name)
        if current is None:
            raise ArrayConsistencyError(f"no array named `{handle.name}`")
        if current != handle.generation:
            raise ArrayConsistencyError(
                f"stale handle for `{handle.name}`: generation {handle.generation}, current {current}"
            )
        return self._arrays[handle.name]

    @staticmethod
    def _check_spec(name: str, spec: IndexSpec) -> None:
        if isinstance(spec, slice):
            if spec != FULL_RANGE:
                raise ArrayConsistencyError(f"unsupported slice {spec!r} for `{name}`")
            return
        if isinstance(spec, range):
            if spec.step != 1:
                raise ArrayConsistencyError(f"range with step used to index `{name}`")
            if spec.start < ARRAY_INDEX_BASE:
                raise ArrayConsistencyError(f"index {spec.start} out of range for `{name}`")
            return
        if isinstance(spec, bool) or not isinstance(spec, (int, np.integer)):
            raise ArrayConsistencyError(f"index {spec!r} of `{name}` is not an integer")
        if spec < ARRAY_INDEX_BASE:
            raise ArrayConsistencyError(f"index {spec} out of range for `{name}`")
