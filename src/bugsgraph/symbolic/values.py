"""
Symbolic Values

A symbolic value names one unknown of the model: a scalar variable (``tau``)
or one cell of an array (``mu[1,2]``). Numeric constants are plain Python
numbers and never wrapped.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import numpy as np

from ..shared.nodes import Name
from ..utils.config import CELL_INDEX_SEPARATOR, CELL_NAME_FORMAT


@dataclass(frozen=True)
class SymbolicValue:
    """
    Placeholder for a scalar variable or one array cell.

    Equality and hashing use ``name`` only, so two values that denote the same
    cell are interchangeable as rule-map keys wherever they were created.
    """
    name: str
    base: Optional[str] = field(default=None, compare=False)
    indices: Optional[Tuple[int, ...]] = field(default=None, compare=False)

    @classmethod
    def cell(cls, base: str, indices: Tuple[int, ...]) -> "SymbolicValue":
        """The cell of array ``base`` at 1-based ``indices``."""
        indices = tuple(int(i) for i in indices)
        name = CELL_NAME_FORMAT.format(
            name=base, indices=CELL_INDEX_SEPARATOR.join(str(i) for i in indices)
        )
        return cls(name, base, indices)

    def to_name(self) -> Name:
        return Name(self.name)

    def __str__(self) -> str:
        return self.name


def is_number(value: Any) -> bool:
    """True for int/float/bool constants, including numpy scalars."""
    return isinstance(value, (int, float, bool, np.number, np.bool_))


def to_python_number(value: Any) -> Any:
    """Unwrap numpy scalars so folded constants compare and print like Python numbers."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray) and value.ndim == 0:
        return value.item()
    return value
