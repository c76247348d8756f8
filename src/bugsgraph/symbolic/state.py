"""
Compiler State

Rust Pattern: rustc_middle::ty::TyCtxt

The single mutable context of one compilation. Every pass receives it
explicitly; nothing about a compilation lives in module globals.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Type

import numpy as np

from ..shared.errors import ErrorReporter, RedefinitionError, StructuralError
from ..shared.nodes import Expression, Literal
from ..shared.source_location import SourceLocation
from ..utils.config import ARRAY_INDEX_BASE
from .arrays import ArrayRegistry
from .values import SymbolicValue, is_number, to_python_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StochasticRule:
    """
    A stochastic definition: the lowered distribution call and the function
    that builds the distribution object from the call's free variables.

    Two rules are equal when their expressions are; the generator is derived.
    """
    expression: Expression
    generator: Callable[..., Any] = field(compare=False)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


class CompilerState:
    """
    Compiler state: array registry, data bindings and the two rule maps.

    Invariant: a symbolic value is the key of at most one rule, in at most one
    of ``logical_rules`` and ``stochastic_rules``. Data-bound values may also
    carry a stochastic rule (they become observations) but never a differing
    logical one.
    """

    def __init__(self, source_files: Optional[Dict[str, str]] = None):
        self.registry = ArrayRegistry()
        self.data: Dict[SymbolicValue, Any] = {}
        self.logical_rules: Dict[SymbolicValue, Expression] = {}
        self.stochastic_rules: Dict[SymbolicValue, StochasticRule] = {}
        self.source_files: Dict[str, str] = dict(source_files or {})
        self.reporter = ErrorReporter(self.source_files)
        self._analysis_results: Dict[Type, Any] = {}

    def get_analysis(self, pass_class: Type) -> Any:
        """Results a pass stored on the state."""
        if pass_class not in self._analysis_results:
            raise RuntimeError(f"Analysis {pass_class.__name__} not available")
        return self._analysis_results[pass_class]

    def set_analysis(self, pass_class: Type, results: Any) -> None:
        self._analysis_results[pass_class] = results

    def source_of(self, location: Optional[SourceLocation]) -> Optional[str]:
        if location is None:
            return None
        return self.source_files.get(location.file)

    def seed_data(self, data: Mapping[str, Any]) -> None:
        """
        Bind data values. Scalars bind a variable; arrays (nested lists or
        numpy arrays) register an array of that shape and bind every present
        cell. ``None``/NaN cells are missing and stay unbound.
        """
        for name, value in data.items():
            if isinstance(value, (list, tuple, np.ndarray)):
                self._seed_array(name, value)
            elif _is_missing(value):
                continue
            elif is_number(value):
                self.data[SymbolicValue(name)] = to_python_number(value)
            else:
                raise StructuralError(
                    f"data for `{name}` must be a number or an array of numbers, got {type(value).__name__}"
                )
        logger.debug(f"Seeded {len(self.data)} data value(s) from {len(data)} binding(s)")

    def _seed_array(self, name: str, value: Any) -> None:
        array = np.asarray(value, dtype=object)
        cells = []
        for position in np.ndindex(*array.shape):
            cell = array[position]
            if isinstance(cell, (list, tuple, np.ndarray)):
                raise StructuralError(f"data array `{name}` is not rectangular")
            cell = to_python_number(cell)
            if _is_missing(cell):
                continue
            if not is_number(cell):
                raise StructuralError(f"data array `{name}` holds a non-numeric value {cell!r}")
            cells.append((position, cell))
        self.registry.register_data(name, array.shape)
        for position, cell in cells:
            key = SymbolicValue.cell(name, tuple(p + ARRAY_INDEX_BASE for p in position))
            self.data[key] = cell

    def add_logical_rule(
        self,
        lhs: SymbolicValue,
        rhs: Expression,
        location: Optional[SourceLocation] = None,
    ) -> bool:
        """Add ``lhs = rhs``. Returns False when the identical rule already exists."""
        if lhs in self.stochastic_rules:
            raise RedefinitionError(
                f"`{lhs}` is defined both as a logical and a stochastic node",
                location, self.source_of(location),
            )
        if lhs in self.data:
            if isinstance(rhs, Literal) and rhs.value == self.data[lhs]:
                return False
            raise RedefinitionError(
                f"`{lhs}` is bound by data and cannot be redefined",
                location, self.source_of(location),
                help="remove the logical definition or the data value",
            )
        existing = self.logical_rules.get(lhs)
        if existing is not None:
            if existing == rhs:
                return False
            raise RedefinitionError(
                f"repeated definition for `{lhs}`",
                location, self.source_of(location),
                note=f"previously defined as `{existing}`",
            )
        self.logical_rules[lhs] = rhs
        return True

    def add_stochastic_rule(
        self,
        lhs: SymbolicValue,
        rule: StochasticRule,
        location: Optional[SourceLocation] = None,
    ) -> bool:
        """Add ``lhs ~ rule``. Returns False when the identical rule already exists."""
        if lhs in self.logical_rules:
            raise RedefinitionError(
                f"`{lhs}` is defined both as a logical and a stochastic node",
                location, self.source_of(location),
            )
        existing = self.stochastic_rules.get(lhs)
        if existing is not None:
            if existing == rule:
                return False
            raise RedefinitionError(
                f"repeated definition for `{lhs}`",
                location, self.source_of(location),
                note=f"previously defined as `{lhs} ~ {existing.expression}`",
            )
        self.stochastic_rules[lhs] = rule
        return True
