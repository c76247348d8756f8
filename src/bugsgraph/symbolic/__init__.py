"""
Symbolic layer: placeholders, the array registry, the compiler state and the
partial evaluator.
"""

from .arrays import FULL_RANGE, ArrayHandle, ArrayRegistry
from .evaluator import ConstantFolder, lower_expression, resolve, resolve_index, to_symbolic
from .state import CompilerState, StochasticRule
from .values import SymbolicValue

__all__ = [
    "FULL_RANGE", "ArrayHandle", "ArrayRegistry",
    "ConstantFolder", "lower_expression", "resolve", "resolve_index", "to_symbolic",
    "CompilerState", "StochasticRule",
    "SymbolicValue",
]
