"""
Runtime tables: BUGS functions, operators and distributions.
"""

from .distributions import DISTRIBUTIONS, family_of, is_distribution
from .functions import (
    BINARY_OPERATORS, BUGS_FUNCTIONS, INVERSE_LINK_FUNCTIONS, UNARY_OPERATORS,
    is_function,
)

__all__ = [
    "DISTRIBUTIONS", "family_of", "is_distribution",
    "BINARY_OPERATORS", "BUGS_FUNCTIONS", "INVERSE_LINK_FUNCTIONS", "UNARY_OPERATORS",
    "is_function",
]
