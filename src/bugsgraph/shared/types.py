"""
Operator enums for BUGS expressions.

Operators appear in the syntax tree as ``Call`` nodes whose ``func`` is the
operator's symbol, the same way the modelling language treats ``a + b`` as a
call of ``+``. These enums are the closed set of symbols the compiler knows.
"""

from enum import Enum
from typing import Optional, Union


class BinaryOp(Enum):
    """Binary operators - compile-time checked enum"""
    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    POW = "^"

    # Comparison
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    # Logical
    AND = "&&"
    OR = "||"


class UnaryOp(Enum):
    """Unary operators - compile-time checked enum"""
    NEG = "-"
    POS = "+"
    NOT = "!"


def operator_for(symbol: str, arity: int) -> Optional[Union[BinaryOp, UnaryOp]]:
    """Return the operator a call of ``symbol`` with ``arity`` arguments denotes."""
    enum = BinaryOp if arity == 2 else UnaryOp if arity == 1 else None
    if enum is None:
        return None
    for op in enum:
        if op.value == symbol:
            return op
    return None
