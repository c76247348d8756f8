"""
BUGS Syntax Tree Definitions

A closed set of node types for already-parsed model programs. The parser
itself lives outside this package; it (or a test, or the S-expression
loader) builds these nodes directly.

All nodes are frozen dataclasses: two trees are equal when they have the
same structure, regardless of where in the source they came from. Loop
unrolling and the special-function rewrite rely on that structural equality.

Visitor Pattern Support:
- All nodes have accept() methods for polymorphic dispatch
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, TypeVar, Union, TYPE_CHECKING

from .source_location import SourceLocation

if TYPE_CHECKING:
    from .ast_visitor import ASTVisitor

T = TypeVar('T')

Number = Union[int, float, bool]


class NodeType(Enum):
    """Syntax tree node types"""
    LITERAL = "literal"
    NAME = "name"
    INDEX = "index"
    CALL = "call"
    RANGE = "range"
    COLON = "colon"
    ARRAY_LITERAL = "array_literal"
    ASSIGN = "assign"
    STOCHASTIC_ASSIGN = "stochastic_assign"
    FOR = "for"
    IF = "if"
    BLOCK = "block"


def _location():
    return field(default=None, compare=False, repr=False)


class ASTNode:
    """
    Base class for all syntax tree nodes.

    Subclasses must implement accept() to call the appropriate visit_* method.
    """
    node_type: NodeType

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")

    def __str__(self) -> str:
        from .printer import to_source
        return to_source(self)


class Expression(ASTNode):
    """Base class for expressions"""


class Statement(ASTNode):
    """Base class for statements"""


@dataclass(frozen=True)
class Literal(Expression):
    """Numeric or boolean constant."""
    value: Number
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.LITERAL

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_literal(self)


@dataclass(frozen=True)
class Name(Expression):
    """A bare variable name, or the materialized name of one array cell."""
    name: str
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.NAME

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_name(self)


@dataclass(frozen=True)
class Index(Expression):
    """
    Array reference ``base[i, j, ...]``.

    ``base`` is a ``Name`` in every valid program; anything else (e.g. the
    nested form ``x[1][2]``) is rejected by syntax validation. Each index is
    an expression, a ``Range`` or a ``Colon``.
    """
    base: Expression
    indices: Tuple[Expression, ...]
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.INDEX

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_index(self)


@dataclass(frozen=True)
class Call(Expression):
    """
    Function, operator or distribution call.

    Operators are calls too: ``a + b`` is ``Call("+", (a, b))`` and ``-x`` is
    ``Call("-", (x,))``.
    """
    func: str
    args: Tuple[Expression, ...]
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.CALL

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_call(self)


@dataclass(frozen=True)
class Range(Expression):
    """Inclusive range ``lower:upper`` in an index position. ``step`` is never valid."""
    lower: Expression
    upper: Expression
    step: Optional[Expression] = None
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.RANGE

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_range(self)


@dataclass(frozen=True)
class Colon(Expression):
    """Full-range marker: every valid index along this axis."""
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.COLON

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_colon(self)


@dataclass(frozen=True)
class ArrayLiteral(Expression):
    """
    Array of expressions in row-major order with an explicit shape.

    Only produced by the compiler when an array slice is lowered to the
    names of its cells.
    """
    elements: Tuple[Expression, ...]
    shape: Tuple[int, ...]
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.ARRAY_LITERAL

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_array_literal(self)


@dataclass(frozen=True)
class Assign(Statement):
    """Deterministic (logical) assignment ``lhs = rhs``."""
    lhs: Expression
    rhs: Expression
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.ASSIGN

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_assign(self)


@dataclass(frozen=True)
class StochasticAssign(Statement):
    """Stochastic assignment ``lhs ~ dist(args...)``."""
    lhs: Expression
    rhs: Expression
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.STOCHASTIC_ASSIGN

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_stochastic_assign(self)


@dataclass(frozen=True)
class Block(Statement):
    """Sequence of statements; also the root of a model program."""
    statements: Tuple[Statement, ...] = ()
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.BLOCK

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_block(self)


@dataclass(frozen=True)
class For(Statement):
    """``for (var in lower:upper) { body }``"""
    var: str
    lower: Expression
    upper: Expression
    body: Block
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.FOR

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_for(self)


@dataclass(frozen=True)
class If(Statement):
    """``if (condition) { body }``"""
    condition: Expression
    body: Block
    location: Optional[SourceLocation] = _location()
    node_type = NodeType.IF

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_if(self)


def is_flat(statement: Statement) -> bool:
    """True for statements that define a single node (no loops or conditionals)."""
    return isinstance(statement, (Assign, StochasticAssign))
