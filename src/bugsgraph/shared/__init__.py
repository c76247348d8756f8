"""
Shared components: syntax tree, visitors, operators and diagnostics.

Rust Pattern: Shared foundational types and utilities
"""

from .source_location import SourceLocation
from .errors import (
    Error, ErrorReporter, BugsError, BugsSourceError, BugsImplementationError,
    StructuralError, ResolutionError, UnresolvedIndexError, RedefinitionError,
    ArrayConsistencyError, SpecialFunctionError,
    NetworkError, UnknownVertexError, DuplicateVertexError, CapacityError,
    NotStochasticError, NotObservedError, UnsupportedFamilyError,
)
from .types import BinaryOp, UnaryOp, operator_for
from .nodes import (
    ASTNode, Expression, Statement, NodeType,
    Literal, Name, Index, Call, Range, Colon, ArrayLiteral,
    Assign, StochasticAssign, Block, For, If, is_flat,
)
from .ast_visitor import ASTVisitor, ASTTransformer, substitute, free_names
