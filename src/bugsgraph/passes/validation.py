"""
Syntax Validation Pass

Checks the shapes the rest of the compiler relies on and normalizes implicit
indexing: ``x[]`` on a right-hand side becomes ``x[:]``.
"""

import logging
from dataclasses import replace

from ..runtime.distributions import is_distribution
from ..runtime.functions import is_function
from ..shared.ast_visitor import ASTTransformer
from ..shared.errors import StructuralError
from ..shared.nodes import (
    ASTNode, Assign, Block, Call, Colon, Expression, For, Index, Name, Range,
    StochasticAssign,
)
from ..shared.types import operator_for
from ..symbolic.state import CompilerState
from ..utils.config import CUMULATIVE_FUNCTION, DENSITY_FUNCTION, DEVIANCE_FUNCTION
from .base import BasePass

logger = logging.getLogger(__name__)

SPECIAL_FUNCTIONS = frozenset({CUMULATIVE_FUNCTION, DENSITY_FUNCTION, DEVIANCE_FUNCTION})


class SyntaxValidationPass(BasePass):
    """Reject malformed statements before any rewriting happens."""
    requires = []

    def run(self, program: Block, state: CompilerState) -> Block:
        validator = SyntaxValidator(state)
        return program.accept(validator)


class SyntaxValidator(ASTTransformer):

    def __init__(self, state: CompilerState):
        self.state = state

    def _error(self, message: str, node: ASTNode, **kwargs) -> StructuralError:
        return StructuralError(message, node.location, self.state.source_of(node.location), **kwargs)

    # statements

    def visit_assign(self, node: Assign) -> ASTNode:
        lhs = self._check_lhs(node.lhs, node, allow_link=True)
        return replace(node, lhs=lhs, rhs=node.rhs.accept(self))

    def visit_stochastic_assign(self, node: StochasticAssign) -> ASTNode:
        lhs = self._check_lhs(node.lhs, node, allow_link=False)
        rhs = node.rhs
        if not isinstance(rhs, Call):
            raise self._error(f"right-hand side of `~` must be a distribution, found `{rhs}`", node)
        if not is_distribution(rhs.func):
            raise self._error(f"`{rhs.func}` is not a recognized distribution", rhs)
        return replace(node, lhs=lhs, rhs=rhs.accept(self))

    def visit_for(self, node: For) -> ASTNode:
        if not isinstance(node.var, str) or not node.var.isidentifier():
            raise self._error(f"loop variable must be a scalar name, found `{node.var}`", node)
        return super().visit_for(node)

    def _check_lhs(self, lhs: Expression, stmt: ASTNode, allow_link: bool) -> Expression:
        if isinstance(lhs, Name):
            return lhs
        if isinstance(lhs, Index):
            if not lhs.indices:
                raise self._error(f"implicit indexing `{lhs.base}[]` is not supported on the left-hand side", stmt)
            return self._check_index(lhs)
        if isinstance(lhs, Call) and len(lhs.args) == 1:
            if not allow_link:
                raise self._error(f"link function `{lhs.func}` on the left-hand side of `~` is not supported", stmt)
            return replace(lhs, args=(self._check_lhs(lhs.args[0], stmt, allow_link=False),))
        raise self._error(
            f"left-hand side can only be a scalar or an array cell, found `{lhs}`", stmt,
        )

    # expressions

    def visit_index(self, node: Index) -> ASTNode:
        if not node.indices:
            return replace(node, indices=(Colon(node.location),))
        return self._check_index(node)

    def _check_index(self, node: Index) -> Index:
        if isinstance(node.base, Index):
            raise self._error(
                f"nested indexing `{node}` is not supported", node,
                help="BUGS arrays are tensors: write `a[i, j]` instead of `a[i][j]`",
            )
        if not isinstance(node.base, Name):
            raise self._error(f"only named arrays can be indexed, found `{node.base}`", node)
        return replace(node, indices=tuple(i.accept(self) for i in node.indices))

    def visit_range(self, node: Range) -> ASTNode:
        if node.step is not None:
            raise self._error(f"range with step `{node}` is not supported", node)
        return super().visit_range(node)

    def visit_call(self, node: Call) -> ASTNode:
        known = (
            operator_for(node.func, len(node.args)) is not None
            or is_function(node.func)
            or is_distribution(node.func)
            or node.func in SPECIAL_FUNCTIONS
        )
        if not known:
            raise self._error(f"unknown function `{node.func}`", node)
        return super().visit_call(node)
