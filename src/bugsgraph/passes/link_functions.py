"""
Link Function Pass

Rewrites ``f(x) = rhs`` into ``x = finv(rhs)`` for the closed set of BUGS
link functions.
"""

import logging
from dataclasses import replace

from ..runtime.functions import INVERSE_LINK_FUNCTIONS
from ..shared.ast_visitor import ASTTransformer
from ..shared.errors import StructuralError
from ..shared.nodes import ASTNode, Assign, Block, Call, StochasticAssign
from ..symbolic.state import CompilerState
from .base import BasePass
from .validation import SyntaxValidationPass

logger = logging.getLogger(__name__)


class LinkFunctionPass(BasePass):
    requires = [SyntaxValidationPass]

    def run(self, program: Block, state: CompilerState) -> Block:
        rewriter = LinkFunctionRewriter(state)
        program = program.accept(rewriter)
        logger.debug(f"Rewrote {rewriter.rewrite_count} link-function assignment(s)")
        return program


class LinkFunctionRewriter(ASTTransformer):

    def __init__(self, state: CompilerState):
        self.state = state
        self.rewrite_count = 0

    def visit_assign(self, node: Assign) -> ASTNode:
        if not isinstance(node.lhs, Call):
            return node
        link = node.lhs
        inverse = INVERSE_LINK_FUNCTIONS.get(link.func)
        if inverse is None or len(link.args) != 1:
            raise StructuralError(
                f"`{link.func}` is not a recognized link function",
                node.location, self.state.source_of(node.location),
                note=f"supported link functions: {', '.join(sorted(INVERSE_LINK_FUNCTIONS))}",
            )
        self.rewrite_count += 1
        return replace(node, lhs=link.args[0], rhs=Call(inverse, (node.rhs,), node.rhs.location))

    def visit_stochastic_assign(self, node: StochasticAssign) -> ASTNode:
        if isinstance(node.lhs, Call):
            raise StructuralError(
                f"link function `{node.lhs.func}` on the left-hand side of `~` is not supported",
                node.location, self.state.source_of(node.location),
            )
        return node
