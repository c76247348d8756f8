"""
Special Function Pass

``cumulative(s, x)``, ``density(s, x)`` and ``deviance(s, x)`` evaluate the
distribution that ``s`` is drawn from. The pass finds the unique ``~``
statement whose left-hand side is ``s`` and substitutes its distribution:

    cumulative(s, x) -> cdf(D, x)
    density(s, x)    -> pdf(D, x)
    deviance(s, x)   -> -2 * logpdf(D, x)

Matching is syntactic and runs before loop unrolling, so ``cumulative(y[1], x)``
does not find ``y[i] ~ ...`` inside a loop.
"""

import logging
from typing import List

from ..shared.ast_visitor import ASTTransformer, ASTVisitor
from ..shared.errors import SpecialFunctionError, StructuralError
from ..shared.nodes import (
    ASTNode, Block, Call, Expression, Literal, Name, StochasticAssign,
)
from ..symbolic.state import CompilerState
from ..utils.config import CUMULATIVE_FUNCTION, DENSITY_FUNCTION, DEVIANCE_FUNCTION
from .base import BasePass
from .link_functions import LinkFunctionPass

logger = logging.getLogger(__name__)

_TARGETS = {
    CUMULATIVE_FUNCTION: "cdf",
    DENSITY_FUNCTION: "pdf",
    DEVIANCE_FUNCTION: "logpdf",
}


class SpecialFunctionPass(BasePass):
    requires = [LinkFunctionPass]

    def run(self, program: Block, state: CompilerState) -> Block:
        collector = _StochasticCollector()
        program.accept(collector)
        rewriter = SpecialFunctionRewriter(state, collector.statements)
        program = program.accept(rewriter)
        logger.debug(f"Rewrote {rewriter.rewrite_count} special function call(s)")
        return program


class _StochasticCollector(ASTVisitor[None]):
    """All ``~`` statements, including those nested in loops and conditionals."""

    def __init__(self):
        self.statements: List[StochasticAssign] = []

    def visit_literal(self, node: Literal) -> None:
        pass

    def visit_name(self, node: Name) -> None:
        pass

    def visit_stochastic_assign(self, node: StochasticAssign) -> None:
        self.statements.append(node)


class SpecialFunctionRewriter(ASTTransformer):

    def __init__(self, state: CompilerState, stochastic: List[StochasticAssign]):
        self.state = state
        self.stochastic = stochastic
        self.rewrite_count = 0

    def visit_call(self, node: Call) -> ASTNode:
        node = super().visit_call(node)
        target = _TARGETS.get(node.func)
        if target is None:
            return node
        if len(node.args) != 2:
            raise StructuralError(
                f"`{node.func}` takes a variable and a value, got {len(node.args)} argument(s)",
                node.location, self.state.source_of(node.location),
            )
        variable, value = node.args
        distribution = self._find_distribution(node, variable)
        self.rewrite_count += 1
        call = Call(target, (distribution, value), node.location)
        if node.func == DEVIANCE_FUNCTION:
            return Call("*", (Literal(-2, node.location), call), node.location)
        return call

    def _find_distribution(self, call: Call, variable: Expression) -> Expression:
        matches = [stmt for stmt in self.stochastic if stmt.lhs == variable]
        if len(matches) == 1:
            return matches[0].rhs
        if not matches:
            message = f"can't find a stochastic assignment for `{variable}` used in `{call.func}`"
        else:
            message = f"`{variable}` used in `{call.func}` has {len(matches)} stochastic assignments"
        raise SpecialFunctionError(
            message, call.location, self.state.source_of(call.location),
            note="the first argument must match the left-hand side of exactly one `~` statement",
        )
