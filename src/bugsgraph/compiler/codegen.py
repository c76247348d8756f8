"""
Node function compilation.

Turns a lowered expression (array references already replaced by cell
names) into a Python closure once, ahead of time. The closure reads its
free variables from an environment dict; ``CompiledFunction`` binds them
positionally in ``arguments`` order.
"""

from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from ..runtime.distributions import DISTRIBUTIONS
from ..runtime.functions import BINARY_OPERATORS, BUGS_FUNCTIONS, UNARY_OPERATORS
from ..shared.ast_visitor import ASTVisitor, free_names
from ..shared.errors import BugsImplementationError, StructuralError
from ..shared.nodes import (
    ArrayLiteral, Call, Colon, Expression, Index, Literal, Name, Range,
)
from ..shared.types import BinaryOp, UnaryOp, operator_for

Env = Dict[str, Any]
Closure = Callable[[Env], Any]


class _ClosureCompiler(ASTVisitor[Closure]):

    def visit_literal(self, node: Literal) -> Closure:
        value = node.value
        return lambda env: value

    def visit_name(self, node: Name) -> Closure:
        name = node.name
        return lambda env: env[name]

    def visit_array_literal(self, node: ArrayLiteral) -> Closure:
        parts = [e.accept(self) for e in node.elements]
        shape = node.shape
        return lambda env: np.array([part(env) for part in parts]).reshape(shape)

    def visit_call(self, node: Call) -> Closure:
        args = [a.accept(self) for a in node.args]
        op = operator_for(node.func, len(args))
        if isinstance(op, BinaryOp):
            fn = BINARY_OPERATORS[op]
            left, right = args
            return lambda env: fn(left(env), right(env))
        if isinstance(op, UnaryOp):
            fn = UNARY_OPERATORS[op]
            operand = args[0]
            return lambda env: fn(operand(env))

        fn = DISTRIBUTIONS.get(node.func) or BUGS_FUNCTIONS.get(node.func)
        if fn is None:
            raise StructuralError(f"unknown function `{node.func}`", node.location)
        return lambda env: fn(*[arg(env) for arg in args])

    def visit_index(self, node: Index) -> Closure:
        raise BugsImplementationError(f"array reference `{node}` reached code generation unlowered")

    def visit_range(self, node: Range) -> Closure:
        raise BugsImplementationError(f"range `{node}` reached code generation unlowered")

    def visit_colon(self, node: Colon) -> Closure:
        raise BugsImplementationError("full-range marker reached code generation unlowered")


class CompiledFunction:
    """
    Pure function of a node's parents.

    ``arguments`` lists the free variable names of ``expression`` in order of
    first appearance; call with their values in that order (or by keyword).
    """

    def __init__(self, expression: Expression, arguments: Optional[Sequence[str]] = None):
        self.expression = expression
        self.arguments = tuple(arguments) if arguments is not None else tuple(free_names(expression))
        self._body = expression.accept(_ClosureCompiler())

    def __call__(self, *values: Any, **named: Any) -> Any:
        if len(values) > len(self.arguments):
            raise TypeError(
                f"expected at most {len(self.arguments)} argument(s) {self.arguments}, got {len(values)}"
            )
        env = dict(zip(self.arguments, values))
        env.update(named)
        missing = [name for name in self.arguments if name not in env]
        if missing:
            raise TypeError(f"missing value(s) for {', '.join(missing)}")
        return self._body(env)

    def __repr__(self) -> str:
        return f"CompiledFunction(({', '.join(self.arguments)}) -> {self.expression})"


def compile_expression(expression: Expression) -> CompiledFunction:
    return CompiledFunction(expression)
