"""
Partial Evaluator

Rust Pattern: rustc_mir::const_eval

Substitution-based partial evaluation over the syntax tree: every name
bound by data or by a logical rule is replaced by its value or right-hand
side, constants are folded, and the two steps repeat until the expression
stops changing. Loop bounds, conditional guards, array indices and node
default values are all decided this way.
"""

import logging
from typing import Any, Union, TYPE_CHECKING

import numpy as np

from ..runtime.functions import (
    BINARY_OPERATORS, BUGS_FUNCTIONS, DISTRIBUTION_FUNCTIONS, UNARY_OPERATORS,
)
from ..shared.ast_visitor import ASTTransformer
from ..shared.errors import ResolutionError, StructuralError, UnresolvedIndexError
from ..shared.nodes import (
    ArrayLiteral, ASTNode, Call, Colon, Expression, Index, Literal, Name, Range,
)
from ..shared.types import BinaryOp, UnaryOp, operator_for
from .arrays import FULL_RANGE, IndexSpec
from .values import SymbolicValue, is_number, to_python_number

if TYPE_CHECKING:
    from .state import CompilerState

logger = logging.getLogger(__name__)

_NOT_CONSTANT = object()


def _constant_of(node: Expression) -> Any:
    """Python value of a literal (or all-literal array), else ``_NOT_CONSTANT``."""
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, ArrayLiteral) and all(isinstance(e, Literal) for e in node.elements):
        return np.array([e.value for e in node.elements]).reshape(node.shape)
    return _NOT_CONSTANT


def _constant_node(value: Any, location) -> Expression:
    if isinstance(value, np.ndarray) and value.ndim > 0:
        elements = tuple(Literal(to_python_number(v), location) for v in value.ravel())
        return ArrayLiteral(elements, value.shape, location)
    return Literal(to_python_number(value), location)


class ConstantFolder(ASTTransformer):
    """
    Folds operator and function calls whose arguments are all constants.

    Distribution constructors and the functions that take distributions
    (``cdf``, ``pdf``, ``logpdf``) are never folded; the result would not be
    a number. Calls that fail numerically (``1 / 0``) are left unfolded.
    """

    def __init__(self):
        self.fold_count = 0

    def visit_call(self, node: Call) -> ASTNode:
        node = super().visit_call(node)
        values = [_constant_of(arg) for arg in node.args]
        if any(v is _NOT_CONSTANT for v in values):
            return node

        op = operator_for(node.func, len(node.args))
        if isinstance(op, BinaryOp):
            fn = BINARY_OPERATORS[op]
        elif isinstance(op, UnaryOp):
            fn = UNARY_OPERATORS[op]
        elif node.func in BUGS_FUNCTIONS and node.func not in DISTRIBUTION_FUNCTIONS:
            fn = BUGS_FUNCTIONS[node.func]
        else:
            return node

        try:
            with np.errstate(all="ignore"):
                result = fn(*values)
        except (ArithmeticError, ValueError, TypeError):
            return node
        if np.iscomplexobj(result):
            return node
        self.fold_count += 1
        return _constant_node(result, node.location)


def fold_constants(expr: Expression) -> Expression:
    return expr.accept(ConstantFolder())


class _RuleSubstitution(ASTTransformer):
    """Replace names bound by data or logical rules with their values."""

    def __init__(self, state: "CompilerState"):
        self.state = state

    def visit_name(self, node: Name) -> ASTNode:
        key = SymbolicValue(node.name)
        if key in self.state.data:
            return Literal(self.state.data[key], node.location)
        rule = self.state.logical_rules.get(key)
        if rule is not None:
            return rule
        return node


class _Lowering(ASTTransformer):
    """Replace each ``Index`` by the name of its cell, or an array of cell names for slices."""

    def __init__(self, state: "CompilerState"):
        self.state = state

    def visit_index(self, node: Index) -> ASTNode:
        cells = to_symbolic(node, self.state)
        if isinstance(cells, SymbolicValue):
            return Name(cells.name, node.location)
        elements = tuple(Name(cell.name, node.location) for cell in cells.ravel())
        return ArrayLiteral(elements, cells.shape, node.location)


def lower_expression(expr: Expression, state: "CompilerState") -> Expression:
    """
    Lower array references in ``expr`` to cell names.

    Raises ``UnresolvedIndexError`` when an index does not resolve to an
    integer yet.
    """
    return expr.accept(_Lowering(state))


def _base_name(node: Index) -> str:
    if not isinstance(node.base, Name):
        raise StructuralError(
            f"nested indexing `{node}` is not supported", node.location,
            help="index the array once with all of its indices, as in `x[i, j]`",
        )
    return node.base.name


def _integer_index(expr: Expression, state: "CompilerState") -> int:
    value = resolve(expr, state)
    if isinstance(value, (bool, np.bool_)) or not is_number(value):
        raise UnresolvedIndexError(f"index `{expr}` does not resolve to a constant", expr.location)
    if isinstance(value, float) and not value.is_integer():
        raise ResolutionError(f"index `{expr}` resolves to non-integer {value}", expr.location)
    return int(value)


def resolve_index(expr: Expression, state: "CompilerState") -> IndexSpec:
    """Resolve one index position to an integer, a range, or ``FULL_RANGE``."""
    if isinstance(expr, Colon):
        return FULL_RANGE
    if isinstance(expr, Range):
        if expr.step is not None:
            raise StructuralError(f"range with step `{expr}` is not supported", expr.location)
        lower = _integer_index(expr.lower, state)
        upper = _integer_index(expr.upper, state)
        return range(lower, upper + 1)
    return _integer_index(expr, state)


def to_symbolic(x: Any, state: "CompilerState"):
    """
    Convert a number, name or array reference to its symbolic form.

    Numbers and symbolic values are returned unchanged; an ``Index`` yields a
    single ``SymbolicValue`` or a numpy object array of them, allocating or
    growing the array as needed.
    """
    if is_number(x) or isinstance(x, SymbolicValue):
        return x
    if isinstance(x, Name):
        return SymbolicValue(x.name)
    if isinstance(x, Index):
        name = _base_name(x)
        specs = tuple(resolve_index(i, state) for i in x.indices)
        return state.registry.reference_array(name, specs)
    raise StructuralError(
        f"general expression `{x}` to symbol is not supported",
        getattr(x, "location", None),
    )


def resolve(x: Any, state: "CompilerState") -> Union[Any, SymbolicValue, Expression]:
    """
    Partially evaluate ``x`` against the state's data and logical rules.

    Returns a number (or bool, or numpy array for an all-constant slice) when
    substitution collapses to constants, a ``SymbolicValue`` when the result
    is a single unbound name, otherwise the residual expression. Numbers are
    returned as they are without consulting any rule.
    """
    if is_number(x):
        return to_python_number(x)
    if isinstance(x, SymbolicValue):
        expr = x.to_name()
    elif isinstance(x, Expression):
        expr = lower_expression(x, state)
    else:
        raise StructuralError(f"cannot evaluate {x!r}")

    folder = ConstantFolder()
    substitution = _RuleSubstitution(state)
    current = expr.accept(folder)
    seen = {current}
    # an acyclic chain of rules is fully substituted within this many rounds
    rounds = len(state.logical_rules) + 1
    while rounds > 0 and _constant_of(current) is _NOT_CONSTANT:
        following = current.accept(substitution).accept(folder)
        if following == current or following in seen:
            break
        seen.add(following)
        current = following
        rounds -= 1

    value = _constant_of(current)
    if value is not _NOT_CONSTANT:
        return value
    if isinstance(current, Name):
        return SymbolicValue(current.name)
    return current
