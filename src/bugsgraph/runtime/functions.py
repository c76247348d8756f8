"""
BUGS function and operator tables.

Maps the function names allowed on right-hand sides to numpy/scipy
callables, and operator enums to their implementations. Both the constant
folder and the generated node functions evaluate through these tables.
"""

import operator
from functools import reduce
from typing import Any, Callable, Dict

import numpy as np
from scipy import special

from ..shared.types import BinaryOp, UnaryOp
from .distributions import is_discrete


def _cloglog(x):
    return np.log(-np.log1p(-x))


def _cexpexp(x):
    return 1.0 - np.exp(-np.exp(x))


def _step(x):
    return 1 if x >= 0 else 0


def _equals(a, b):
    return 1 if a == b else 0


def _sd(x):
    return np.std(np.asarray(x, dtype=float), ddof=1)


def _inprod(a, b):
    return np.dot(np.ravel(a), np.ravel(b))


def _logfact(x):
    return special.gammaln(np.asarray(x) + 1)


def _max(*args):
    return np.max(args[0]) if len(args) == 1 else reduce(np.maximum, args)


def _min(*args):
    return np.min(args[0]) if len(args) == 1 else reduce(np.minimum, args)


def _cdf(dist, x):
    return dist.cdf(x)


def _pdf(dist, x):
    return dist.pmf(x) if is_discrete(dist) else dist.pdf(x)


def _logpdf(dist, x):
    return dist.logpmf(x) if is_discrete(dist) else dist.logpdf(x)


BUGS_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "abs": np.abs,
    "sqrt": np.sqrt,
    "exp": np.exp,
    "log": np.log,
    "pow": np.power,
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "logit": special.logit,
    "logistic": special.expit,
    "ilogit": special.expit,
    "cloglog": _cloglog,
    "cexpexp": _cexpexp,
    "icloglog": _cexpexp,
    "phi": special.ndtr,
    "probit": special.ndtri,
    "step": _step,
    "equals": _equals,
    "max": _max,
    "min": _min,
    "sum": np.sum,
    "mean": np.mean,
    "sd": _sd,
    "inprod": _inprod,
    "round": np.round,
    "trunc": np.trunc,
    "logfact": _logfact,
    "loggam": special.gammaln,
    # targets of the cumulative/density/deviance rewrite
    "cdf": _cdf,
    "pdf": _pdf,
    "logpdf": _logpdf,
}

# Functions whose first argument is a distribution object
DISTRIBUTION_FUNCTIONS = frozenset({"cdf", "pdf", "logpdf"})

# Link functions allowed on the left-hand side, mapped to their inverses
INVERSE_LINK_FUNCTIONS: Dict[str, str] = {
    "log": "exp",
    "logit": "logistic",
    "cloglog": "cexpexp",
    "probit": "phi",
}


def _logical_and(left, right):
    if isinstance(left, np.ndarray) or isinstance(right, np.ndarray):
        return np.logical_and(left, right)
    return bool(left) and bool(right)


def _logical_or(left, right):
    if isinstance(left, np.ndarray) or isinstance(right, np.ndarray):
        return np.logical_or(left, right)
    return bool(left) or bool(right)


def _logical_not(operand):
    if isinstance(operand, np.ndarray):
        return np.logical_not(operand)
    return not operand


BINARY_OPERATORS: Dict[BinaryOp, Callable[[Any, Any], Any]] = {
    BinaryOp.ADD: operator.add,
    BinaryOp.SUB: operator.sub,
    BinaryOp.MUL: operator.mul,
    BinaryOp.DIV: operator.truediv,
    BinaryOp.POW: operator.pow,
    BinaryOp.EQ: operator.eq,
    BinaryOp.NE: operator.ne,
    BinaryOp.LT: operator.lt,
    BinaryOp.LE: operator.le,
    BinaryOp.GT: operator.gt,
    BinaryOp.GE: operator.ge,
    BinaryOp.AND: _logical_and,
    BinaryOp.OR: _logical_or,
}

UNARY_OPERATORS: Dict[UnaryOp, Callable[[Any], Any]] = {
    UnaryOp.NEG: operator.neg,
    UnaryOp.POS: operator.pos,
    UnaryOp.NOT: _logical_not,
}


def is_function(name: str) -> bool:
    return name in BUGS_FUNCTIONS
