"""
Factors and variable elimination.

Factor products have closed forms for two family pairs only: Normal with
Normal (means and variances add) and categorical with categorical
(elementwise product, renormalized). Any other pair raises
``UnsupportedFamilyError``.
"""

import logging
from dataclasses import dataclass
from functools import reduce
from typing import Any, Dict, Iterable, Mapping, Tuple

import numpy as np
from scipy import stats

from ..runtime.distributions import CATEGORICAL, NORMAL, categorical, category_probabilities, family_of
from ..shared.errors import NetworkError, NotStochasticError, UnsupportedFamilyError
from ..utils.config import ARRAY_INDEX_BASE, EVIDENCE_NORMAL_SCALE
from .bayesnet import BayesianNetwork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Factor:
    variables: Tuple[str, ...]
    distribution: Any
    parents: Tuple[str, ...]


def _unique(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(names))


def create_factor(bn: BayesianNetwork, name: str) -> Factor:
    """Factor of one stochastic vertex over itself, with its parents."""
    vertex = bn.id_of(name)
    if not bn.is_stochastic[vertex]:
        raise NotStochasticError(f"cannot create factor for deterministic node `{name}`")
    return Factor((name,), bn.distribution_of(name), tuple(bn.parents(name)))


def multiply_factors(f1: Factor, f2: Factor) -> Factor:
    variables = _unique(f1.variables + f2.variables)
    parents = _unique(f1.parents + f2.parents)
    family1, family2 = family_of(f1.distribution), family_of(f2.distribution)

    if family1 == NORMAL and family2 == NORMAL:
        mean = f1.distribution.mean() + f2.distribution.mean()
        scale = np.sqrt(f1.distribution.var() + f2.distribution.var())
        return Factor(variables, stats.norm(loc=mean, scale=scale), parents)

    if family1 == CATEGORICAL and family2 == CATEGORICAL:
        p1 = category_probabilities(f1.distribution)
        p2 = category_probabilities(f2.distribution)
        if p1.shape != p2.shape:
            raise UnsupportedFamilyError(
                f"cannot multiply categorical factors with {p1.size} and {p2.size} categories"
            )
        p = p1 * p2
        if p.sum() == 0:
            raise NetworkError(f"product of factors over {', '.join(variables)} has zero probability mass")
        return Factor(variables, categorical(p), parents)

    raise UnsupportedFamilyError(f"cannot multiply factors of families `{family1}` and `{family2}`")


def marginalize(factor: Factor, variable: str) -> Factor:
    """Drop ``variable`` from the factor; the distribution is kept as it is."""
    return Factor(
        tuple(v for v in factor.variables if v != variable),
        factor.distribution,
        tuple(p for p in factor.parents if p != variable),
    )


def _evidence_factor(bn: BayesianNetwork, name: str, value: Any, current: Factor) -> Factor:
    distribution = bn.distribution_of(name)
    family = family_of(distribution)
    if family == NORMAL:
        return Factor((name,), stats.norm(loc=float(value), scale=EVIDENCE_NORMAL_SCALE), ())
    if family == CATEGORICAL:
        p = np.zeros(category_probabilities(distribution).size)
        category = float(value)
        if not category.is_integer() or not ARRAY_INDEX_BASE <= category < ARRAY_INDEX_BASE + p.size:
            raise NetworkError(f"evidence {value!r} on `{name}` is not one of its categories 1..{p.size}")
        p[int(category) - ARRAY_INDEX_BASE] = 1.0
        return Factor((name,), categorical(p), ())
    logger.debug(f"Evidence on `{name}` of family `{family}` keeps its prior factor")
    return current


def variable_elimination(bn: BayesianNetwork, query: str, evidence: Mapping[str, Any]) -> float:
    """
    Marginal of ``query`` given ``evidence``, as the density of the result at
    its mean (Normal) or the probability of its first category (categorical).
    """
    bn.id_of(query)
    logger.debug(f"Variable elimination: query {query}, evidence {dict(evidence)}")

    factors: Dict[str, Factor] = {}
    for name, stochastic in zip(bn.names, bn.is_stochastic):
        if stochastic:
            factors[name] = create_factor(bn, name)

    for name, value in evidence.items():
        if not bn.is_stochastic[bn.id_of(name)]:
            raise NotStochasticError(f"evidence on deterministic node `{name}`")
        factors[name] = _evidence_factor(bn, name, value, factors[name])

    eliminate = [name for name in bn.names if name != query and name not in evidence]
    logger.debug(f"Variables to eliminate: {eliminate}")

    for variable in eliminate:
        relevant = [k for k, f in factors.items() if variable in f.variables or variable in f.parents]
        if not relevant:
            continue
        combined = reduce(multiply_factors, [factors[k] for k in relevant])
        reduced = marginalize(combined, variable)
        for k in relevant:
            del factors[k]
        if reduced.variables:
            factors[reduced.variables[0]] = reduced

    if not factors:
        return 1.0

    result = reduce(multiply_factors, list(factors.values())).distribution
    family = family_of(result)
    if family == NORMAL:
        return float(result.pdf(result.mean()))
    if family == CATEGORICAL:
        return float(category_probabilities(result)[0])
    raise UnsupportedFamilyError(f"cannot report a marginal for family `{family}`")
