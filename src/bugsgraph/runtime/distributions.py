"""
BUGS distributions as ``scipy.stats`` objects.

Each factory takes its arguments in the BUGS parameterization (normal and
friends by precision, gamma by rate, binomial as ``dbin(p, n)``) and returns
a frozen scipy distribution. The set of names is closed: a stochastic
statement whose right-hand side names anything else does not compile.
"""

import inspect
from typing import Any, Callable, Dict

import numpy as np
from scipy import stats

NORMAL = "norm"
CATEGORICAL = "categorical"


def _scale_from_precision(tau):
    return 1.0 / np.sqrt(tau)


def dnorm(mu, tau):
    return stats.norm(loc=mu, scale=_scale_from_precision(tau))


def dlnorm(mu, tau):
    return stats.lognorm(s=_scale_from_precision(tau), scale=np.exp(mu))


def dt(mu, tau, k):
    return stats.t(df=k, loc=mu, scale=_scale_from_precision(tau))


def dlogis(mu, tau):
    return stats.logistic(loc=mu, scale=1.0 / tau)


def ddexp(mu, tau):
    return stats.laplace(loc=mu, scale=1.0 / tau)


def dgamma(shape, rate):
    return stats.gamma(a=shape, scale=1.0 / rate)


def dexp(rate):
    return stats.expon(scale=1.0 / rate)


def dbeta(a, b):
    return stats.beta(a, b)


def dunif(lower, upper):
    return stats.uniform(loc=lower, scale=upper - lower)


def dweib(v, lam):
    # BUGS density: v * lam * x^(v - 1) * exp(-lam * x^v)
    return stats.weibull_min(c=v, scale=lam ** (-1.0 / v))


def dchisqr(k):
    return stats.chi2(df=k)


def dpois(lam):
    return stats.poisson(mu=lam)


def dbern(p):
    return stats.bernoulli(p)


def dbin(p, n):
    return stats.binom(n=n, p=p)


def dnegbin(p, r):
    return stats.nbinom(n=r, p=p)


def dgeom(p):
    return stats.geom(p)


def dcat(p):
    """Categorical over 1..K with probabilities proportional to ``p``."""
    return categorical(p)


def categorical(p) -> stats.rv_discrete:
    p = np.asarray(p, dtype=float).ravel()
    p = p / p.sum()
    return stats.rv_discrete(name=CATEGORICAL, values=(np.arange(1, len(p) + 1), p))


DISTRIBUTIONS: Dict[str, Callable[..., Any]] = {
    "dnorm": dnorm,
    "dlnorm": dlnorm,
    "dt": dt,
    "dlogis": dlogis,
    "ddexp": ddexp,
    "dgamma": dgamma,
    "dexp": dexp,
    "dbeta": dbeta,
    "dunif": dunif,
    "dweib": dweib,
    "dchisqr": dchisqr,
    "dpois": dpois,
    "dbern": dbern,
    "dbin": dbin,
    "dnegbin": dnegbin,
    "dgeom": dgeom,
    "dcat": dcat,
}


def is_distribution(name: str) -> bool:
    return name in DISTRIBUTIONS


def arity(name: str) -> int:
    """Number of parameters the named distribution takes."""
    return len(inspect.signature(DISTRIBUTIONS[name]).parameters)


def family_of(dist: Any) -> str:
    """scipy family name of a distribution object (``"norm"``, ``"categorical"``, ...)."""
    family = getattr(getattr(dist, "dist", None), "name", None)
    if family is not None:
        return family
    return getattr(dist, "name", type(dist).__name__)


def is_discrete(dist: Any) -> bool:
    return isinstance(getattr(dist, "dist", dist), stats.rv_discrete)


def category_probabilities(dist: Any) -> np.ndarray:
    """Probabilities of categories 1..K of a categorical distribution."""
    lower, upper = dist.support()
    return np.asarray(dist.pmf(np.arange(int(lower), int(upper) + 1)), dtype=float)
