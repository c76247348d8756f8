"""
Graphical models over compiled nodes: the Bayesian network, factors and
variable elimination.
"""

from .bayesnet import BayesianNetwork
from .builder import build_network
from .inference import Factor, create_factor, marginalize, multiply_factors, variable_elimination

__all__ = [
    "BayesianNetwork", "build_network",
    "Factor", "create_factor", "marginalize", "multiply_factors", "variable_elimination",
]
