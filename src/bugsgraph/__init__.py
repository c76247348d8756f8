"""
bugsgraph: compile BUGS-style model trees into graphs of stochastic and
logical nodes, and run exact inference on Bayesian networks.
"""

from .compiler.driver import CompilationResult, CompilerDriver, compile_model
from .compiler.emitter import EmittedNode, NodeKind
from .compiler.serialization import deserialize_tree, load_model, serialize_tree
from .graphs import BayesianNetwork, build_network, variable_elimination

__version__ = "0.1.0"

__all__ = [
    "CompilationResult", "CompilerDriver", "compile_model",
    "EmittedNode", "NodeKind",
    "deserialize_tree", "load_model", "serialize_tree",
    "BayesianNetwork", "build_network", "variable_elimination",
]
