"""Build a BayesianNetwork from the node mapping the compiler emits."""

import logging
from typing import Any, Dict, Mapping, Optional

import networkx as nx
import numpy as np

from ..compiler.emitter import EmittedNode, NodeKind
from ..shared.errors import NetworkError
from .bayesnet import BayesianNetwork

logger = logging.getLogger(__name__)


def build_network(nodes: Mapping[str, EmittedNode], capacity: Optional[int] = None) -> BayesianNetwork:
    """
    One vertex per emitted node, one edge per parent reference.

    Vertices are added in dependency order. Each stochastic vertex gets the
    distribution its generator returns at the parents' current values
    (logical nodes evaluated, other nodes at their default values) and keeps
    the generator as its kernel. Observations are added observed, with their
    default value.

    Parent values are numpy scalars and floating-point errors are ignored, so
    ``1 / tau`` at a default of zero evaluates to ``inf``.
    """
    dependencies = nx.DiGraph()
    for name, node in nodes.items():
        dependencies.add_node(name)
        for parent in node.parents:
            if parent not in nodes:
                raise NetworkError(f"`{parent}` is used by `{name}` but has no node")
            dependencies.add_edge(parent, name)
    if not nx.is_directed_acyclic_graph(dependencies):
        raise NetworkError(f"emitted nodes form a cycle: {nx.find_cycle(dependencies)}")

    bn = BayesianNetwork(capacity)
    current: Dict[str, Any] = {}
    for name in nx.topological_sort(dependencies):
        node = nodes[name]
        parents = {parent: current[parent] for parent in node.parents}
        if node.kind is NodeKind.LOGICAL:
            with np.errstate(all="ignore"):
                current[name] = np.asarray(node.generator(**parents), dtype=np.float64)
            bn.add_deterministic_vertex(name, node.generator)
        else:
            observed = node.kind is NodeKind.OBSERVATION
            current[name] = np.float64(node.default_value)
            with np.errstate(all="ignore"):
                distribution = node.generator(**parents)
            bn.add_stochastic_vertex(
                name,
                distribution,
                is_observed=observed,
                value=node.default_value if observed else None,
                kernel=node.generator,
            )
        for parent in node.parents:
            bn.add_edge(parent, name)

    logger.debug(f"Built network with {len(bn)} vertices and {bn.graph.number_of_edges()} edges")
    return bn
