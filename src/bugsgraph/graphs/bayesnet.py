"""
Bayesian Network

A directed acyclic graph over named vertices with parallel attribute lists.
Vertex ids are 0-based positions in ``names`` and are stable for the lifetime
of the network. Edges point from parent to child.

Conditioning has copy-on-write semantics: ``condition`` and ``decondition``
return a network that owns fresh ``is_observed`` and ``values`` collections
while sharing the graph, distributions and functions with the original.
"""

import copy
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import networkx as nx
import numpy as np

from ..shared.errors import (
    CapacityError, DuplicateVertexError, NetworkError, NotObservedError,
    NotStochasticError, UnknownVertexError,
)
from ..symbolic.values import to_python_number

logger = logging.getLogger(__name__)


class BayesianNetwork:
    """
    Graph plus per-vertex attributes.

    Stochastic vertices carry a distribution object and, optionally, a kernel:
    a function of the parents' values (passed by parent name) that returns the
    distribution for those values. Deterministic vertices carry a function of
    the parents' values, called the same way.
    """

    def __init__(self, capacity: Optional[int] = None):
        self.graph = nx.DiGraph()
        self.names: List[str] = []
        self.names_to_ids: Dict[str, int] = {}
        self.values: Dict[str, Any] = {}
        self.distributions: List[Any] = []
        self.kernels: List[Optional[Callable[..., Any]]] = []
        self.deterministic_functions: List[Callable[..., Any]] = []
        self.stochastic_ids: List[int] = []
        self.deterministic_ids: List[int] = []
        self.is_stochastic: List[bool] = []
        self.is_observed: List[bool] = []
        self.capacity = capacity

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: str) -> bool:
        return name in self.names_to_ids

    # construction

    def add_stochastic_vertex(
        self,
        name: str,
        distribution: Any,
        is_observed: bool = False,
        value: Any = None,
        kernel: Optional[Callable[..., Any]] = None,
    ) -> int:
        """Add a stochastic vertex; returns its id."""
        vertex = self._add_vertex(name, stochastic=True)
        self.distributions.append(distribution)
        self.kernels.append(kernel)
        self.stochastic_ids.append(vertex)
        self.is_observed[vertex] = is_observed
        if is_observed and value is not None:
            self.values[name] = value
        return vertex

    def add_deterministic_vertex(self, name: str, function: Callable[..., Any]) -> int:
        """Add a deterministic vertex; returns its id."""
        vertex = self._add_vertex(name, stochastic=False)
        self.deterministic_functions.append(function)
        self.deterministic_ids.append(vertex)
        return vertex

    def _add_vertex(self, name: str, stochastic: bool) -> int:
        if name in self.names_to_ids:
            raise DuplicateVertexError(f"vertex `{name}` already exists")
        if self.capacity is not None and len(self.names) >= self.capacity:
            raise CapacityError(f"cannot add `{name}`: network is at its capacity of {self.capacity} vertices")
        vertex = len(self.names)
        self.graph.add_node(vertex, name=name)
        self.names.append(name)
        self.names_to_ids[name] = vertex
        self.is_stochastic.append(stochastic)
        self.is_observed.append(False)
        return vertex

    def add_edge(self, parent: str, child: str) -> bool:
        """
        Connect ``parent`` -> ``child``. Returns False when the edge already
        exists or is a self-loop; an edge closing a cycle is an error.
        """
        source, target = self.id_of(parent), self.id_of(child)
        if source == target or self.graph.has_edge(source, target):
            return False
        if nx.has_path(self.graph, target, source):
            raise NetworkError(f"edge `{parent}` -> `{child}` would create a cycle")
        self.graph.add_edge(source, target)
        return True

    # lookup

    def id_of(self, name: str) -> int:
        vertex = self.names_to_ids.get(name)
        if vertex is None:
            raise UnknownVertexError(f"no vertex named `{name}`")
        return vertex

    def parents(self, name: str) -> List[str]:
        return [self.names[p] for p in sorted(self.graph.predecessors(self.id_of(name)))]

    def children(self, name: str) -> List[str]:
        return [self.names[c] for c in sorted(self.graph.successors(self.id_of(name)))]

    def distribution_of(self, name: str) -> Any:
        vertex = self.id_of(name)
        if not self.is_stochastic[vertex]:
            raise NotStochasticError(f"`{name}` is deterministic and has no distribution")
        return self.distributions[self.stochastic_ids.index(vertex)]

    def function_of(self, name: str) -> Callable[..., Any]:
        vertex = self.id_of(name)
        if self.is_stochastic[vertex]:
            raise NetworkError(f"`{name}` is stochastic and has no deterministic function")
        return self.deterministic_functions[self.deterministic_ids.index(vertex)]

    def observed_names(self) -> List[str]:
        return [name for name, observed in zip(self.names, self.is_observed) if observed]

    # conditioning

    def _fork(self) -> "BayesianNetwork":
        forked = copy.copy(self)
        forked.is_observed = list(self.is_observed)
        forked.values = dict(self.values)
        return forked

    def condition(self, observations: Mapping[str, Any]) -> "BayesianNetwork":
        """A new network with ``observations`` observed; this one is unchanged."""
        return self._fork().condition_inplace(observations)

    def condition_inplace(self, observations: Mapping[str, Any]) -> "BayesianNetwork":
        for name, value in observations.items():
            vertex = self.id_of(name)
            if not self.is_stochastic[vertex]:
                raise NotStochasticError(f"variable `{name}` is not stochastic, cannot condition on it")
            if self.is_observed[vertex]:
                logger.warning(f"Variable {name} is already observed, overwriting its value")
            else:
                self.is_observed[vertex] = True
            self.values[name] = value
        return self

    def decondition(self, names: Optional[Iterable[str]] = None) -> "BayesianNetwork":
        """A new network with ``names`` (default: every observed vertex) no longer observed."""
        return self._fork().decondition_inplace(names)

    def decondition_inplace(self, names: Optional[Iterable[str]] = None) -> "BayesianNetwork":
        names = self.observed_names() if names is None else list(names)
        for name in names:
            vertex = self.id_of(name)
            if not self.is_stochastic[vertex]:
                raise NotStochasticError(f"variable `{name}` is not stochastic, cannot decondition on it")
            if not self.is_observed[vertex]:
                raise NotObservedError(f"variable `{name}` is not observed, cannot decondition on it")
            self.is_observed[vertex] = False
            self.values.pop(name, None)
        return self

    # algorithms

    def ancestral_sampling(self, rng: Optional[np.random.Generator] = None) -> Dict[str, Any]:
        """
        One joint sample, drawn in topological order.

        Observed vertices keep their values; latent stochastic vertices draw
        from their kernel evaluated at the sampled parents (or from their
        fixed distribution when they have no kernel); deterministic vertices
        apply their function to the sampled parents.
        """
        rng = np.random.default_rng() if rng is None else rng
        samples: Dict[str, Any] = {}
        for vertex in nx.topological_sort(self.graph):
            name = self.names[vertex]
            parents = {self.names[p]: samples[self.names[p]] for p in self.graph.predecessors(vertex)}
            if not self.is_stochastic[vertex]:
                function = self.deterministic_functions[self.deterministic_ids.index(vertex)]
                samples[name] = to_python_number(function(**parents))
            elif self.is_observed[vertex] and name in self.values:
                samples[name] = self.values[name]
            else:
                position = self.stochastic_ids.index(vertex)
                kernel = self.kernels[position]
                distribution = kernel(**parents) if kernel is not None else self.distributions[position]
                samples[name] = to_python_number(distribution.rvs(random_state=rng))
        return samples

    def is_conditionally_independent(self, x: str, y: str, given: Optional[Iterable[str]] = None) -> bool:
        """
        d-separation of ``x`` and ``y`` given ``given`` (default: the observed
        vertices), decided on the moralized ancestral graph.
        """
        source, target = self.id_of(x), self.id_of(y)
        if source == target:
            raise NetworkError(f"cannot test `{x}` for independence from itself")
        if given is None:
            conditioned = {i for i, observed in enumerate(self.is_observed) if observed}
        else:
            conditioned = {self.id_of(name) for name in given}
        if source in conditioned or target in conditioned:
            raise NetworkError("the tested variables must not be in the conditioning set")

        relevant = {source, target} | conditioned
        ancestral = set(relevant)
        for vertex in relevant:
            ancestral |= nx.ancestors(self.graph, vertex)
        moral = nx.moral_graph(self.graph.subgraph(ancestral))
        moral.remove_nodes_from(conditioned)
        return not nx.has_path(moral, source, target)
