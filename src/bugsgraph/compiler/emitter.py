"""
Graph Emitter

Converts a fully resolved CompilerState into the flat node mapping handed to
a downstream model runtime: name -> (default value, generator, kind).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from ..passes.base import BasePass
from ..passes.structural import StructuralResolutionPass
from ..shared.nodes import Block, Literal
from ..symbolic.evaluator import resolve
from ..symbolic.state import CompilerState
from ..symbolic.values import SymbolicValue, is_number
from ..utils.config import DEFAULT_NODE_VALUE
from .codegen import CompiledFunction, compile_expression

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    LOGICAL = "logical"
    STOCHASTIC = "stochastic"
    OBSERVATION = "observation"


@dataclass(frozen=True)
class EmittedNode:
    """
    One node of the compiled graph.

    ``generator`` is a pure function of the node's parents: the node value for
    logical nodes, a ``scipy.stats`` distribution for stochastic nodes and
    observations.
    """
    default_value: float
    generator: CompiledFunction
    kind: NodeKind

    @property
    def parents(self) -> Tuple[str, ...]:
        return self.generator.arguments


def _default_value(symbol: SymbolicValue, state: CompilerState) -> Tuple[float, bool]:
    value = resolve(symbol, state)
    if is_number(value):
        return float(value), True
    return DEFAULT_NODE_VALUE, False


def emit_graph(state: CompilerState) -> Dict[str, EmittedNode]:
    """
    Emit one node per data value, logical rule and stochastic rule.

    Data values without a stochastic rule become constant logical nodes; a
    stochastic rule whose variable resolves to a number is an observation.
    """
    nodes: Dict[str, EmittedNode] = {}

    for symbol, value in state.data.items():
        if symbol in state.stochastic_rules:
            continue
        nodes[symbol.name] = EmittedNode(float(value), compile_expression(Literal(value)), NodeKind.LOGICAL)

    for symbol, rhs in state.logical_rules.items():
        default, _ = _default_value(symbol, state)
        nodes[symbol.name] = EmittedNode(default, compile_expression(rhs), NodeKind.LOGICAL)

    for symbol, rule in state.stochastic_rules.items():
        default, observed = _default_value(symbol, state)
        kind = NodeKind.OBSERVATION if observed else NodeKind.STOCHASTIC
        nodes[symbol.name] = EmittedNode(default, rule.generator, kind)

    logger.debug(
        f"Emitted {len(nodes)} node(s): "
        + ", ".join(f"{sum(1 for n in nodes.values() if n.kind is kind)} {kind.value}" for kind in NodeKind)
    )
    return nodes


class GraphEmissionPass(BasePass):
    """Stores the emitted node mapping on the state; the tree passes through unchanged."""
    requires = [StructuralResolutionPass]

    def run(self, program: Block, state: CompilerState) -> Block:
        state.set_analysis(GraphEmissionPass, emit_graph(state))
        return program
