"""
Structural Resolution Pass

Turns a program with loops and conditionals into flat definitions:

1. unroll every loop whose bounds resolve to integers,
2. splice or drop every conditional whose guard resolves to a boolean,
3. absorb flat ``=`` statements into the logical rules,

repeating while any step makes progress, since a new rule can decide a loop
bound or a guard. Stochastic statements are absorbed once the fixpoint is
reached. Anything still structured afterwards is an error.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..compiler.codegen import compile_expression
from ..runtime.distributions import arity, is_distribution
from ..shared.ast_visitor import substitute
from ..shared.errors import ResolutionError, StructuralError, UnresolvedIndexError
from ..shared.nodes import (
    Assign, Block, Call, For, If, Index, Literal, Name, Statement,
    StochasticAssign, is_flat,
)
from ..symbolic.evaluator import lower_expression, resolve, to_symbolic
from ..symbolic.state import CompilerState, StochasticRule
from ..symbolic.values import SymbolicValue, is_number
from .base import BasePass
from .special_functions import SpecialFunctionPass

logger = logging.getLogger(__name__)


class StructuralResolutionPass(BasePass):
    requires = [SpecialFunctionPass]

    def run(self, program: Block, state: CompilerState) -> Block:
        resolver = StructuralResolver(state)
        program = resolver.resolve(program)
        logger.debug(
            f"Structural resolution: {resolver.loops_unrolled} loop(s) unrolled, "
            f"{resolver.conditionals_resolved} conditional(s) resolved, "
            f"{resolver.logical_added} logical and {resolver.stochastic_added} stochastic rule(s) added"
        )
        return program


class StructuralResolver:
    """
    Fixpoint driver over one top-level statement list.

    Absorbed statements leave the working list and are collected, in order,
    into the flat program the resolver returns. Flat statements whose indices
    do not resolve yet stay in the working list and are retried while the
    fixpoint makes progress.
    """

    def __init__(self, state: CompilerState):
        self.state = state
        self.absorbed: List[Statement] = []
        self._pending: Dict[Statement, UnresolvedIndexError] = {}
        self.loops_unrolled = 0
        self.conditionals_resolved = 0
        self.logical_added = 0
        self.stochastic_added = 0

    def resolve(self, program: Block) -> Block:
        statements = list(program.statements)
        while (
            self.unroll_for_loops(statements)
            or self.resolve_conditionals(statements)
            or self.add_logical_rules(statements)
        ):
            pass
        self.add_stochastic_rules(statements)

        for stmt in statements:
            if not is_flat(stmt):
                raise ResolutionError(
                    "unresolvable loop bounds or conditions",
                    stmt.location, self.state.source_of(stmt.location),
                    note=f"first unresolved statement: `{_headline(stmt)}`",
                )
        for stmt in statements:
            error = self._pending.get(stmt)
            if error is not None:
                raise error
        return replace(program, statements=tuple(self.absorbed))

    # 1. loops

    def unroll_for_loops(self, statements: List[Statement]) -> bool:
        """Unroll every loop with resolvable bounds, one at a time, in place."""
        unrolled = False
        position = 0
        while position < len(statements):
            stmt = statements[position]
            if isinstance(stmt, For):
                bounds = self._loop_bounds(stmt)
                if bounds is not None:
                    statements[position:position + 1] = unroll_loop(stmt, *bounds)
                    self.loops_unrolled += 1
                    unrolled = True
                    # the spliced body may start with another loop
                    continue
            position += 1
        return unrolled

    def _loop_bounds(self, stmt: For) -> Optional[Tuple[int, int]]:
        try:
            lower = resolve(stmt.lower, self.state)
            upper = resolve(stmt.upper, self.state)
        except UnresolvedIndexError:
            return None
        if not (_is_real(lower) and _is_real(upper)):
            return None
        if not (float(lower).is_integer() and float(upper).is_integer()):
            raise ResolutionError(
                f"loop bounds need to be integers, got {lower}:{upper}",
                stmt.location, self.state.source_of(stmt.location),
            )
        return int(lower), int(upper)

    # 2. conditionals

    def resolve_conditionals(self, statements: List[Statement]) -> bool:
        """Splice the body of each true conditional in place; drop false ones."""
        resolved = False
        position = 0
        while position < len(statements):
            stmt = statements[position]
            if isinstance(stmt, If):
                guard = self._guard(stmt)
                if guard is not None:
                    statements[position:position + 1] = list(stmt.body.statements) if guard else []
                    self.conditionals_resolved += 1
                    resolved = True
                    continue
            position += 1
        return resolved

    def _guard(self, stmt: If) -> Optional[bool]:
        try:
            value = resolve(stmt.condition, self.state)
        except UnresolvedIndexError:
            return None
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        if is_number(value):
            raise ResolutionError(
                f"condition `{stmt.condition}` resolves to {value}, not to a boolean",
                stmt.location, self.state.source_of(stmt.location),
            )
        return None

    # 3. rules

    def add_logical_rules(self, statements: List[Statement]) -> bool:
        """Absorb every flat ``=`` statement whose indices resolve."""
        self._register_targets(statements)
        added = False
        remaining: List[Statement] = []
        for stmt in statements:
            if not isinstance(stmt, Assign):
                remaining.append(stmt)
                continue
            try:
                lhs = self._lhs_symbol(stmt)
                rhs = lower_expression(stmt.rhs, self.state)
            except UnresolvedIndexError as e:
                self._pending[stmt] = e
                remaining.append(stmt)
                continue
            self._pending.pop(stmt, None)
            if self.state.add_logical_rule(lhs, rhs, stmt.location):
                self.logical_added += 1
                added = True
            self.absorbed.append(stmt)
        statements[:] = remaining
        return added

    def add_stochastic_rules(self, statements: List[Statement]) -> bool:
        """Absorb every flat ``~`` statement; the distribution must be a known one."""
        added = False
        remaining: List[Statement] = []
        for stmt in statements:
            if not isinstance(stmt, StochasticAssign):
                remaining.append(stmt)
                continue
            self._check_distribution(stmt)
            try:
                lhs = self._lhs_symbol(stmt)
                rhs = lower_expression(stmt.rhs, self.state)
            except UnresolvedIndexError as e:
                self._pending[stmt] = e
                remaining.append(stmt)
                continue
            self._pending.pop(stmt, None)
            rule = StochasticRule(rhs, compile_expression(rhs))
            if self.state.add_stochastic_rule(lhs, rule, stmt.location):
                self.stochastic_added += 1
                added = True
            self.absorbed.append(stmt)
        statements[:] = remaining
        return added

    def _register_targets(self, statements: List[Statement]) -> None:
        """Make every left-hand cell known to the registry before right-hand slices are lowered."""
        for stmt in statements:
            if is_flat(stmt) and isinstance(stmt.lhs, Index):
                try:
                    to_symbolic(stmt.lhs, self.state)
                except UnresolvedIndexError:
                    continue

    def _check_distribution(self, stmt: StochasticAssign) -> None:
        rhs = stmt.rhs
        if not isinstance(rhs, Call) or not is_distribution(rhs.func):
            name = rhs.func if isinstance(rhs, Call) else str(rhs)
            raise StructuralError(
                f"`{name}` is not a recognized distribution",
                stmt.location, self.state.source_of(stmt.location),
            )
        expected = arity(rhs.func)
        if len(rhs.args) != expected:
            raise StructuralError(
                f"`{rhs.func}` takes {expected} parameter(s), got {len(rhs.args)}",
                stmt.location, self.state.source_of(stmt.location),
            )

    def _lhs_symbol(self, stmt) -> SymbolicValue:
        if not isinstance(stmt.lhs, (Name, Index)):
            raise StructuralError(
                f"left-hand side `{stmt.lhs}` must be a scalar or a single array cell",
                stmt.location, self.state.source_of(stmt.location),
            )
        target = to_symbolic(stmt.lhs, self.state)
        is_array = isinstance(stmt.lhs, Name) and stmt.lhs.name in self.state.registry
        if is_array or not isinstance(target, SymbolicValue):
            raise StructuralError(
                f"left-hand side `{stmt.lhs}` must be a scalar or a single array cell, not a slice",
                stmt.location, self.state.source_of(stmt.location),
            )
        return target


def unroll_loop(stmt: For, lower: int, upper: int) -> List[Statement]:
    """The loop body once per integer in ``lower..upper``, ascending, with the loop variable substituted."""
    unrolled: List[Statement] = []
    for i in range(lower, upper + 1):
        body = substitute(stmt.body, {stmt.var: Literal(i, stmt.location)})
        unrolled.extend(body.statements)
    return unrolled


def _is_real(value) -> bool:
    return is_number(value) and not isinstance(value, (bool, np.bool_))


def _headline(stmt: Statement) -> str:
    return str(stmt).split("\n", 1)[0].strip()
