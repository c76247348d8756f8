"""Tests for partial evaluation: substitution, folding and index resolution."""

import pytest

from bugsgraph.shared.errors import ResolutionError, StructuralError, UnresolvedIndexError
from bugsgraph.shared.nodes import Call, Index, Literal, Name
from bugsgraph.symbolic.arrays import FULL_RANGE
from bugsgraph.symbolic.evaluator import (
    ConstantFolder, lower_expression, resolve, resolve_index, to_symbolic,
)
from bugsgraph.symbolic.values import SymbolicValue
from tests.test_utils import add, call, colon, div, mul, ref, rng


class TestConstantFolder:

    def test_folds_nested_arithmetic(self):
        folder = ConstantFolder()
        assert add(1, mul(2, 3)).accept(folder) == Literal(7)
        assert folder.fold_count == 2

    def test_leaves_unknowns(self):
        expr = add("a", mul(2, 3))
        assert expr.accept(ConstantFolder()) == add("a", 6)

    def test_division_by_zero_is_not_folded(self):
        assert isinstance(div(1, 0).accept(ConstantFolder()), Call)

    def test_complex_power_is_not_folded(self):
        folder = ConstantFolder()
        expr = call("^", -8, 1 / 3)
        assert expr.accept(folder) == expr
        assert folder.fold_count == 0

    def test_distributions_are_not_folded(self):
        expr = call("dnorm", 0, 1)
        assert expr.accept(ConstantFolder()) == expr


class TestResolve:

    def test_numbers_pass_through(self, state):
        assert resolve(3, state) == 3
        assert resolve(2.5, state) == 2.5

    def test_data_binding(self, seeded_state):
        state = seeded_state({"N": 3})
        assert resolve(Name("N"), state) == 3
        assert resolve(add("N", 1), state) == 4

    def test_chain_of_logical_rules(self, state):
        state.add_logical_rule(SymbolicValue("a"), Literal(2))
        state.add_logical_rule(SymbolicValue("b"), mul("a", 3))
        assert resolve(Name("b"), state) == 6

    def test_residual_expression(self, state):
        state.add_logical_rule(SymbolicValue("c"), add("z", 1))
        assert resolve(Name("c"), state) == add("z", 1)

    def test_unbound_name_is_symbolic(self, state):
        assert resolve(Name("q"), state) == SymbolicValue("q")

    def test_self_reference_terminates(self, state):
        state.add_logical_rule(SymbolicValue("x"), add("x", 1))
        assert not isinstance(resolve(Name("x"), state), (int, float))

    def test_mutual_reference_terminates(self, state):
        state.add_logical_rule(SymbolicValue("a"), Name("b"))
        state.add_logical_rule(SymbolicValue("b"), Name("a"))
        assert isinstance(resolve(Name("a"), state), SymbolicValue)

    @pytest.mark.parametrize("expr, expected", [
        (call("exp", 0), 1.0),
        (call("sqrt", 4), 2.0),
        (call("logit", 0.5), 0.0),
        (call("step", 0), 1),
        (call("max", 1, 5, 3), 5),
    ])
    def test_folds_bugs_functions(self, state, expr, expected):
        assert resolve(expr, state) == pytest.approx(expected)

    def test_comparison_folds_to_bool(self, state):
        assert resolve(call(">", 2, 1), state) is True

    def test_complex_power_stays_an_expression(self, state):
        assert resolve(call("^", -8, 1 / 3), state) == call("^", -8, 1 / 3)

    def test_slice_of_data(self, seeded_state):
        state = seeded_state({"x": [1.0, 2.0, 3.0]})
        assert resolve(call("sum", ref("x", colon())), state) == 6.0
        assert resolve(call("sum", ref("x", rng(2, 3))), state) == 5.0

    def test_slice_with_missing_cell_does_not_fold(self, seeded_state):
        state = seeded_state({"x": [1.0, None, 3.0]})
        value = resolve(call("sum", ref("x", colon())), state)
        assert not isinstance(value, (int, float))

    def test_data_bound_index(self, seeded_state):
        state = seeded_state({"idx": [2, 1]})
        assert resolve(ref("v", ref("idx", 1)), state) == SymbolicValue("v[2]")


class TestIndexResolution:

    def test_unbound_index_is_deferred(self, state):
        with pytest.raises(UnresolvedIndexError, match="does not resolve"):
            resolve(ref("x", "k"), state)

    def test_non_integer_index(self, seeded_state):
        state = seeded_state({"k": 1.5})
        with pytest.raises(ResolutionError, match="non-integer"):
            resolve(ref("x", "k"), state)

    def test_index_kinds(self, seeded_state):
        state = seeded_state({"n": 4})
        assert resolve_index(colon(), state) is FULL_RANGE
        assert resolve_index(rng(2, "n"), state) == range(2, 5)
        assert resolve_index(add("n", 1), state) == 5

    def test_range_with_step(self, state):
        with pytest.raises(StructuralError):
            resolve_index(rng(1, 5, 2), state)

    def test_lowering_replaces_cells(self, state):
        assert lower_expression(add(ref("mu", 1), "a"), state) == add(Name("mu[1]"), "a")
        assert state.registry.shape("mu") == (1,)

    def test_general_expression_to_symbol(self, state):
        with pytest.raises(StructuralError, match="general expression"):
            to_symbolic(add("a", 1), state)

    def test_nested_indexing(self, state):
        nested = Index(ref("x", 1), (Literal(1),))
        with pytest.raises(StructuralError, match="nested indexing"):
            to_symbolic(nested, state)

    def test_bound_cell_survives_growth(self, state):
        cell = to_symbolic(ref("x", 1), state)
        state.add_logical_rule(cell, add("a", 1))
        before = resolve(ref("x", 1), state)
        to_symbolic(ref("x", 5), state)
        assert state.registry.shape("x") == (5,)
        assert resolve(ref("x", 1), state) == before == add("a", 1)
