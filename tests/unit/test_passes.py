"""Tests for the tree passes: validation, link and special-function rewrites, structural resolution."""

import pytest

from bugsgraph.passes.base import BasePass, PassManager
from bugsgraph.passes.link_functions import LinkFunctionPass
from bugsgraph.passes.special_functions import SpecialFunctionPass
from bugsgraph.passes.structural import StructuralResolver, unroll_loop
from bugsgraph.passes.validation import SyntaxValidationPass
from bugsgraph.shared.errors import (
    RedefinitionError, ResolutionError, SpecialFunctionError, StructuralError,
    UnresolvedIndexError,
)
from bugsgraph.shared.nodes import Index, Name
from bugsgraph.symbolic.values import SymbolicValue
from tests.test_utils import (
    add, assign, call, colon, compile_err, compile_ok, cond, loop, model, mul,
    ref, rng, tilde,
)


class TestPassManager:

    def test_runs_in_dependency_order(self, state):
        order = []

        class First(BasePass):
            def run(self, program, state):
                order.append("first")
                return program

        class Second(BasePass):
            requires = [First]

            def run(self, program, state):
                order.append("second")
                return program

        manager = PassManager()
        manager.register_pass(Second)
        manager.register_pass(First)
        manager.run_all(model(), state)
        assert order == ["first", "second"]


class TestSyntaxValidation:

    @pytest.mark.parametrize("program, message", [
        (model(assign(Index(Name("x"), ()), 1)), "implicit indexing"),
        (model(assign("a", Index(ref("x", 1), (ref("y", 1),)))), "nested indexing"),
        (model(assign("a", call("sum", ref("x", rng(1, 5, 2))))), "range with step"),
        (model(tilde(call("log", "x"), call("dnorm", 0, 1))), "link function `log`"),
        (model(assign("a", call("foo", 1))), "unknown function `foo`"),
        (model(tilde("x", call("dfoo", 1))), "`dfoo` is not a recognized distribution"),
        (model(tilde("x", 1)), "must be a distribution"),
        (model(assign(add("a", "b"), 1)), "left-hand side can only be"),
    ])
    def test_rejects(self, compiler, program, message):
        error = compile_err(compiler, program)
        assert isinstance(error, StructuralError)
        assert message in error.message

    def test_implicit_indexing_becomes_full_range(self, state):
        program = model(assign("s", call("sum", Index(Name("x"), ()))))
        expected = model(assign("s", call("sum", ref("x", colon()))))
        assert SyntaxValidationPass().run(program, state) == expected


class TestLinkFunctions:

    @pytest.mark.parametrize("link, inverse", [
        ("log", "exp"), ("logit", "logistic"), ("cloglog", "cexpexp"), ("probit", "phi"),
    ])
    def test_rewrites_to_inverse(self, state, link, inverse):
        program = model(assign(call(link, "p"), mul(2, "z")))
        assert LinkFunctionPass().run(program, state) == model(assign("p", call(inverse, mul(2, "z"))))

    def test_rewrites_inside_loops(self, state):
        program = model(loop("i", 1, 2, assign(call("log", ref("s", "i")), "i")))
        expected = model(loop("i", 1, 2, assign(ref("s", "i"), call("exp", "i"))))
        assert LinkFunctionPass().run(program, state) == expected

    def test_unknown_link(self, compiler):
        error = compile_err(compiler, model(assign(call("sqrt", "x"), 1)))
        assert "`sqrt` is not a recognized link function" in error.message
        assert "log" in error.note_text


class TestSpecialFunctions:

    def test_cumulative_and_density(self, state):
        program = model(
            tilde("y", call("dnorm", "mu", 1)),
            assign("c", call("cumulative", "y", 0.5)),
            assign("d", call("density", "y", 0.5)),
        )
        rewritten = SpecialFunctionPass().run(program, state)
        assert rewritten.statements[1] == assign("c", call("cdf", call("dnorm", "mu", 1), 0.5))
        assert rewritten.statements[2] == assign("d", call("pdf", call("dnorm", "mu", 1), 0.5))

    def test_deviance(self, state):
        program = model(tilde("y", call("dnorm", "mu", 1)), assign("d", call("deviance", "y", 2)))
        rewritten = SpecialFunctionPass().run(program, state)
        assert rewritten.statements[1] == assign("d", mul(-2, call("logpdf", call("dnorm", "mu", 1), 2)))

    def test_no_stochastic_target(self, state):
        with pytest.raises(SpecialFunctionError, match="can't find a stochastic assignment"):
            SpecialFunctionPass().run(model(assign("c", call("cumulative", "y", 0))), state)

    def test_two_stochastic_targets(self, state):
        program = model(
            cond(True, tilde("y", call("dnorm", 0, 1))),
            cond(False, tilde("y", call("dnorm", 1, 1))),
            assign("c", call("density", "y", 0)),
        )
        with pytest.raises(SpecialFunctionError, match="2 stochastic assignments"):
            SpecialFunctionPass().run(program, state)

    def test_match_is_syntactic_before_unrolling(self, state):
        program = model(
            loop("i", 1, 2, tilde(ref("y", "i"), call("dnorm", 0, 1))),
            assign("c", call("density", ref("y", 1), 0)),
        )
        with pytest.raises(SpecialFunctionError):
            SpecialFunctionPass().run(program, state)

    def test_wrong_arity(self, state):
        program = model(tilde("y", call("dnorm", 0, 1)), assign("c", call("cumulative", "y")))
        with pytest.raises(StructuralError, match="takes a variable and a value"):
            SpecialFunctionPass().run(program, state)


class TestLoopUnrolling:

    def test_unroll_substitutes_loop_variable(self):
        stmt = loop("i", 2, 3, assign(ref("x", "i"), mul("i", 2)))
        assert unroll_loop(stmt, 2, 3) == [assign(ref("x", 2), mul(2, 2)), assign(ref("x", 3), mul(3, 2))]

    def test_empty_range(self):
        assert unroll_loop(loop("i", 3, 1, assign("x", 1)), 3, 1) == []

    def test_unrolled_loop_equals_written_out_statements(self, state, seeded_state):
        looped = model(loop("i", 1, 3, assign(ref("x", "i"), mul("i", 2))))
        written = model(*[assign(ref("x", i), mul(i, 2)) for i in (1, 2, 3)])
        other = seeded_state({})
        StructuralResolver(state).resolve(looped)
        StructuralResolver(other).resolve(written)
        assert state.logical_rules == other.logical_rules

    def test_nested_loops_with_dependent_bounds(self, state):
        program = model(loop("i", 1, 2, loop("j", 1, "i", assign(ref("m", "i", "j"), add("i", "j")))))
        resolver = StructuralResolver(state)
        resolver.resolve(program)
        assert set(state.logical_rules) == {SymbolicValue("m[1,1]"), SymbolicValue("m[2,1]"), SymbolicValue("m[2,2]")}
        assert resolver.loops_unrolled == 3
        assert state.registry.shape("m") == (2, 2)

    def test_bound_from_rule_defined_later(self, state):
        program = model(loop("i", 1, "K", assign(ref("x", "i"), 0)), assign("K", add(1, 1)))
        StructuralResolver(state).resolve(program)
        assert SymbolicValue("x[2]") in state.logical_rules

    def test_non_integer_bounds(self, compiler):
        program = model(loop("i", 1, "N", assign(ref("x", "i"), 0)))
        error = compile_err(compiler, program, {"N": 2.5})
        assert isinstance(error, ResolutionError)
        assert "loop bounds need to be integers" in error.message

    def test_integral_float_bounds(self, compiler):
        result = compile_ok(compiler, model(loop("i", 1, "N", assign(ref("x", "i"), 0))), {"N": 2.0})
        assert "x[2]" in result.nodes


class TestConditionals:

    def test_true_body_is_spliced_false_is_dropped(self, seeded_state):
        state = seeded_state({"N": 2})
        program = model(cond(call(">", "N", 1), assign("a", 1)), cond(call("<", "N", 1), assign("b", 1)))
        resolver = StructuralResolver(state)
        resolver.resolve(program)
        assert SymbolicValue("a") in state.logical_rules
        assert SymbolicValue("b") not in state.logical_rules
        assert resolver.conditionals_resolved == 2

    def test_guard_on_stochastic_variable_is_unresolvable(self, compiler):
        program = model(tilde("z", call("dnorm", 0, 1)), cond(call(">", "z", 0), assign("a", 1)))
        error = compile_err(compiler, program)
        assert isinstance(error, ResolutionError)
        assert "unresolvable loop bounds or conditions" in error.message

    def test_numeric_guard(self, compiler):
        error = compile_err(compiler, model(cond(add(1, 1), assign("a", 1))))
        assert "not to a boolean" in error.message


class TestRuleAbsorption:

    def test_unresolvable_loop(self, compiler):
        error = compile_err(compiler, model(loop("i", 1, "M", assign(ref("x", "i"), 0))))
        assert "unresolvable loop bounds or conditions" in error.message
        assert "for (i in 1:M)" in error.note_text

    def test_redefinition(self, compiler):
        error = compile_err(compiler, model(assign("a", 1), assign("a", 2)))
        assert isinstance(error, RedefinitionError)

    def test_identical_definitions_inside_loop(self, compiler):
        result = compile_ok(compiler, model(loop("i", 1, 2, assign("c", 5))))
        assert result.nodes["c"].default_value == 5.0

    def test_slice_on_left_hand_side(self, compiler):
        error = compile_err(compiler, model(assign(ref("x", colon()), 1)))
        assert "not a slice" in error.message

    def test_unindexed_array_on_left_hand_side(self, compiler):
        error = compile_err(compiler, model(tilde("y", call("dnorm", 0, 1))), {"y": [1, 2, 3]})
        assert isinstance(error, StructuralError)
        assert "left-hand side `y`" in error.message
        assert "not a slice" in error.message

    def test_index_resolved_by_later_rule(self, state):
        resolver = StructuralResolver(state)
        flat = resolver.resolve(model(assign(ref("x", "k"), 1), assign("k", 2)))
        assert SymbolicValue("x[2]") in state.logical_rules
        assert flat.statements == (assign("k", 2), assign(ref("x", "k"), 1))

    def test_index_never_resolved(self, state):
        with pytest.raises(UnresolvedIndexError, match="does not resolve"):
            StructuralResolver(state).resolve(model(assign(ref("x", "k"), 1)))

    def test_distribution_arity(self, compiler):
        error = compile_err(compiler, model(tilde("x", call("dnorm", 0))))
        assert "takes 2 parameter(s), got 1" in error.message

    def test_resolution_is_idempotent(self, compiler):
        program = model(
            loop("i", 1, 3, tilde(ref("y", "i"), call("dnorm", ref("mu", "i"), 1)), assign(ref("mu", "i"), mul("b", "i"))),
            tilde("b", call("dnorm", 0, 1)),
        )
        result = compile_ok(compiler, program)
        logical = dict(result.state.logical_rules)
        stochastic = dict(result.state.stochastic_rules)
        again = StructuralResolver(result.state)
        again.resolve(result.program)
        assert again.logical_added == 0
        assert again.stochastic_added == 0
        assert result.state.logical_rules == logical
        assert result.state.stochastic_rules == stochastic
