"""
End-to-end compilation: model trees and data in, node graphs and networks out.
"""

import json
import math

import numpy as np
import pytest

from bugsgraph import compile_model
from bugsgraph.__main__ import main
from bugsgraph.compiler.emitter import NodeKind
from bugsgraph.compiler.serialization import serialize_tree
from bugsgraph.graphs import build_network, variable_elimination
from bugsgraph.shared.errors import NetworkError, RedefinitionError
from tests.test_utils import (
    add, assign, call, colon, compile_err, compile_ok, cond, div, loop, model, mul,
    ref, tilde,
)

pytestmark = pytest.mark.integration


def linear_regression(n=3):
    return model(loop(
        "i", 1, n,
        tilde(ref("y", "i"), call("dnorm", ref("mu", "i"), "tau")),
        assign(ref("mu", "i"), add("a", mul("b", "i"))),
    ))


class TestReferenceModels:

    def test_linear_regression(self, compiler):
        nodes = compile_ok(compiler, linear_regression(), {"tau": 1.0}).nodes
        assert set(nodes) == {"tau", "mu[1]", "mu[2]", "mu[3]", "y[1]", "y[2]", "y[3]"}
        for i in (1, 2, 3):
            mu = nodes[f"mu[{i}]"]
            assert mu.kind is NodeKind.LOGICAL
            assert mu.generator.expression == add("a", mul("b", i))
            assert mu.parents == ("a", "b")
            assert nodes[f"y[{i}]"].kind is NodeKind.STOCHASTIC
            assert nodes[f"y[{i}]"].parents == (f"mu[{i}]", "tau")
        assert nodes["mu[2]"].generator(1.0, 2.0) == 5.0
        assert nodes["y[1]"].generator(0.5, 1.0).mean() == pytest.approx(0.5)
        assert nodes["tau"].kind is NodeKind.LOGICAL
        assert nodes["tau"].default_value == 1.0

    def test_single_observation(self, compiler):
        nodes = compile_ok(compiler, model(tilde("x", call("dnorm", 0, 1))), {"x": 2.5}).nodes
        assert list(nodes) == ["x"]
        assert nodes["x"].kind is NodeKind.OBSERVATION
        assert nodes["x"].default_value == 2.5
        assert nodes["x"].generator().std() == pytest.approx(1.0)

    def test_link_function(self, compiler):
        result = compile_ok(compiler, model(assign(call("log", "sigma2"), mul(2, "logsigma"))))
        assert result.program.statements == (assign("sigma2", call("exp", mul(2, "logsigma"))),)
        node = result.nodes["sigma2"]
        assert node.generator.expression == call("exp", mul(2, "logsigma"))
        assert node.generator(0.0) == 1.0
        assert node.generator(0.5) == pytest.approx(math.e)


class TestPartialData:

    def test_missing_cells_stay_stochastic(self, compiler):
        nodes = compile_ok(compiler, linear_regression(), {"tau": 1.0, "y": [1.0, None, 3.0]}).nodes
        assert nodes["y[1]"].kind is NodeKind.OBSERVATION
        assert nodes["y[2]"].kind is NodeKind.STOCHASTIC
        assert nodes["y[3]"].default_value == 3.0

    def test_loop_bound_from_data(self, compiler):
        nodes = compile_ok(compiler, linear_regression("N"), {"N": 5, "tau": 2.0}).nodes
        assert "y[5]" in nodes and "y[6]" not in nodes

    def test_logical_node_folds_to_constant(self, compiler):
        program = model(assign("m", call("mean", ref("x", colon()))), assign("s", call("sum", ref("x", colon()))))
        nodes = compile_ok(compiler, program, {"x": [1.0, 2.0, 3.0]}).nodes
        assert nodes["s"].default_value == 6.0
        assert nodes["m"].default_value == 2.0
        assert nodes["s"].parents == ("x[1]", "x[2]", "x[3]")

    def test_slice_sees_cells_defined_in_same_program(self, compiler):
        program = model(
            loop("i", 1, 3, tilde(ref("y", "i"), call("dnorm", 0, 1))),
            assign("total", call("sum", ref("y", colon()))),
        )
        nodes = compile_ok(compiler, program).nodes
        assert nodes["total"].parents == ("y[1]", "y[2]", "y[3]")

    def test_conditional_on_data(self, compiler):
        program = model(
            cond(call(">", "N", 2), tilde("big", call("dnorm", 0, 1))),
            cond(call("<=", "N", 2), tilde("small", call("dnorm", 0, 1))),
        )
        nodes = compile_ok(compiler, program, {"N": 3}).nodes
        assert "big" in nodes and "small" not in nodes


class TestSpecialFunctions:

    def test_cumulative_and_deviance(self, compiler):
        program = model(
            tilde("y", call("dnorm", 0, 1)),
            assign("p", call("cumulative", "y", 0)),
            assign("d", call("deviance", "y", 1.0)),
        )
        nodes = compile_ok(compiler, program).nodes
        assert nodes["p"].parents == ()
        assert nodes["p"].generator() == pytest.approx(0.5)
        expected = -2 * (-0.5 * math.log(2 * math.pi) - 0.5)
        assert nodes["d"].generator() == pytest.approx(expected)


class TestDiagnostics:

    def test_redefinition_report(self, compiler):
        result = compiler.compile(model(assign("a", 1), assign("a", 2)))
        assert isinstance(result.error, RedefinitionError)
        assert "error[E0300]: repeated definition for `a`" in result.get_errors()[0]

    def test_compile_model_raises(self):
        with pytest.raises(RedefinitionError):
            compile_model(model(assign("a", 1), assign("a", 2)))

    def test_caller_tree_is_untouched(self, compiler):
        program = model(assign(call("log", "s"), 1))
        before = serialize_tree(program)
        compile_ok(compiler, program)
        assert serialize_tree(program) == before


class TestNetworks:

    def _program(self):
        return model(
            tilde("mu", call("dnorm", 0, 1)),
            tilde("y", call("dnorm", "mu", 1)),
            assign("m", mul(2, "mu")),
        )

    def test_build_network(self):
        bn = build_network(compile_model(self._program(), {"y": 1.0}))
        assert set(bn.names) == {"mu", "y", "m"}
        assert bn.parents("y") == ["mu"]
        assert bn.parents("m") == ["mu"]
        assert bn.observed_names() == ["y"]
        assert bn.values == {"y": 1.0}

    def test_posterior_query(self):
        bn = build_network(compile_model(self._program(), {"y": 1.0}))
        value = variable_elimination(bn, "mu", {"y": 1.0})
        assert value == pytest.approx(1 / math.sqrt(2 * math.pi * 1.01))

    def test_sampling_compiled_network(self):
        bn = build_network(compile_model(self._program()))
        samples = bn.ancestral_sampling(np.random.default_rng(3))
        assert samples["m"] == pytest.approx(2 * samples["mu"])

    def test_precision_to_scale_at_default_values(self):
        program = model(
            tilde("tau", call("dgamma", 1, 1)),
            assign("sigma", div(1, "tau")),
            tilde("y", call("dnorm", 0, "tau")),
        )
        bn = build_network(compile_model(program, {"y": 0.3}))
        assert bn.parents("sigma") == ["tau"]
        assert bn.parents("y") == ["tau"]
        assert bn.observed_names() == ["y"]

    def test_missing_parent(self):
        nodes = compile_model(model(tilde("y", call("dnorm", "mu", 1))))
        with pytest.raises(NetworkError, match="`mu` is used by `y`"):
            build_network(nodes)


class TestCommandLine:

    def test_prints_node_table(self, tmp_path, capsys):
        path = tmp_path / "model.sexpr"
        path.write_text(serialize_tree(linear_regression()), encoding="utf-8")
        data = tmp_path / "data.json"
        data.write_text(json.dumps({"tau": 1.0, "y": [1.0, None, 2.0]}), encoding="utf-8")

        assert main([str(path), "--data", str(data)]) == 0
        out = capsys.readouterr().out
        assert out.splitlines()[0].split() == ["node", "kind", "default", "parents"]
        assert "observation" in out
        assert "mu[1]" in out

    def test_reports_errors(self, tmp_path, capsys):
        path = tmp_path / "bad.sexpr"
        path.write_text("(model (= a 1) (= a 2))", encoding="utf-8")
        assert main([str(path)]) == 1
        assert "error[E0300]" in capsys.readouterr().err

    def test_dumps_tree_after_each_pass(self, tmp_path):
        path = tmp_path / "model.sexpr"
        path.write_text(serialize_tree(linear_regression()), encoding="utf-8")
        data = tmp_path / "data.json"
        data.write_text(json.dumps({"tau": 1.0}), encoding="utf-8")
        dumps = tmp_path / "dumps"

        assert main([str(path), "--data", str(data), "--dump-tree", str(dumps)]) == 0
        assert (dumps / "after_syntax_validation_pass.sexpr").is_file()
        flat = (dumps / "after_structural_resolution_pass.sexpr").read_text(encoding="utf-8")
        assert "for" not in flat

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.sexpr")]) == 1
        assert "file not found" in capsys.readouterr().err
