"""Tests for diagnostics and the exception hierarchy."""

import pytest

from bugsgraph.shared.errors import (
    ArrayConsistencyError, BugsError, BugsSourceError, CapacityError,
    ErrorReporter, NetworkError, NotObservedError, NotStochasticError,
    RedefinitionError, ResolutionError, SpecialFunctionError, StructuralError,
    UnresolvedIndexError, UnsupportedFamilyError,
)
from bugsgraph.shared.source_location import SourceLocation


class TestErrorReporter:

    def test_formats_snippet_with_carets_and_help(self):
        source = "model {\n    mu[1] = a + b\n}"
        reporter = ErrorReporter({"m.bugs": source})
        reporter.report_error(
            "repeated definition for `mu[1]`", SourceLocation("m.bugs", 2, 5),
            code="E0300", help="remove one of the definitions",
        )
        text = reporter.format_all_errors(color=False)
        assert "error[E0300]: repeated definition for `mu[1]`" in text
        assert "--> m.bugs:2:5" in text
        assert "2 |     mu[1] = a + b" in text
        assert "    ^^^^" in text
        assert "= help: remove one of the definitions" in text
        assert text.endswith("aborting due to 1 previous error")

    def test_unknown_location(self):
        reporter = ErrorReporter({})
        reporter.report_error("something failed", None)
        text = reporter.format_error(reporter.errors[0], color=False)
        assert "<unknown location>" in text

    def test_summary_pluralizes(self):
        reporter = ErrorReporter({})
        reporter.report_error("one", None)
        reporter.report_error("two", None)
        assert reporter.format_all_errors(color=False).endswith("aborting due to 2 previous errors")

    def test_report_exception_keeps_code_and_annotations(self):
        reporter = ErrorReporter({})
        assert not reporter.has_errors()
        reporter.report_exception(RedefinitionError("repeated definition for `a`", help="rename it", note="seen before"))
        assert reporter.has_errors()
        error = reporter.errors[0]
        assert error.code == "E0300"
        assert error.help == "rename it"
        assert error.note == "seen before"

    def test_color_only_when_requested(self):
        reporter = ErrorReporter({})
        reporter.report_error("boom", None, code="E0100")
        assert "\033[" in reporter.format_all_errors(color=True)
        assert "\033[" not in reporter.format_all_errors(color=False)


class TestExceptions:

    @pytest.mark.parametrize("cls, code", [
        (StructuralError, "E0100"),
        (ResolutionError, "E0200"),
        (UnresolvedIndexError, "E0200"),
        (RedefinitionError, "E0300"),
        (ArrayConsistencyError, "E0400"),
        (SpecialFunctionError, "E0500"),
    ])
    def test_source_error_codes(self, cls, code):
        error = cls("bad model", SourceLocation("f.bugs", 1, 1))
        assert isinstance(error, BugsSourceError)
        assert error.error_code == code
        text = str(error)
        assert f"error[{code}]: bad model" in text
        assert "--> f.bugs:1:1" in text

    def test_source_error_renders_snippet_when_source_given(self):
        error = StructuralError("bad lhs", SourceLocation("f.bugs", 1, 1), source_code="a + b = 1")
        assert "1 | a + b = 1" in str(error)

    @pytest.mark.parametrize("cls", [NotStochasticError, NotObservedError, CapacityError, UnsupportedFamilyError])
    def test_network_errors_are_catchable_value_errors(self, cls):
        with pytest.raises(ValueError):
            raise cls("misuse")
        assert issubclass(cls, NetworkError)
        assert issubclass(cls, BugsError)
        assert not issubclass(cls, BugsSourceError)
