"""
Error Reporting

Rust Pattern: rustc_errors::Diagnostic

Every failure in the compiler is synchronous and fatal to the current
compilation. Errors in the user's model derive from ``BugsSourceError`` and
carry an error code per category; errors in graph-model usage derive from
``NetworkError`` so callers can catch them and carry on.
"""

import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..utils.config import COLOR_ENV_VAR
from .source_location import SourceLocation


def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get(COLOR_ENV_VAR, "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return sys.stderr.isatty()


_BOLD = "\033[1m"
_RED = "\033[31m"
_BLUE = "\033[34m"
_CYAN = "\033[36m"
_RESET = "\033[0m"


def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color or not codes:
        return text
    return f"{''.join(codes)}{text}{_RESET}"


@dataclass
class Error:
    """
    A single diagnostic.

    Rust Pattern: rustc_errors::Diagnostic
    """
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None
    label: Optional[str] = None


def _format_diagnostic(error: Error, source_files: Dict[str, str], color: bool = False) -> str:
    """
    Render a diagnostic in rustc style.

    Example output (plain)::

        error[E0300]: repeated definition for `mu[1]`
         --> model.bugs:4:5
          |
        4 |     mu[1] = a + b
          |     ^^^^^
    """
    out: List[str] = []
    code_str = f"[{error.code}]" if error.code else ""
    out.append(
        _style(f"error{code_str}", _BOLD, _RED, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    )

    loc = error.location
    if loc is None:
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + "<unknown location>")
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    source = source_files.get(loc.file)
    if source is None:
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + str(loc))
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    src_lines = source.split("\n")
    gw = len(str(loc.line))
    gutter = _style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color)
    out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + str(loc))
    out.append(gutter)

    idx = loc.line - 1
    code_line = src_lines[idx] if 0 <= idx < len(src_lines) else ""
    out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)

    col_start = max(loc.column, 1) - 1
    if loc.end_column > loc.column and (loc.end_line in (0, loc.line)):
        span_len = loc.end_column - loc.column
    else:
        span_len = _guess_span(code_line, col_start)
    carets = " " * col_start + "^" * max(1, span_len)
    if error.label:
        carets += f" {error.label}"
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets, _BOLD, _RED, color=color)
    )

    _append_annotations(out, error, gw, color)
    return "\n".join(out)


def _guess_span(code_line: str, col_start: int) -> int:
    """Guess token length when end_column is unavailable."""
    length = 0
    for ch in code_line[col_start:]:
        if ch in (" ", "\t", ";", ",", ")", "]", "}"):
            break
        length += 1
    return max(1, length)


def _append_annotations(out: List[str], error: Error, gw: int, color: bool) -> None:
    if not (error.help or error.note):
        return
    pad = " " * (gw + 1)
    out.append(_style(pad + "|", _BOLD, _BLUE, color=color))
    if error.help:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("help: ", _BOLD, color=color) + error.help)
    if error.note:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("note: ", _BOLD, color=color) + error.note)


def _summary(count: int) -> str:
    return f"aborting due to {count} previous error{'s' if count != 1 else ''}"


class ErrorReporter:
    """
    Collects diagnostics for one compilation.

    Rust Pattern: rustc_errors::Emitter
    """

    def __init__(self, source_files: Dict[str, str]):
        self.source_files = source_files
        self.errors: List[Error] = []

    def report_error(
        self,
        message: str,
        location: Optional[SourceLocation],
        code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
        label: Optional[str] = None,
    ) -> None:
        self.errors.append(Error(message=message, location=location, code=code, help=help, note=note, label=label))

    def report_exception(self, exc: "BugsError") -> None:
        """Record a raised compiler exception as a diagnostic."""
        self.report_error(
            exc.message,
            exc.location,
            code=getattr(exc, "error_code", None),
            help=getattr(exc, "help_text", None),
            note=getattr(exc, "note_text", None),
        )

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, self.source_files, color=use_color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        parts = [self.format_error(e, color=use_color) for e in self.errors]
        parts.append(
            _style("error", _BOLD, _RED, color=use_color)
            + _style(f": {_summary(len(self.errors))}", _BOLD, color=use_color)
        )
        return "\n\n".join(parts)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def print_errors(self) -> None:
        if self.errors:
            print(self.format_all_errors(), file=sys.stderr)


# ============================================================================
# Exception Classes
# ============================================================================

class BugsError(Exception):
    """Base exception for all bugsgraph errors"""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self):
        if self.location:
            return f"{self.message}\n --> {self.location}"
        return self.message


class BugsSourceError(BugsError):
    """
    Error in the user's model (the syntax tree or the data binding).

    Subclasses fix ``error_code`` and ``category``; the message names the
    offending construct and the location, when known, points at it.
    """
    error_code = "E0001"
    category = "model"

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        source_code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
    ):
        super().__init__(message, location)
        self.source_code = source_code
        self.help_text = help
        self.note_text = note

    def __str__(self):
        source_files: Dict[str, str] = {}
        if self.source_code and self.location:
            source_files[self.location.file] = self.source_code
        err = Error(
            message=self.message,
            location=self.location,
            code=self.error_code,
            help=self.help_text,
            note=self.note_text,
        )
        return _format_diagnostic(err, source_files, color=False)


class StructuralError(BugsSourceError):
    """Invalid statement shape: bad LHS, unsupported link function, bad indexing."""
    error_code = "E0100"
    category = "structural"


class ResolutionError(BugsSourceError):
    """Loop bounds, guards or indices that do not resolve to constants."""
    error_code = "E0200"
    category = "resolution"


class UnresolvedIndexError(ResolutionError):
    """An index that does not resolve to a constant yet; retried while the resolver makes progress."""


class RedefinitionError(BugsSourceError):
    """The same node is defined twice with different expressions."""
    error_code = "E0300"
    category = "redefinition"


class ArrayConsistencyError(BugsSourceError):
    """Rank mismatch or invalid cell reference for a registered array."""
    error_code = "E0400"
    category = "array"


class SpecialFunctionError(BugsSourceError):
    """`cumulative`, `density` or `deviance` without a unique stochastic target."""
    error_code = "E0500"
    category = "special-function"


class NetworkError(BugsError, ValueError):
    """Misuse of a Bayesian network; not fatal to the process."""


class UnknownVertexError(NetworkError):
    """No vertex with the given name."""


class DuplicateVertexError(NetworkError):
    """A vertex with the given name already exists."""


class CapacityError(NetworkError):
    """The network has reached its vertex capacity."""


class NotStochasticError(NetworkError):
    """Conditioning on a deterministic vertex."""


class NotObservedError(NetworkError):
    """Deconditioning a vertex that is not observed."""


class UnsupportedFamilyError(NetworkError):
    """Factor operation over a distribution family pair without a closed form."""


class BugsImplementationError(Exception):
    """
    Error in the Python implementation, never in the user's model.

    Use BugsSourceError (or a subclass) for anything the user can fix.
    """

    def __init__(self, message: str, error_code: str = "E9999"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"
