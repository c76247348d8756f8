"""
Syntax Tree Serialization to S-Expressions

The parser for BUGS source text lives outside this package; models reach the
compiler as trees, stored on disk in this S-expression form:

    (model
      (for i 1 N
        (~ (ref y i) (dnorm (ref mu i) tau))
        (= (ref mu i) (+ a (* b i)))))

Forms: ``(model stmt...)``, ``(= lhs rhs)``, ``(~ lhs rhs)``,
``(for var lower upper stmt...)``, ``(if cond stmt...)``, ``(ref name idx...)``,
``(range lower upper [step])``, ``(colon)``, ``(array-literal (dims...) elem...)``,
and ``(f args...)`` for operator and function calls. Booleans are ``true`` and
``false``; names that are not plain symbols (cell names such as ``mu[1,2]``)
are strings. Any form may end with ``:line N :column N``.
"""

import re
from typing import Any, List, Optional, Tuple

import sexpdata

from ..shared.errors import StructuralError
from ..shared.nodes import (
    ArrayLiteral, ASTNode, Assign, Block, Call, Colon, Expression, For, If,
    Index, Literal, Name, Range, Statement, StochasticAssign,
)
from ..shared.source_location import SourceLocation
from ..utils.io_utils import read_source_file

_SYMBOL_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
_RESERVED = frozenset({"model", "=", "~", "for", "if", "ref", "range", "colon", "array-literal", "true", "false"})
_MAX_LINE = 100


def _sym(value: str) -> sexpdata.Symbol:
    return sexpdata.Symbol(value)


def _sym_val(x: Any) -> Optional[str]:
    if isinstance(x, sexpdata.Symbol):
        return x.value()
    return None


class TreeSerializer:
    """Syntax tree -> nested lists of ``sexpdata`` symbols and numbers."""

    def __init__(self, include_location: bool = False):
        self.include_location = include_location

    def serialize_to_sexpr(self, node: ASTNode) -> Any:
        if isinstance(node, Block):
            return self._form("model", node, *[self.serialize_to_sexpr(s) for s in node.statements])
        if isinstance(node, Assign):
            return self._form("=", node, self.serialize_to_sexpr(node.lhs), self.serialize_to_sexpr(node.rhs))
        if isinstance(node, StochasticAssign):
            return self._form("~", node, self.serialize_to_sexpr(node.lhs), self.serialize_to_sexpr(node.rhs))
        if isinstance(node, For):
            body = [self.serialize_to_sexpr(s) for s in node.body.statements]
            return self._form(
                "for", node, _sym(node.var),
                self.serialize_to_sexpr(node.lower), self.serialize_to_sexpr(node.upper), *body,
            )
        if isinstance(node, If):
            body = [self.serialize_to_sexpr(s) for s in node.body.statements]
            return self._form("if", node, self.serialize_to_sexpr(node.condition), *body)
        return self._expression(node)

    def _expression(self, node: Expression) -> Any:
        if isinstance(node, Literal):
            if isinstance(node.value, bool):
                return _sym("true" if node.value else "false")
            value = node.value.item() if hasattr(node.value, "item") else node.value
            return value
        if isinstance(node, Name):
            if _SYMBOL_NAME.match(node.name) and node.name not in _RESERVED:
                return _sym(node.name)
            return node.name
        if isinstance(node, Index):
            return self._form("ref", node, self._expression(node.base), *[self._expression(i) for i in node.indices])
        if isinstance(node, Range):
            parts = [self._expression(node.lower), self._expression(node.upper)]
            if node.step is not None:
                parts.append(self._expression(node.step))
            return self._form("range", node, *parts)
        if isinstance(node, Colon):
            return self._form("colon", node)
        if isinstance(node, ArrayLiteral):
            dims = [int(d) for d in node.shape]
            return self._form("array-literal", node, dims, *[self._expression(e) for e in node.elements])
        if isinstance(node, Call):
            return self._form(node.func, node, *[self._expression(a) for a in node.args])
        raise StructuralError(f"cannot serialize {type(node).__name__}")

    def _form(self, head: str, node: ASTNode, *items: Any) -> List[Any]:
        form = [_sym(head), *items]
        if self.include_location and node.location is not None:
            form.extend([_sym(":line"), node.location.line, _sym(":column"), node.location.column])
        return form


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ") -> str:
    """Keeps short forms on one line; breaks only when needed."""
    if not isinstance(sexpr, list) or not sexpr:
        return sexpdata.dumps(sexpr)
    parts = [_pretty_dumps(e, indent + 1, indent_str) for e in sexpr]
    one_line = "(" + " ".join(parts) + ")"
    if len(one_line) <= _MAX_LINE and "\n" not in one_line:
        return one_line
    next_prefix = indent_str * (indent + 1)
    rest = "\n".join(next_prefix + p for p in parts[1:])
    return "(" + parts[0] + ("\n" + rest if rest else "") + ")"


def serialize_tree(node: ASTNode, include_location: bool = False, pretty: bool = True) -> str:
    sexpr = TreeSerializer(include_location).serialize_to_sexpr(node)
    if pretty:
        return _pretty_dumps(sexpr)
    return sexpdata.dumps(sexpr)


class TreeDeserializer:
    """Nested lists from ``sexpdata.loads`` -> syntax tree."""

    def __init__(self, file: str = "<model>"):
        self.file = file

    def deserialize(self, sexpr: Any) -> Block:
        head, args, location = self._split(sexpr)
        if head != "model":
            raise self._error("a model must start with `(model ...)`", sexpr)
        return Block(tuple(self.statement(s) for s in args), location)

    def statement(self, sexpr: Any) -> Statement:
        head, args, location = self._split(sexpr)
        if head in ("=", "~"):
            if len(args) != 2:
                raise self._error(f"`{head}` takes a left-hand side and a right-hand side", sexpr, location)
            lhs, rhs = (self.expression(a) for a in args)
            node_class = Assign if head == "=" else StochasticAssign
            return node_class(lhs, rhs, location)
        if head == "for":
            if len(args) < 3 or _sym_val(args[0]) is None:
                raise self._error("`for` needs a loop variable, a lower and an upper bound", sexpr, location)
            body = Block(tuple(self.statement(s) for s in args[3:]), location)
            return For(_sym_val(args[0]), self.expression(args[1]), self.expression(args[2]), body, location)
        if head == "if":
            if not args:
                raise self._error("`if` needs a condition", sexpr, location)
            body = Block(tuple(self.statement(s) for s in args[1:]), location)
            return If(self.expression(args[0]), body, location)
        raise self._error(f"`{head}` is not a statement", sexpr, location)

    def expression(self, sexpr: Any) -> Expression:
        if isinstance(sexpr, bool):
            return Literal(sexpr)
        if isinstance(sexpr, (int, float)):
            return Literal(sexpr)
        symbol = _sym_val(sexpr)
        if symbol is not None:
            if symbol in ("true", "false"):
                return Literal(symbol == "true")
            return Name(symbol)
        if isinstance(sexpr, str):
            return Name(sexpr)

        head, args, location = self._split(sexpr)
        if head == "ref":
            if not args:
                raise self._error("`ref` needs an array name", sexpr, location)
            return Index(self.expression(args[0]), tuple(self.expression(a) for a in args[1:]), location)
        if head == "range":
            if len(args) not in (2, 3):
                raise self._error("`range` takes a lower bound, an upper bound and an optional step", sexpr, location)
            parts = [self.expression(a) for a in args]
            step = parts[2] if len(parts) == 3 else None
            return Range(parts[0], parts[1], step, location)
        if head == "colon":
            return Colon(location)
        if head == "array-literal":
            if not args or not isinstance(args[0], list):
                raise self._error("`array-literal` needs its dimensions first", sexpr, location)
            shape = tuple(int(d) for d in args[0])
            return ArrayLiteral(tuple(self.expression(e) for e in args[1:]), shape, location)
        if head in _RESERVED:
            raise self._error(f"`{head}` is not an expression", sexpr, location)
        return Call(head, tuple(self.expression(a) for a in args), location)

    def _split(self, sexpr: Any) -> Tuple[str, List[Any], Optional[SourceLocation]]:
        if not isinstance(sexpr, list) or not sexpr or _sym_val(sexpr[0]) is None:
            raise self._error("expected a form `(head ...)`", sexpr)
        head = _sym_val(sexpr[0])
        args = list(sexpr[1:])
        line = column = None
        while len(args) >= 2 and _sym_val(args[-2]) in (":line", ":column"):
            key, value = _sym_val(args[-2]), args[-1]
            if key == ":line":
                line = int(value)
            else:
                column = int(value)
            args = args[:-2]
        location = SourceLocation(self.file, line, column or 0) if line is not None else None
        return head, args, location

    def _error(self, message: str, sexpr: Any, location: Optional[SourceLocation] = None) -> StructuralError:
        return StructuralError(f"malformed model tree: {message}, found {sexpdata.dumps(sexpr)}", location)


def deserialize_tree(text: str, file: str = "<model>") -> Block:
    try:
        parsed = sexpdata.loads(text, nil=None, true=None)
    except Exception as e:
        raise StructuralError(f"malformed model tree: {e}") from e
    return TreeDeserializer(file).deserialize(parsed)


def load_model(path) -> Block:
    """Read a model tree from an ``.sexpr`` file."""
    return deserialize_tree(read_source_file(path), file=str(path))
