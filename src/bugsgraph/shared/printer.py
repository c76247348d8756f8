"""Render syntax trees back to BUGS-like source text for messages and dumps."""

from .ast_visitor import ASTVisitor
from .nodes import (
    ArrayLiteral, Assign, Block, Call, Colon, For, If, Index, Literal, Name,
    Range, StochasticAssign,
)
from .types import BinaryOp, operator_for

# Higher binds tighter
_PRECEDENCE = {
    BinaryOp.OR: 1,
    BinaryOp.AND: 2,
    BinaryOp.EQ: 3, BinaryOp.NE: 3,
    BinaryOp.LT: 4, BinaryOp.LE: 4, BinaryOp.GT: 4, BinaryOp.GE: 4,
    BinaryOp.ADD: 5, BinaryOp.SUB: 5,
    BinaryOp.MUL: 6, BinaryOp.DIV: 6,
    BinaryOp.POW: 8,
}
_UNARY_PRECEDENCE = 7


class SourcePrinter(ASTVisitor[str]):
    def __init__(self, indent: str = "    "):
        self.indent = indent
        self.depth = 0

    def visit_literal(self, node: Literal) -> str:
        if isinstance(node.value, bool):
            return "TRUE" if node.value else "FALSE"
        value = node.value.item() if hasattr(node.value, "item") else node.value
        return repr(value)

    def visit_name(self, node: Name) -> str:
        return node.name

    def visit_index(self, node: Index) -> str:
        return f"{node.base.accept(self)}[{', '.join(i.accept(self) for i in node.indices)}]"

    def visit_call(self, node: Call) -> str:
        op = operator_for(node.func, len(node.args))
        if isinstance(op, BinaryOp):
            prec = _PRECEDENCE[op]
            left = self._operand(node.args[0], prec)
            right = self._operand(node.args[1], prec + 1)
            return f"{left} {op.value} {right}"
        if op is not None:
            return f"{op.value}{self._operand(node.args[0], _UNARY_PRECEDENCE)}"
        return f"{node.func}({', '.join(a.accept(self) for a in node.args)})"

    def _operand(self, node, min_prec: int) -> str:
        text = node.accept(self)
        if isinstance(node, Call):
            op = operator_for(node.func, len(node.args))
            prec = _PRECEDENCE.get(op, _UNARY_PRECEDENCE) if op is not None else None
            if prec is not None and prec < min_prec:
                return f"({text})"
        return text

    def visit_range(self, node: Range) -> str:
        parts = [node.lower.accept(self), node.upper.accept(self)]
        if node.step is not None:
            parts.insert(1, node.step.accept(self))
        return ":".join(parts)

    def visit_colon(self, node: Colon) -> str:
        return ""

    def visit_array_literal(self, node: ArrayLiteral) -> str:
        return f"c({', '.join(e.accept(self) for e in node.elements)})"

    def visit_assign(self, node: Assign) -> str:
        return f"{self._pad()}{node.lhs.accept(self)} = {node.rhs.accept(self)}"

    def visit_stochastic_assign(self, node: StochasticAssign) -> str:
        return f"{self._pad()}{node.lhs.accept(self)} ~ {node.rhs.accept(self)}"

    def visit_for(self, node: For) -> str:
        head = f"{self._pad()}for ({node.var} in {node.lower.accept(self)}:{node.upper.accept(self)}) {{"
        return "\n".join([head, self._body(node.body), f"{self._pad()}}}"])

    def visit_if(self, node: If) -> str:
        head = f"{self._pad()}if ({node.condition.accept(self)}) {{"
        return "\n".join([head, self._body(node.body), f"{self._pad()}}}"])

    def visit_block(self, node: Block) -> str:
        return "\n".join(s.accept(self) for s in node.statements)

    def _body(self, block: Block) -> str:
        self.depth += 1
        try:
            return block.accept(self)
        finally:
            self.depth -= 1

    def _pad(self) -> str:
        return self.indent * self.depth


def to_source(node) -> str:
    return node.accept(SourcePrinter())
