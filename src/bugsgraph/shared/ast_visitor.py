"""
Syntax Tree Visitors

This module provides:
1. ASTVisitor - read-only traversal with default recursion into children
2. ASTTransformer - rebuilding traversal; unchanged subtrees are reused
3. substitute() - name substitution, used by loop unrolling

Design:
- Abstract base class with visit_* methods for each node type
- Leaf nodes (Literal, Name) must be handled explicitly by visitors
- Standard compiler pattern (LLVM, Rust MIR, Swift SIL)
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, Generic, TypeVar

from .nodes import (
    ArrayLiteral, ASTNode, Assign, Block, Call, Colon, Expression, For, If,
    Index, Literal, Name, Range, StochasticAssign,
)

T = TypeVar('T')


class ASTVisitor(ABC, Generic[T]):
    """
    Base visitor with default traversal for all non-leaf nodes.

    Usage:
        class NameCollector(ASTVisitor[None]):
            def visit_literal(self, node): pass
            def visit_name(self, node): self.names.append(node.name)
    """

    @abstractmethod
    def visit_literal(self, node: Literal) -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_literal()")

    @abstractmethod
    def visit_name(self, node: Name) -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_name()")

    def visit_index(self, node: Index) -> T:
        node.base.accept(self)
        for idx in node.indices:
            idx.accept(self)

    def visit_call(self, node: Call) -> T:
        for arg in node.args:
            arg.accept(self)

    def visit_range(self, node: Range) -> T:
        node.lower.accept(self)
        node.upper.accept(self)
        if node.step is not None:
            node.step.accept(self)

    def visit_colon(self, node: Colon) -> T:
        pass

    def visit_array_literal(self, node: ArrayLiteral) -> T:
        for elem in node.elements:
            elem.accept(self)

    def visit_assign(self, node: Assign) -> T:
        node.lhs.accept(self)
        node.rhs.accept(self)

    def visit_stochastic_assign(self, node: StochasticAssign) -> T:
        node.lhs.accept(self)
        node.rhs.accept(self)

    def visit_for(self, node: For) -> T:
        node.lower.accept(self)
        node.upper.accept(self)
        node.body.accept(self)

    def visit_if(self, node: If) -> T:
        node.condition.accept(self)
        node.body.accept(self)

    def visit_block(self, node: Block) -> T:
        for stmt in node.statements:
            stmt.accept(self)


class ASTTransformer(ASTVisitor[ASTNode]):
    """
    Visitor that returns a (possibly) new tree.

    The default for every node rebuilds it from transformed children, keeping
    the original object when nothing below it changed. Override visit_* to
    rewrite specific nodes.
    """

    def visit_literal(self, node: Literal) -> ASTNode:
        return node

    def visit_name(self, node: Name) -> ASTNode:
        return node

    def visit_index(self, node: Index) -> ASTNode:
        base = node.base.accept(self)
        indices = tuple(idx.accept(self) for idx in node.indices)
        if base is node.base and indices == node.indices:
            return node
        return replace(node, base=base, indices=indices)

    def visit_call(self, node: Call) -> ASTNode:
        args = tuple(arg.accept(self) for arg in node.args)
        if all(a is b for a, b in zip(args, node.args)):
            return node
        return replace(node, args=args)

    def visit_range(self, node: Range) -> ASTNode:
        step = node.step.accept(self) if node.step is not None else None
        return replace(node, lower=node.lower.accept(self), upper=node.upper.accept(self), step=step)

    def visit_colon(self, node: Colon) -> ASTNode:
        return node

    def visit_array_literal(self, node: ArrayLiteral) -> ASTNode:
        return replace(node, elements=tuple(e.accept(self) for e in node.elements))

    def visit_assign(self, node: Assign) -> ASTNode:
        return replace(node, lhs=node.lhs.accept(self), rhs=node.rhs.accept(self))

    def visit_stochastic_assign(self, node: StochasticAssign) -> ASTNode:
        return replace(node, lhs=node.lhs.accept(self), rhs=node.rhs.accept(self))

    def visit_for(self, node: For) -> ASTNode:
        return replace(
            node,
            lower=node.lower.accept(self),
            upper=node.upper.accept(self),
            body=node.body.accept(self),
        )

    def visit_if(self, node: If) -> ASTNode:
        return replace(node, condition=node.condition.accept(self), body=node.body.accept(self))

    def visit_block(self, node: Block) -> ASTNode:
        return replace(node, statements=tuple(s.accept(self) for s in node.statements))


class _Substitution(ASTTransformer):
    def __init__(self, mapping: Dict[str, Expression]):
        self.mapping = mapping

    def visit_name(self, node: Name) -> ASTNode:
        return self.mapping.get(node.name, node)

    def visit_for(self, node: For) -> ASTNode:
        # an inner loop rebinding the same variable shadows the outer one
        if node.var in self.mapping:
            inner = dict(self.mapping)
            del inner[node.var]
            return replace(
                node,
                lower=node.lower.accept(self),
                upper=node.upper.accept(self),
                body=node.body.accept(_Substitution(inner)),
            )
        return super().visit_for(node)


def substitute(node: ASTNode, mapping: Dict[str, Expression]) -> ASTNode:
    """Replace every free ``Name`` in ``mapping`` with its expression."""
    if not mapping:
        return node
    return node.accept(_Substitution(mapping))


class _NameCollector(ASTVisitor[None]):
    def __init__(self):
        self.names = []

    def visit_literal(self, node: Literal) -> None:
        pass

    def visit_name(self, node: Name) -> None:
        if node.name not in self.names:
            self.names.append(node.name)


def free_names(node: ASTNode) -> list:
    """Names referenced in ``node``, in order of first appearance."""
    collector = _NameCollector()
    node.accept(collector)
    return collector.names
