"""
Defines the abstract syntax tree (AST) node structure for skylark.

Classes:
    ASTNode:
        A node in the syntax tree. Every expression, statement and suite is an
        ASTNode whose `kind` is drawn from the closed set `NODE_KINDS`.

    ASTDict:
        TypedDict representation for converting ASTNode instances to plain
        Python dictionaries, for debugging and test assertions.

Each ASTNode tracks:
    kind (str): The syntactic construct (e.g. "add", "call", "if_expr", "suite").
    value (str | int | bytes, optional): Scalar payload (identifier name, int
        value, string bytes, attribute name, operator lexeme, ...).
    children (list[ASTNode]): Ordered child nodes.
    else_children (list[ASTNode]): The `else` branch of an `if` statement.
    line (int): Source line number for error messages.
    col (int): Source column number for error messages.

Node shapes (see also skylark_constants):
    Binary operators  ("or" ... "div_floor"): children=[lhs, rhs]
    Unary operators   ("neg", "not"):         children=[operand]
    "dot":     value=attribute, children=[target]
    "slice":   children=[target, bounds]
    "bounds":  value="index", children=[expr]
               value="range", children=[start, stop, step] (each may be "absent")
    "call":    children=[callee, arguments]
    "if_expr": children=[then, condition, else]
    "list_comp" / "dict_comp": children=[element_or_entry, clause, ...]

Example:
    node = ASTNode("add", children=[ASTNode("identifier", "a"), ASTNode("int", 1)])
"""

from collections.abc import Iterator
from typing import Any, TypedDict

from skylark.skylark_constants import NODE_KINDS


class ASTDict(TypedDict, total=False):
    """
    TypedDict representation of an ASTNode.

    Fields:
        kind (str): The type of AST node.
        value (Any): The node's scalar payload.
        line (int): Line number in the source code where the node originates.
        col (int): Column number in the source code where the node originates.
        children (list[ASTDict]): Child nodes.
        else_children (list[ASTDict]): Else-branch nodes.
    """

    kind: str
    value: Any
    line: int
    col: int
    children: list["ASTDict"]
    else_children: list["ASTDict"]


class ASTNode:
    """
    Represents a node in the abstract syntax tree.

    Nodes are created by the parser and not modified afterwards. Each node owns
    its children; the parser never places one node object under two parents.

    Args:
        kind (str): The type of node. Must be a member of NODE_KINDS.
        value (str | int | bytes, optional): Scalar payload.
        children (list[ASTNode], optional): Ordered child nodes.
        line (int): Source line number (default is 0).
        col (int): Source column number (default is 0).
        else_children (list[ASTNode], optional): Else-branch nodes.

    Raises:
        ValueError: If `kind` is not a known node kind.
    """

    def __init__(
        self,
        kind: str,
        value: str | int | bytes | None = None,
        children: list["ASTNode"] | None = None,
        line: int = 0,
        col: int = 0,
        else_children: list["ASTNode"] | None = None,
    ):
        if kind not in NODE_KINDS:
            raise ValueError(f"Unknown AST node kind: {kind!r}")
        self.kind = kind
        self.value = value
        self.children: list["ASTNode"] = children or []
        self.line = line
        self.col = col
        self.else_children: list["ASTNode"] = else_children or []

    def __repr__(self) -> str:
        parts = [f"{self.kind}"]
        if self.value is not None:
            parts.append(f"value={repr(self.value)}")
        if self.children:
            preview = ", ".join(repr(c) for c in self.children[:3])
            if len(self.children) > 3:
                preview += ", ..."
            parts.append(f"children=[{preview}]")
        if self.else_children:
            preview = ", ".join(repr(c) for c in self.else_children[:3])
            if len(self.else_children) > 3:
                preview += ", ..."
            parts.append(f"else_children=[{preview}]")
        return f"ASTNode({', '.join(parts)})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ASTNode):
            return False
        return (
            self.kind == other.kind
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
            and self.children == other.children
            and self.else_children == other.else_children
        )

    def to_dict(self) -> ASTDict:
        return {
            "kind": self.kind,
            "value": self.value,
            "line": self.line,
            "col": self.col,
            "children": [c.to_dict() for c in self.children],
            "else_children": [c.to_dict() for c in self.else_children],
        }


def walk(node: ASTNode) -> Iterator[ASTNode]:
    """Yields `node` and all of its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.else_children))
        stack.extend(reversed(current.children))


__all__ = ["ASTDict", "ASTNode", "walk"]
