"""Read-only declaration views over a tree-sitter Python tree.

These are the only syntax queries the index needs: top-level classes, their
base expressions, class-level attribute assignments, and methods. Views are
cheap wrappers around tree-sitter nodes and are computed on demand; nothing
here caches derived data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from odoolens.syntax.shapes import Expr, node_text, string_value, to_shape

if TYPE_CHECKING:
    from tree_sitter import Node, Tree

_SKIPPED_BASE_TYPES = frozenset({"keyword_argument", "comment", "list_splat", "dictionary_splat"})


def _unwrap_decorated(node: Node) -> Node:
    if node.type == "decorated_definition":
        definition = node.child_by_field_name("definition")
        if definition is not None:
            return definition
    return node


def _decorators(node: Node) -> tuple[str, ...]:
    """Decorator expressions (without ``@`` or call arguments) of a definition."""
    parent = node.parent
    if parent is None or parent.type != "decorated_definition":
        return ()
    names: list[str] = []
    for child in parent.named_children:
        if child.type != "decorator":
            continue
        expr = next((c for c in child.named_children if c.type != "comment"), None)
        if expr is None:
            continue
        if expr.type == "call":
            function = expr.child_by_field_name("function")
            expr = function if function is not None else expr
        names.append(node_text(expr))
    return tuple(names)


def _docstring(body: Node | None) -> str | None:
    if body is None:
        return None
    first = next((c for c in body.named_children if c.type != "comment"), None)
    if first is None or first.type != "expression_statement":
        return None
    expr = first.named_children[0] if first.named_children else None
    if expr is None or expr.type != "string":
        return None
    value = string_value(to_shape(expr))
    return value.strip() if value is not None else None


@dataclass(frozen=True, slots=True)
class AttributeAssignment:
    """``name = <value>`` directly in a class body."""

    name: str
    node: Node = field(repr=False, compare=False)

    @property
    def value(self) -> Expr | None:
        right = self.node.child_by_field_name("right")
        return to_shape(right) if right is not None else None

    @property
    def line(self) -> int:
        return self.node.start_point[0] + 1

    @property
    def column(self) -> int:
        return self.node.start_point[1]


@dataclass(frozen=True, slots=True)
class FunctionDeclaration:
    name: str
    node: Node = field(repr=False, compare=False)

    @property
    def line(self) -> int:
        return self.node.start_point[0] + 1

    @property
    def decorators(self) -> tuple[str, ...]:
        return _decorators(self.node)

    @property
    def docstring(self) -> str | None:
        return _docstring(self.node.child_by_field_name("body"))

    @property
    def parameter_names(self) -> tuple[str, ...]:
        """All parameter names in order, including the receiver."""
        params = self.node.child_by_field_name("parameters")
        if params is None:
            return ()
        names: list[str] = []
        for param in params.named_children:
            name = _parameter_name(param)
            if name:
                names.append(name)
        return tuple(names)


def _parameter_name(param: Node) -> str | None:
    kind = param.type
    if kind == "identifier":
        return node_text(param)
    if kind in ("default_parameter", "typed_default_parameter"):
        name = param.child_by_field_name("name")
        return node_text(name) if name is not None and name.type == "identifier" else None
    if kind in ("typed_parameter", "list_splat_pattern", "dictionary_splat_pattern"):
        for child in param.named_children:
            if child.type == "identifier":
                return node_text(child)
            if child.type in ("list_splat_pattern", "dictionary_splat_pattern"):
                return _parameter_name(child)
    return None


@dataclass(frozen=True, slots=True)
class ClassDeclaration:
    """A class definition and the queries the model extractor runs on it."""

    name: str
    path: Path | None
    node: Node = field(repr=False, compare=False)

    @property
    def line(self) -> int:
        return self.node.start_point[0] + 1

    @property
    def column(self) -> int:
        return self.node.start_point[1]

    def base_expressions(self) -> list[Expr]:
        superclasses = self.node.child_by_field_name("superclasses")
        if superclasses is None:
            return []
        return [
            to_shape(child)
            for child in superclasses.named_children
            if child.type not in _SKIPPED_BASE_TYPES
        ]

    def attributes(self) -> list[AttributeAssignment]:
        """Class-level ``name = value`` assignments in source order."""
        body = self.node.child_by_field_name("body")
        if body is None:
            return []
        found: list[AttributeAssignment] = []
        for stmt in body.named_children:
            if stmt.type != "expression_statement":
                continue
            for expr in stmt.named_children:
                if expr.type != "assignment":
                    continue
                left = expr.child_by_field_name("left")
                if left is not None and left.type == "identifier":
                    found.append(AttributeAssignment(name=node_text(left), node=expr))
        return found

    def attribute(self, name: str) -> AttributeAssignment | None:
        """Last assignment to ``name`` (later assignments shadow earlier ones)."""
        match: AttributeAssignment | None = None
        for attr in self.attributes():
            if attr.name == name:
                match = attr
        return match

    def methods(self) -> list[FunctionDeclaration]:
        body = self.node.child_by_field_name("body")
        if body is None:
            return []
        found: list[FunctionDeclaration] = []
        for stmt in body.named_children:
            definition = _unwrap_decorated(stmt)
            if definition.type != "function_definition":
                continue
            name = definition.child_by_field_name("name")
            if name is not None:
                found.append(FunctionDeclaration(name=node_text(name), node=definition))
        return found

    def method(self, name: str) -> FunctionDeclaration | None:
        for fn in self.methods():
            if fn.name == name:
                return fn
        return None


@dataclass(frozen=True)
class SourceUnit:
    """A parsed Python file."""

    path: Path | None
    source: bytes = field(repr=False)
    tree: Tree = field(repr=False, compare=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return bool(self.root.has_error)

    def top_level_classes(self) -> list[ClassDeclaration]:
        classes: list[ClassDeclaration] = []
        for stmt in self.root.named_children:
            definition = _unwrap_decorated(stmt)
            if definition.type == "class_definition":
                decl = class_declaration(definition, self.path)
                if decl is not None:
                    classes.append(decl)
        return classes

    def node_at(self, byte_offset: int) -> Node | None:
        if byte_offset < 0 or byte_offset > len(self.source):
            return None
        return self.root.descendant_for_byte_range(byte_offset, byte_offset)


def class_declaration(node: Node, path: Path | None) -> ClassDeclaration | None:
    name = node.child_by_field_name("name")
    if name is None:
        return None
    return ClassDeclaration(name=node_text(name), path=path, node=node)


def enclosing_class(node: Node | None, path: Path | None) -> ClassDeclaration | None:
    """Innermost class definition containing ``node``."""
    current = node
    while current is not None:
        if current.type == "class_definition":
            return class_declaration(current, path)
        current = current.parent
    return None
