"""Expression shapes relevant to model and field recognition.

A tree-sitter expression node is reduced to one of a closed set of shapes
by ``to_shape``. Consumers dispatch on the concrete shape type; anything the
recognizers do not care about becomes ``OtherExpr``. ``Expr`` is the closed
union, so a new shape has to be added there and handled (or explicitly
ignored) by every ``assert_never`` fallthrough.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tree_sitter import Node


@dataclass(frozen=True, slots=True)
class NameRef:
    """Bare reference: ``Model``."""

    name: str
    text: str


@dataclass(frozen=True, slots=True)
class QualifiedRef:
    """Dotted reference: ``models.Model``. ``qualifier`` is the last segment before ``name``."""

    qualifier: str | None
    name: str
    text: str


@dataclass(frozen=True, slots=True)
class KeywordArg:
    name: str
    value: Expr


@dataclass(frozen=True, slots=True)
class CallExpr:
    """Call with its callee and literal argument shapes."""

    callee: Expr
    positional: tuple[Expr, ...]
    keywords: tuple[KeywordArg, ...]
    text: str

    def keyword(self, name: str) -> Expr | None:
        for kw in self.keywords:
            if kw.name == name:
                return kw.value
        return None


@dataclass(frozen=True, slots=True)
class StringLit:
    value: str
    text: str


@dataclass(frozen=True, slots=True)
class ListLit:
    elements: tuple[Expr, ...]
    text: str


@dataclass(frozen=True, slots=True)
class TupleLit:
    elements: tuple[Expr, ...]
    text: str


@dataclass(frozen=True, slots=True)
class BoolLit:
    value: bool
    text: str


@dataclass(frozen=True, slots=True)
class OtherExpr:
    """Any expression without a dedicated shape (numbers, lambdas, subscripts...)."""

    node_type: str
    text: str


Expr = NameRef | QualifiedRef | CallExpr | StringLit | ListLit | TupleLit | BoolLit | OtherExpr

_IGNORED_CHILDREN = frozenset({"comment", "(", ")", "[", "]", ","})


def node_text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def _string_value(node: Node) -> str | None:
    """Literal value of a string node, or None for f-strings and bytes."""
    if any(child.type == "interpolation" for child in node.named_children):
        return None
    try:
        value = ast.literal_eval(node_text(node))
    except (ValueError, SyntaxError):
        return None
    return value if isinstance(value, str) else None


def _element_shapes(node: Node) -> tuple[Expr, ...]:
    return tuple(
        to_shape(child) for child in node.named_children if child.type not in _IGNORED_CHILDREN
    )


def _call_shape(node: Node) -> CallExpr:
    function = node.child_by_field_name("function")
    arguments = node.child_by_field_name("arguments")
    positional: list[Expr] = []
    keywords: list[KeywordArg] = []
    if arguments is not None and arguments.type == "argument_list":
        for arg in arguments.named_children:
            if arg.type == "keyword_argument":
                name = arg.child_by_field_name("name")
                value = arg.child_by_field_name("value")
                if name is not None and value is not None:
                    keywords.append(KeywordArg(name=node_text(name), value=to_shape(value)))
            elif arg.type not in _IGNORED_CHILDREN:
                positional.append(to_shape(arg))
    callee: Expr = (
        to_shape(function) if function is not None else OtherExpr("missing", node_text(node))
    )
    return CallExpr(
        callee=callee,
        positional=tuple(positional),
        keywords=tuple(keywords),
        text=node_text(node),
    )


def to_shape(node: Node) -> Expr:
    """Reduce an expression node to its recognized shape."""
    text = node_text(node)
    kind = node.type

    if kind == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if len(inner) == 1:
            return to_shape(inner[0])
        return OtherExpr(kind, text)

    if kind == "identifier":
        return NameRef(name=text, text=text)

    if kind == "attribute":
        obj = node.child_by_field_name("object")
        attr = node.child_by_field_name("attribute")
        if attr is None:
            return OtherExpr(kind, text)
        qualifier: str | None = None
        if obj is not None:
            if obj.type == "identifier":
                qualifier = node_text(obj)
            elif obj.type == "attribute":
                last = obj.child_by_field_name("attribute")
                qualifier = node_text(last) if last is not None else None
        return QualifiedRef(qualifier=qualifier, name=node_text(attr), text=text)

    if kind == "call":
        return _call_shape(node)

    if kind in ("string", "concatenated_string"):
        value = _string_value(node)
        if value is None:
            return OtherExpr(kind, text)
        return StringLit(value=value, text=text)

    if kind == "list":
        return ListLit(elements=_element_shapes(node), text=text)

    if kind == "tuple":
        return TupleLit(elements=_element_shapes(node), text=text)

    if kind in ("true", "false"):
        return BoolLit(value=kind == "true", text=text)

    return OtherExpr(kind, text)


def string_value(shape: Expr) -> str | None:
    """Value of a string literal shape, None for every other shape."""
    return shape.value if isinstance(shape, StringLit) else None
