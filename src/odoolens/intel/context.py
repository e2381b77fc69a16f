"""Classification of the string literal under a cursor.

Completion, references and documentation all start from the same question:
what does the string at this offset name? The answer is a ``LiteralContext``
carrying the literal's role, its value, the text typed so far, and the
model class it sits in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from odoolens.config.constants import INHERIT_ATTRIBUTE, NAME_ATTRIBUTE
from odoolens.index.extractor import is_model_class, parent_identifiers
from odoolens.index.fields import field_kind_of
from odoolens.index.models import FieldKind
from odoolens.syntax.nodes import ClassDeclaration, SourceUnit, enclosing_class
from odoolens.syntax.shapes import (
    NameRef,
    QualifiedRef,
    StringLit,
    node_text,
    string_value,
    to_shape,
)

if TYPE_CHECKING:
    from tree_sitter import Node

_STRING_TYPES = frozenset({"string", "concatenated_string"})


class LiteralRole(str, Enum):
    """What a string literal names."""

    ENV_MODEL = "env_model"  # self.env['res.partner']
    NAME = "name"  # _name = 'res.partner'
    INHERIT = "inherit"  # _inherit = 'res.partner' / ['mail.thread', ...]
    COMPUTE = "compute"  # fields.X(compute='_compute_total')
    RELATED = "related"  # fields.X(related='partner_id.name')
    COMODEL = "comodel"  # fields.Many2one('res.partner') / comodel_name=...

    @property
    def names_model(self) -> bool:
        return self in (
            LiteralRole.ENV_MODEL,
            LiteralRole.NAME,
            LiteralRole.INHERIT,
            LiteralRole.COMODEL,
        )


@dataclass(frozen=True, slots=True)
class LiteralContext:
    role: LiteralRole
    value: str
    prefix: str
    line: int
    column: int
    start_byte: int
    end_byte: int
    enclosing_model: str | None = None
    field_kind: FieldKind | None = None
    enclosing_class: ClassDeclaration | None = field(default=None, repr=False, compare=False)


def model_identifier_of(decl: ClassDeclaration) -> str | None:
    """Model a class declares or extends: its ``_name``, else its first ``_inherit``."""
    if not is_model_class(decl):
        return None
    name = decl.attribute(NAME_ATTRIBUTE)
    if name is not None and name.value is not None:
        value = string_value(name.value)
        if value is not None:
            return value
    inherit = decl.attribute(INHERIT_ATTRIBUTE)
    if inherit is None:
        return None
    parents = parent_identifiers(inherit.value)
    return parents[0] if parents else None


def string_node_at(unit: SourceUnit, offset: int) -> Node | None:
    """Outermost string literal node containing ``offset``."""
    node = unit.node_at(offset)
    found: Node | None = None
    while node is not None:
        if node.type in _STRING_TYPES:
            found = node
        elif found is not None:
            break
        node = node.parent
    return found


def _content_start(node: Node) -> int:
    first = node.named_children[0] if node.type == "concatenated_string" else node
    for child in first.children:
        if child.type == "string_start":
            return child.end_byte
    return first.start_byte + 1


def _assignment_target(node: Node) -> str | None:
    """Name assigned by ``node``'s parent assignment when ``node`` is its right side."""
    parent = node.parent
    if parent is None or parent.type != "assignment":
        return None
    right = parent.child_by_field_name("right")
    left = parent.child_by_field_name("left")
    if right is None or right != node or left is None or left.type != "identifier":
        return None
    return node_text(left)


def _is_env(node: Node | None) -> bool:
    if node is None:
        return False
    shape = to_shape(node)
    return isinstance(shape, NameRef | QualifiedRef) and shape.name == "env"


def _classify(literal: Node) -> tuple[LiteralRole, FieldKind | None] | None:
    parent = literal.parent
    if parent is None:
        return None

    if parent.type == "subscript":
        value = parent.child_by_field_name("value")
        if value != literal and _is_env(value):
            return LiteralRole.ENV_MODEL, None
        return None

    target = _assignment_target(literal)
    if target == NAME_ATTRIBUTE:
        return LiteralRole.NAME, None
    if target == INHERIT_ATTRIBUTE:
        return LiteralRole.INHERIT, None

    if parent.type == "list":
        if _assignment_target(parent) == INHERIT_ATTRIBUTE:
            return LiteralRole.INHERIT, None
        return None

    if parent.type == "keyword_argument":
        arguments = parent.parent
        call = arguments.parent if arguments is not None else None
        if call is None or call.type != "call":
            return None
        kind = field_kind_of(to_shape(call))
        name = parent.child_by_field_name("name")
        if kind is None or name is None:
            return None
        keyword = node_text(name)
        if keyword == "compute":
            return LiteralRole.COMPUTE, kind
        if keyword == "related":
            return LiteralRole.RELATED, kind
        if keyword == "comodel_name" and kind.is_relational:
            return LiteralRole.COMODEL, kind
        return None

    if parent.type == "argument_list":
        call = parent.parent
        if call is None or call.type != "call":
            return None
        kind = field_kind_of(to_shape(call))
        positional = [
            c for c in parent.named_children if c.type not in ("keyword_argument", "comment")
        ]
        if kind is not None and kind.is_relational and positional and positional[0] == literal:
            return LiteralRole.COMODEL, kind
    return None


def literal_context(unit: SourceUnit, offset: int) -> LiteralContext | None:
    """Role of the string literal at ``offset``; None outside a recognized literal."""
    literal = string_node_at(unit, offset)
    if literal is None:
        return None
    classified = _classify(literal)
    if classified is None:
        return None
    role, kind = classified

    shape = to_shape(literal)
    start = _content_start(literal)
    prefix = ""
    if offset >= start:
        prefix = unit.source[start:offset].decode("utf-8", errors="replace")
    decl = enclosing_class(literal, unit.path)
    return LiteralContext(
        role=role,
        value=shape.value if isinstance(shape, StringLit) else prefix,
        prefix=prefix,
        line=literal.start_point[0] + 1,
        column=literal.start_point[1],
        start_byte=literal.start_byte,
        end_byte=literal.end_byte,
        enclosing_model=model_identifier_of(decl) if decl is not None else None,
        field_kind=kind,
        enclosing_class=decl,
    )
