"""Completion candidates as plain data.

Each ``*_items`` function answers one completion site; ``complete_at``
dispatches on the string literal under the cursor. Items are unsorted
beyond what each site documents; ranking is left to the front-end.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from odoolens.config.constants import COMPUTE_PREFIX
from odoolens.index.methods import FRAMEWORK_METHODS
from odoolens.index.models import FieldKind, FieldRecord, MethodRecord
from odoolens.intel.context import LiteralRole, literal_context
from odoolens.intel.references import mixin_variants
from odoolens.syntax.nodes import ClassDeclaration, SourceUnit

if TYPE_CHECKING:
    from odoolens.workspace import Workspace


class CompletionKind(str, Enum):
    MODEL = "model"
    FIELD = "field"
    METHOD = "method"
    FIELD_TYPE = "field_type"
    FIELD_ATTRIBUTE = "field_attribute"
    RELATED_PATH = "related_path"
    COMPUTE_METHOD = "compute_method"
    MIXIN = "mixin"


@dataclass(frozen=True, slots=True)
class CompletionItem:
    label: str
    kind: CompletionKind
    type_text: str | None = None
    tail_text: str | None = None
    insert_text: str | None = None


COMMON_FIELD_ATTRIBUTES: tuple[str, ...] = (
    "string",
    "help",
    "required",
    "readonly",
    "index",
    "default",
    "copy",
    "store",
    "groups",
    "compute",
    "inverse",
    "search",
    "related",
    "tracking",
)

_KIND_ATTRIBUTES: dict[FieldKind, tuple[str, ...]] = {
    FieldKind.CHAR: ("size", "translate", "trim"),
    FieldKind.TEXT: ("translate",),
    FieldKind.HTML: ("translate", "sanitize", "strip_style"),
    FieldKind.FLOAT: ("digits",),
    FieldKind.MONETARY: ("currency_field",),
    FieldKind.SELECTION: ("selection", "selection_add", "ondelete"),
    FieldKind.MANY2ONE: (
        "comodel_name",
        "domain",
        "context",
        "ondelete",
        "auto_join",
        "check_company",
    ),
    FieldKind.ONE2MANY: ("comodel_name", "inverse_name", "domain", "context", "auto_join"),
    FieldKind.MANY2MANY: (
        "comodel_name",
        "relation",
        "column1",
        "column2",
        "domain",
        "context",
        "check_company",
    ),
    FieldKind.BINARY: ("attachment",),
    FieldKind.IMAGE: ("attachment", "max_width", "max_height", "verify_resolution"),
}

COMODEL_HINTS: dict[str, str] = {
    "partner_id": "res.partner",
    "user_id": "res.users",
    "company_id": "res.company",
    "currency_id": "res.currency",
    "country_id": "res.country",
    "state_id": "res.country.state",
    "category_id": "product.category",
    "product_id": "product.product",
    "sale_order_id": "sale.order",
    "purchase_order_id": "purchase.order",
    "invoice_id": "account.move",
    "move_id": "account.move",
    "move_line_id": "account.move.line",
    "account_id": "account.account",
    "journal_id": "account.journal",
}
"""Conventional comodels for common many2one field names."""


def field_attributes(kind: FieldKind) -> tuple[str, ...]:
    """Keyword arguments accepted by a field constructor, common ones first."""
    return COMMON_FIELD_ATTRIBUTES + _KIND_ATTRIBUTES.get(kind, ())


def _constructor_arguments(kind: FieldKind, field_name: str | None) -> list[str]:
    name = field_name or ""
    if kind is FieldKind.BOOLEAN:
        return ["string=''", "default=False"]
    if kind is FieldKind.SELECTION:
        return ["selection=[]", "string=''"]
    if kind is FieldKind.MANY2ONE:
        return [f"comodel_name='{COMODEL_HINTS.get(name, '')}'", "string=''"]
    if kind is FieldKind.ONE2MANY:
        return ["comodel_name=''", "inverse_name=''", "string=''"]
    if kind is FieldKind.MANY2MANY:
        return ["comodel_name=''", "string=''"]
    if kind is FieldKind.DATE and "date" in name and not ("birth" in name or "dob" in name):
        return ["string=''", "default=fields.Date.today"]
    if kind is FieldKind.DATETIME and ("create" in name or "write" in name):
        return ["string=''", "default=fields.Datetime.now"]
    if kind in (FieldKind.FLOAT, FieldKind.INTEGER):
        return ["string=''", "default=0"]
    if kind is FieldKind.MONETARY:
        return ["string=''", "currency_field='currency_id'"]
    if kind in (FieldKind.BINARY, FieldKind.IMAGE):
        return ["string=''", "attachment=True"]
    if kind in (FieldKind.JSON, FieldKind.PROPERTIES):
        return []
    return ["string=''"]


def field_type_items(field_name: str | None = None) -> list[CompletionItem]:
    """``fields.<Kind>(...)`` constructors with a starter argument list.

    ``field_name`` is the attribute being assigned; it tunes the template
    (e.g. ``partner_id`` pre-fills ``comodel_name='res.partner'``).
    """
    return [
        CompletionItem(
            label=kind.value,
            kind=CompletionKind.FIELD_TYPE,
            type_text=kind.category.value,
            tail_text=kind.summary,
            insert_text=f"{kind.value}({', '.join(_constructor_arguments(kind, field_name))})",
        )
        for kind in FieldKind
    ]


def field_attribute_items(
    kind: FieldKind,
    present: frozenset[str] = frozenset(),
) -> list[CompletionItem]:
    return [
        CompletionItem(label=name, kind=CompletionKind.FIELD_ATTRIBUTE, insert_text=f"{name}=")
        for name in field_attributes(kind)
        if name not in present
    ]


def model_name_items(ws: Workspace, prefix: str = "") -> list[CompletionItem]:
    """Indexed model identifiers starting with ``prefix``, sorted."""
    return [
        CompletionItem(
            label=record.identifier,
            kind=CompletionKind.MODEL,
            type_text=record.type_name,
            tail_text=record.description or None,
        )
        for record in sorted(ws.all_models(), key=lambda r: r.identifier)
        if record.identifier.startswith(prefix)
    ]


def _field_tail(field: FieldRecord) -> str | None:
    parts: list[str] = []
    if field.kind.is_relational and field.related_model:
        parts.append(f"-> {field.related_model}")
    if field.is_required:
        parts.append("required")
    if field.is_readonly:
        parts.append("readonly")
    if field.is_computed:
        parts.append("computed")
    return ", ".join(parts) or None


def field_item(field: FieldRecord) -> CompletionItem:
    return CompletionItem(
        label=field.name,
        kind=CompletionKind.FIELD,
        type_text=field.kind.value,
        tail_text=_field_tail(field),
    )


def field_items(ws: Workspace, identifier: str) -> list[CompletionItem]:
    """Merged fields of a model, in merge order."""
    return [field_item(field) for field in ws.fields_of(identifier)]


def _method_item(method: MethodRecord) -> CompletionItem:
    return CompletionItem(
        label=method.name,
        kind=CompletionKind.METHOD,
        type_text=method.kind.value,
        tail_text=f"({', '.join(method.parameter_names)})",
        insert_text=f"{method.name}()",
    )


def method_items(
    ws: Workspace,
    identifier: str,
    *,
    include_framework: bool = True,
) -> list[CompletionItem]:
    """Merged methods of a model, then framework methods it does not override."""
    methods = list(ws.methods_of(identifier))
    if include_framework:
        declared = {m.name for m in methods}
        methods.extend(m for name, m in FRAMEWORK_METHODS.items() if name not in declared)
    return [_method_item(method) for method in methods]


def member_items(ws: Workspace, identifier: str) -> list[CompletionItem]:
    """Everything reachable as ``record.<name>``: fields, then methods."""
    return field_items(ws, identifier) + method_items(ws, identifier)


def related_path_items(ws: Workspace, identifier: str, typed: str) -> list[CompletionItem]:
    """Next hop of a ``related=`` path.

    ``typed`` is the path so far; everything before its last dot must walk
    relational fields from ``identifier``. Items carry the full path as
    ``insert_text``.
    """
    head, _, partial = typed.rpartition(".")
    model = ws.model_at_path(identifier, head) if head else identifier
    if model is None:
        return []
    items: list[CompletionItem] = []
    for field in ws.fields_of(model):
        if not field.name.startswith(partial):
            continue
        full = f"{head}.{field.name}" if head else field.name
        items.append(
            CompletionItem(
                label=field.name,
                kind=CompletionKind.RELATED_PATH,
                type_text=field.kind.value,
                tail_text=_field_tail(field),
                insert_text=full,
            )
        )
    return items


def compute_method_items(
    decl: ClassDeclaration,
    field_name: str | None = None,
    prefix: str = "",
) -> list[CompletionItem]:
    """``_compute_*`` methods of the class; a conventional name if there is none yet."""
    items = [
        CompletionItem(
            label=method.name,
            kind=CompletionKind.COMPUTE_METHOD,
            tail_text=f"line {method.line}",
        )
        for method in decl.methods()
        if method.name.startswith(COMPUTE_PREFIX) and method.name.startswith(prefix)
    ]
    if field_name:
        suggested = f"{COMPUTE_PREFIX}{field_name}"
        if suggested.startswith(prefix) and all(item.label != suggested for item in items):
            items.append(
                CompletionItem(
                    label=suggested,
                    kind=CompletionKind.COMPUTE_METHOD,
                    tail_text="new method",
                )
            )
    return items


def mixin_items(ws: Workspace) -> list[CompletionItem]:
    return [CompletionItem(label=name, kind=CompletionKind.MIXIN) for name in mixin_variants(ws)]


def _assigned_field_name(unit: SourceUnit, start_byte: int) -> str | None:
    """Attribute name of ``name = fields.X(...)`` enclosing a byte offset."""
    node = unit.node_at(start_byte)
    while node is not None and node.type != "assignment":
        node = node.parent
    if node is None:
        return None
    left = node.child_by_field_name("left")
    if left is None or left.type != "identifier" or left.text is None:
        return None
    return left.text.decode("utf-8")


def complete_at(ws: Workspace, unit: SourceUnit, offset: int) -> list[CompletionItem]:
    """Candidates for the string literal at ``offset``; empty anywhere else."""
    ctx = literal_context(unit, offset)
    if ctx is None:
        return []

    if ctx.role.names_model:
        return model_name_items(ws, ctx.prefix)

    if ctx.role is LiteralRole.COMPUTE:
        if ctx.enclosing_class is None:
            return []
        field_name = _assigned_field_name(unit, ctx.start_byte)
        return compute_method_items(ctx.enclosing_class, field_name, ctx.prefix)

    if ctx.role is LiteralRole.RELATED:
        if ctx.enclosing_model is None:
            return []
        return related_path_items(ws, ctx.enclosing_model, ctx.prefix)
    return []
