"""Direct field extraction from a model declaration.

A field is a class attribute assigned ``fields.<Kind>(...)`` with a known
kind. Only literal argument shapes are interpreted; anything else is kept
as source text (defaults, domains) or ignored.
"""

from __future__ import annotations

from odoolens.config.constants import FIELDS_MODULE_ALIAS
from odoolens.index.models import FieldKind, FieldRecord
from odoolens.syntax.nodes import AttributeAssignment, ClassDeclaration
from odoolens.syntax.shapes import (
    BoolLit,
    CallExpr,
    Expr,
    ListLit,
    QualifiedRef,
    StringLit,
    TupleLit,
    string_value,
)


def field_kind_of(value: Expr | None) -> FieldKind | None:
    """Kind of a ``fields.<Kind>(...)`` call, None for anything else."""
    if not isinstance(value, CallExpr):
        return None
    callee = value.callee
    if not isinstance(callee, QualifiedRef) or callee.qualifier != FIELDS_MODULE_ALIAS:
        return None
    return FieldKind.from_constructor(callee.name)


def _flag(call: CallExpr, keyword: str) -> bool:
    value = call.keyword(keyword)
    return value.value if isinstance(value, BoolLit) else False


def _keyword_string(call: CallExpr, keyword: str) -> str | None:
    value = call.keyword(keyword)
    return string_value(value) if value is not None else None


def _keyword_text(call: CallExpr, keyword: str) -> str | None:
    value = call.keyword(keyword)
    return value.text if value is not None else None


def _first_positional_string(call: CallExpr) -> str | None:
    if not call.positional:
        return None
    return string_value(call.positional[0])


def _selection_options(call: CallExpr) -> tuple[tuple[str, str], ...] | None:
    """``[('key', 'Label'), ...]`` from ``selection=`` or the first positional argument."""
    value = call.keyword("selection")
    if value is None and call.positional:
        value = call.positional[0]
    if not isinstance(value, ListLit):
        return None
    options: list[tuple[str, str]] = []
    for element in value.elements:
        if not isinstance(element, TupleLit) or len(element.elements) != 2:
            continue
        key, label = element.elements
        if isinstance(key, StringLit) and isinstance(label, StringLit):
            options.append((key.value, label.value))
    return tuple(options)


def extract_field(attr: AttributeAssignment) -> FieldRecord | None:
    """Field record for one class attribute, or None if it is not a field."""
    value = attr.value
    kind = field_kind_of(value)
    if kind is None or not isinstance(value, CallExpr):
        return None

    related_model: str | None = None
    domain: str | None = None
    label = _keyword_string(value, "string")
    if kind.is_relational:
        related_model = _keyword_string(value, "comodel_name") or _first_positional_string(value)
        domain = _keyword_text(value, "domain")
    elif label is None and kind is not FieldKind.SELECTION:
        label = _first_positional_string(value)

    return FieldRecord(
        name=attr.name,
        kind=kind,
        is_required=_flag(value, "required"),
        is_readonly=_flag(value, "readonly"),
        is_computed=value.keyword("compute") is not None,
        default_value=_keyword_text(value, "default"),
        help_text=_keyword_string(value, "help"),
        domain_expression=domain,
        related_model=related_model,
        selection_options=_selection_options(value) if kind is FieldKind.SELECTION else None,
        label=label,
        compute_method=_keyword_string(value, "compute"),
        related_path=_keyword_string(value, "related"),
        line=attr.line,
    )


def extract_fields(decl: ClassDeclaration) -> list[FieldRecord]:
    """Fields declared directly on a class, in declaration order.

    A name assigned twice keeps its last assignment, at the position of the
    first; reassigning a field to a non-field value removes it.
    """
    by_name: dict[str, FieldRecord] = {}
    for attr in decl.attributes():
        record = extract_field(attr)
        if record is None:
            by_name.pop(attr.name, None)
        else:
            by_name[attr.name] = record
    return list(by_name.values())
