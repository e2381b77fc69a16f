"""Hover documentation as plain data."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from odoolens.config.constants import DOC_CHILDREN_SHOWN, DOC_FIELDS_SHOWN
from odoolens.index.models import FieldRecord
from odoolens.intel.context import literal_context
from odoolens.syntax.nodes import SourceUnit

if TYPE_CHECKING:
    from odoolens.workspace import Workspace


@dataclass(frozen=True, slots=True)
class ModelDoc:
    """Documentation for one model: identity, ancestry, and a sample of fields and children."""

    identifier: str
    type_name: str
    description: str
    parents: tuple[str, ...]
    fields: tuple[FieldRecord, ...]
    field_count: int
    children: tuple[str, ...]
    child_count: int
    path: Path | None = None
    line: int = 0

    @property
    def hidden_fields(self) -> int:
        return self.field_count - len(self.fields)

    @property
    def hidden_children(self) -> int:
        return self.child_count - len(self.children)


def describe_field(field: FieldRecord) -> str:
    """One-line summary: ``partner_id: Many2one -> res.partner (required)``."""
    text = f"{field.name}: {field.kind.value}"
    if field.kind.is_relational and field.related_model:
        text += f" -> {field.related_model}"
    flags = [
        flag
        for flag, on in (
            ("required", field.is_required),
            ("readonly", field.is_readonly),
            ("computed", field.is_computed),
        )
        if on
    ]
    if flags:
        text += f" ({', '.join(flags)})"
    return text


def model_doc(ws: Workspace, identifier: str) -> ModelDoc | None:
    record = ws.find_model(identifier)
    if record is None:
        return None

    fields = ws.fields_of(identifier)
    children = sorted(child.identifier for child in ws.models_inheriting(identifier))
    return ModelDoc(
        identifier=record.identifier,
        type_name=record.type_name,
        description=record.description,
        parents=record.parent_identifiers,
        fields=tuple(fields[:DOC_FIELDS_SHOWN]),
        field_count=len(fields),
        children=tuple(children[:DOC_CHILDREN_SHOWN]),
        child_count=len(children),
        path=record.path,
        line=record.line,
    )


def quick_info(ws: Workspace, identifier: str) -> str | None:
    record = ws.find_model(identifier)
    if record is None:
        return None
    if record.description:
        return f"Odoo Model: {record.identifier} - {record.description}"
    return f"Odoo Model: {record.identifier}"


def doc_at(ws: Workspace, unit: SourceUnit, offset: int) -> ModelDoc | None:
    """Documentation for the model named by the literal at ``offset``."""
    ctx = literal_context(unit, offset)
    if ctx is None or not ctx.role.names_model or not ctx.value.strip():
        return None
    return model_doc(ws, ctx.value)
