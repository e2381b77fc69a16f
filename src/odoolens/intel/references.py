"""Go-to-definition targets for model names, compute methods, related paths and mixins."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from odoolens.config.constants import COMPUTE_PREFIX
from odoolens.index.fields import extract_fields
from odoolens.index.models import FieldRecord, ModelRecord
from odoolens.index.resolver import ancestry
from odoolens.intel.context import LiteralContext, LiteralRole, literal_context
from odoolens.syntax.nodes import SourceUnit

if TYPE_CHECKING:
    from odoolens.workspace import Workspace

KNOWN_MIXINS: tuple[str, ...] = (
    "models.Model",
    "models.TransientModel",
    "models.AbstractModel",
    "MailThread",
    "MailActivityMixin",
    "UtmMixin",
    "WebsiteMixin",
    "RatingMixin",
    "PortalMixin",
    "ImageMixin",
    "SequenceMixin",
)
"""Base classes offered for class-inheritance lists even when not indexed."""


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None
    line: int
    column: int = 0


def model_location(record: ModelRecord) -> Location:
    column = record.declaration.column if record.declaration is not None else 0
    return Location(path=record.path, line=record.line, column=column)


def declaring_model(ws: Workspace, identifier: str, field_name: str) -> ModelRecord | None:
    """Closest model in the ancestry of ``identifier`` that declares ``field_name``."""
    for record in ancestry(ws.index, identifier):
        if record.declaration is None:
            continue
        if any(f.name == field_name for f in extract_fields(record.declaration)):
            return record
    return None


def _field_location(ws: Workspace, identifier: str, field: FieldRecord) -> Location | None:
    owner = declaring_model(ws, identifier, field.name)
    if owner is None:
        return None
    return Location(path=owner.path, line=field.line)


def _related_target(ws: Workspace, ctx: LiteralContext) -> Location | None:
    """Declaration of the last field of a related path."""
    if ctx.enclosing_model is None or not ctx.value:
        return None
    *hops, last = ctx.value.split(".")
    owner: str | None = ctx.enclosing_model
    if hops:
        owner = ws.model_at_path(ctx.enclosing_model, ".".join(hops))
    if owner is None:
        return None
    field = ws.find_field(owner, last)
    if field is None:
        return None
    return _field_location(ws, owner, field)


def resolve_context(ws: Workspace, ctx: LiteralContext) -> Location | None:
    if ctx.role.names_model:
        record = ws.find_model(ctx.value)
        return model_location(record) if record is not None else None

    if ctx.role is LiteralRole.COMPUTE:
        decl = ctx.enclosing_class
        method = decl.method(ctx.value) if decl is not None else None
        if decl is None or method is None:
            return None
        return Location(path=decl.path, line=method.line, column=method.node.start_point[1])

    if ctx.role is LiteralRole.RELATED:
        return _related_target(ws, ctx)
    return None


def resolve_literal(ws: Workspace, unit: SourceUnit, offset: int) -> Location | None:
    """Definition named by the string literal at ``offset``, if any."""
    ctx = literal_context(unit, offset)
    if ctx is None or not ctx.value.strip():
        return None
    return resolve_context(ws, ctx)


def literal_variants(ws: Workspace, unit: SourceUnit, offset: int) -> list[str]:
    """Every value the literal at ``offset`` could name."""
    ctx = literal_context(unit, offset)
    if ctx is None:
        return []
    if ctx.role.names_model:
        return sorted(record.identifier for record in ws.all_models())
    if ctx.role is LiteralRole.COMPUTE and ctx.enclosing_class is not None:
        return [
            method.name
            for method in ctx.enclosing_class.methods()
            if method.name.startswith(COMPUTE_PREFIX)
        ]
    return []


def resolve_mixin(ws: Workspace, name: str) -> ModelRecord | None:
    """Model for a base-class reference, matched by class name or model identifier."""
    for record in sorted(ws.all_models(), key=lambda r: r.identifier):
        if record.type_name == name or record.identifier == name:
            return record
    return None


def is_mixin_candidate(record: ModelRecord) -> bool:
    return (
        "Mixin" in record.type_name
        or "Abstract" in record.type_name
        or "abstract" in record.identifier
        or record.identifier.endswith(".mixin")
    )


def mixin_variants(ws: Workspace) -> list[str]:
    indexed = sorted({r.type_name for r in ws.all_models() if is_mixin_candidate(r)})
    return indexed + [name for name in KNOWN_MIXINS if name not in indexed]
