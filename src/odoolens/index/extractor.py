"""Framework model extraction.

Turns a class declaration into a ``ModelRecord`` when it is a framework
model with a literal ``_name``. Extraction is a pure function of the syntax
tree: malformed declarations degrade (no parents, empty description) or are
skipped, never raised.
"""

from __future__ import annotations

from typing import assert_never

from odoolens.config.constants import (
    DESCRIPTION_ATTRIBUTE,
    INHERIT_ATTRIBUTE,
    MODEL_BASE_NAMES,
    MODELS_MODULE_ALIAS,
    NAME_ATTRIBUTE,
)
from odoolens.index.models import ModelRecord
from odoolens.syntax.nodes import ClassDeclaration, SourceUnit
from odoolens.syntax.shapes import (
    BoolLit,
    CallExpr,
    Expr,
    ListLit,
    NameRef,
    OtherExpr,
    QualifiedRef,
    StringLit,
    TupleLit,
    string_value,
)


def is_model_base(expr: Expr) -> bool:
    """Whether one base-class expression marks its class as a framework model.

    Accepted: ``Model``, ``models.Model`` and the factory call form
    ``models.Model(...)``.
    """
    if isinstance(expr, NameRef | QualifiedRef):
        return expr.name in MODEL_BASE_NAMES
    if isinstance(expr, CallExpr):
        callee = expr.callee
        return (
            isinstance(callee, QualifiedRef)
            and callee.qualifier == MODELS_MODULE_ALIAS
            and callee.name in MODEL_BASE_NAMES
        )
    if isinstance(expr, StringLit | ListLit | TupleLit | BoolLit | OtherExpr):
        return False
    assert_never(expr)


def is_model_class(decl: ClassDeclaration) -> bool:
    return any(is_model_base(expr) for expr in decl.base_expressions())


def parent_identifiers(value: Expr | None) -> tuple[str, ...]:
    """Parents named by an ``_inherit`` value.

    A string is one parent, a list contributes its string elements in order.
    Any other shape yields no parents.
    """
    if value is None:
        return ()
    if isinstance(value, StringLit):
        return (value.value,)
    if isinstance(value, ListLit):
        return tuple(e.value for e in value.elements if isinstance(e, StringLit))
    if isinstance(value, NameRef | QualifiedRef | CallExpr | TupleLit | BoolLit | OtherExpr):
        return ()
    assert_never(value)


def _string_attribute(decl: ClassDeclaration, name: str) -> str | None:
    attr = decl.attribute(name)
    if attr is None:
        return None
    value = attr.value
    return string_value(value) if value is not None else None


def extract_model(decl: ClassDeclaration) -> ModelRecord | None:
    """Extract the model record of a class, or None if it is not an indexable model."""
    if not is_model_class(decl):
        return None

    identifier = _string_attribute(decl, NAME_ATTRIBUTE)
    if identifier is None:
        return None

    inherit = decl.attribute(INHERIT_ATTRIBUTE)
    return ModelRecord(
        identifier=identifier,
        type_name=decl.name,
        description=_string_attribute(decl, DESCRIPTION_ATTRIBUTE) or "",
        parent_identifiers=parent_identifiers(inherit.value if inherit is not None else None),
        path=decl.path,
        line=decl.line,
        declaration=decl,
    )


def extract_models(unit: SourceUnit) -> list[ModelRecord]:
    """All model records declared at the top level of a source file, in source order."""
    records: list[ModelRecord] = []
    for decl in unit.top_level_classes():
        record = extract_model(decl)
        if record is not None:
            records.append(record)
    return records
