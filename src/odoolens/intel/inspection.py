"""Structural checks on model declarations.

Diagnostics are advisory. A class is inspected when it derives from a
framework model base, whether or not the index could extract a record
from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from odoolens.config.constants import DESCRIPTION_ATTRIBUTE, INHERIT_ATTRIBUTE, NAME_ATTRIBUTE
from odoolens.index.extractor import is_model_class
from odoolens.syntax.nodes import ClassDeclaration, SourceUnit
from odoolens.syntax.parser import parse_file
from odoolens.syntax.shapes import ListLit, StringLit

if TYPE_CHECKING:
    from odoolens.workspace import Workspace


class Severity(str, Enum):
    WARNING = "warning"
    WEAK_WARNING = "weak_warning"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    message: str
    severity: Severity
    path: Path | None
    line: int
    column: int
    class_name: str


def _diagnostic(
    decl: ClassDeclaration,
    message: str,
    severity: Severity,
    line: int | None = None,
    column: int | None = None,
) -> Diagnostic:
    return Diagnostic(
        message=message,
        severity=severity,
        path=decl.path,
        line=decl.line if line is None else line,
        column=decl.column if column is None else column,
        class_name=decl.name,
    )


def inspect_class(decl: ClassDeclaration) -> list[Diagnostic]:
    """Diagnostics for one class; empty for classes that are not models."""
    if not is_model_class(decl):
        return []

    found: list[Diagnostic] = []
    name = decl.attribute(NAME_ATTRIBUTE)
    if name is None:
        found.append(
            _diagnostic(decl, "Odoo model should have a _name attribute", Severity.WARNING)
        )
    elif not isinstance(name.value, StringLit):
        found.append(
            _diagnostic(
                decl,
                "_name should be a string literal",
                Severity.WARNING,
                line=name.line,
                column=name.column,
            )
        )

    if decl.attribute(DESCRIPTION_ATTRIBUTE) is None:
        found.append(
            _diagnostic(
                decl,
                "Odoo model should have a _description attribute",
                Severity.WEAK_WARNING,
            )
        )

    inherit = decl.attribute(INHERIT_ATTRIBUTE)
    if inherit is not None and not isinstance(inherit.value, StringLit | ListLit):
        found.append(
            _diagnostic(
                decl,
                "_inherit should be a string or list of strings",
                Severity.WARNING,
                line=inherit.line,
                column=inherit.column,
            )
        )
    return found


def inspect_unit(unit: SourceUnit) -> list[Diagnostic]:
    """Diagnostics for every top-level class of a file, in source order."""
    found: list[Diagnostic] = []
    for decl in unit.top_level_classes():
        found.extend(inspect_class(decl))
    return found


def inspect_file(ws: Workspace, path: Path) -> list[Diagnostic]:
    """Diagnostics for a file of a workspace; none outside framework projects.

    Raises:
        SyntaxReadError: The file cannot be read.
    """
    if not ws.is_framework_project():
        return []
    return inspect_unit(parse_file(path))
