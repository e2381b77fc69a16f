"""Addon manifest parsing.

A manifest is a Python file whose only statement is a dict literal. Values
are read with the same literal rules as model attributes; anything that is
not a literal is ignored.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from odoolens.core.errors import SyntaxReadError
from odoolens.index.models import ModuleRecord
from odoolens.syntax.nodes import SourceUnit
from odoolens.syntax.parser import parse_file
from odoolens.syntax.shapes import Expr, ListLit, StringLit, to_shape

logger = structlog.get_logger()


def _manifest_entries(unit: SourceUnit) -> dict[str, Expr]:
    """Top-level ``{'key': <shape>}`` pairs of the manifest dict."""
    for stmt in unit.root.named_children:
        if stmt.type != "expression_statement" or not stmt.named_children:
            continue
        expr = stmt.named_children[0]
        if expr.type != "dictionary":
            continue
        entries: dict[str, Expr] = {}
        for pair in expr.named_children:
            if pair.type != "pair":
                continue
            key = pair.child_by_field_name("key")
            value = pair.child_by_field_name("value")
            if key is None or value is None:
                continue
            key_shape = to_shape(key)
            if isinstance(key_shape, StringLit):
                entries[key_shape.value] = to_shape(value)
        return entries
    return {}


def parse_manifest(unit: SourceUnit, module_name: str) -> ModuleRecord:
    entries = _manifest_entries(unit)

    name = entries.get("name")
    version = entries.get("version")
    depends = entries.get("depends")
    return ModuleRecord(
        name=module_name,
        manifest_path=unit.path if unit.path is not None else Path(module_name),
        display_name=name.value if isinstance(name, StringLit) else None,
        version=version.value if isinstance(version, StringLit) else None,
        depends=(
            tuple(e.value for e in depends.elements if isinstance(e, StringLit))
            if isinstance(depends, ListLit)
            else ()
        ),
    )


def read_manifest(path: Path) -> ModuleRecord | None:
    """Module record for a manifest file; None if the file cannot be read."""
    try:
        unit = parse_file(path)
    except SyntaxReadError as e:
        logger.warning("manifest_read_failed", path=str(path), error=e.message)
        return None
    if unit.has_errors:
        logger.debug("manifest_has_syntax_errors", path=str(path))
    return parse_manifest(unit, path.parent.name)
