"""Records produced by the model extractor, field/method extractors and manifest scanner.

All records are immutable. A model's record is replaced wholesale when its
file changes; field and method records are re-extracted from the stored
declaration whenever a merge is computed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from odoolens.syntax.nodes import ClassDeclaration


# ============================================================================
# ENUMS
# ============================================================================


class FieldCategory(str, Enum):
    """Coarse grouping of field kinds."""

    TEXT = "text"
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    SELECTION = "selection"
    RELATIONAL = "relational"
    BINARY = "binary"
    STRUCTURED = "structured"


class FieldKind(str, Enum):
    """Field constructors recognized as ``fields.<Kind>(...)``."""

    CHAR = "Char"
    TEXT = "Text"
    HTML = "Html"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    FLOAT = "Float"
    MONETARY = "Monetary"
    DATE = "Date"
    DATETIME = "Datetime"
    SELECTION = "Selection"
    MANY2ONE = "Many2one"
    ONE2MANY = "One2many"
    MANY2MANY = "Many2many"
    BINARY = "Binary"
    IMAGE = "Image"
    JSON = "Json"
    PROPERTIES = "Properties"

    @classmethod
    def from_constructor(cls, name: str) -> FieldKind | None:
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def category(self) -> FieldCategory:
        return _CATEGORIES[self]

    @property
    def is_relational(self) -> bool:
        return self.category is FieldCategory.RELATIONAL

    @property
    def summary(self) -> str:
        return _SUMMARIES[self]


_CATEGORIES: dict[FieldKind, FieldCategory] = {
    FieldKind.CHAR: FieldCategory.TEXT,
    FieldKind.TEXT: FieldCategory.TEXT,
    FieldKind.HTML: FieldCategory.TEXT,
    FieldKind.BOOLEAN: FieldCategory.BOOLEAN,
    FieldKind.INTEGER: FieldCategory.NUMERIC,
    FieldKind.FLOAT: FieldCategory.NUMERIC,
    FieldKind.MONETARY: FieldCategory.NUMERIC,
    FieldKind.DATE: FieldCategory.TEMPORAL,
    FieldKind.DATETIME: FieldCategory.TEMPORAL,
    FieldKind.SELECTION: FieldCategory.SELECTION,
    FieldKind.MANY2ONE: FieldCategory.RELATIONAL,
    FieldKind.ONE2MANY: FieldCategory.RELATIONAL,
    FieldKind.MANY2MANY: FieldCategory.RELATIONAL,
    FieldKind.BINARY: FieldCategory.BINARY,
    FieldKind.IMAGE: FieldCategory.BINARY,
    FieldKind.JSON: FieldCategory.STRUCTURED,
    FieldKind.PROPERTIES: FieldCategory.STRUCTURED,
}

_SUMMARIES: dict[FieldKind, str] = {
    FieldKind.CHAR: "Text field with size limit",
    FieldKind.TEXT: "Large text field",
    FieldKind.HTML: "HTML formatted text",
    FieldKind.BOOLEAN: "True/False checkbox",
    FieldKind.INTEGER: "Whole number",
    FieldKind.FLOAT: "Decimal number",
    FieldKind.MONETARY: "Currency amount",
    FieldKind.DATE: "Date only",
    FieldKind.DATETIME: "Date and time",
    FieldKind.SELECTION: "Dropdown selection",
    FieldKind.MANY2ONE: "Link to one record",
    FieldKind.ONE2MANY: "List of related records",
    FieldKind.MANY2MANY: "Multiple selections",
    FieldKind.BINARY: "File attachment",
    FieldKind.IMAGE: "Image file",
    FieldKind.JSON: "JSON data",
    FieldKind.PROPERTIES: "Dynamic properties",
}


class MethodKind(str, Enum):
    """Role of a model method, inferred from its name."""

    CRUD = "crud"
    COMPUTE = "compute"
    ONCHANGE = "onchange"
    INVERSE = "inverse"
    SEARCH = "search"
    BUSINESS_LOGIC = "business_logic"


# ============================================================================
# RECORDS
# ============================================================================


@dataclass(frozen=True, slots=True)
class ModelRecord:
    """One discovered framework model.

    ``declaration`` is a view into the syntax tree of the file snapshot that
    produced this record. It is used for navigation and for lazy field and
    method extraction, and takes no part in equality.
    """

    identifier: str
    type_name: str
    description: str = ""
    parent_identifiers: tuple[str, ...] = ()
    path: Path | None = None
    line: int = 0
    declaration: ClassDeclaration | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class FieldRecord:
    """A field declared directly on one model."""

    name: str
    kind: FieldKind
    is_required: bool = False
    is_readonly: bool = False
    is_computed: bool = False
    default_value: str | None = None
    help_text: str | None = None
    domain_expression: str | None = None
    related_model: str | None = None
    selection_options: tuple[tuple[str, str], ...] | None = None
    label: str | None = None
    compute_method: str | None = None
    related_path: str | None = None
    line: int = 0


@dataclass(frozen=True, slots=True)
class MethodRecord:
    """A method declared directly on one model."""

    name: str
    kind: MethodKind
    parameter_names: tuple[str, ...] = ()
    decorators: tuple[str, ...] = ()
    docstring: str | None = None
    line: int = 0


@dataclass(frozen=True, slots=True)
class ModuleRecord:
    """An addon, described by its manifest."""

    name: str
    manifest_path: Path
    display_name: str | None = None
    version: str | None = None
    depends: tuple[str, ...] = ()
