"""Syntax query layer over tree-sitter."""

from odoolens.syntax.nodes import (
    AttributeAssignment,
    ClassDeclaration,
    FunctionDeclaration,
    SourceUnit,
    enclosing_class,
)
from odoolens.syntax.parser import parse_file, parse_source, python_language
from odoolens.syntax.shapes import (
    BoolLit,
    CallExpr,
    Expr,
    KeywordArg,
    ListLit,
    NameRef,
    OtherExpr,
    QualifiedRef,
    StringLit,
    TupleLit,
    string_value,
    to_shape,
)

__all__ = [
    # Declarations
    "AttributeAssignment",
    "ClassDeclaration",
    "FunctionDeclaration",
    "SourceUnit",
    "enclosing_class",
    # Parsing
    "parse_file",
    "parse_source",
    "python_language",
    # Shapes
    "BoolLit",
    "CallExpr",
    "Expr",
    "KeywordArg",
    "ListLit",
    "NameRef",
    "OtherExpr",
    "QualifiedRef",
    "StringLit",
    "TupleLit",
    "string_value",
    "to_shape",
]
