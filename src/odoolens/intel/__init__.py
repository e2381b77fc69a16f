"""Query consumers: completion, references, documentation and inspection."""

from odoolens.intel.completion import (
    COMODEL_HINTS,
    CompletionItem,
    CompletionKind,
    complete_at,
    compute_method_items,
    field_attribute_items,
    field_attributes,
    field_items,
    field_type_items,
    member_items,
    method_items,
    mixin_items,
    model_name_items,
    related_path_items,
)
from odoolens.intel.context import LiteralContext, LiteralRole, literal_context
from odoolens.intel.documentation import ModelDoc, describe_field, doc_at, model_doc, quick_info
from odoolens.intel.inspection import (
    Diagnostic,
    Severity,
    inspect_class,
    inspect_file,
    inspect_unit,
)
from odoolens.intel.references import (
    KNOWN_MIXINS,
    Location,
    declaring_model,
    literal_variants,
    mixin_variants,
    resolve_literal,
    resolve_mixin,
)

__all__ = [
    # Context
    "LiteralContext",
    "LiteralRole",
    "literal_context",
    # Completion
    "COMODEL_HINTS",
    "CompletionItem",
    "CompletionKind",
    "complete_at",
    "compute_method_items",
    "field_attribute_items",
    "field_attributes",
    "field_items",
    "field_type_items",
    "member_items",
    "method_items",
    "mixin_items",
    "model_name_items",
    "related_path_items",
    # References
    "KNOWN_MIXINS",
    "Location",
    "declaring_model",
    "literal_variants",
    "mixin_variants",
    "resolve_literal",
    "resolve_mixin",
    # Documentation
    "ModelDoc",
    "describe_field",
    "doc_at",
    "model_doc",
    "quick_info",
    # Inspection
    "Diagnostic",
    "Severity",
    "inspect_class",
    "inspect_file",
    "inspect_unit",
]
