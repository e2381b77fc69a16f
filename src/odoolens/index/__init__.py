"""Model index: extraction, inheritance graph, and merged member resolution."""

from odoolens.index.discovery import has_manifest, iter_manifests, iter_source_files
from odoolens.index.extractor import extract_model, extract_models, is_model_class
from odoolens.index.fields import extract_field, extract_fields
from odoolens.index.graph import IndexState, IndexStats, ModelIndex
from odoolens.index.manifest import parse_manifest, read_manifest
from odoolens.index.methods import FRAMEWORK_METHODS, classify_method, extract_methods
from odoolens.index.models import (
    FieldCategory,
    FieldKind,
    FieldRecord,
    MethodKind,
    MethodRecord,
    ModelRecord,
    ModuleRecord,
)
from odoolens.index.resolver import FieldResolver, MethodResolver, ancestry

__all__ = [
    # Records
    "FieldCategory",
    "FieldKind",
    "FieldRecord",
    "MethodKind",
    "MethodRecord",
    "ModelRecord",
    "ModuleRecord",
    # Extraction
    "extract_field",
    "extract_fields",
    "extract_methods",
    "extract_model",
    "extract_models",
    "is_model_class",
    "classify_method",
    "FRAMEWORK_METHODS",
    # Discovery
    "has_manifest",
    "iter_manifests",
    "iter_source_files",
    "parse_manifest",
    "read_manifest",
    # Index and resolvers
    "IndexState",
    "IndexStats",
    "ModelIndex",
    "FieldResolver",
    "MethodResolver",
    "ancestry",
]
