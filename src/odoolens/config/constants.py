"""Framework vocabulary constants.

This module contains truly constant values that should NOT be user-configurable:
the names the framework itself defines. For configurable values (timeouts,
worker counts, size limits), see models.py.
"""

# =============================================================================
# Model declarations
# =============================================================================

MODEL_BASE_NAMES: frozenset[str] = frozenset({"Model", "TransientModel", "AbstractModel"})
"""Base classes that make a class a framework model."""

MODELS_MODULE_ALIAS = "models"
"""Qualifier for base-class factories: ``models.Model(...)``."""

FIELDS_MODULE_ALIAS = "fields"
"""Qualifier for field constructors: ``fields.Char(...)``."""

NAME_ATTRIBUTE = "_name"
DESCRIPTION_ATTRIBUTE = "_description"
INHERIT_ATTRIBUTE = "_inherit"

# =============================================================================
# Methods
# =============================================================================

CRUD_METHOD_NAMES: frozenset[str] = frozenset({"create", "write", "unlink", "read"})

COMPUTE_PREFIX = "_compute_"
ONCHANGE_PREFIX = "_onchange_"
INVERSE_PREFIX = "_inverse_"
SEARCH_PREFIX = "_search_"

RECEIVER_NAMES: frozenset[str] = frozenset({"self", "cls"})

API_DECORATORS: frozenset[str] = frozenset(
    {
        "api.model",
        "api.depends",
        "api.constrains",
        "api.onchange",
        "api.returns",
        "api.model_create_multi",
    }
)

# =============================================================================
# Project layout
# =============================================================================

MANIFEST_FILENAME = "__manifest__.py"
"""Presence of at least one manifest marks a framework project."""

SOURCE_SUFFIX = ".py"

PRUNED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # Our own data
        ".odoolens",
        # Python tooling
        "venv",
        ".venv",
        ".virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".nox",
        ".eggs",
        "site-packages",
        # Editors and frontend assets
        ".idea",
        ".vscode",
        "node_modules",
    )
)
"""Directories never scanned or watched."""

# =============================================================================
# Consumer limits
# =============================================================================

DOC_FIELDS_SHOWN = 10
"""Merged fields listed in model documentation before truncating."""

DOC_CHILDREN_SHOWN = 5
"""Extending models listed in model documentation before truncating."""
