"""Direct method extraction and method-kind classification."""

from __future__ import annotations

from odoolens.config.constants import (
    COMPUTE_PREFIX,
    CRUD_METHOD_NAMES,
    INVERSE_PREFIX,
    ONCHANGE_PREFIX,
    RECEIVER_NAMES,
    SEARCH_PREFIX,
)
from odoolens.index.models import MethodKind, MethodRecord
from odoolens.syntax.nodes import ClassDeclaration, FunctionDeclaration

_PREFIX_KINDS: tuple[tuple[str, MethodKind], ...] = (
    (COMPUTE_PREFIX, MethodKind.COMPUTE),
    (ONCHANGE_PREFIX, MethodKind.ONCHANGE),
    (INVERSE_PREFIX, MethodKind.INVERSE),
    (SEARCH_PREFIX, MethodKind.SEARCH),
)


def classify_method(name: str) -> MethodKind:
    """Method kind by naming convention."""
    for prefix, kind in _PREFIX_KINDS:
        if name.startswith(prefix):
            return kind
    if name in CRUD_METHOD_NAMES:
        return MethodKind.CRUD
    return MethodKind.BUSINESS_LOGIC


def _without_receiver(names: tuple[str, ...]) -> tuple[str, ...]:
    if names and names[0] in RECEIVER_NAMES:
        return names[1:]
    return names


def extract_method(fn: FunctionDeclaration) -> MethodRecord:
    return MethodRecord(
        name=fn.name,
        kind=classify_method(fn.name),
        parameter_names=_without_receiver(fn.parameter_names),
        decorators=fn.decorators,
        docstring=fn.docstring,
        line=fn.line,
    )


def extract_methods(decl: ClassDeclaration) -> list[MethodRecord]:
    """Methods declared directly on a class; a redefinition replaces the earlier one in place."""
    by_name: dict[str, MethodRecord] = {}
    for fn in decl.methods():
        by_name[fn.name] = extract_method(fn)
    return list(by_name.values())


def _builtin(name: str, kind: MethodKind, *params: str) -> MethodRecord:
    return MethodRecord(name=name, kind=kind, parameter_names=params)


FRAMEWORK_METHODS: dict[str, MethodRecord] = {
    record.name: record
    for record in (
        _builtin("create", MethodKind.CRUD, "vals"),
        _builtin("write", MethodKind.CRUD, "vals"),
        _builtin("unlink", MethodKind.CRUD),
        _builtin("read", MethodKind.CRUD, "fields", "load"),
        _builtin("search", MethodKind.SEARCH, "domain", "offset", "limit", "order"),
        _builtin("search_read", MethodKind.SEARCH, "domain", "fields", "offset", "limit", "order"),
        _builtin("browse", MethodKind.CRUD, "ids"),
        _builtin("exists", MethodKind.CRUD),
        _builtin("ensure_one", MethodKind.CRUD),
        _builtin("copy", MethodKind.CRUD, "default"),
        _builtin("name_get", MethodKind.BUSINESS_LOGIC),
        _builtin("name_search", MethodKind.SEARCH, "name", "args", "operator", "limit"),
        _builtin("default_get", MethodKind.BUSINESS_LOGIC, "fields"),
        _builtin("fields_get", MethodKind.BUSINESS_LOGIC, "allfields", "attributes"),
        _builtin("filtered", MethodKind.BUSINESS_LOGIC, "func"),
        _builtin("mapped", MethodKind.BUSINESS_LOGIC, "func"),
        _builtin("sorted", MethodKind.BUSINESS_LOGIC, "key", "reverse"),
        _builtin("sudo", MethodKind.BUSINESS_LOGIC, "user"),
        _builtin("with_context", MethodKind.BUSINESS_LOGIC, "context"),
        _builtin("with_user", MethodKind.BUSINESS_LOGIC, "user"),
        _builtin("with_company", MethodKind.BUSINESS_LOGIC, "company"),
        _builtin("with_env", MethodKind.BUSINESS_LOGIC, "env"),
    )
}
"""Methods every model inherits from the framework's base model."""
