"""odoolens error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index / syntax facade
- 4xxx: Workspace
- 9xxx: Internal

Irregular source code (non-model classes, malformed model declarations,
inheritance cycles) is never reported through these types. They are only
raised for failures of the machinery itself.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2003

    # Index / syntax (3xxx)
    SYNTAX_UNREADABLE = 3001
    SYNTAX_UNSUPPORTED = 3002

    # Workspace (4xxx)
    WORKSPACE_CLOSED = 4001
    WORKSPACE_NOT_A_DIRECTORY = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class OdooLensError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'SYNTAX_UNREADABLE')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(OdooLensError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class SyntaxReadError(OdooLensError):
    """The syntax facade could not produce a tree for a file."""

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "SyntaxReadError":
        return cls(
            code=ErrorCode.SYNTAX_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )

    @classmethod
    def unsupported(cls, path: str) -> "SyntaxReadError":
        return cls(
            code=ErrorCode.SYNTAX_UNSUPPORTED,
            message=f"Not a Python source file: {path}",
            details={"path": path},
        )


class WorkspaceError(OdooLensError):
    """Workspace lifecycle errors."""

    @classmethod
    def closed(cls, root: str) -> "WorkspaceError":
        return cls(
            code=ErrorCode.WORKSPACE_CLOSED,
            message=f"Workspace is not open: {root}",
            details={"root": root},
        )

    @classmethod
    def not_a_directory(cls, root: str) -> "WorkspaceError":
        return cls(
            code=ErrorCode.WORKSPACE_NOT_A_DIRECTORY,
            message=f"Workspace root is not a directory: {root}",
            details={"root": root},
        )


class InternalError(OdooLensError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
