"""Core module exports."""

from odoolens.core.errors import (
    ConfigError,
    ErrorCode,
    InternalError,
    OdooLensError,
    SyntaxReadError,
    WorkspaceError,
)
from odoolens.core.logging import (
    bind_workspace,
    configure_logging,
    get_logger,
    unbind_workspace,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "OdooLensError",
    "SyntaxReadError",
    "WorkspaceError",
    # Logging
    "bind_workspace",
    "configure_logging",
    "get_logger",
    "unbind_workspace",
]
