"""Structured logging for odoolens.

Index builds, file updates and field merges run on worker threads, so every
event emitted off the main thread carries the worker's ``thread`` name, and
every event emitted while a workspace is open carries its ``workspace`` root.

Outputs (stderr, stdout or a file) each get their own level and renderer.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from odoolens.config.models import LoggingConfig, LogOutputConfig

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Third-party loggers that are chatty below WARNING
_QUIET_LOGGERS = ("watchfiles.main", "watchfiles.watcher")


def _level(name: str | None, fallback: int) -> int:
    if name is None:
        return fallback
    return _LEVEL_MAP.get(name.upper(), fallback)


def _add_thread_name(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    current = threading.current_thread()
    if current is not threading.main_thread():
        event_dict.setdefault("thread", current.name)
    return event_dict


def _renderer(output: LogOutputConfig) -> Any:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    stream = sys.stdout if output.destination == "stdout" else sys.stderr
    return structlog.dev.ConsoleRenderer(
        colors=output.destination in ("stderr", "stdout") and stream.isatty(),
        pad_event_to=0,
        pad_level=False,
    )


def _handler(destination: str) -> logging.Handler:
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog through stdlib logging, one handler per configured output.

    Args:
        config: Logging configuration. When given, ``json_format`` and
            ``level`` are ignored.
        json_format: Render the single stderr output as JSON.
        level: Root level for the single stderr output.
    """
    from odoolens.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _level(config.level, logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_thread_name,  # type: ignore[list-item]
    ]
    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(root_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for output in config.outputs:
        handler = _handler(output.destination)
        handler.setLevel(_level(output.level, root_level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=_renderer(output),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(handler)


def bind_workspace(root: Path) -> None:
    """Attach the workspace root to every log event on this context."""
    structlog.contextvars.bind_contextvars(workspace=str(root))


def unbind_workspace() -> None:
    structlog.contextvars.unbind_contextvars("workspace")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
