"""Config module exports."""

from odoolens.config.loader import load_config
from odoolens.config.models import (
    IndexConfig,
    IndexerConfig,
    LoggingConfig,
    LogOutputConfig,
    OdooLensConfig,
    ResolverConfig,
    WatcherConfig,
)

__all__ = [
    "load_config",
    "IndexConfig",
    "IndexerConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "OdooLensConfig",
    "ResolverConfig",
    "WatcherConfig",
]
