"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (ODOOLENS__SECTION__KEY)
3. Project YAML (.odoolens/config.yaml)
4. Global YAML (~/.config/odoolens/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    ODOOLENS__<SECTION>__<KEY>=<VALUE>

Examples:
    ODOOLENS__LOGGING__LEVEL=DEBUG
    ODOOLENS__INDEX__READY_WAIT_SEC=10
    ODOOLENS__RESOLVER__FIELD_WAIT_MS=100
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        ODOOLENS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every file scanned.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Model index configuration.

    Env vars:
        ODOOLENS__INDEX__READY_WAIT_SEC: Max reader wait for the first build
        ODOOLENS__INDEX__MAX_FILE_SIZE_MB: Skip files larger than this
    """

    ready_wait_sec: float = Field(
        default=5.0,
        description="Max time a query blocks waiting for the first index build. "
        "After this, queries answer from the partial index.",
    )
    max_file_size_mb: int = Field(
        default=2,
        description="Skip source files larger than this (MB).",
    )
    extra_excluded_dirs: list[str] = Field(
        default_factory=list,
        description="Directory names to skip in addition to the built-in list.",
    )

    @field_validator("ready_wait_sec")
    @classmethod
    def validate_ready_wait(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"ready_wait_sec must be >= 0, got {v}")
        return v


class IndexerConfig(BaseModel):
    """Background worker pool configuration.

    Env vars:
        ODOOLENS__INDEXER__MAX_WORKERS: Worker threads shared by index and resolvers
    """

    max_workers: int = Field(
        default=2,
        description="Worker threads for rebuilds, file updates and field resolution.",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v


class ResolverConfig(BaseModel):
    """Field/method resolver configuration.

    Env vars:
        ODOOLENS__RESOLVER__FIELD_WAIT_MS: Synchronous wait for a field merge
    """

    field_wait_ms: int = Field(
        default=50,
        description="How long fields_of() waits for a background merge before "
        "answering with an empty result. The cache is filled when the merge ends.",
    )

    @field_validator("field_wait_ms")
    @classmethod
    def validate_field_wait(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"field_wait_ms must be >= 0, got {v}")
        return v


class WatcherConfig(BaseModel):
    """File watcher configuration.

    Env vars:
        ODOOLENS__WATCHER__DEBOUNCE_SEC: Quiet window before delivering a batch
        ODOOLENS__WATCHER__MAX_DEBOUNCE_WAIT_SEC: Upper bound on batch delay
    """

    debounce_sec: float = Field(
        default=0.3,
        description="Quiet window before a batch of changes is delivered.",
    )
    max_debounce_wait_sec: float = Field(
        default=2.0,
        description="Deliver a batch after this long even if changes keep coming.",
    )


class OdooLensConfig(BaseModel):
    """Root configuration for odoolens."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
