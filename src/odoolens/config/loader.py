"""Configuration loading with pydantic-settings.

Layers, lowest first: built-in defaults, the user file
(``~/.config/odoolens/config.yaml``), the addons-root file
(``<root>/.odoolens/config.yaml``), an optional explicit file, the
``ODOOLENS__SECTION__KEY`` environment variables, and keyword overrides passed
to :func:`load_config`.
"""

from __future__ import annotations

from contextvars import ContextVar
from functools import reduce
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from odoolens.config.models import (
    IndexConfig,
    IndexerConfig,
    LoggingConfig,
    OdooLensConfig,
    ResolverConfig,
    WatcherConfig,
)
from odoolens.core.errors import ConfigError
from odoolens.core.logging import get_logger

log = get_logger("config.loader")

GLOBAL_CONFIG_PATH = Path("~/.config/odoolens/config.yaml").expanduser()
PROJECT_CONFIG_DIR = ".odoolens"
PROJECT_CONFIG_FILE = "config.yaml"

# Merged YAML layers for the load_config call running in this context
_file_layers: ContextVar[dict[str, Any]] = ContextVar("odoolens_file_layers", default={})


def _load_yaml(path: Path) -> dict[str, Any]:
    """Read one YAML layer. A missing or empty file is an empty layer."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged


def config_files(project_root: Path) -> tuple[Path, ...]:
    """YAML files consulted for ``project_root``, lowest precedence first."""
    return (GLOBAL_CONFIG_PATH, project_root / PROJECT_CONFIG_DIR / PROJECT_CONFIG_FILE)


class _FileLayersSource(PydanticBaseSettingsSource):
    def __init__(self, settings_cls: type[BaseSettings], layers: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._layers = layers

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        if field_name not in self._layers:
            return None, field_name, False
        return self._layers[field_name], field_name, True

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._layers.items() if k in self.settings_cls.model_fields}


class _OdooLensSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ODOOLENS__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    logging: LoggingConfig = LoggingConfig()
    index: IndexConfig = IndexConfig()
    indexer: IndexerConfig = IndexerConfig()
    resolver: ResolverConfig = ResolverConfig()
    watcher: WatcherConfig = WatcherConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # First source wins
        return (init_settings, env_settings, _FileLayersSource(settings_cls, _file_layers.get()))


def _invalid(exc: ValidationError) -> ConfigError:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return ConfigError.invalid_value(location, first.get("input"), first["msg"])


def load_config(
    project_root: Path | None = None,
    *,
    config_file: Path | None = None,
    **kwargs: Any,
) -> OdooLensConfig:
    """Resolve the effective configuration for an addons root.

    Args:
        project_root: Directory holding ``.odoolens/config.yaml``. Defaults to
            the current working directory.
        config_file: Extra YAML file layered over the project file. Unlike the
            implicit files it must exist.
        **kwargs: Section overrides, e.g. ``resolver=ResolverConfig(...)``.

    Raises:
        ConfigError: ``config_file`` is missing, a YAML file is malformed or
            a value fails validation.
    """
    paths = config_files(project_root or Path.cwd())
    if config_file is not None:
        if not config_file.is_file():
            raise ConfigError.file_not_found(str(config_file))
        paths = (*paths, config_file)
    layers = reduce(_deep_merge, (_load_yaml(path) for path in paths), {})
    log.debug("config_layers", files=[str(p) for p in paths if p.is_file()])

    token = _file_layers.set(layers)
    try:
        settings = _OdooLensSettings(**kwargs)
    except ValidationError as e:
        raise _invalid(e) from e
    finally:
        _file_layers.reset(token)
    return OdooLensConfig.model_validate(settings.model_dump())
