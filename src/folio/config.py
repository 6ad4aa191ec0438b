"""Unified configuration loaded from .folio.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from folio.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".folio.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "folio" / "config.toml"

DEFAULT_RELATION_FIELDS = ["related", "relations", "references", "linked"]


class StorageConfig(BaseModel):
    """[storage] section."""

    content_dir: str = "./content"
    record_extension: str = "json"

    @field_validator("record_extension")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        value = value.lstrip(".")
        if not value or "/" in value:
            raise ValueError("record_extension must be a bare file extension")
        return value

    @property
    def content_path(self) -> Path:
        return Path(self.content_dir).expanduser()


class SchemaSectionConfig(BaseModel):
    """[schema] section."""

    file: str = "./schema.json"

    @property
    def path(self) -> Path:
        return Path(self.file).expanduser()


class VersionsConfig(BaseModel):
    """[versions] section."""

    keep_count: int = Field(default=10, ge=1)
    enabled: bool = True


class RelationsConfig(BaseModel):
    """[relations] section — which fields link records together."""

    fields: list[str] = Field(default_factory=lambda: list(DEFAULT_RELATION_FIELDS))
    tags_field: str = "tags"
    category_field: str = "category"


class LoggingConfig(BaseModel):
    """[logging] section."""

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level


class FolioConfig(BaseModel):
    """Top-level configuration model for a Folio content store."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    schema_: SchemaSectionConfig = Field(default_factory=SchemaSectionConfig, alias="schema")
    versions: VersionsConfig = Field(default_factory=VersionsConfig)
    relations: RelationsConfig = Field(default_factory=RelationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"populate_by_name": True}

    def dump(self) -> dict[str, dict[str, object]]:
        """Return the config as plain section dicts (TOML shape)."""
        return self.model_dump(by_alias=True)


def load_config(path: str | Path | None = None) -> FolioConfig:
    """Build a FolioConfig from the first TOML file found, then env vars.

    Files are tried in order: ``path`` when given, otherwise
    ``.folio.toml`` in the working directory, then the per-user
    ``~/.config/folio/config.toml``.  The first file that yields
    settings wins.

    Args:
        path: TOML file to use instead of searching.

    Raises:
        ConfigError: If the merged values are invalid.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = _validate(data)
    return _apply_env_vars(config)


def merge_cli_overrides(config: FolioConfig, **cli_kwargs: object) -> FolioConfig:
    """Return ``config`` with command-line flags applied.

    Flags left at ``None`` keep the configured value; unknown flag names
    are ignored.

    Args:
        config: Config loaded from file and environment.
        **cli_kwargs: CLI flag values (``content_dir``, ``schema_file``,
            ``record_extension``, ``keep_count``, ``log_level``).
    """
    data = config.dump()

    mapping: dict[str, tuple[str, str]] = {
        "content_dir": ("storage", "content_dir"),
        "record_extension": ("storage", "record_extension"),
        "schema_file": ("schema", "file"),
        "keep_count": ("versions", "keep_count"),
        "log_level": ("logging", "level"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = str(value) if isinstance(value, Path) else value

    return _validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Parse one TOML file; unreadable or malformed files count as empty."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _validate(data: dict[str, object]) -> FolioConfig:
    try:
        return FolioConfig.model_validate(data) if data else FolioConfig()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _apply_env_vars(config: FolioConfig) -> FolioConfig:
    """Overlay CONTENT_DIR, SCHEMA_FILE and FOLIO_* variables."""
    data = config.dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "CONTENT_DIR": ("storage", "content_dir"),
        "FOLIO_RECORD_EXTENSION": ("storage", "record_extension"),
        "SCHEMA_FILE": ("schema", "file"),
        "FOLIO_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    keep_raw = os.environ.get("FOLIO_VERSION_KEEP_COUNT")
    if keep_raw is not None:
        try:
            data["versions"]["keep_count"] = int(keep_raw)
        except ValueError:
            logger.warning("Ignoring non-integer FOLIO_VERSION_KEEP_COUNT=%r", keep_raw)

    return _validate(data)
