"""Schema provider — content type definitions from a JSON Schema document.

The schema file holds one JSON Schema per content type, either under
``definitions`` or as top-level keys.  Properties may carry the
non-standard ``"unique": true`` flag, which the uniqueness validator
reads.  The parsed document is cached on the provider instance until
``reload()`` or ``clear_cache()`` is called.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator
from pydantic import BaseModel, Field

from folio.config import FolioConfig
from folio.errors import ConfigError

logger = logging.getLogger(__name__)

_NON_TYPE_KEYS = frozenset({"definitions", "$schema", "$id", "title", "description"})


class SchemaError(BaseModel):
    """A single structural validation failure."""

    message: str
    path: str = ""
    params: dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    valid: bool
    errors: list[SchemaError] = Field(default_factory=list)


class ContentTypeSummary(BaseModel):
    """Derived description of one content type."""

    name: str
    title: str
    description: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    unique_fields: list[str] = Field(default_factory=list, serialization_alias="uniqueFields")


class SchemaProvider:
    """Lazily loaded, explicitly reloadable view of the schema file."""

    def __init__(self, schema_file: Path) -> None:
        self._path = schema_file
        self._schema: dict[str, Any] | None = None

    @classmethod
    def from_config(cls, config: FolioConfig) -> SchemaProvider:
        return cls(config.schema_.path)

    @classmethod
    def from_dict(cls, schema: dict[str, Any]) -> SchemaProvider:
        """Build a provider around an in-memory schema document."""
        provider = cls(Path("<memory>"))
        provider._schema = schema
        return provider

    @property
    def path(self) -> Path:
        return self._path

    # ── Cache management ─────────────────────────────────────────

    def load(self) -> dict[str, Any]:
        """Return the schema document, reading it on first use.

        Raises:
            ConfigError: If the file is missing or is not a JSON object.
        """
        if self._schema is not None:
            return self._schema
        if not self._path.exists():
            raise ConfigError(f"Schema file not found: {self._path}")
        try:
            schema = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Failed to load schema file {self._path}: {exc}") from exc
        if not isinstance(schema, dict):
            raise ConfigError(f"Schema file {self._path} must contain a JSON object")
        self._schema = schema
        logger.info("Loaded schema from %s", self._path)
        return schema

    def clear_cache(self) -> None:
        self._schema = None

    def reload(self) -> dict[str, Any]:
        """Drop the cached document and read the file again."""
        self.clear_cache()
        return self.load()

    # ── Type lookups ─────────────────────────────────────────────

    def definition(self, content_type: str) -> dict[str, Any] | None:
        """Return the JSON Schema for a type, or None if it is not defined."""
        schema = self.load()
        definitions = schema.get("definitions")
        if isinstance(definitions, dict) and isinstance(definitions.get(content_type), dict):
            return definitions[content_type]
        if content_type not in _NON_TYPE_KEYS and isinstance(schema.get(content_type), dict):
            return schema[content_type]
        return None

    def unique_fields(self, content_type: str) -> list[str]:
        """Return property names flagged ``"unique": true`` for a type."""
        definition = self.definition(content_type)
        if definition is None:
            return []
        return _unique_fields(definition)

    def required_fields(self, content_type: str) -> list[str]:
        definition = self.definition(content_type)
        if definition is None:
            return []
        return list(definition.get("required", []))

    def content_types(self) -> list[ContentTypeSummary]:
        """Summarize every type in ``definitions`` and at the top level."""
        schema = self.load()
        candidates: dict[str, Any] = {}
        definitions = schema.get("definitions")
        if isinstance(definitions, dict):
            candidates.update(definitions)
        for name, definition in schema.items():
            if name not in _NON_TYPE_KEYS:
                candidates[name] = definition

        summaries: list[ContentTypeSummary] = []
        for name, definition in candidates.items():
            if not isinstance(definition, dict):
                continue
            properties = definition.get("properties") or {}
            summaries.append(
                ContentTypeSummary(
                    name=name,
                    title=definition.get("title") or name,
                    description=definition.get("description") or "",
                    properties=properties,
                    required=list(definition.get("required", [])),
                    unique_fields=_unique_fields(definition),
                )
            )
        return summaries

    # ── Validation ───────────────────────────────────────────────

    def validate(self, content_type: str, data: dict[str, Any]) -> ValidationResult:
        """Validate a candidate record against its type's JSON Schema.

        Local ``#/definitions/...`` references resolve against the whole
        schema document.
        """
        definition = self.definition(content_type)
        if definition is None:
            return ValidationResult(
                valid=False,
                errors=[
                    SchemaError(
                        message=f"No schema definition found for content type: {content_type}"
                    )
                ],
            )

        root = self.load()
        resolvable = dict(definition)
        if "definitions" in root and "definitions" not in resolvable:
            resolvable["definitions"] = root["definitions"]

        validator = Draft7Validator(resolvable)
        found = sorted(validator.iter_errors(data), key=lambda e: _json_pointer(e.absolute_path))
        errors = [
            SchemaError(
                message=error.message,
                path=_json_pointer(error.absolute_path),
                params={"validator": error.validator, "expected": error.validator_value},
            )
            for error in found
        ]
        return ValidationResult(valid=not errors, errors=errors)


def _unique_fields(definition: dict[str, Any]) -> list[str]:
    properties = definition.get("properties") or {}
    return [
        name
        for name, field_schema in properties.items()
        if isinstance(field_schema, dict) and field_schema.get("unique") is True
    ]


def _json_pointer(path: Any) -> str:
    parts = [str(part).replace("~", "~0").replace("/", "~1") for part in path]
    return "/" + "/".join(parts) if parts else ""
