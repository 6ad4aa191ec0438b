"""Shared fixtures: an on-disk store, an in-memory schema, and the service over both."""

from pathlib import Path
from typing import Any

import pytest

from folio.content.services import ContentService
from folio.content.store import ContentStore
from folio.schema.provider import SchemaProvider
from folio.versions.manager import VersionManager

SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "definitions": {
        "posts": {
            "type": "object",
            "title": "Blog Post",
            "description": "Articles shown on the blog",
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "slug": {"type": "string", "unique": True},
                "price": {"type": "number"},
                "tags": {"type": "array", "items": {"type": "string"}},
                "category": {"type": "string"},
                "status": {"type": "string", "enum": ["draft", "published", "archived"]},
            },
            "required": ["title"],
        },
        "authors": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "email": {"type": "string", "unique": True},
                "handle": {"type": "string", "unique": True},
            },
            "required": ["name", "email"],
        },
    },
}


@pytest.fixture
def schema_document() -> dict[str, Any]:
    return SCHEMA


@pytest.fixture
def schema(schema_document: dict[str, Any]) -> SchemaProvider:
    return SchemaProvider.from_dict(schema_document)


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    content_dir = tmp_path / "content"
    return ContentStore(content_dir, versions=VersionManager(content_dir, keep_count=10))


@pytest.fixture
def service(store: ContentStore, schema: SchemaProvider) -> ContentService:
    return ContentService(store, schema)
