"""Content domain models — pure Pydantic v2 data types.

A ContentItem is an open mapping of schema-defined fields on top of a
small set of system fields (id, status, timestamps).  Field values are
restricted to the JSON value algebra: strings, numbers, booleans, null,
lists and nested mappings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, JsonValue

Record = dict[str, JsonValue]

T = TypeVar("T")

SYSTEM_FIELDS = ("id", "status", "createdAt", "updatedAt", "publishedAt")
VERSION_FIELDS = ("versionId", "versionedAt")


class ContentStatus(StrEnum):
    """Lifecycle status of a content item."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentItem(BaseModel):
    """A stored record of a given content type.

    System fields are typed; everything else the schema defines is kept
    as extra fields and round-trips unchanged.
    """

    model_config = ConfigDict(extra="allow")
    __pydantic_extra__: dict[str, JsonValue] = Field(init=False)

    id: str = Field(min_length=1)
    status: ContentStatus = ContentStatus.DRAFT
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    published_at: str | None = Field(default=None, alias="publishedAt")

    def to_record(self) -> Record:
        """Return the on-disk mapping (camelCase keys, no unset publishedAt)."""
        record = self.model_dump(mode="json", by_alias=True)
        if record.get("publishedAt") is None:
            record.pop("publishedAt", None)
        return record

    def get(self, field: str, default: Any = None) -> Any:
        """Look up a top-level field by its on-disk name."""
        return self.to_record().get(field, default)


class VersionSnapshot(ContentItem):
    """Immutable copy of a ContentItem taken just before an update."""

    version_id: str = Field(alias="versionId")
    versioned_at: str = Field(alias="versionedAt")

    def content_fields(self) -> Record:
        """Return the snapshot with version-only fields stripped."""
        record = self.to_record()
        for key in VERSION_FIELDS:
            record.pop(key, None)
        return record


class Page(BaseModel, Generic[T]):
    """One page of a filtered, sorted result set."""

    data: list[T] = Field(default_factory=list)
    total: int = 0
    limit: int | None = None
    offset: int = 0
    has_more: bool = False

    def to_payload(self, dump: Any = None) -> dict[str, Any]:
        """Render as ``{"data": [...], "pagination": {...}}``.

        Args:
            dump: Optional callable applied to each item.
        """
        items = [dump(item) for item in self.data] if dump else list(self.data)
        return {
            "data": items,
            "pagination": {
                "total": self.total,
                "limit": self.limit,
                "offset": self.offset,
                "hasMore": self.has_more,
            },
        }
