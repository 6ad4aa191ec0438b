"""Content services — validated write flows and composed read operations.

``ContentService`` is the single entry point a transport layer (HTTP
handlers, the CLI) talks to.  It wires the store, version history,
schema provider, uniqueness validator and relation resolver together and
reports outcomes as return values or ``FolioError`` subclasses, never as
protocol status codes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from pydantic import JsonValue

from folio.config import FolioConfig
from folio.content.models import ContentItem, Page, Record, VersionSnapshot
from folio.content.store import ContentStore
from folio.errors import NotFoundError, RecordValidationError
from folio.query.engine import apply_query
from folio.query.models import QuerySpec
from folio.query.parser import parse_query
from folio.relations.resolver import Relation, RelationResolver
from folio.schema.provider import ContentTypeSummary, SchemaProvider
from folio.validation.uniqueness import UniquenessValidator

logger = logging.getLogger(__name__)

# Alias to avoid shadowing by ContentService.list method
_list = list


class ContentService:
    """Composes storage, validation, versioning and relations."""

    def __init__(
        self,
        store: ContentStore,
        schema: SchemaProvider,
        *,
        relations: RelationResolver | None = None,
    ) -> None:
        self.store = store
        self.schema = schema
        self.uniqueness = UniquenessValidator(store, schema)
        self.relations = relations or RelationResolver(store)

    @classmethod
    def from_config(cls, config: FolioConfig) -> ContentService:
        store = ContentStore.from_config(config)
        return cls(
            store,
            SchemaProvider.from_config(config),
            relations=RelationResolver.from_config(store, config),
        )

    # ── Write flows ──────────────────────────────────────────────

    async def create(self, content_type: str, data: Mapping[str, JsonValue]) -> ContentItem:
        """Validate against the schema, check uniqueness, then create.

        Raises:
            RecordValidationError: If the schema rejects ``data``.
            ConflictError: If the id or a unique field value is taken.
        """
        self._check_schema(content_type, dict(data))
        report = await self.uniqueness.validate(content_type, data)
        report.raise_for_conflicts()
        return await self.store.create(content_type, data)

    async def update(
        self,
        content_type: str,
        item_id: str,
        data: Mapping[str, JsonValue],
    ) -> ContentItem:
        """Validate the merged record, check uniqueness, then update.

        Raises:
            NotFoundError: If the record does not exist.
            RecordValidationError: If the schema rejects the merged record.
            ConflictError: If a unique field value is taken by another record.
        """
        return await self._checked_update(content_type, item_id, data, replace=False)

    async def delete(self, content_type: str, item_id: str) -> bool:
        return await self.store.delete(content_type, item_id)

    async def restore(self, content_type: str, item_id: str, version_id: str) -> ContentItem:
        """Make a past version current again.

        The version's fields replace the current ones wholesale; only ``id``
        and ``createdAt`` are kept and ``updatedAt`` is refreshed.  The
        restored record passes the same schema and uniqueness checks as an
        update, and the state being replaced is itself snapshotted, so
        history only grows.

        Raises:
            NotFoundError: If the version or the record does not exist.
            RecordValidationError: If the schema rejects the restored record.
            ConflictError: If a unique value in the version is now taken.
        """
        version = await self.store.versions.get_version(content_type, item_id, version_id)
        if version is None:
            raise NotFoundError(
                f"Version not found: {content_type}/{item_id}@{version_id}"
            )
        restored = await self._checked_update(
            content_type, item_id, version.content_fields(), replace=True
        )
        logger.info("Restored %s/%s to %s", content_type, item_id, version_id)
        return restored

    async def _checked_update(
        self,
        content_type: str,
        item_id: str,
        data: Mapping[str, JsonValue],
        *,
        replace: bool,
    ) -> ContentItem:
        existing = await self.store.read(content_type, item_id)
        if existing is None:
            raise NotFoundError(f"Content item not found: {content_type}/{item_id}")
        base = {} if replace else existing.to_record()
        candidate = {**base, **data, "id": item_id}
        self._check_schema(content_type, candidate)
        report = await self.uniqueness.validate(content_type, candidate, exclude_id=item_id)
        report.raise_for_conflicts()
        return await self.store.update(content_type, item_id, data, replace=replace)

    # ── Read operations ──────────────────────────────────────────

    async def get(self, content_type: str, item_id: str) -> ContentItem | None:
        return await self.store.read(content_type, item_id)

    async def list(
        self,
        content_type: str,
        params: QuerySpec | Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
    ) -> Page[Record]:
        """List records of a type shaped by filter/search/sort/page params."""
        spec = params if isinstance(params, QuerySpec) else parse_query(params or {})
        records = [item.to_record() for item in await self.store.list(content_type)]
        return apply_query(records, spec)

    async def related(
        self,
        content_type: str,
        item_id: str,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> Page[Relation]:
        return await self.relations.get_related(content_type, item_id, limit=limit, offset=offset)

    async def list_versions(self, content_type: str, item_id: str) -> _list[VersionSnapshot]:
        return await self.store.versions.list_versions(content_type, item_id)

    async def get_version(
        self, content_type: str, item_id: str, version_id: str
    ) -> VersionSnapshot | None:
        return await self.store.versions.get_version(content_type, item_id, version_id)

    def content_types(self) -> _list[ContentTypeSummary]:
        return self.schema.content_types()

    # ── Private helpers ──────────────────────────────────────────

    def _check_schema(self, content_type: str, data: dict[str, JsonValue]) -> None:
        result = self.schema.validate(content_type, data)
        if not result.valid:
            raise RecordValidationError(
                "Validation failed",
                errors=[error.model_dump() for error in result.errors],
            )
