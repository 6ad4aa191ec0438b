"""File-backed content store.

Each record lives in its own JSON file at ``<content_dir>/<type>/<id>.<ext>``.
Writes replace the file atomically; updates snapshot the previous state
into the version history first, and deletes cascade to that history.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from pathlib import Path

from pydantic import JsonValue, ValidationError

from folio.config import FolioConfig
from folio.content import io
from folio.content.locks import KeyedLock
from folio.content.models import ContentItem, ContentStatus
from folio.errors import (
    ConflictError,
    FolioError,
    NotFoundError,
    RecordValidationError,
    StorageError,
)
from folio.versions.manager import VersionManager

logger = logging.getLogger(__name__)

# Alias to avoid shadowing by ContentStore.list method
_list = list


class ContentStore:
    """CRUD repository for records of any content type.

    Writers to the same (type, id) are serialized through a keyed lock;
    readers never block.
    """

    def __init__(
        self,
        content_dir: Path,
        *,
        extension: str = "json",
        versions: VersionManager | None = None,
        versioning_enabled: bool = True,
    ) -> None:
        self._content_dir = content_dir
        self._extension = extension
        self.versions = versions or VersionManager(content_dir, extension=extension)
        self._versioning_enabled = versioning_enabled
        self._locks = KeyedLock()

    @classmethod
    def from_config(cls, config: FolioConfig) -> ContentStore:
        return cls(
            config.storage.content_path,
            extension=config.storage.record_extension,
            versions=VersionManager.from_config(config),
            versioning_enabled=config.versions.enabled,
        )

    @property
    def content_dir(self) -> Path:
        return self._content_dir

    def type_dir(self, content_type: str) -> Path:
        io.check_component(content_type, "content type")
        return self._content_dir / content_type

    def record_path(self, content_type: str, item_id: str) -> Path:
        io.check_component(item_id, "id")
        return self.type_dir(content_type) / f"{item_id}.{self._extension}"

    # ── Write operations ─────────────────────────────────────────

    async def create(self, content_type: str, data: Mapping[str, JsonValue]) -> ContentItem:
        """Create a record, assigning an id and timestamps.

        ``status`` defaults to draft.  A record created as published without
        an explicit ``publishedAt`` is stamped with the creation time.  An
        explicit ``createdAt`` is preserved.

        Raises:
            ConflictError: If a record with this id already exists.
            RecordValidationError: If the resulting record is malformed.
            StorageError: If the file cannot be written.
        """
        item_id = str(data["id"]) if data.get("id") else str(uuid.uuid4())
        path = self.record_path(content_type, item_id)
        now = io.format_timestamp(io.utc_now())

        status = data.get("status") or ContentStatus.DRAFT.value
        published_at = data.get("publishedAt")
        if status == ContentStatus.PUBLISHED and not published_at:
            published_at = now

        record: dict[str, JsonValue] = {
            **data,
            "id": item_id,
            "status": status,
            "createdAt": data.get("createdAt") or now,
            "updatedAt": now,
        }
        record.pop("publishedAt", None)
        if published_at:
            record["publishedAt"] = published_at
        item = _build_item(record, content_type)

        async with self._locks.hold(content_type, item_id):
            if await io.path_exists(path):
                raise ConflictError(f"Content with ID {item_id} already exists")
            await self._write(path, item)

        logger.info("Created %s/%s", content_type, item_id)
        return item

    async def update(
        self,
        content_type: str,
        item_id: str,
        data: Mapping[str, JsonValue],
        *,
        replace: bool = False,
    ) -> ContentItem:
        """Merge ``data`` over an existing record and replace it atomically.

        The pre-update state is snapshotted first; snapshot failures are
        logged and never abort the update.  ``id`` and ``createdAt`` cannot
        be changed.  Moving to published stamps ``publishedAt`` once; an
        explicit ``publishedAt`` in ``data`` always wins.

        With ``replace`` the previous fields are dropped instead of merged,
        so the record holds only ``data`` plus the preserved ``id`` and
        ``createdAt`` and a fresh ``updatedAt``.

        Raises:
            NotFoundError: If no record exists for (type, id).
            RecordValidationError: If the merged record is malformed.
            StorageError: If the file cannot be read or written.
        """
        path = self.record_path(content_type, item_id)
        async with self._locks.hold(content_type, item_id):
            existing = await self.read(content_type, item_id)
            if existing is None:
                raise NotFoundError(f"Content item not found: {content_type}/{item_id}")
            previous = existing.to_record()

            moment = io.utc_now()
            previous_update = io.parse_timestamp(previous["updatedAt"])
            if previous_update is not None and previous_update > moment:
                moment = previous_update
            now = io.format_timestamp(moment)
            status = data.get("status")
            new_status = status if status is not None else previous["status"]

            base: Mapping[str, JsonValue] = {} if replace else previous
            published_at = base.get("publishedAt")
            if new_status == ContentStatus.PUBLISHED and not published_at:
                published_at = now
            if "publishedAt" in data:
                published_at = data["publishedAt"]

            record: dict[str, JsonValue] = {
                **base,
                **data,
                "id": item_id,
                "status": new_status,
                "createdAt": previous["createdAt"],
                "updatedAt": now,
            }
            record.pop("publishedAt", None)
            if published_at:
                record["publishedAt"] = published_at
            item = _build_item(record, content_type)

            if self._versioning_enabled:
                await self._snapshot(content_type, item_id, previous)
            await self._write(path, item)

        logger.info("Updated %s/%s", content_type, item_id)
        return item

    async def delete(self, content_type: str, item_id: str) -> bool:
        """Delete a record and, best-effort, its whole version history.

        Returns:
            True if a record file existed and was removed.

        Raises:
            StorageError: If the record file cannot be removed.
        """
        path = self.record_path(content_type, item_id)
        async with self._locks.hold(content_type, item_id):
            try:
                existed = await io.unlink(path)
            except OSError as exc:
                raise StorageError(f"Failed to delete {path}: {exc}") from exc
            try:
                await self.versions.delete_all_versions(content_type, item_id)
            except FolioError as exc:
                logger.warning(
                    "Could not delete versions for %s/%s: %s", content_type, item_id, exc
                )

        if existed:
            logger.info("Deleted %s/%s", content_type, item_id)
        return existed

    # ── Read operations ──────────────────────────────────────────

    async def read(self, content_type: str, item_id: str) -> ContentItem | None:
        """Return a record, or None if it does not exist.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """
        path = self.record_path(content_type, item_id)
        try:
            payload = await io.read_json(path)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc
        try:
            return ContentItem.model_validate(payload)
        except ValidationError as exc:
            raise StorageError(f"Malformed record at {path}: {exc}") from exc

    async def exists(self, content_type: str, item_id: str) -> bool:
        return await io.path_exists(self.record_path(content_type, item_id))

    async def list(self, content_type: str) -> _list[ContentItem]:
        """Return every record of a type, ordered by file name.

        Files that do not parse as valid records are skipped with a warning.

        Raises:
            StorageError: If the type directory cannot be listed or read.
        """
        type_dir = self.type_dir(content_type)
        try:
            paths = await io.list_files(type_dir, self._extension)
        except OSError as exc:
            raise StorageError(f"Failed to list {type_dir}: {exc}") from exc

        items: _list[ContentItem] = []
        for path in paths:
            try:
                payload = await io.read_json(path)
                items.append(ContentItem.model_validate(payload))
            except FileNotFoundError:
                # deleted since the directory was listed
                continue
            except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
                logger.warning("Could not parse %s as a %s record", path.name, content_type)
            except OSError as exc:
                raise StorageError(f"Failed to read {path}: {exc}") from exc
        return items

    # ── Private helpers ──────────────────────────────────────────

    async def _write(self, path: Path, item: ContentItem) -> None:
        try:
            await io.write_json_atomic(path, item.to_record())
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    async def _snapshot(
        self,
        content_type: str,
        item_id: str,
        previous: Mapping[str, JsonValue],
    ) -> None:
        try:
            await self.versions.create_version(content_type, item_id, previous)
        except (FolioError, OSError) as exc:
            logger.warning(
                "Could not create version for %s/%s: %s", content_type, item_id, exc
            )


def _build_item(record: Mapping[str, JsonValue], content_type: str) -> ContentItem:
    try:
        return ContentItem.model_validate(record)
    except ValidationError as exc:
        raise RecordValidationError(
            f"Invalid {content_type} record: {exc}",
            errors=[
                {"message": err["msg"], "path": "/" + "/".join(str(p) for p in err["loc"])}
                for err in exc.errors()
            ],
        ) from exc
