"""Bounded version history for content items.

Each snapshot is a full copy of a record as it was just before an
update, stored at ``<content_dir>/<type>/<id>/versions/v<token>.<ext>``.
Only the newest ``keep_count`` snapshots survive a write.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path

from pydantic import JsonValue, ValidationError

from folio.config import FolioConfig
from folio.content import io
from folio.content.models import VERSION_FIELDS, VersionSnapshot
from folio.errors import RecordValidationError, StorageError

logger = logging.getLogger(__name__)

VERSIONS_DIR_NAME = "versions"
DEFAULT_KEEP_COUNT = 10

_EPOCH = datetime.fromtimestamp(0, UTC)


class VersionManager:
    """File-backed snapshot history keyed by (type, id)."""

    def __init__(
        self,
        content_dir: Path,
        *,
        extension: str = "json",
        keep_count: int = DEFAULT_KEEP_COUNT,
    ) -> None:
        if keep_count < 1:
            raise ValueError("keep_count must be at least 1")
        self._content_dir = content_dir
        self._extension = extension
        self.keep_count = keep_count

    @classmethod
    def from_config(cls, config: FolioConfig) -> VersionManager:
        return cls(
            config.storage.content_path,
            extension=config.storage.record_extension,
            keep_count=config.versions.keep_count,
        )

    def versions_dir(self, content_type: str, item_id: str) -> Path:
        io.check_component(content_type, "content type")
        io.check_component(item_id, "id")
        return self._content_dir / content_type / item_id / VERSIONS_DIR_NAME

    # ── Write operations ─────────────────────────────────────────

    async def create_version(
        self,
        content_type: str,
        item_id: str,
        snapshot: Mapping[str, JsonValue],
    ) -> VersionSnapshot:
        """Persist ``snapshot`` as a new version, then prune old ones.

        The version id encodes the snapshot time.  The time is kept strictly
        after the newest existing version and advanced past any taken file
        name, so ids stay unique and ordered.

        Raises:
            RecordValidationError: If the snapshot is not a valid record.
            StorageError: If the snapshot cannot be written.
        """
        versions_dir = self.versions_dir(content_type, item_id)
        moment = io.utc_now()
        existing = await self._scan(content_type, item_id)
        if existing:
            newest = _versioned_at(existing[0][1])
            if newest >= moment:
                moment = newest + io.ONE_MILLISECOND
        path = self._version_path(versions_dir, moment)
        try:
            while await io.path_exists(path):
                moment += io.ONE_MILLISECOND
                path = self._version_path(versions_dir, moment)
        except OSError as exc:
            raise StorageError(f"Failed to inspect versions in {versions_dir}: {exc}") from exc

        payload = {key: value for key, value in snapshot.items() if key not in VERSION_FIELDS}
        payload["versionId"] = path.stem
        payload["versionedAt"] = io.format_timestamp(moment)
        try:
            version = VersionSnapshot.model_validate(payload)
        except ValidationError as exc:
            raise RecordValidationError(
                f"Cannot snapshot {content_type}/{item_id}: {exc}"
            ) from exc

        try:
            await io.write_json_atomic(path, version.to_record())
        except OSError as exc:
            raise StorageError(f"Failed to write version {path}: {exc}") from exc

        await self.prune(content_type, item_id)
        return version

    async def prune(self, content_type: str, item_id: str, keep_count: int | None = None) -> int:
        """Delete all but the newest ``keep_count`` versions.

        Removal is best-effort: failures are logged and skipped.

        Returns:
            Number of version files removed.
        """
        keep = self.keep_count if keep_count is None else keep_count
        entries = await self._scan(content_type, item_id)
        if len(entries) <= keep:
            return 0

        removed = 0
        for path, _ in entries[keep:]:
            try:
                if await io.unlink(path):
                    removed += 1
            except OSError as exc:
                logger.warning("Could not remove version file %s: %s", path, exc)
        logger.debug("Pruned %d versions of %s/%s", removed, content_type, item_id)
        return removed

    async def delete_all_versions(self, content_type: str, item_id: str) -> bool:
        """Remove the whole history for (type, id).

        Returns:
            False if there was no history to remove.

        Raises:
            StorageError: If the directory exists but cannot be removed.
        """
        versions_dir = self.versions_dir(content_type, item_id)
        try:
            return await io.remove_tree(versions_dir)
        except OSError as exc:
            raise StorageError(f"Failed to delete versions at {versions_dir}: {exc}") from exc

    # ── Read operations ──────────────────────────────────────────

    async def list_versions(self, content_type: str, item_id: str) -> list[VersionSnapshot]:
        """Return all snapshots newest first; missing history yields ``[]``.

        Unreadable snapshot files are skipped with a warning.
        """
        return [version for _, version in await self._scan(content_type, item_id)]

    async def get_version(
        self,
        content_type: str,
        item_id: str,
        version_id: str,
    ) -> VersionSnapshot | None:
        """Return one snapshot by id, or None if it does not exist.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """
        io.check_component(version_id, "version id")
        path = self.versions_dir(content_type, item_id) / f"{version_id}.{self._extension}"
        try:
            payload = await io.read_json(path)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read version {path}: {exc}") from exc
        try:
            return VersionSnapshot.model_validate(payload)
        except ValidationError as exc:
            raise StorageError(f"Malformed version file {path}: {exc}") from exc

    # ── Private helpers ──────────────────────────────────────────

    def _version_path(self, versions_dir: Path, moment: datetime) -> Path:
        return versions_dir / f"v{io.timestamp_token(moment)}.{self._extension}"

    async def _scan(
        self, content_type: str, item_id: str
    ) -> list[tuple[Path, VersionSnapshot]]:
        """Load (path, snapshot) pairs sorted by versionedAt, newest first."""
        versions_dir = self.versions_dir(content_type, item_id)
        try:
            paths = await io.list_files(versions_dir, self._extension)
        except OSError as exc:
            raise StorageError(f"Failed to list versions at {versions_dir}: {exc}") from exc

        entries: list[tuple[Path, VersionSnapshot]] = []
        for path in paths:
            try:
                payload = await io.read_json(path)
                entries.append((path, VersionSnapshot.model_validate(payload)))
            except FileNotFoundError:
                # pruned or deleted since the directory was listed
                continue
            except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
                logger.warning("Could not parse version file %s", path)
            except OSError as exc:
                raise StorageError(f"Failed to read version {path}: {exc}") from exc

        entries.sort(key=lambda entry: _versioned_at(entry[1]), reverse=True)
        return entries


def _versioned_at(version: VersionSnapshot) -> datetime:
    return io.parse_timestamp(version.versioned_at) or _EPOCH
