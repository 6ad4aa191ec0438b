"""Filesystem helpers shared by the content store and version history.

All blocking calls run in a worker thread via ``asyncio.to_thread`` so
store operations only suspend at I/O boundaries.  Writes go through a
temp file in the target directory followed by ``os.replace`` so readers
never observe a partially written record.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from folio.errors import RecordValidationError

TEMP_SUFFIX = ".tmp"


# ── Timestamps ───────────────────────────────────────────────────


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
    """Render an ISO-8601 UTC timestamp with millisecond precision."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime | None:
    """Parse a stored timestamp; returns None when absent or unparseable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def timestamp_token(moment: datetime) -> str:
    """Encode a timestamp as a filesystem-safe token (``:`` and ``.`` → ``-``)."""
    return format_timestamp(moment).replace(":", "-").replace(".", "-")


ONE_MILLISECOND = timedelta(milliseconds=1)


def check_component(value: str, label: str) -> str:
    """Reject values that cannot be used as a single path segment."""
    if (
        not value
        or value.startswith(".")
        or "/" in value
        or "\\" in value
        or "\x00" in value
    ):
        raise RecordValidationError(f"Invalid {label}: {value!r}")
    return value


# ── Blocking primitives (run in a worker thread) ─────────────────


def _write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.stem}.", suffix=TEMP_SUFFIX, dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _list_files(directory: Path, extension: str) -> list[Path]:
    if not directory.is_dir():
        return []
    suffix = f".{extension}"
    return sorted(
        entry
        for entry in directory.iterdir()
        if entry.suffix == suffix and not entry.name.startswith(".") and entry.is_file()
    )


def _unlink(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def _remove_tree(directory: Path) -> bool:
    try:
        shutil.rmtree(directory)
    except FileNotFoundError:
        return False
    return True


# ── Async wrappers ───────────────────────────────────────────────


async def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write ``payload`` as indented JSON, replacing ``path`` atomically."""
    await asyncio.to_thread(_write_json_atomic, path, payload)


async def read_json(path: Path) -> Any:
    """Read and decode a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the content is not valid JSON.
    """
    return await asyncio.to_thread(_read_json, path)


async def list_files(directory: Path, extension: str) -> list[Path]:
    """Return files in ``directory`` with ``extension``, sorted by name.

    Hidden files (including in-flight temp files) are skipped.  A missing
    directory yields an empty list.
    """
    return await asyncio.to_thread(_list_files, directory, extension)


async def path_exists(path: Path) -> bool:
    return await asyncio.to_thread(path.exists)


async def unlink(path: Path) -> bool:
    """Remove a file; returns False if it did not exist."""
    return await asyncio.to_thread(_unlink, path)


async def remove_tree(directory: Path) -> bool:
    """Remove a directory tree; returns False if it did not exist."""
    return await asyncio.to_thread(_remove_tree, directory)
