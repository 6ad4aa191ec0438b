"""Folio — a headless content store backed by JSON files on disk.

Records are grouped by content type under a content directory, one file
per record, with a bounded version history kept beside each record.
"""

__version__ = "0.1.0"

from folio.config import FolioConfig, load_config
from folio.content.models import ContentItem, ContentStatus, Page, VersionSnapshot
from folio.content.services import ContentService
from folio.content.store import ContentStore
from folio.errors import (
    ConfigError,
    ConflictError,
    FolioError,
    NotFoundError,
    RecordValidationError,
    StorageError,
)

__all__ = [
    "ConfigError",
    "ConflictError",
    "ContentItem",
    "ContentService",
    "ContentStatus",
    "ContentStore",
    "FolioConfig",
    "FolioError",
    "NotFoundError",
    "Page",
    "RecordValidationError",
    "StorageError",
    "VersionSnapshot",
    "load_config",
]
