"""Content domain — record models, file-backed store, and composed services.

Import the store and service from their modules
(``folio.content.store``, ``folio.content.services``).
"""

from folio.content.models import (
    ContentItem,
    ContentStatus,
    Page,
    Record,
    VersionSnapshot,
)

__all__ = [
    "ContentItem",
    "ContentStatus",
    "Page",
    "Record",
    "VersionSnapshot",
]
