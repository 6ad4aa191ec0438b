"""Folio exception hierarchy.

Each failure kind the store can report has its own class so callers
(HTTP handlers, the CLI) can map outcomes without parsing messages.
"""

from __future__ import annotations

from typing import Any


class FolioError(Exception):
    """Base exception for all Folio failures."""


class ConfigError(FolioError):
    """Raised for invalid configuration or an unreadable schema file."""


class NotFoundError(FolioError):
    """Raised when a record or version does not exist."""


class ConflictError(FolioError):
    """Raised for a duplicate id on create or a uniqueness violation."""

    def __init__(self, message: str, violations: list[Any] | None = None) -> None:
        super().__init__(message)
        self.violations = violations or []


class RecordValidationError(FolioError):
    """Raised when a record fails structural validation."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class StorageError(FolioError):
    """Raised for filesystem failures other than a missing file."""
