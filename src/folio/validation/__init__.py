"""Cross-record validation — uniqueness of schema-flagged fields."""

from folio.validation.uniqueness import (
    UniquenessReport,
    UniquenessValidator,
    UniquenessViolation,
)

__all__ = ["UniquenessReport", "UniquenessValidator", "UniquenessViolation"]
