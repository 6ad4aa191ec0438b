"""Schema provider — content type definitions, unique flags, validation."""

from folio.schema.provider import (
    ContentTypeSummary,
    SchemaError,
    SchemaProvider,
    ValidationResult,
)

__all__ = ["ContentTypeSummary", "SchemaError", "SchemaProvider", "ValidationResult"]
