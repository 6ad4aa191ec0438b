"""Cross-record uniqueness checks for fields flagged unique in the schema.

String values compare case-insensitively ("Slug-A" collides with
"slug-a"); every other value compares exactly, and booleans never equal
numbers.  All violated fields are reported, not just the first.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, JsonValue

from folio.content.store import ContentStore
from folio.errors import ConflictError
from folio.schema.provider import SchemaProvider

logger = logging.getLogger(__name__)


class UniquenessViolation(BaseModel):
    field: str
    value: JsonValue
    message: str
    path: str


class UniquenessReport(BaseModel):
    """Outcome of a uniqueness check; ``valid`` only when nothing collided."""

    valid: bool = True
    violations: list[UniquenessViolation] = Field(default_factory=list)

    def raise_for_conflicts(self) -> None:
        """Raise ConflictError naming every violated field."""
        if self.valid:
            return
        fields = ", ".join(v.field for v in self.violations)
        raise ConflictError(
            f"Unique constraint violated for: {fields}",
            violations=self.violations,
        )


def values_equal(candidate: Any, existing: Any) -> bool:
    if isinstance(candidate, str) and isinstance(existing, str):
        return candidate.lower() == existing.lower()
    if isinstance(candidate, bool) != isinstance(existing, bool):
        return False
    return candidate == existing


class UniquenessValidator:
    """Checks a candidate record against every stored record of its type."""

    def __init__(self, store: ContentStore, schema: SchemaProvider) -> None:
        self._store = store
        self._schema = schema

    async def validate(
        self,
        content_type: str,
        candidate: Mapping[str, JsonValue],
        exclude_id: str | None = None,
    ) -> UniquenessReport:
        """Report unique fields whose value already exists on another record.

        Args:
            content_type: Type whose unique fields apply.
            candidate: Record about to be created or written.
            exclude_id: Id to ignore (the record being updated in place).
        """
        unique_fields = self._schema.unique_fields(content_type)
        if not unique_fields:
            return UniquenessReport()

        existing = [item.to_record() for item in await self._store.list(content_type)]
        violations: list[UniquenessViolation] = []

        for field in unique_fields:
            value = candidate.get(field)
            if value is None:
                continue
            duplicate = next(
                (
                    record
                    for record in existing
                    if not (exclude_id and record.get("id") == exclude_id)
                    and field in record
                    and values_equal(value, record[field])
                ),
                None,
            )
            if duplicate is not None:
                violations.append(
                    UniquenessViolation(
                        field=field,
                        value=value,
                        message=(
                            f"Field '{field}' must be unique. A {content_type} with "
                            f"{field}='{_display(value)}' already exists."
                        ),
                        path=f"/{field}",
                    )
                )

        if violations:
            logger.debug(
                "Uniqueness check failed for %s: %s",
                content_type,
                [v.field for v in violations],
            )
        return UniquenessReport(valid=not violations, violations=violations)


def _display(value: JsonValue) -> str:
    return value if isinstance(value, str) else json.dumps(value)
