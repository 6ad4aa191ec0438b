"""Query domain models — the parsed form of filter/sort/page parameters."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, JsonValue


class Operator(StrEnum):
    """Comparison applied by a single filter condition."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    CONTAINS = "contains"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class Condition(BaseModel):
    """One (operator, value) predicate on a field."""

    operator: Operator
    value: JsonValue


class SortKey(BaseModel):
    field: str
    direction: SortDirection = SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.DESC


class QuerySpec(BaseModel):
    """Request-scoped query: per-field predicates, search, sort, and page.

    ``filters`` maps a (possibly dotted) field path to its predicates;
    all predicates on all fields must hold.
    """

    filters: dict[str, list[Condition]] = Field(default_factory=dict)
    search: str | None = None
    sort: SortKey | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    def add_condition(self, field: str, operator: Operator, value: JsonValue) -> None:
        self.filters.setdefault(field, []).append(Condition(operator=operator, value=value))
