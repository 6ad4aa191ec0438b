"""Search, sort and pagination over in-memory record lists.

Pipeline order is filter → search → sort → paginate; ``total`` is the
count after search and before slicing.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from folio.content.models import Page
from folio.query.filters import MISSING, get_path, matches_filters
from folio.query.models import QuerySpec, SortKey

T = TypeVar("T")


def matches_search(record: Mapping[str, Any], term: str | None) -> bool:
    """Case-insensitive substring scan over every string in the record.

    Strings nested in mappings and lists are included.  An empty term
    matches everything.
    """
    if not term:
        return True
    needle = term.lower()

    def _scan(value: Any) -> bool:
        if isinstance(value, str):
            return needle in value.lower()
        if isinstance(value, Mapping):
            return any(_scan(v) for v in value.values())
        if isinstance(value, list):
            return any(_scan(v) for v in value)
        return False

    return _scan(record)


def _sort_value(value: Any) -> tuple[int, Any]:
    # Numbers (and booleans) order before strings, strings before compound values.
    if isinstance(value, (bool, int, float)):
        return (0, float(value))
    if isinstance(value, str):
        return (1, value)
    return (2, json.dumps(value, sort_keys=True))


def sort_items(
    items: Sequence[T],
    sort: SortKey | None,
    record_of: Callable[[T], Mapping[str, Any]] | None = None,
) -> list[T]:
    """Return items ordered by ``sort.field``; equal keys keep input order.

    Items whose field is missing or null always come last, in input
    order, whichever the direction.

    Args:
        items: Records (or objects wrapping records) to sort.
        sort: Field and direction; None returns a copy unchanged.
        record_of: Maps an item to its record mapping; identity by default.
    """
    if sort is None or not sort.field:
        return list(items)
    lookup = record_of or (lambda item: item)  # type: ignore[assignment, return-value]

    present: list[tuple[tuple[int, Any], T]] = []
    absent: list[T] = []
    for item in items:
        value = get_path(lookup(item), sort.field)
        if value is MISSING or value is None:
            absent.append(item)
        else:
            present.append((_sort_value(value), item))

    present.sort(key=lambda pair: pair[0], reverse=sort.descending)
    return [item for _, item in present] + absent


def paginate_items(items: Sequence[T], limit: int | None = None, offset: int = 0) -> Page[T]:
    """Slice ``items`` by offset then limit and report pagination metadata."""
    offset = max(offset, 0)
    total = len(items)
    end = None if limit is None else offset + limit
    return Page(
        data=list(items[offset:end]),
        total=total,
        limit=limit,
        offset=offset,
        has_more=(offset + limit < total) if limit else False,
    )


def apply_query(
    items: Sequence[T],
    spec: QuerySpec,
    record_of: Callable[[T], Mapping[str, Any]] | None = None,
) -> Page[T]:
    """Run the full filter → search → sort → paginate pipeline."""
    lookup = record_of or (lambda item: item)  # type: ignore[assignment, return-value]
    selected = [
        item
        for item in items
        if matches_filters(lookup(item), spec.filters) and matches_search(lookup(item), spec.search)
    ]
    ordered = sort_items(selected, spec.sort, record_of=lookup)
    return paginate_items(ordered, spec.limit, spec.offset)
