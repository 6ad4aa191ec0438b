"""Parse raw request parameters into a QuerySpec.

Supported keys:

- ``field=value``: equality filter (loose, see ``folio.query.filters``)
- ``field__gt|lt|gte|lte|ne|contains=value``: operator filters
- ``field__in=a,b,c``: membership filter on a comma-separated list
- ``search=text``: case-insensitive free-text search
- ``sort=field`` / ``sort=-field``: ascending / descending sort
- ``limit=N`` / ``offset=N``: pagination
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping

from folio.query.models import Operator, QuerySpec, SortDirection, SortKey

logger = logging.getLogger(__name__)

_OPERATOR_KEY = re.compile(r"^(.+)__(gt|lt|gte|lte|ne|in|contains)$")

RESERVED_KEYS = ("limit", "offset", "sort", "search")


def parse_query(params: Mapping[str, str] | Iterable[tuple[str, str]]) -> QuerySpec:
    """Build a QuerySpec from key/value parameters.

    Accepts a mapping or an iterable of pairs; with pairs, repeated keys
    add one predicate each.  Invalid ``limit`` values (non-integer or
    below 1) mean "no limit"; invalid ``offset`` values mean 0.
    """
    pairs = params.items() if isinstance(params, Mapping) else params
    spec = QuerySpec()

    for key, value in pairs:
        if key == "limit":
            spec.limit = _parse_int(value, minimum=1)
            continue

        if key == "offset":
            spec.offset = _parse_int(value, minimum=0) or 0
            continue

        if key == "sort":
            spec.sort = _parse_sort(value)
            continue

        if key == "search":
            spec.search = value or None
            continue

        match = _OPERATOR_KEY.match(key)
        if match:
            field, operator = match.groups()
            if operator == Operator.IN:
                spec.add_condition(field, Operator.IN, [v.strip() for v in value.split(",")])
            else:
                spec.add_condition(field, Operator(operator), value)
            continue

        spec.add_condition(key, Operator.EQ, value)

    logger.debug("Parsed query: %s", spec)
    return spec


def _parse_int(value: str, *, minimum: int) -> int | None:
    try:
        number = int(str(value).strip())
    except ValueError:
        return None
    return number if number >= minimum else None


def _parse_sort(value: str) -> SortKey | None:
    descending = value.startswith("-")
    field = value[1:] if descending else value
    if not field:
        return None
    return SortKey(field=field, direction=SortDirection.DESC if descending else SortDirection.ASC)
