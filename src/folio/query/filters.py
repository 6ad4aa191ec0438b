"""Field lookup and per-record filter evaluation.

Equality is deliberately loose: query parameters always arrive as text,
so ``"true"`` matches boolean ``true``, ``"5"`` matches the number 5 and
``"a,b"`` matches the list ``["a", "b"]``.  The coercion for each kind of
stored value is spelled out in ``_LOOSE_EQUALITY`` rather than left to
implicit conversion.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Mapping
from typing import Any

from folio.query.models import Condition, Operator


class _Missing:
    """Marker for a field path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_TRUE_TEXT = frozenset({"true", "1"})
_FALSE_TEXT = frozenset({"false", "0", ""})
_NUMERIC_TEXT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


# ── Field lookup ─────────────────────────────────────────────────


def get_path(record: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path (``author.name``, ``tags.0``) or return MISSING."""
    current: Any = record
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return MISSING
    return current


# ── Value coercion ───────────────────────────────────────────────


def to_text(value: Any) -> str:
    """Render a stored value the way it reads in a query string."""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float, str)):
        return str(value)
    if isinstance(value, list):
        return ",".join(to_text(v) for v in value)
    return json.dumps(value, sort_keys=True)


def to_number(value: Any) -> float:
    """Coerce a value to a number; NaN when it has no numeric reading."""
    if value is MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if not _NUMERIC_TEXT.fullmatch(text):
            return math.nan
        return float(text)
    if isinstance(value, list):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


# ── Loose equality ───────────────────────────────────────────────


def _text_equals_bool(value: bool, text: str) -> bool:
    normalized = text.strip().lower()
    return normalized in (_TRUE_TEXT if value else _FALSE_TEXT)


def _text_equals_number(value: float, text: str) -> bool:
    return to_number(text) == value


def _text_equals_text(value: str, text: str) -> bool:
    return value == text


def _text_equals_list(value: list[Any], text: str) -> bool:
    return to_text(value) == text


def _never(value: Any, text: str) -> bool:
    return False


_LOOSE_EQUALITY: dict[type, Callable[[Any, str], bool]] = {
    bool: _text_equals_bool,
    int: _text_equals_number,
    float: _text_equals_number,
    str: _text_equals_text,
    list: _text_equals_list,
    dict: _never,
    type(None): _never,
    _Missing: _never,
}


def loose_equals(value: Any, expected: Any) -> bool:
    """Compare a stored value with a filter value, coercing text filters.

    Non-text filter values (from programmatic queries) compare strictly,
    except that booleans never equal numbers.
    """
    if not isinstance(expected, str):
        if isinstance(value, bool) != isinstance(expected, bool):
            return False
        return value == expected
    compare = _LOOSE_EQUALITY.get(type(value), _never)
    return compare(value, expected)


# ── Conditions ───────────────────────────────────────────────────


def _contains(value: Any, needle: Any) -> bool:
    if value is MISSING or value is None:
        return False
    term = to_text(needle).lower()
    if isinstance(value, list):
        return any(term in to_text(v).lower() for v in value)
    return term in to_text(value).lower()


def _member_of(value: Any, options: Any) -> bool:
    if value is MISSING or value is None:
        return False
    choices = {to_text(option) for option in options} if isinstance(options, list) else {
        to_text(options)
    }
    if isinstance(value, list):
        return any(to_text(v) in choices for v in value)
    return to_text(value) in choices


def matches_condition(value: Any, condition: Condition) -> bool:
    """Evaluate one predicate against a resolved field value."""
    operator, expected = condition.operator, condition.value
    if operator == Operator.EQ:
        return loose_equals(value, expected)
    if operator == Operator.NE:
        return not loose_equals(value, expected)
    if operator == Operator.GT:
        return to_number(value) > to_number(expected)
    if operator == Operator.GTE:
        return to_number(value) >= to_number(expected)
    if operator == Operator.LT:
        return to_number(value) < to_number(expected)
    if operator == Operator.LTE:
        return to_number(value) <= to_number(expected)
    if operator == Operator.IN:
        return _member_of(value, expected)
    if operator == Operator.CONTAINS:
        return _contains(value, expected)
    return True


def matches_filters(record: Mapping[str, Any], filters: Mapping[str, list[Condition]]) -> bool:
    """True if every condition on every field holds for ``record``."""
    for field, conditions in filters.items():
        value = get_path(record, field)
        for condition in conditions:
            if not matches_condition(value, condition):
                return False
    return True
