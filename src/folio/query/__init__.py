"""Query engine — parse request parameters and shape record lists.

Everything here is pure and stateless; it operates on in-memory
record mappings and never touches the filesystem.
"""

from folio.query.engine import apply_query, matches_search, paginate_items, sort_items
from folio.query.filters import get_path, matches_condition, matches_filters
from folio.query.models import Condition, Operator, QuerySpec, SortDirection, SortKey
from folio.query.parser import parse_query

__all__ = [
    "Condition",
    "Operator",
    "QuerySpec",
    "SortDirection",
    "SortKey",
    "apply_query",
    "get_path",
    "matches_condition",
    "matches_filters",
    "matches_search",
    "paginate_items",
    "parse_query",
    "sort_items",
]
