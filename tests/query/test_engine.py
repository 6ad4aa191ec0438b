"""Tests for search, sort, pagination, and the full query pipeline."""

from folio.query.engine import apply_query, matches_search, paginate_items, sort_items
from folio.query.models import SortDirection, SortKey
from folio.query.parser import parse_query


class TestMatchesSearch:
    def test_nested_mapping(self):
        record = {"title": "Other", "meta": {"summary": "Hello World"}}
        assert matches_search(record, "hello")

    def test_list_of_tags(self):
        assert matches_search({"tags": ["news", "Hello World"]}, "HELLO")

    def test_non_strings_are_ignored(self):
        assert not matches_search({"count": 42, "flag": True}, "42")

    def test_empty_term_matches(self):
        assert matches_search({"title": "x"}, None)
        assert matches_search({"title": "x"}, "")


class TestSortItems:
    def test_ascending_and_descending(self):
        items = [{"n": 2}, {"n": 10}, {"n": 1}]
        asc = sort_items(items, SortKey(field="n"))
        desc = sort_items(items, SortKey(field="n", direction=SortDirection.DESC))
        assert [i["n"] for i in asc] == [1, 2, 10]
        assert [i["n"] for i in desc] == [10, 2, 1]

    def test_missing_and_null_last_in_both_directions(self):
        items = [{"id": "a"}, {"id": "b", "n": 2}, {"id": "c", "n": None}, {"id": "d", "n": 1}]
        asc = sort_items(items, SortKey(field="n"))
        desc = sort_items(items, SortKey(field="n", direction=SortDirection.DESC))
        assert [i["id"] for i in asc] == ["d", "b", "a", "c"]
        assert [i["id"] for i in desc] == ["b", "d", "a", "c"]

    def test_stable_for_equal_keys(self):
        items = [{"id": "x", "n": 1}, {"id": "y", "n": 1}, {"id": "z", "n": 0}]
        asc = sort_items(items, SortKey(field="n"))
        desc = sort_items(items, SortKey(field="n", direction=SortDirection.DESC))
        assert [i["id"] for i in asc] == ["z", "x", "y"]
        assert [i["id"] for i in desc] == ["x", "y", "z"]

    def test_mixed_types_do_not_raise(self):
        items = [{"v": "b"}, {"v": 3}, {"v": ["x"]}, {"v": "a"}]
        ordered = sort_items(items, SortKey(field="v"))
        assert [i["v"] for i in ordered] == [3, "a", "b", ["x"]]

    def test_no_sort_keeps_order(self):
        items = [{"n": 2}, {"n": 1}]
        assert sort_items(items, None) == items

    def test_record_of_accessor(self):
        wrapped = [("b", {"n": 2}), ("a", {"n": 1})]
        ordered = sort_items(wrapped, SortKey(field="n"), record_of=lambda pair: pair[1])
        assert [name for name, _ in ordered] == ["a", "b"]


class TestPaginateItems:
    def test_middle_page(self):
        items = list(range(1, 26))
        page = paginate_items(items, limit=10, offset=10)
        assert page.data == list(range(11, 21))
        assert page.total == 25
        assert page.has_more is True

    def test_last_page(self):
        page = paginate_items(list(range(25)), limit=10, offset=20)
        assert len(page.data) == 5
        assert page.has_more is False

    def test_offset_past_end(self):
        page = paginate_items(list(range(3)), limit=10, offset=10)
        assert page.data == []
        assert page.total == 3
        assert page.has_more is False

    def test_no_limit(self):
        page = paginate_items(list(range(5)), offset=2)
        assert page.data == [2, 3, 4]
        assert page.has_more is False


class TestApplyQuery:
    def test_price_filter_keeps_relative_order(self):
        items = [{"id": "a", "price": 5}, {"id": "b", "price": 15}, {"id": "c", "price": 25}]
        page = apply_query(items, parse_query({"price__gt": "10"}))
        assert [i["id"] for i in page.data] == ["b", "c"]

    def test_search_finds_nested_text(self):
        items = [
            {"id": "a", "body": {"intro": "Hello World"}},
            {"id": "b", "tags": ["Hello World"]},
            {"id": "c", "title": "Goodbye"},
        ]
        page = apply_query(items, parse_query({"search": "hello"}))
        assert [i["id"] for i in page.data] == ["a", "b"]

    def test_total_counts_before_slicing(self):
        items = [{"id": n, "kind": "post"} for n in range(1, 26)] + [{"id": 99, "kind": "page"}]
        page = apply_query(items, parse_query({"kind": "post", "limit": "10", "offset": "10"}))
        assert [i["id"] for i in page.data] == list(range(11, 21))
        assert page.total == 25
        assert page.has_more is True

    def test_full_pipeline(self):
        items = [
            {"id": "a", "status": "published", "price": 30, "title": "Alpha guide"},
            {"id": "b", "status": "draft", "price": 10, "title": "Beta guide"},
            {"id": "c", "status": "published", "price": 20, "title": "Gamma guide"},
            {"id": "d", "status": "published", "price": 5, "title": "Delta notes"},
        ]
        page = apply_query(
            items,
            parse_query({"status": "published", "search": "guide", "sort": "-price", "limit": "1"}),
        )
        assert [i["id"] for i in page.data] == ["a"]
        assert page.total == 2
        assert page.has_more is True
