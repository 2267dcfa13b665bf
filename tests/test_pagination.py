"""
Tests for client-side query pagination.
"""

import pytest

from vecsearch.index.pagination import QueryPaginator
from vecsearch.query.filter_query import FilterQuery


class FakeIndex:
    """Serves a fixed list of rows according to each query's window."""

    def __init__(self, total):
        self.rows = [{"id": f"doc:{i}"} for i in range(total)]
        self.calls = []

    def query(self, query):
        self.calls.append((query.offset, query.num_results))
        return self.rows[query.offset:query.offset + query.num_results]


class TestQueryPaginator:
    """Test paging behaviour."""

    def test_all_returns_every_document_once(self):
        """Test exhaustion when the total is not a multiple of the page size."""
        index = FakeIndex(total=23)
        paginator = QueryPaginator(index, FilterQuery(), page_size=5)

        rows = paginator.all()

        assert len(rows) == 23
        assert len({row["id"] for row in rows}) == 23
        assert [row["id"] for row in rows] == [f"doc:{i}" for i in range(23)]
        # the short final page ends iteration without an extra round trip
        assert index.calls == [(0, 5), (5, 5), (10, 5), (15, 5), (20, 5)]

    def test_exact_multiple_needs_one_empty_page(self):
        """Test exhaustion when the total is a multiple of the page size."""
        index = FakeIndex(total=10)
        rows = QueryPaginator(index, FilterQuery(), page_size=5).all()

        assert len(rows) == 10
        assert index.calls == [(0, 5), (5, 5), (10, 5)]

    def test_has_next_and_next_page(self):
        """Test the explicit has_next/next_page protocol."""
        paginator = QueryPaginator(FakeIndex(total=3), FilterQuery(), page_size=2)

        assert paginator.has_next()
        assert [r["id"] for r in paginator.next_page()] == ["doc:0", "doc:1"]
        assert paginator.has_next()
        assert [r["id"] for r in paginator.next_page()] == ["doc:2"]
        assert not paginator.has_next()
        with pytest.raises(StopIteration):
            paginator.next_page()

    def test_has_next_is_idempotent(self):
        """Test that repeated has_next calls do not skip pages."""
        index = FakeIndex(total=4)
        paginator = QueryPaginator(index, FilterQuery(), page_size=2)

        assert paginator.has_next()
        assert paginator.has_next()
        assert len(index.calls) == 1
        assert paginator.next_page()[0]["id"] == "doc:0"

    def test_empty_result(self):
        """Test paginating a query with no results."""
        paginator = QueryPaginator(FakeIndex(total=0), FilterQuery(), page_size=3)

        assert not paginator.has_next()
        assert paginator.all() == []

    def test_starts_at_query_offset(self):
        """Test that pagination starts from the query's own offset."""
        index = FakeIndex(total=6)
        rows = QueryPaginator(index, FilterQuery(offset=4), page_size=5).all()

        assert [r["id"] for r in rows] == ["doc:4", "doc:5"]

    def test_iteration(self):
        """Test iterating over pages."""
        pages = list(QueryPaginator(FakeIndex(total=5), FilterQuery(), page_size=2))
        assert [len(page) for page in pages] == [2, 2, 1]

    def test_invalid_page_size(self):
        """Test page size validation."""
        with pytest.raises(ValueError, match="page_size must be a positive integer"):
            QueryPaginator(FakeIndex(total=1), FilterQuery(), page_size=0)

    def test_requires_search_query(self):
        """Test that only search queries can be paginated."""
        with pytest.raises(TypeError):
            QueryPaginator(FakeIndex(total=1), "not a query")
