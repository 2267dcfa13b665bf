"""
Integration tests for SearchIndex against a live Redis Stack server.
"""

import pytest

from vecsearch.index.search_index import SearchIndex
from vecsearch.query.filter import Filter
from vecsearch.query.filter_query import CountQuery, FilterQuery
from vecsearch.query.vector_query import VectorQuery, VectorRangeQuery

pytestmark = pytest.mark.integration

DOCUMENTS = [
    {"sku": f"sku-{i}", "brand": "nike" if i % 2 else "adidas", "price": i,
     "embedding": [1.0, i / 10.0]}
    for i in range(11)
]


@pytest.fixture
def index(redis_client, unique_name):
    index = SearchIndex.from_dict(
        {
            "index": {"name": unique_name, "prefix": unique_name},
            "fields": [
                {"name": "sku", "type": "tag"},
                {"name": "brand", "type": "tag"},
                {"name": "price", "type": "numeric", "attrs": {"sortable": True}},
                {"name": "embedding", "type": "vector", "attrs": {"dims": 2}},
            ],
        },
        redis_client=redis_client
    )
    index.create(overwrite=True, drop=True)
    index.load(DOCUMENTS, id_field="sku")
    yield index
    index.delete(drop=True)


class TestSearchIndexIntegration:
    """End-to-end index behaviour."""

    def test_load_fetch_key_invariant(self, index, redis_client):
        """Test that keys are prefix + separator + id and fetch returns the document."""
        assert redis_client.exists(f"{index.prefix}:sku-3") == 1

        document = index.fetch("sku-3")

        assert document["sku"] == "sku-3"
        assert document["price"] == 3
        assert document["embedding"] == pytest.approx([1.0, 0.3])

    def test_empty_tag_filter_matches_nothing(self, index):
        """Test that an empty tag filter selects no documents."""
        assert index.query(CountQuery()) == 11
        assert index.query(CountQuery(filter_expression=Filter.tag("brand"))) == 0
        assert index.query(FilterQuery(filter_expression=Filter.tag("brand"))) == []

        either = Filter.tag("brand") | Filter.tag("brand", "nike")
        assert index.query(CountQuery(filter_expression=either)) == 5

        neither = ~Filter.tag("brand")
        assert index.query(CountQuery(filter_expression=neither)) == 11

    def test_nested_compositions_are_accepted(self, index):
        """Test that differently nested ANDs select the same documents."""
        a = Filter.tag("brand", "nike")
        b = Filter.numeric("price").gte(3)
        c = Filter.numeric("price").lte(8)

        left = index.query(CountQuery(filter_expression=Filter.and_(Filter.and_(a, b), c)))
        right = index.query(CountQuery(filter_expression=Filter.and_(a, Filter.and_(b, c))))

        assert left == right == 3

    def test_pagination_exhaustion(self, index):
        """Test that paging returns every document exactly once."""
        query = FilterQuery(return_fields=["sku"], sort_by="price")

        rows = index.paginate(query, page_size=4).all()

        assert len(rows) == 11
        assert len({row["id"] for row in rows}) == 11

    def test_vector_query_is_deterministic(self, index):
        """Test that repeated KNN queries return identical ordered results."""
        query = VectorQuery(
            vector=[1.0, 0.45],
            vector_field_name="embedding",
            return_fields=["sku"],
            num_results=5
        )

        first = index.query(query)
        second = index.query(query)

        assert first == second
        assert len(first) == 5
        distances = [row["vector_distance"] for row in first]
        assert distances == sorted(distances)

    def test_vector_range_query_with_filter(self, index):
        """Test a hybrid range query."""
        query = VectorRangeQuery(
            vector=[1.0, 0.0],
            vector_field_name="embedding",
            distance_threshold=0.01,
            filter_expression=Filter.tag("brand", "adidas"),
            return_fields=["sku", "brand"]
        )

        rows = index.query(query)

        assert rows
        assert all(row["brand"] == "adidas" for row in rows)
        assert all(row["vector_distance"] <= 0.01 for row in rows)
