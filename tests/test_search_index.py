"""
Tests for the SearchIndex facade, using a mocked redis-py client.
"""

from unittest.mock import MagicMock

import pytest
from redis.commands.search.aggregation import AggregateRequest
from redis.commands.search.document import Document

from vecsearch.exceptions import UnsupportedOperationError
from vecsearch.index.pagination import QueryPaginator
from vecsearch.index.search_index import SearchIndex
from vecsearch.query.aggregate import AggregationQuery
from vecsearch.query.filter import Filter
from vecsearch.query.filter_query import CountQuery, FilterQuery
from vecsearch.query.vector_query import VectorQuery


SCHEMA = {
    "index": {"name": "products", "prefix": "product"},
    "fields": [
        {"name": "brand", "type": "tag"},
        {"name": "price", "type": "numeric"},
        {"name": "embedding", "type": "vector", "attrs": {"dims": 2}},
    ],
}


@pytest.fixture
def client():
    client = MagicMock()
    client.execute_command.return_value = []
    return client


@pytest.fixture
def index(client):
    return SearchIndex.from_dict(SCHEMA, redis_client=client)


def search_result(*documents, total=None):
    result = MagicMock()
    result.docs = list(documents)
    result.total = len(documents) if total is None else total
    return result


class TestIndexLifecycle:
    """Test index creation and deletion."""

    def test_properties(self, index):
        """Test schema-derived properties."""
        assert index.name == "products"
        assert index.prefix == "product"
        assert index.key("1") == "product:1"

    def test_create(self, index, client):
        """Test the FT.CREATE command."""
        index.create()

        client.execute_command.assert_any_call(
            "FT.CREATE", "products",
            "ON", "HASH",
            "PREFIX", 1, "product",
            "SCHEMA",
            "brand", "TAG", "SEPARATOR", ",",
            "price", "NUMERIC",
            "embedding", "VECTOR", "FLAT", 6,
            "TYPE", "FLOAT32", "DIM", 2, "DISTANCE_METRIC", "COSINE",
        )

    def test_create_existing_without_overwrite_is_noop(self, index, client):
        """Test that an existing index is left alone."""
        client.execute_command.return_value = [b"products"]

        index.create()

        client.execute_command.assert_called_once_with("FT._LIST")
        client.ft.return_value.dropindex.assert_not_called()

    def test_create_overwrite_drops_first(self, index, client):
        """Test that overwrite drops the existing index first."""
        client.execute_command.return_value = [b"products"]

        index.create(overwrite=True, drop=True)

        client.ft.return_value.dropindex.assert_called_once_with(delete_documents=True)
        assert client.execute_command.call_args[0][0] == "FT.CREATE"

    def test_create_without_fields(self, client):
        """Test that an index needs at least one field."""
        index = SearchIndex.from_dict({"index": {"name": "empty"}, "fields": []}, redis_client=client)
        with pytest.raises(ValueError, match="No fields defined"):
            index.create()

    def test_exists(self, index, client):
        """Test existence checks against FT._LIST."""
        client.execute_command.return_value = [b"other", b"products"]
        assert index.exists() is True

        client.execute_command.return_value = [b"other"]
        assert index.exists() is False

    def test_delete(self, index, client):
        """Test dropping the index with and without documents."""
        index.delete(drop=False)
        client.ft.assert_called_with("products")
        client.ft.return_value.dropindex.assert_called_once_with(delete_documents=False)

    def test_clear(self, index, client):
        """Test that clear deletes every key under the prefix."""
        client.scan_iter.return_value = iter([b"product:1", b"product:2"])
        client.delete.return_value = 2

        assert index.clear() == 2
        client.scan_iter.assert_called_once_with(match="product:*", count=500)
        client.delete.assert_called_once_with(b"product:1", b"product:2")

    def test_drop_documents(self, index, client):
        """Test deleting documents by id."""
        client.delete.return_value = 2

        assert index.drop_documents(["1", "2"]) == 2
        client.delete.assert_called_once_with("product:1", "product:2")
        assert index.drop_keys([]) == 0

    def test_info_is_decoded(self, index, client):
        """Test that FT.INFO output is decoded."""
        client.ft.return_value.info.return_value = {"index_name": b"products", "num_docs": b"3"}

        assert index.info() == {"index_name": "products", "num_docs": "3"}


class TestDocuments:
    """Test loading and fetching documents."""

    def test_load_returns_prefixed_keys(self, index, client):
        """Test that load writes under the prefix and returns the keys."""
        keys = index.load([{"brand": "nike", "price": 10}], id_field="brand")

        assert keys == ["product:nike"]
        client.pipeline.return_value.hset.assert_called_once_with(
            "product:nike", mapping={"brand": "nike", "price": 10}
        )

    def test_fetch_by_id_and_key(self, index, client):
        """Test fetching by bare id and by full key."""
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [{b"brand": b"nike", b"price": b"10"}]

        assert index.fetch("1") == {"brand": "nike", "price": 10}
        pipe.hgetall.assert_called_with("product:1")

        index.fetch("product:1")
        pipe.hgetall.assert_called_with("product:1")

    def test_fetch_missing(self, index, client):
        """Test that a missing document yields None."""
        client.pipeline.return_value.execute.return_value = [{}]
        assert index.fetch("nope") is None

    def test_expire_keys(self, index, client):
        """Test setting a TTL on one or several keys."""
        client.expire.return_value = 1
        assert index.expire_keys("product:1", 30) is True

        client.pipeline.return_value.execute.return_value = [1, 0]
        assert index.expire_keys(["product:1", "product:2"], 30) == [True, False]


class TestQueryDispatch:
    """Test query execution and normalization."""

    def test_filter_query(self, index, client):
        """Test that filter queries go through FT.SEARCH."""
        client.ft.return_value.search.return_value = search_result(
            Document("product:1", payload=None, brand="nike", price="10")
        )

        rows = index.query(FilterQuery(filter_expression=Filter.tag("brand", "nike")))

        assert rows == [{"id": "product:1", "brand": "nike", "price": 10}]
        _, kwargs = client.ft.return_value.search.call_args
        assert kwargs["query_params"] is None

    def test_vector_query_params(self, index, client):
        """Test that vector queries send their parameters."""
        client.ft.return_value.search.return_value = search_result(
            Document("product:1", payload=None, vector_distance="0.1")
        )

        rows = index.query(VectorQuery(vector=[1.0, 0.0], vector_field_name="embedding", num_results=3))

        assert rows == [{"id": "product:1", "vector_distance": 0.1}]
        args, kwargs = client.ft.return_value.search.call_args
        assert args[0].query_string() == "*=>[KNN $K @embedding $vec AS vector_distance]"
        assert kwargs["query_params"]["K"] == 3

    def test_normalized_vector_distance(self, index, client):
        """Test distance normalization with the schema's metric."""
        client.ft.return_value.search.return_value = search_result(
            Document("product:1", payload=None, vector_distance="1.0")
        )

        rows = index.query(VectorQuery(
            vector=[1.0, 0.0],
            vector_field_name="embedding",
            normalize_vector_distance=True
        ))

        assert rows[0]["vector_distance"] == pytest.approx(0.5)

    def test_count_query(self, index, client):
        """Test that count queries return the total."""
        client.ft.return_value.search.return_value = search_result(total=42)

        assert index.query(CountQuery()) == 42

    def test_aggregation_query(self, index, client):
        """Test that aggregation queries go through FT.AGGREGATE."""
        result = MagicMock()
        result.rows = [[b"brand", b"nike", b"avg_price", b"12.5"]]
        client.ft.return_value.aggregate.return_value = result

        request = AggregateRequest("*").group_by("@brand")
        rows = index.query(AggregationQuery(request, numeric_fields=["avg_price"]))

        assert rows == [{"brand": "nike", "avg_price": 12.5}]
        client.ft.return_value.aggregate.assert_called_once_with(request, query_params=None)

    def test_unsupported_query(self, index):
        """Test that non-query objects are rejected."""
        with pytest.raises(UnsupportedOperationError):
            index.query("FT.SEARCH products *")

    def test_batch_query(self, index, client):
        """Test that batch_query preserves order."""
        client.ft.return_value.search.side_effect = [
            search_result(total=1),
            search_result(total=2),
        ]

        assert index.batch_query([CountQuery(), CountQuery()]) == [1, 2]

    def test_paginate(self, index):
        """Test that paginate returns a paginator over the index."""
        paginator = index.paginate(FilterQuery(), page_size=7)

        assert isinstance(paginator, QueryPaginator)
        assert paginator.page_size == 7


class TestFromExisting:
    """Test rebuilding an index from FT.INFO."""

    def test_from_existing(self, client):
        """Test that FT.INFO attributes become a schema."""
        client.ft.return_value.info.return_value = {
            "index_definition": [b"key_type", b"HASH", b"prefixes", [b"product"]],
            "attributes": [
                [b"identifier", b"brand", b"attribute", b"brand", b"type", b"TAG",
                 b"SEPARATOR", b","],
                [b"identifier", b"price", b"attribute", b"price", b"type", b"NUMERIC",
                 b"SORTABLE"],
                [b"identifier", b"embedding", b"attribute", b"embedding", b"type", b"VECTOR",
                 b"algorithm", b"FLAT", b"data_type", b"FLOAT32", b"dim", 2,
                 b"distance_metric", b"COSINE"],
            ],
        }

        index = SearchIndex.from_existing("products", redis_client=client)

        assert index.prefix == "product"
        assert index.schema.field_names == ["brand", "price", "embedding"]
        assert index.schema.fields["price"].attrs.sortable is True
        assert index.schema.fields["embedding"].dims == 2
