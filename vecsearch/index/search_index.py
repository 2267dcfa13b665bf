"""
Search index facade.

``SearchIndex`` materializes an ``IndexSchema`` in Redis, writes and reads
documents under the schema's key prefix, and executes query objects,
normalizing whatever comes back into plain dicts.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from vecsearch.exceptions import UnsupportedOperationError
from vecsearch.models.fields import FieldType, StorageType, VectorDistanceMetric
from vecsearch.models.index_schema import IndexSchema
from vecsearch.query.aggregate import AggregationQuery
from vecsearch.query.base import BaseQuery
from vecsearch.query.filter_query import CountQuery
from vecsearch.query.vector_query import BaseVectorQuery
from vecsearch.storage.document_storage import storage_for
from vecsearch.storage.redis_client import RedisConnection, get_redis_connection
from vecsearch.utils.logger import LoggerMixin
from vecsearch.utils.utils import decode
from .pagination import QueryPaginator
from .results import process_aggregate_result, process_search_result

_CLEAR_BATCH_SIZE = 500


class SearchIndex(LoggerMixin):
    """
    Facade over one RediSearch index.

    Example:
        index = SearchIndex.from_yaml("schema.yaml", redis_url="redis://localhost:6379")
        index.create(overwrite=True)
        keys = index.load(products, id_field="sku")
        results = index.query(VectorQuery(vector=v, vector_field_name="embedding"))
    """

    def __init__(
        self,
        schema: IndexSchema,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        connection_kwargs: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the search index.

        Args:
            schema: Index schema
            redis_client: Existing redis-py client (owned by the caller)
            redis_url: URL to connect to when no client is supplied
            connection_kwargs: Extra redis-py options used with ``redis_url``
        """
        if not isinstance(schema, IndexSchema):
            raise TypeError("schema must be an IndexSchema")
        self.schema = schema
        self._storage = storage_for(schema)
        self._redis_client = redis_client
        self._redis_url = redis_url
        self._connection_kwargs = connection_kwargs or {}
        self._connection: Optional[RedisConnection] = None

    # Construction

    @classmethod
    def from_dict(cls, schema_dict: Mapping[str, Any], **kwargs) -> "SearchIndex":
        return cls(IndexSchema.from_dict(schema_dict), **kwargs)

    @classmethod
    def from_yaml(cls, schema_path: Union[str, Path], **kwargs) -> "SearchIndex":
        return cls(IndexSchema.from_yaml(schema_path), **kwargs)

    @classmethod
    def from_existing(
        cls,
        name: str,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        **kwargs
    ) -> "SearchIndex":
        """
        Rebuild a SearchIndex from an index that already exists in Redis.

        Args:
            name: Index name
            redis_client: redis-py client
            redis_url: URL used when no client is supplied

        Returns:
            SearchIndex whose schema mirrors ``FT.INFO``
        """
        index = cls(
            IndexSchema.from_dict({"index": {"name": name}, "fields": []}),
            redis_client=redis_client,
            redis_url=redis_url,
            **kwargs
        )
        info = index.info()
        schema = IndexSchema.from_dict(_schema_dict_from_info(name, info))
        return cls(schema, redis_client=index.client, **kwargs)

    # Properties

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def prefix(self) -> str:
        return self.schema.prefix

    @property
    def key_separator(self) -> str:
        return self.schema.key_separator

    @property
    def storage_type(self) -> StorageType:
        return self.schema.storage_type

    @property
    def client(self) -> Any:
        """The redis-py client, connecting lazily when only a URL was given."""
        if self._redis_client is None:
            if self._redis_url is not None:
                self._connection = RedisConnection(self._redis_url, **self._connection_kwargs)
                self._redis_client = self._connection.get_client()
            else:
                self._redis_client = get_redis_connection().get_client()
        return self._redis_client

    def set_client(self, redis_client: Any) -> "SearchIndex":
        """Use a caller-owned client from now on."""
        self._redis_client = redis_client
        return self

    def disconnect(self) -> None:
        """Close a connection this index opened itself."""
        if self._connection is not None:
            self._connection.disconnect()
            self._connection = None
            self._redis_client = None

    def key(self, id: str) -> str:
        """Full key for a document id: ``prefix + separator + id``."""
        return self._storage.key(id)

    # Index lifecycle

    def create(self, overwrite: bool = False, drop: bool = False) -> None:
        """
        Create the index in Redis.

        Args:
            overwrite: Recreate the index if it already exists
            drop: When overwriting, also delete the indexed documents

        Raises:
            ValueError: If the schema has no fields
        """
        if not self.schema.fields:
            raise ValueError("No fields defined for index")

        if self.exists():
            if not overwrite:
                self.logger.info(f"Index '{self.name}' already exists, not overwriting")
                return
            self.logger.info(f"Index '{self.name}' already exists, overwriting")
            self.delete(drop=drop)

        args: List[Any] = [
            "FT.CREATE", self.name,
            "ON", self.storage_type.value.upper(),
            "PREFIX", 1, self.prefix,
            "SCHEMA", *self.schema.redis_fields(),
        ]
        self.logger.debug(f"Creating index with arguments: {args}")
        self.client.execute_command(*args)
        self.logger.info(
            f"Created index '{self.name}' on {self.storage_type.value} keys with prefix '{self.prefix}'"
        )

    def listall(self) -> List[str]:
        """Names of all indices in the database."""
        return [decode(name) for name in self.client.execute_command("FT._LIST")]

    def exists(self) -> bool:
        """Whether the index exists. No side effects."""
        return self.name in self.listall()

    def delete(self, drop: bool = True) -> None:
        """
        Drop the index.

        Args:
            drop: Also delete every document indexed by it
        """
        self.client.ft(self.name).dropindex(delete_documents=drop)
        self.logger.info(f"Deleted index '{self.name}' (drop documents: {drop})")

    def clear(self) -> int:
        """
        Delete every document under the index prefix, keeping the index.

        Returns:
            Number of keys deleted
        """
        pattern = f"{self.key('')}*"
        deleted = 0
        batch: List[Any] = []
        for key in self.client.scan_iter(match=pattern, count=_CLEAR_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= _CLEAR_BATCH_SIZE:
                deleted += self.client.delete(*batch)
                batch = []
        if batch:
            deleted += self.client.delete(*batch)

        self.logger.info(f"Cleared {deleted} documents from index '{self.name}'")
        return deleted

    def drop_keys(self, keys: Union[str, Iterable[str]]) -> int:
        """Delete documents by full key; returns the number removed."""
        if isinstance(keys, str):
            keys = [keys]
        keys = list(keys)
        if not keys:
            return 0
        return self.client.delete(*keys)

    def drop_documents(self, ids: Union[str, Iterable[str]]) -> int:
        """Delete documents by id; returns the number removed."""
        if isinstance(ids, str):
            ids = [ids]
        return self.drop_keys([self.key(id) for id in ids])

    def expire_keys(self, keys: Union[str, Iterable[str]], ttl: int) -> Union[bool, List[bool]]:
        """Set a time-to-live in seconds on one key or many."""
        if isinstance(keys, str):
            return bool(self.client.expire(keys, ttl))
        pipe = self.client.pipeline(transaction=False)
        for key in keys:
            pipe.expire(key, ttl)
        return [bool(r) for r in pipe.execute()]

    def info(self) -> Dict[str, Any]:
        """Index metadata from ``FT.INFO`` (document count, attributes, ...)."""
        return decode(self.client.ft(self.name).info())

    # Documents

    def load(
        self,
        data: Iterable[Dict[str, Any]],
        id_field: Optional[str] = None,
        keys: Optional[List[str]] = None,
        ttl: Optional[int] = None,
        preprocess: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
        batch_size: Optional[int] = None
    ) -> List[str]:
        """
        Write documents under the index prefix.

        Args:
            data: Documents to write
            id_field: Field whose value becomes the id part of the key;
                a random id is generated when omitted
            keys: Explicit full keys, one per document
            ttl: Optional expiry in seconds
            preprocess: Optional transform applied to each document
            batch_size: Documents per pipeline flush

        Returns:
            Keys written, in input order

        Raises:
            DocumentValidationError: If a document does not match the schema
        """
        written = self._storage.write(
            self.client,
            data,
            id_field=id_field,
            keys=keys,
            ttl=ttl,
            batch_size=batch_size,
            preprocess=preprocess
        )
        self.logger.info(f"Loaded {len(written)} documents into index '{self.name}'")
        return written

    def fetch(self, id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch one document by id or by full key.

        Returns:
            The document, or None if it does not exist
        """
        key_prefix = self.key("")
        key = id if key_prefix and id.startswith(key_prefix) else self.key(id)
        return self._storage.get(self.client, [key])[0]

    # Queries

    def search(self, *args, **kwargs) -> Any:
        """Raw ``FT.SEARCH`` passthrough."""
        return self.client.ft(self.name).search(*args, **kwargs)

    def aggregate(self, *args, **kwargs) -> Any:
        """Raw ``FT.AGGREGATE`` passthrough."""
        return self.client.ft(self.name).aggregate(*args, **kwargs)

    def query(self, query: Union[BaseQuery, AggregationQuery]) -> Any:
        """
        Execute a query object.

        Search queries return a list of dicts, ``CountQuery`` returns an
        int and ``AggregationQuery`` returns a list of aggregated rows.

        Raises:
            UnsupportedOperationError: For objects that are not queries
        """
        if isinstance(query, AggregationQuery):
            return self._aggregate_query(query)
        if isinstance(query, CountQuery):
            return self._count_query(query)
        if isinstance(query, BaseQuery):
            return self._search_query(query)
        raise UnsupportedOperationError(
            f"Cannot execute object of type {type(query).__name__} as a query"
        )

    def batch_query(self, queries: Iterable[Union[BaseQuery, AggregationQuery]]) -> List[Any]:
        """Execute several queries, returning their results in order."""
        return [self.query(query) for query in queries]

    def paginate(self, query: BaseQuery, page_size: int = 30) -> QueryPaginator:
        """Lazy page sequence over ``query``."""
        return QueryPaginator(self, query, page_size=page_size)

    def _search_query(self, query: BaseQuery) -> List[Dict[str, Any]]:
        params = query.params()
        self.logger.debug(f"Executing search on '{self.name}': {query.query_string()}")
        result = self.search(query.to_redis_query(), query_params=params or None)

        normalize = isinstance(query, BaseVectorQuery) and query.normalize_vector_distance
        metric = self._distance_metric(query) if normalize else None
        return process_search_result(
            result,
            numeric_fields=self.schema.numeric_field_names,
            normalize_metric=metric,
            normalize=normalize
        )

    def _count_query(self, query: CountQuery) -> int:
        self.logger.debug(f"Executing count on '{self.name}': {query.query_string()}")
        result = self.search(query.to_redis_query(), query_params=query.params() or None)
        if isinstance(result, dict):
            return int(decode(result).get("total_results", 0))
        return int(result.total)

    def _aggregate_query(self, query: AggregationQuery) -> List[Dict[str, Any]]:
        self.logger.debug(f"Executing aggregation on '{self.name}': {query.build_args()}")
        result = self.aggregate(query.request, query_params=query.params() or None)
        return process_aggregate_result(
            result,
            numeric_fields=(*self.schema.numeric_field_names, *query.numeric_fields),
            distance_aliases=query.distance_aliases
        )

    def _distance_metric(self, query: BaseVectorQuery) -> VectorDistanceMetric:
        if query.distance_metric is not None:
            return query.distance_metric
        field = self.schema.get_field(query.vector_field_name)
        if field is not None and field.type == FieldType.VECTOR.value:
            return field.distance_metric
        return VectorDistanceMetric.COSINE


_FLAG_ATTRIBUTES = {"SORTABLE": "sortable", "NOINDEX": "no_index",
                    "CASESENSITIVE": "case_sensitive", "NOSTEM": "no_stem"}
_VALUE_ATTRIBUTES = {"SEPARATOR": "separator", "WEIGHT": "weight", "PHONETIC": "phonetic_matcher",
                     "ALGORITHM": "algorithm", "DATA_TYPE": "datatype", "DIM": "dims",
                     "DISTANCE_METRIC": "distance_metric", "M": "m",
                     "EF_CONSTRUCTION": "ef_construction", "EF_RUNTIME": "ef_runtime",
                     "EPSILON": "epsilon", "INITIAL_CAP": "initial_cap", "BLOCK_SIZE": "block_size"}
_NUMERIC_ATTRIBUTES = {"weight", "dims", "m", "ef_construction", "ef_runtime",
                       "epsilon", "initial_cap", "block_size"}


def _parse_attribute(tokens: List[Any], storage_type: str) -> Dict[str, Any]:
    """Translate one ``FT.INFO`` attribute entry into a field declaration."""
    identifier = attribute = field_type = None
    attrs: Dict[str, Any] = {}
    i = 0
    while i < len(tokens):
        token = tokens[i]
        upper = str(token).upper()
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if upper == "IDENTIFIER":
            identifier, i = nxt, i + 2
        elif upper == "ATTRIBUTE":
            attribute, i = nxt, i + 2
        elif upper == "TYPE":
            field_type, i = str(nxt).lower(), i + 2
        elif upper in _FLAG_ATTRIBUTES:
            attrs[_FLAG_ATTRIBUTES[upper]] = True
            i += 1
        elif upper in _VALUE_ATTRIBUTES and nxt is not None:
            name = _VALUE_ATTRIBUTES[upper]
            value = nxt
            if name in _NUMERIC_ATTRIBUTES:
                value = float(value) if name in ("weight", "epsilon") else int(float(value))
            else:
                value = str(value).lower() if name != "separator" else str(value)
            attrs[name] = value
            i += 2
        else:
            i += 1

    if field_type != FieldType.TEXT.value:
        attrs.pop("no_stem", None)
    if field_type != FieldType.TAG.value:
        attrs.pop("case_sensitive", None)

    declaration: Dict[str, Any] = {"type": field_type}
    if storage_type == StorageType.JSON.value:
        declaration["name"] = attribute
        if identifier != f"$.{attribute}":
            declaration["path"] = identifier
    else:
        declaration["name"] = identifier
        if attribute and attribute != identifier:
            declaration["alias"] = attribute
    if attrs:
        declaration["attrs"] = attrs
    return declaration


def _schema_dict_from_info(name: str, info: Dict[str, Any]) -> Dict[str, Any]:
    definition = info.get("index_definition") or []
    definition = dict(zip(definition[::2], definition[1::2]))
    storage_type = str(definition.get("key_type", "HASH")).lower()
    prefixes = definition.get("prefixes") or [""]

    index: Dict[str, Any] = {
        "name": name,
        "prefix": prefixes[0],
        "storage_type": storage_type,
    }
    fields = [
        _parse_attribute(list(attribute), storage_type)
        for attribute in info.get("attributes") or []
    ]
    return {"index": index, "fields": fields}
