"""
Semantic cache for LLM responses.

Prompts are embedded and stored with their responses in a vector index.
A lookup embeds the new prompt and returns stored responses whose prompts
lie within the cache's distance threshold, closest first.
"""

import json
import threading
from typing import Any, Dict, List, Optional, Union

from vecsearch.config.settings import settings
from vecsearch.index.search_index import SearchIndex
from vecsearch.models.cache import CacheEntry, CacheHit
from vecsearch.models.fields import VectorDataType
from vecsearch.models.index_schema import IndexSchema
from vecsearch.query.filter import Filter
from vecsearch.query.vector_query import DISTANCE_ID, VectorRangeQuery
from vecsearch.utils.array_utils import to_float_list
from vecsearch.utils.utils import current_timestamp
from vecsearch.vectorize.base import BaseVectorizer
from .base import BaseCache

ENTRY_ID_FIELD = "entry_id"
PROMPT_FIELD = "prompt"
RESPONSE_FIELD = "response"
VECTOR_FIELD = "prompt_vector"
INSERTED_AT_FIELD = "inserted_at"
UPDATED_AT_FIELD = "updated_at"
METADATA_FIELD = "metadata"

RESERVED_FIELDS = {
    ENTRY_ID_FIELD,
    PROMPT_FIELD,
    RESPONSE_FIELD,
    VECTOR_FIELD,
    INSERTED_AT_FIELD,
    UPDATED_AT_FIELD,
    METADATA_FIELD,
    DISTANCE_ID,
}


def semantic_cache_schema(
    name: str,
    prefix: str,
    dims: int,
    dtype: Union[str, VectorDataType] = VectorDataType.FLOAT32,
    filterable_fields: Optional[List[Dict[str, Any]]] = None
) -> IndexSchema:
    """Hash-backed schema with one row per cached prompt."""
    dtype = dtype.value if isinstance(dtype, VectorDataType) else dtype
    return IndexSchema.from_dict({
        "index": {"name": name, "prefix": prefix, "storage_type": "hash"},
        "fields": [
            {"name": ENTRY_ID_FIELD, "type": "tag"},
            {"name": PROMPT_FIELD, "type": "text"},
            {"name": RESPONSE_FIELD, "type": "text"},
            {"name": INSERTED_AT_FIELD, "type": "numeric"},
            {"name": UPDATED_AT_FIELD, "type": "numeric"},
            {
                "name": VECTOR_FIELD,
                "type": "vector",
                "attrs": {
                    "dims": dims,
                    "datatype": dtype,
                    "algorithm": "flat",
                    "distance_metric": "cosine",
                },
            },
            *(filterable_fields or []),
        ],
    })


class SemanticCache(BaseCache):
    """
    Cache of LLM responses looked up by prompt similarity.

    Usage:
        cache = SemanticCache(
            name="llmcache",
            distance_threshold=0.1,
            vectorizer=HFTextVectorizer(),
            redis_url="redis://localhost:6379"
        )
        cache.store("What is the capital of France?", "Paris")
        hits = cache.check("What's France's capital city?")
    """

    def __init__(
        self,
        name: str = "llmcache",
        distance_threshold: Optional[float] = None,
        ttl: Optional[int] = None,
        vectorizer: Optional[BaseVectorizer] = None,
        filterable_fields: Optional[List[Dict[str, Any]]] = None,
        prefix: Optional[str] = None,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        connection_kwargs: Optional[Dict[str, Any]] = None,
        overwrite: bool = False
    ):
        """
        Initialize the cache and create its index if missing.

        Args:
            name: Index name
            distance_threshold: Maximum COSINE distance for a hit; defaults
                to ``settings.CACHE_DISTANCE_THRESHOLD``
            ttl: Default time-to-live of entries in seconds
            vectorizer: Embedding model; a sentence-transformers model is
                loaded when omitted
            filterable_fields: Extra schema field declarations that entries
                can be tagged with and lookups filtered by
            prefix: Key prefix; defaults to ``name``
            redis_client: Existing redis-py client
            redis_url: URL used when no client is supplied
            connection_kwargs: Extra redis-py options used with ``redis_url``
            overwrite: Recreate the index, dropping cached entries

        Raises:
            ValueError: If the threshold is out of range or a filterable
                field reuses a reserved name
        """
        super().__init__(
            name,
            ttl=ttl,
            prefix=prefix,
            redis_client=redis_client,
            redis_url=redis_url,
            connection_kwargs=connection_kwargs
        )
        if vectorizer is None:
            from vecsearch.vectorize.huggingface import HFTextVectorizer
            vectorizer = HFTextVectorizer()
        self.vectorizer = vectorizer

        self._distance_threshold = settings.CACHE_DISTANCE_THRESHOLD
        if distance_threshold is not None:
            self.set_threshold(distance_threshold)

        filterable_fields = list(filterable_fields or [])
        for field in filterable_fields:
            if field.get("name") in RESERVED_FIELDS:
                raise ValueError(f"Filterable field '{field.get('name')}' uses a reserved name")
        self._filterable_names = [field["name"] for field in filterable_fields]

        schema = semantic_cache_schema(
            name, self.prefix, vectorizer.dims, vectorizer.dtype, filterable_fields
        )
        self._index = SearchIndex(schema, redis_client=self.client)
        self._index.create(overwrite=overwrite, drop=overwrite)

        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def index(self) -> SearchIndex:
        return self._index

    @property
    def distance_threshold(self) -> float:
        return self._distance_threshold

    def set_threshold(self, distance_threshold: float) -> None:
        """Set the maximum COSINE distance counted as a hit."""
        if not 0 < distance_threshold <= 2:
            raise ValueError(f"Distance threshold must be in (0, 2], got {distance_threshold}")
        self._distance_threshold = float(distance_threshold)

    # Writes

    def _vectorize(self, prompt: str, vector: Optional[Any]) -> List[float]:
        if vector is None:
            return self.vectorizer.embed(prompt)
        values = to_float_list(vector)
        if self.vectorizer.dims is not None and len(values) != self.vectorizer.dims:
            raise ValueError(
                f"Vector has {len(values)} dimensions, cache expects {self.vectorizer.dims}"
            )
        return values

    def _check_filters(self, filters: Optional[Dict[str, Any]]) -> None:
        unknown = set(filters or {}) - set(self._filterable_names)
        if unknown:
            raise ValueError(f"Fields {sorted(unknown)} are not filterable fields of this cache")

    def _entry(
        self,
        prompt: str,
        response: str,
        vector: List[float],
        metadata: Optional[Dict[str, Any]],
        filters: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        self._check_filters(filters)
        entry = CacheEntry(
            prompt=prompt,
            response=response,
            prompt_vector=vector,
            metadata=metadata,
            filters=filters,
        )
        return entry.to_document()

    def store(
        self,
        prompt: str,
        response: str,
        vector: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
        filters: Optional[Dict[str, Any]] = None,
        ttl: Optional[int] = None
    ) -> str:
        """
        Cache a response for a prompt.

        Storing the same prompt with the same filters again replaces the
        earlier entry.

        Args:
            prompt: Prompt text
            response: Response to cache
            vector: Pre-computed prompt embedding
            metadata: JSON-serializable data returned with hits
            filters: Values for the cache's filterable fields
            ttl: Expiry for this entry; defaults to the cache TTL

        Returns:
            Key of the stored entry
        """
        document = self._entry(prompt, response, self._vectorize(prompt, vector), metadata, filters)
        keys = self._index.load(
            [document], id_field=ENTRY_ID_FIELD, ttl=self._effective_ttl(ttl)
        )
        self.logger.debug(f"Cached response under '{keys[0]}'")
        return keys[0]

    def store_batch(self, entries: List[Dict[str, Any]], ttl: Optional[int] = None) -> List[str]:
        """
        Cache several prompt/response pairs at once.

        Prompts without a ``vector`` are embedded in a single batch call.

        Args:
            entries: Dicts with ``prompt``, ``response`` and optionally
                ``vector``, ``metadata`` and ``filters``
            ttl: Expiry for every entry; defaults to the cache TTL

        Returns:
            Keys in input order
        """
        if not entries:
            return []
        missing = [i for i, entry in enumerate(entries) if entry.get("vector") is None]
        embedded = self.vectorizer.embed_batch([entries[i]["prompt"] for i in missing])
        vectors = {i: vector for i, vector in zip(missing, embedded)}

        documents = []
        for i, entry in enumerate(entries):
            vector = vectors.get(i)
            if vector is None:
                vector = self._vectorize(entry["prompt"], entry["vector"])
            documents.append(self._entry(
                entry["prompt"],
                entry["response"],
                vector,
                entry.get("metadata"),
                entry.get("filters")
            ))
        return self._index.load(documents, id_field=ENTRY_ID_FIELD, ttl=self._effective_ttl(ttl))

    def update(self, key: str, **fields: Any) -> None:
        """
        Change the response, metadata or filterable values of one entry.

        Raises:
            ValueError: If no fields are given, a field cannot be updated or
                the entry does not exist
        """
        if not fields:
            raise ValueError("No fields to update")
        allowed = {RESPONSE_FIELD, METADATA_FIELD, *self._filterable_names}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields {sorted(unknown)}")
        if not self.client.exists(key):
            raise ValueError(f"No cache entry at '{key}'")

        mapping = dict(fields)
        if METADATA_FIELD in mapping:
            mapping[METADATA_FIELD] = json.dumps(mapping[METADATA_FIELD])
        mapping[UPDATED_AT_FIELD] = current_timestamp()
        self.client.hset(key, mapping=mapping)
        self.expire(key)

    # Reads

    @property
    def _return_fields(self) -> List[str]:
        return [
            ENTRY_ID_FIELD,
            PROMPT_FIELD,
            RESPONSE_FIELD,
            INSERTED_AT_FIELD,
            UPDATED_AT_FIELD,
            METADATA_FIELD,
            *self._filterable_names,
        ]

    def _to_hit(self, row: Dict[str, Any]) -> CacheHit:
        return CacheHit(
            key=row["id"],
            entry_id=row[ENTRY_ID_FIELD],
            prompt=row[PROMPT_FIELD],
            response=row[RESPONSE_FIELD],
            vector_distance=row[DISTANCE_ID],
            inserted_at=row[INSERTED_AT_FIELD],
            updated_at=row[UPDATED_AT_FIELD],
            metadata=row.get(METADATA_FIELD),
            filters={name: row[name] for name in self._filterable_names if name in row},
        )

    def check(
        self,
        prompt: Optional[str] = None,
        vector: Optional[Any] = None,
        num_results: int = 1,
        filter_expression: Optional[Union[Filter, str]] = None,
        distance_threshold: Optional[float] = None
    ) -> List[CacheHit]:
        """
        Look up cached responses for a prompt.

        Hits have their TTL refreshed.

        Args:
            prompt: Prompt text to embed
            vector: Pre-computed embedding, used instead of ``prompt``
            num_results: Maximum number of hits
            filter_expression: Restrict candidates by filterable fields
            distance_threshold: Override the cache threshold for this call

        Returns:
            Hits closest first; empty on a miss

        Raises:
            ValueError: If neither prompt nor vector is given or an argument
                is out of range
        """
        if prompt is None and vector is None:
            raise ValueError("Either prompt or vector must be provided")
        if isinstance(num_results, bool) or not isinstance(num_results, int) or num_results < 1:
            raise ValueError("num_results must be a positive integer")
        threshold = self._distance_threshold
        if distance_threshold is not None:
            if not 0 < distance_threshold <= 2:
                raise ValueError(f"Distance threshold must be in (0, 2], got {distance_threshold}")
            threshold = distance_threshold

        query = VectorRangeQuery(
            vector=self._vectorize(prompt, vector),
            vector_field_name=VECTOR_FIELD,
            dtype=self.vectorizer.dtype,
            distance_threshold=threshold,
            filter_expression=filter_expression,
            return_fields=self._return_fields,
            num_results=num_results,
        )
        hits = [self._to_hit(row) for row in self._index.query(query)]

        for hit in hits:
            self.expire(hit.key)
        with self._stats_lock:
            if hits:
                self._hits += 1
            else:
                self._misses += 1
        return hits

    def check_batch(self, prompts: List[str], **kwargs) -> List[List[CacheHit]]:
        """Run :meth:`check` for several prompts, embedding them in one batch."""
        vectors = self.vectorizer.embed_batch(prompts)
        return [self.check(vector=vector, **kwargs) for vector in vectors]

    # Statistics

    @property
    def hit_count(self) -> int:
        return self._hits

    @property
    def miss_count(self) -> int:
        return self._misses

    @property
    def hit_rate(self) -> float:
        total = self._hits + self._misses
        return self._hits / total if total else 0.0

    def reset_statistics(self) -> None:
        with self._stats_lock:
            self._hits = 0
            self._misses = 0

    # Deletes

    def drop(self, ids: Optional[List[str]] = None, keys: Optional[List[str]] = None) -> int:
        """
        Remove entries by entry id or by key.

        Returns:
            Number of entries removed

        Raises:
            ValueError: If neither ids nor keys are given
        """
        if ids is None and keys is None:
            raise ValueError("Must provide entry ids or keys")
        deleted = 0
        if ids:
            deleted += self._index.drop_documents(ids)
        if keys:
            deleted += self._index.drop_keys(keys)
        return deleted

    def clear(self) -> int:
        """Remove every cached entry, keeping the index."""
        return self._index.clear()

    def delete(self) -> None:
        """Drop the index and every cached entry."""
        self._index.delete(drop=True)
