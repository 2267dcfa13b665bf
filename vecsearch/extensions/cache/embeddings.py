"""
Exact-match cache of embeddings keyed by text and model name.

Each entry is a hash at ``{prefix}:{hash(model_name:text)}`` holding the
text, the model name, the embedding as a JSON array and optional metadata.
Entries cannot be updated in place; setting the same text and model again
replaces the entry.
"""

from typing import Any, Dict, List, Optional

from vecsearch.models.cache import EmbeddingCacheEntry
from vecsearch.utils.array_utils import to_float_list
from vecsearch.utils.utils import current_timestamp, decode, hashify
from .base import BaseCache


class EmbeddingsCache(BaseCache):
    """
    Stores embeddings so the same text is only embedded once per model.

    Usage:
        cache = EmbeddingsCache(redis_url="redis://localhost:6379", ttl=3600)
        cache.set("hello", "all-mpnet-base-v2", [0.1, 0.2, 0.3])
        entry = cache.get("hello", "all-mpnet-base-v2")
    """

    def __init__(self, name: str = "embedcache", **kwargs):
        super().__init__(name, **kwargs)

    @staticmethod
    def make_entry_id(text: str, model_name: str) -> str:
        return hashify(f"{model_name}:{text}")

    def make_cache_key(self, text: str, model_name: str) -> str:
        return self.make_key(self.make_entry_id(text, model_name))

    def _entry_mapping(
        self,
        text: str,
        model_name: str,
        embedding: Any,
        metadata: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        if not isinstance(text, str) or not isinstance(model_name, str):
            raise TypeError("text and model_name must be strings")
        if not model_name:
            raise ValueError("model_name must not be empty")
        values = to_float_list(embedding)
        if not values:
            raise ValueError("Embedding must not be empty")
        entry = EmbeddingCacheEntry(
            entry_id=self.make_entry_id(text, model_name),
            text=text,
            model_name=model_name,
            embedding=values,
            dimensions=len(values),
            inserted_at=current_timestamp(),
            metadata=metadata,
        )
        return entry.to_mapping()

    @staticmethod
    def _to_entry(raw: Any) -> Optional[EmbeddingCacheEntry]:
        if not raw:
            return None
        return EmbeddingCacheEntry(**decode(raw))

    # Single entries

    def set(
        self,
        text: str,
        model_name: str,
        embedding: Any,
        metadata: Optional[Dict[str, Any]] = None,
        ttl: Optional[int] = None
    ) -> str:
        """
        Store an embedding, replacing any previous entry for the same text and model.

        Returns:
            Key of the stored entry
        """
        key = self.make_cache_key(text, model_name)
        mapping = self._entry_mapping(text, model_name, embedding, metadata)
        ttl = self._effective_ttl(ttl)

        pipe = self.client.pipeline(transaction=False)
        pipe.delete(key)
        pipe.hset(key, mapping=mapping)
        if ttl:
            pipe.expire(key, ttl)
        pipe.execute()
        return key

    def get(self, text: str, model_name: str) -> Optional[EmbeddingCacheEntry]:
        """Cached entry for ``text`` and ``model_name``, or None."""
        return self.get_by_key(self.make_cache_key(text, model_name))

    def get_by_key(self, key: str) -> Optional[EmbeddingCacheEntry]:
        entry = self._to_entry(self.client.hgetall(key))
        if entry is not None:
            self.expire(key)
        return entry

    def exists(self, text: str, model_name: str) -> bool:
        return self.exists_by_key(self.make_cache_key(text, model_name))

    def exists_by_key(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def drop(self, text: str, model_name: str) -> None:
        self.drop_by_key(self.make_cache_key(text, model_name))

    def drop_by_key(self, key: str) -> None:
        self.client.delete(key)

    # Batches

    def mset(self, items: List[Dict[str, Any]], ttl: Optional[int] = None) -> List[str]:
        """
        Store several embeddings in one round trip.

        Args:
            items: Dicts with ``text``, ``model_name``, ``embedding`` and
                optionally ``metadata``
            ttl: TTL applied to every entry; defaults to the cache TTL

        Returns:
            Keys in input order
        """
        if not items:
            return []
        ttl = self._effective_ttl(ttl)
        prepared = []
        for item in items:
            key = self.make_cache_key(item["text"], item["model_name"])
            mapping = self._entry_mapping(
                item["text"], item["model_name"], item["embedding"], item.get("metadata")
            )
            prepared.append((key, mapping))

        pipe = self.client.pipeline(transaction=False)
        for key, mapping in prepared:
            pipe.delete(key)
            pipe.hset(key, mapping=mapping)
            if ttl:
                pipe.expire(key, ttl)
        pipe.execute()
        return [key for key, _ in prepared]

    def mget(self, texts: List[str], model_name: str) -> List[Optional[EmbeddingCacheEntry]]:
        """Cached entries for ``texts`` in input order; misses are None."""
        if not texts:
            return []
        keys = [self.make_cache_key(text, model_name) for text in texts]
        pipe = self.client.pipeline(transaction=False)
        for key in keys:
            pipe.hgetall(key)
        entries = [self._to_entry(raw) for raw in pipe.execute()]

        if self.ttl:
            pipe = self.client.pipeline(transaction=False)
            for key, entry in zip(keys, entries):
                if entry is not None:
                    pipe.expire(key, self.ttl)
            pipe.execute()
        return entries

    def mexists(self, texts: List[str], model_name: str) -> List[bool]:
        if not texts:
            return []
        pipe = self.client.pipeline(transaction=False)
        for text in texts:
            pipe.exists(self.make_cache_key(text, model_name))
        return [bool(result) for result in pipe.execute()]

    def mdrop(self, texts: List[str], model_name: str) -> int:
        """Delete several entries; returns the number removed."""
        if not texts:
            return 0
        return self.client.delete(*(self.make_cache_key(text, model_name) for text in texts))
