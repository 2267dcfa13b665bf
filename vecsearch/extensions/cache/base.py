"""
Shared behaviour for Redis-backed caches: key layout, TTL handling and
clearing by prefix.
"""

from typing import Any, Dict, Optional

from vecsearch.config.settings import settings
from vecsearch.exceptions import UnsupportedOperationError
from vecsearch.storage.redis_client import RedisConnection, get_redis_connection
from vecsearch.utils.logger import LoggerMixin

_CLEAR_BATCH_SIZE = 500


class BaseCache(LoggerMixin):
    """Base class for caches whose entries live under one key prefix."""

    def __init__(
        self,
        name: str,
        ttl: Optional[int] = None,
        prefix: Optional[str] = None,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        connection_kwargs: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the cache.

        Args:
            name: Cache name
            ttl: Default time-to-live in seconds; None keeps entries forever
            prefix: Key prefix; defaults to ``name``
            redis_client: Existing redis-py client
            redis_url: URL used when no client is supplied
            connection_kwargs: Extra redis-py options used with ``redis_url``

        Raises:
            ValueError: If the name is empty or the TTL is invalid
        """
        if not name or not name.strip():
            raise ValueError("Cache name must not be empty")
        self.name = name
        self.prefix = prefix or name
        self._ttl: Optional[int] = None
        self.set_ttl(ttl)

        self._redis_client = redis_client
        self._redis_url = redis_url
        self._connection_kwargs = connection_kwargs or {}
        self._connection: Optional[RedisConnection] = None

    @property
    def client(self) -> Any:
        if self._redis_client is None:
            if self._redis_url is not None:
                self._connection = RedisConnection(self._redis_url, **self._connection_kwargs)
                self._redis_client = self._connection.get_client()
            else:
                self._redis_client = get_redis_connection().get_client()
        return self._redis_client

    def disconnect(self) -> None:
        """Close a connection this cache opened itself."""
        if self._connection is not None:
            self._connection.disconnect()
            self._connection = None
            self._redis_client = None

    def make_key(self, entry_id: str) -> str:
        separator = settings.KEY_SEPARATOR
        if self.prefix.endswith(separator):
            return f"{self.prefix}{entry_id}"
        return f"{self.prefix}{separator}{entry_id}"

    # TTL

    @property
    def ttl(self) -> Optional[int]:
        return self._ttl

    @staticmethod
    def _check_ttl(ttl: Optional[int]) -> Optional[int]:
        if ttl is None:
            return None
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 0:
            raise ValueError(f"TTL must be a non-negative integer, got {ttl!r}")
        return ttl or None

    def set_ttl(self, ttl: Optional[int] = None) -> None:
        """Set the default TTL in seconds; None or 0 disables expiry."""
        self._ttl = self._check_ttl(ttl)

    def _effective_ttl(self, ttl: Optional[int]) -> Optional[int]:
        return self._check_ttl(ttl) if ttl is not None else self._ttl

    def expire(self, key: str, ttl: Optional[int] = None) -> None:
        """Apply ``ttl`` (or the default TTL) to ``key``; no-op when neither is set."""
        ttl = self._effective_ttl(ttl)
        if ttl:
            self.client.expire(key, ttl)

    # Entries

    def update(self, key: str, **fields: Any) -> None:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support updating individual entries"
        )

    def clear(self) -> int:
        """
        Delete every entry under the cache prefix.

        Returns:
            Number of keys deleted
        """
        pattern = f"{self.make_key('')}*"
        deleted = 0
        batch = []
        for key in self.client.scan_iter(match=pattern, count=_CLEAR_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= _CLEAR_BATCH_SIZE:
                deleted += self.client.delete(*batch)
                batch = []
        if batch:
            deleted += self.client.delete(*batch)

        self.logger.info(f"Cleared {deleted} entries from cache '{self.name}'")
        return deleted
