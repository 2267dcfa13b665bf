"""
Redis connection management using the redis-py client.
Implements a factory for creating connections and manages their lifecycle.
Only handles connections; errors from redis-py are logged and re-raised as-is.
"""

from contextlib import contextmanager
from typing import Any, Dict, Optional

import redis
from redis.exceptions import RedisError

from vecsearch.config.settings import settings
from vecsearch.utils.logger import LoggerMixin
from .base import IConnection


class RedisConnection(IConnection, LoggerMixin):
    """
    Redis connection manager.
    Creates the client, verifies it with PING and exposes health checks.
    """

    def __init__(self, redis_url: Optional[str] = None, **kwargs):
        """
        Initialize a Redis connection.

        Args:
            redis_url: Redis connection URL (defaults to settings.REDIS_URL)
            **kwargs: Additional redis-py client options
        """
        self.redis_url = redis_url or settings.REDIS_URL

        # Responses stay as bytes; vecsearch decodes them itself
        self.client_options: Dict[str, Any] = {
            "socket_timeout": kwargs.pop("socket_timeout", settings.REDIS_SOCKET_TIMEOUT),
            "socket_connect_timeout": kwargs.pop(
                "socket_connect_timeout", settings.REDIS_SOCKET_TIMEOUT
            ),
            **kwargs,
            "decode_responses": False,
        }

        self._client: Optional[redis.Redis] = None
        self._is_connected = False

    def connect(self) -> None:
        """
        Create the client and verify it with PING.

        Raises:
            redis.exceptions.RedisError: If Redis cannot be reached
        """
        try:
            self.logger.info(f"Connecting to Redis at {self._safe_url()}")
            self._client = redis.Redis.from_url(self.redis_url, **self.client_options)
            self._client.ping()
            self._is_connected = True
            self.logger.info("Successfully connected to Redis")
        except RedisError as e:
            self.logger.error(f"Failed to connect to Redis: {str(e)}")
            self._client = None
            raise

    def disconnect(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            self.logger.info("Disconnecting from Redis")
            self._client.close()
            self._client = None
            self._is_connected = False

    def health_check(self) -> bool:
        """
        Check if the Redis connection is healthy.

        Returns:
            True if PING succeeds, False otherwise
        """
        if self._client is None or not self._is_connected:
            return False
        try:
            return bool(self._client.ping())
        except RedisError as e:
            self.logger.warning(f"Redis health check failed: {str(e)}")
            return False

    def get_client(self) -> redis.Redis:
        """
        Get the redis-py client, connecting first if needed.

        Returns:
            redis.Redis instance
        """
        if self._client is None or not self._is_connected:
            self.connect()
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    def _safe_url(self) -> str:
        # Hide credentials in logs
        if "@" in self.redis_url:
            scheme, _, rest = self.redis_url.partition("://")
            return f"{scheme}://***@{rest.split('@', 1)[1]}"
        return self.redis_url

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


class RedisConnectionFactory:
    """
    Factory class for creating Redis connections.
    Used for dependency injection and testing.
    """

    @staticmethod
    def create_connection(redis_url: Optional[str] = None, **kwargs) -> RedisConnection:
        """
        Create a new, unconnected Redis connection.

        Args:
            redis_url: Redis connection URL
            **kwargs: Additional client options

        Returns:
            RedisConnection instance
        """
        return RedisConnection(redis_url=redis_url, **kwargs)

    @staticmethod
    @contextmanager
    def get_connection(redis_url: Optional[str] = None, **kwargs):
        """
        Get a Redis connection as a context manager.

        Yields:
            Connected RedisConnection instance
        """
        connection = RedisConnectionFactory.create_connection(redis_url, **kwargs)
        try:
            connection.connect()
            yield connection
        finally:
            connection.disconnect()


# Global connection instance for dependency injection
_global_connection: Optional[RedisConnection] = None


def get_redis_connection() -> RedisConnection:
    """
    Get the global Redis connection, connecting it on first use.

    Returns:
        RedisConnection instance
    """
    global _global_connection

    if _global_connection is None:
        _global_connection = RedisConnectionFactory.create_connection()
        _global_connection.connect()
    elif not _global_connection.is_connected:
        _global_connection.connect()

    return _global_connection


def close_redis_connection() -> None:
    """Close the global Redis connection."""
    global _global_connection

    if _global_connection:
        _global_connection.disconnect()
        _global_connection = None
