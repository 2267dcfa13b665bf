"""
Storage layer: Redis connections and schema-aware document storage.
"""

from .base import IConnection, IDocumentStorage
from .redis_client import (
    RedisConnection,
    RedisConnectionFactory,
    get_redis_connection,
    close_redis_connection
)
from .document_storage import BaseStorage, HashStorage, JsonStorage, storage_for

__all__ = [
    "IConnection",
    "IDocumentStorage",
    "RedisConnection",
    "RedisConnectionFactory",
    "get_redis_connection",
    "close_redis_connection",
    "BaseStorage",
    "HashStorage",
    "JsonStorage",
    "storage_for"
]
