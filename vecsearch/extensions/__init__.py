"""Higher-level building blocks on top of the search index."""

from .cache import BaseCache, EmbeddingsCache, SemanticCache, semantic_cache_schema
from .message_history import MessageHistory, message_history_schema

__all__ = [
    "BaseCache",
    "EmbeddingsCache",
    "SemanticCache",
    "semantic_cache_schema",
    "MessageHistory",
    "message_history_schema"
]
