"""Redis-backed caches for LLM responses and embeddings."""

from .base import BaseCache
from .embeddings import EmbeddingsCache
from .semantic import SemanticCache, semantic_cache_schema

__all__ = ["BaseCache", "EmbeddingsCache", "SemanticCache", "semantic_cache_schema"]
