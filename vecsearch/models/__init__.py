"""Data models: schema fields, index schemas, router, message and cache models."""

from .fields import (
    StorageType,
    FieldType,
    VectorAlgorithm,
    VectorDistanceMetric,
    VectorDataType,
    BaseField,
    TagField,
    TextField,
    NumericField,
    GeoField,
    VectorField
)
from .index_schema import IndexInfo, IndexSchema
from .router import DistanceAggregationMethod, Route, RouteMatch, RoutingConfig
from .messages import MessageRole, ChatMessage
from .cache import CacheEntry, CacheHit, EmbeddingCacheEntry

__all__ = [
    "StorageType",
    "FieldType",
    "VectorAlgorithm",
    "VectorDistanceMetric",
    "VectorDataType",
    "BaseField",
    "TagField",
    "TextField",
    "NumericField",
    "GeoField",
    "VectorField",
    "IndexInfo",
    "IndexSchema",
    "DistanceAggregationMethod",
    "Route",
    "RouteMatch",
    "RoutingConfig",
    "MessageRole",
    "ChatMessage",
    "CacheEntry",
    "CacheHit",
    "EmbeddingCacheEntry"
]
