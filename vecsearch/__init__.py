"""
vecsearch: vector search, filtering and semantic routing on Redis.
"""

from vecsearch.config.settings import settings
from vecsearch.exceptions import (
    VecSearchException,
    SchemaValidationError,
    QueryValidationError,
    DocumentValidationError,
    IllegalStateError,
    RouteNotFoundError,
    UnsupportedOperationError
)
from vecsearch.models.index_schema import IndexSchema
from vecsearch.query import (
    Filter,
    FilterQuery,
    CountQuery,
    VectorQuery,
    VectorRangeQuery,
    AggregationQuery
)
from vecsearch.index import SearchIndex, QueryPaginator
from vecsearch.router import SemanticRouter, Route, RouteMatch, RoutingConfig, DistanceAggregationMethod
from vecsearch.vectorize import BaseVectorizer, CustomVectorizer, HFTextVectorizer
from vecsearch.extensions import EmbeddingsCache, MessageHistory, SemanticCache

__version__ = settings.VERSION

__all__ = [
    "VecSearchException",
    "SchemaValidationError",
    "QueryValidationError",
    "DocumentValidationError",
    "IllegalStateError",
    "RouteNotFoundError",
    "UnsupportedOperationError",
    "IndexSchema",
    "Filter",
    "FilterQuery",
    "CountQuery",
    "VectorQuery",
    "VectorRangeQuery",
    "AggregationQuery",
    "SearchIndex",
    "QueryPaginator",
    "SemanticRouter",
    "Route",
    "RouteMatch",
    "RoutingConfig",
    "DistanceAggregationMethod",
    "BaseVectorizer",
    "CustomVectorizer",
    "HFTextVectorizer",
    "MessageHistory",
    "SemanticCache",
    "EmbeddingsCache"
]
