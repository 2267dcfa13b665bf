"""Semantic routing over a vector index."""

from vecsearch.models.router import DistanceAggregationMethod, Route, RouteMatch, RoutingConfig
from .schema import SemanticRouterIndexSchema
from .semantic_router import SemanticRouter

__all__ = [
    "SemanticRouter",
    "SemanticRouterIndexSchema",
    "Route",
    "RouteMatch",
    "RoutingConfig",
    "DistanceAggregationMethod"
]
