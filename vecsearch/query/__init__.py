"""Filter expressions and query builders."""

from .filter import Filter, FilterKind, GeoUnit, MATCH_ALL
from .base import BaseQuery
from .vector_query import BaseVectorQuery, VectorQuery, VectorRangeQuery, DISTANCE_ID
from .filter_query import FilterQuery, CountQuery
from .aggregate import AggregationQuery

__all__ = [
    "Filter",
    "FilterKind",
    "GeoUnit",
    "MATCH_ALL",
    "BaseQuery",
    "BaseVectorQuery",
    "VectorQuery",
    "VectorRangeQuery",
    "DISTANCE_ID",
    "FilterQuery",
    "CountQuery",
    "AggregationQuery"
]
