"""Search index facade, result normalization and pagination."""

from .search_index import SearchIndex
from .pagination import QueryPaginator
from .results import normalize_distance, process_search_result, process_aggregate_result

__all__ = [
    "SearchIndex",
    "QueryPaginator",
    "normalize_distance",
    "process_search_result",
    "process_aggregate_result"
]
