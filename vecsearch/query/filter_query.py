"""
Non-vector queries: pure metadata filtering and counting.
"""

from redis.commands.search.query import Query

from .base import BaseQuery


class FilterQuery(BaseQuery):
    """Metadata-only search; with no filter every document matches."""

    def query_string(self) -> str:
        return self.filter_string


class CountQuery(BaseQuery):
    """Count documents matching a filter. Executes to an ``int``."""

    def query_string(self) -> str:
        return self.filter_string

    def to_redis_query(self) -> Query:
        return (
            Query(self.query_string())
            .no_content()
            .paging(0, 0)
            .dialect(self.dialect)
        )
