"""
Base query model shared by every search query.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from redis.commands.search.query import Query

from vecsearch.config.settings import settings
from vecsearch.exceptions import QueryValidationError
from .filter import Filter


class BaseQuery(BaseModel):
    """
    Immutable description of a search request.

    Validation runs at construction; a built query can be executed any
    number of times.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filter_expression: Any = None
    return_fields: List[str] = Field(default_factory=list)
    num_results: int = Field(default_factory=lambda: settings.DEFAULT_NUM_RESULTS)
    offset: int = 0
    dialect: int = Field(default_factory=lambda: settings.DEFAULT_DIALECT)
    sort_by: Optional[str] = None
    ascending: bool = True

    @field_validator('filter_expression')
    @classmethod
    def valid_filter(cls, v):
        if v is not None and not isinstance(v, (Filter, str)):
            raise QueryValidationError(
                f"filter_expression must be a Filter or str, got {type(v).__name__}"
            )
        return v

    @field_validator('num_results')
    @classmethod
    def positive_num_results(cls, v):
        if v <= 0:
            raise QueryValidationError('num_results must be a positive integer')
        return v

    @field_validator('offset')
    @classmethod
    def non_negative_offset(cls, v):
        if v < 0:
            raise QueryValidationError('offset must not be negative')
        return v

    @property
    def filter(self) -> Filter:
        return Filter.coerce(self.filter_expression)

    @property
    def filter_string(self) -> str:
        return self.filter.build()

    @abstractmethod
    def query_string(self) -> str:
        """Wire-format query string."""
        ...

    def params(self) -> Dict[str, Any]:
        """Query parameters bound to ``$name`` placeholders."""
        return {}

    def to_redis_query(self) -> Query:
        """Build the redis-py ``Query`` for ``FT.SEARCH``."""
        query = (
            Query(self.query_string())
            .paging(self.offset, self.num_results)
            .dialect(self.dialect)
        )
        if self.return_fields:
            query.return_fields(*self.return_fields)
        if self.sort_by:
            query.sort_by(self.sort_by, asc=self.ascending)
        return query

    def paginate(self, offset: int, num_results: int) -> "BaseQuery":
        """Copy of this query reading a different result window."""
        if offset < 0 or num_results <= 0:
            raise QueryValidationError('offset must be >= 0 and num_results > 0')
        return self.model_copy(update={"offset": offset, "num_results": num_results})

    def __str__(self) -> str:
        return self.query_string()
