"""
Vector search queries: top-K (KNN) and distance-threshold (range) search,
both with optional hybrid pre-filtering.
"""

from typing import Any, ClassVar, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from redis.commands.search.query import Query

from vecsearch.exceptions import QueryValidationError
from vecsearch.models.fields import VectorDataType, VectorDistanceMetric
from vecsearch.utils.array_utils import array_to_buffer, to_float_list
from vecsearch.utils.token_escaper import escape_field_name
from vecsearch.utils.utils import denorm_cosine_distance
from .base import BaseQuery
from .filter import MATCH_ALL

DISTANCE_ID = "vector_distance"
VECTOR_PARAM = "vec"


class BaseVectorQuery(BaseQuery):
    """Fields and behaviour shared by KNN and range queries."""

    DISTANCE_ID: ClassVar[str] = DISTANCE_ID
    VECTOR_PARAM: ClassVar[str] = VECTOR_PARAM

    vector: List[float]
    vector_field_name: str = Field(..., min_length=1)
    dtype: VectorDataType = VectorDataType.FLOAT32
    return_distance: bool = True
    distance_metric: Optional[VectorDistanceMetric] = None
    normalize_vector_distance: bool = False

    @field_validator('vector', mode='before')
    @classmethod
    def vector_not_empty(cls, v):
        if v is None:
            raise QueryValidationError('Vector must not be None')
        v = to_float_list(v)
        if not v:
            raise QueryValidationError('Vector must not be empty')
        return v

    @field_validator('dtype', 'distance_metric', mode='before')
    @classmethod
    def case_insensitive_enums(cls, v):
        return v.lower() if isinstance(v, str) else v

    @property
    def field_reference(self) -> str:
        return f"@{escape_field_name(self.vector_field_name)}"

    @property
    def vector_buffer(self) -> bytes:
        return array_to_buffer(self.vector, self.dtype.value)

    @property
    def effective_return_fields(self) -> List[str]:
        fields = list(self.return_fields)
        if self.return_distance and self.DISTANCE_ID not in fields:
            fields.append(self.DISTANCE_ID)
        return fields

    def to_redis_query(self) -> Query:
        query = (
            Query(self.query_string())
            .paging(self.offset, self.num_results)
            .dialect(self.dialect)
        )
        if self.return_fields or self.return_distance:
            query.return_fields(*self.effective_return_fields)
        if self.sort_by:
            query.sort_by(self.sort_by, asc=self.ascending)
        elif self.return_distance:
            query.sort_by(self.DISTANCE_ID, asc=True)
        return query


class VectorQuery(BaseVectorQuery):
    """
    K-nearest-neighbour search over a vector field.

    Renders ``(<filter>)=>[KNN $K @field $vec AS vector_distance]``; the
    pre-filter is evaluated before the vector scan.
    """

    ef_runtime: Optional[int] = Field(default=None, gt=0)
    in_order: bool = False

    def query_string(self) -> str:
        base = self.filter_string
        prefix = MATCH_ALL if base == MATCH_ALL else f"({base})"

        knn = f"KNN $K {self.field_reference} ${self.VECTOR_PARAM}"
        if self.ef_runtime is not None:
            knn += " EF_RUNTIME $EF"
        if self.return_distance:
            knn += f" AS {self.DISTANCE_ID}"
        return f"{prefix}=>[{knn}]"

    def params(self) -> Dict[str, Any]:
        # K covers every page up to the requested window
        params: Dict[str, Any] = {
            "K": self.offset + self.num_results,
            self.VECTOR_PARAM: self.vector_buffer,
        }
        if self.ef_runtime is not None:
            params["EF"] = self.ef_runtime
        return params

    def to_redis_query(self) -> Query:
        query = super().to_redis_query()
        if self.in_order:
            query.in_order()
        return query


class VectorRangeQuery(BaseVectorQuery):
    """
    Return every document within ``distance_threshold`` of the vector.

    With ``normalize_vector_distance`` the threshold is read as a 0-1
    similarity score and converted back to a raw COSINE distance for the
    request.
    """

    distance_threshold: float = Field(default=0.2)
    epsilon: Optional[float] = Field(default=None, gt=0)

    @field_validator('distance_threshold')
    @classmethod
    def positive_threshold(cls, v):
        if v <= 0:
            raise QueryValidationError('distance_threshold must be greater than 0')
        return v

    @model_validator(mode='after')
    def normalized_threshold_in_range(self):
        if self.normalize_vector_distance and self.distance_threshold > 1.0:
            raise QueryValidationError(
                'distance_threshold must be <= 1.0 when normalizing vector distance'
            )
        return self

    @property
    def raw_distance_threshold(self) -> float:
        metric = self.distance_metric or VectorDistanceMetric.COSINE
        if self.normalize_vector_distance and metric == VectorDistanceMetric.COSINE:
            return denorm_cosine_distance(self.distance_threshold)
        return self.distance_threshold

    def query_string(self) -> str:
        attributes = f"$YIELD_DISTANCE_AS: {self.DISTANCE_ID}"
        if self.epsilon is not None:
            attributes = f"$EPSILON: {self.epsilon}; {attributes}"
        base = (
            f"{self.field_reference}:[VECTOR_RANGE $threshold ${self.VECTOR_PARAM}]"
            f"=>{{{attributes}}}"
        )

        filter_string = self.filter_string
        if filter_string != MATCH_ALL:
            return f"({base} {filter_string})"
        return base

    def params(self) -> Dict[str, Any]:
        return {
            self.VECTOR_PARAM: self.vector_buffer,
            "threshold": self.raw_distance_threshold,
        }
