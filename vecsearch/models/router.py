"""
Semantic router models.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vecsearch.config.settings import settings

_RESERVED_NAME_CHARS = "'\"\\:*?[]"


class DistanceAggregationMethod(str, Enum):
    """How per-reference distances are combined into one route distance."""
    AVG = "avg"
    MIN = "min"
    SUM = "sum"


class Route(BaseModel):
    """A named intent described by reference utterances."""

    name: str = Field(..., min_length=1, description="Route name")
    references: List[str] = Field(..., description="Reference utterances for the route")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Arbitrary route metadata")
    distance_threshold: float = Field(
        default_factory=lambda: settings.ROUTE_DISTANCE_THRESHOLD,
        gt=0,
        le=2,
        description="Maximum cosine distance for a match"
    )

    @field_validator('name')
    @classmethod
    def name_is_safe(cls, v):
        # Names are quoted in aggregate filters and used in key patterns
        bad = sorted(set(v) & set(_RESERVED_NAME_CHARS))
        if bad:
            raise ValueError(f"Route name must not contain {' '.join(bad)}")
        return v

    @field_validator('references')
    @classmethod
    def references_not_empty(cls, v):
        if not v:
            raise ValueError('References must not be empty')
        if any(not ref or not ref.strip() for ref in v):
            raise ValueError('All references must be non-empty strings')
        return v

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')


class RouteMatch(BaseModel):
    """Result of routing; both fields are None when nothing matched."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    distance: Optional[float] = None

    def is_empty(self) -> bool:
        return self.name is None


class RoutingConfig(BaseModel):
    """Router-wide routing behaviour."""

    max_k: int = Field(default=1, gt=0)
    aggregation_method: DistanceAggregationMethod = DistanceAggregationMethod.AVG

    @field_validator('aggregation_method', mode='before')
    @classmethod
    def case_insensitive_method(cls, v):
        return v.lower() if isinstance(v, str) else v
