"""
Aggregation queries executed with ``FT.AGGREGATE``.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from redis.commands.search.aggregation import AggregateRequest


class AggregationQuery:
    """
    An aggregation pipeline plus its query parameters.

    Aggregation rows come back as flat string pairs, so the query also names
    the aliases (for example reducer outputs) that hold numbers and must be
    coerced when rows are normalized. ``distance_aliases`` lists reducer
    outputs that carry a vector distance and are reported as
    ``vector_distance``.
    """

    def __init__(
        self,
        request: AggregateRequest,
        query_params: Optional[Dict[str, Any]] = None,
        numeric_fields: Iterable[str] = (),
        distance_aliases: Iterable[str] = ()
    ):
        self._request = request
        self._params = dict(query_params or {})
        self._numeric_fields: Tuple[str, ...] = tuple(numeric_fields)
        self._distance_aliases: Tuple[str, ...] = tuple(distance_aliases)

    @property
    def request(self) -> AggregateRequest:
        return self._request

    @property
    def numeric_fields(self) -> Tuple[str, ...]:
        return self._numeric_fields

    @property
    def distance_aliases(self) -> Tuple[str, ...]:
        return self._distance_aliases

    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    def build_args(self):
        """Arguments that follow the index name in ``FT.AGGREGATE``."""
        return self._request.build_args()
