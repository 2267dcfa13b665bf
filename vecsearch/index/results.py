"""
Normalization of raw search and aggregation responses.

Search results and aggregation rows arrive with different shapes and value
types (bytes, strings, numbers). Everything is turned into plain dicts with
``str`` keys, numeric fields as ``int``/``float`` and the vector distance
under the single key ``vector_distance``.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from vecsearch.models.fields import VectorDistanceMetric
from vecsearch.query.vector_query import DISTANCE_ID
from vecsearch.utils.utils import decode, norm_cosine_distance, norm_l2_distance, to_number

SCORE_FIELD = "score"

# Distance names RediSearch uses when a KNN clause has no AS alias
_INTERNAL_DISTANCE_PREFIX = "__"
_INTERNAL_DISTANCE_SUFFIX = "_score"


def normalize_distance(distance: float, metric: Optional[VectorDistanceMetric]) -> float:
    """Map a raw distance to a 0-1 similarity score for the given metric."""
    if metric == VectorDistanceMetric.L2:
        return norm_l2_distance(distance)
    if metric == VectorDistanceMetric.IP:
        return distance
    return norm_cosine_distance(distance)


def normalize_row(
    row: Dict[str, Any],
    numeric_fields: Iterable[str] = (),
    distance_aliases: Iterable[str] = (),
    normalize_metric: Optional[VectorDistanceMetric] = None,
    normalize: bool = False
) -> Dict[str, Any]:
    """
    Normalize one decoded row in place and return it.

    Args:
        row: Row with ``str`` keys
        numeric_fields: Field names whose values are numbers
        distance_aliases: Names under which a distance may appear
        normalize_metric: Metric used when converting distances to scores
        normalize: Whether to convert the distance to a similarity score
    """
    for alias in distance_aliases:
        if alias in row and alias != DISTANCE_ID:
            row[DISTANCE_ID] = row.pop(alias)

    for key in list(row.keys()):
        if key.startswith(_INTERNAL_DISTANCE_PREFIX) and key.endswith(_INTERNAL_DISTANCE_SUFFIX):
            row[DISTANCE_ID] = row.pop(key)

    for name in (*numeric_fields, DISTANCE_ID, SCORE_FIELD):
        if name in row:
            row[name] = to_number(row[name])

    if normalize and isinstance(row.get(DISTANCE_ID), (int, float)):
        row[DISTANCE_ID] = normalize_distance(float(row[DISTANCE_ID]), normalize_metric)

    return row


def _document_to_row(document: Any) -> Dict[str, Any]:
    if isinstance(document, dict):
        # RESP3 search results
        row = {"id": document.get("id")}
        row.update(document.get("extra_attributes") or {})
    else:
        row = dict(vars(document))
    row.pop("payload", None)
    row = decode(row)

    payload = row.pop("json", None)
    if isinstance(payload, str):
        parsed = json.loads(payload)
        if isinstance(parsed, dict):
            row.update(parsed)
        elif isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
            row.update(parsed[0])
    return row


def process_search_result(
    result: Any,
    numeric_fields: Iterable[str] = (),
    normalize_metric: Optional[VectorDistanceMetric] = None,
    normalize: bool = False
) -> List[Dict[str, Any]]:
    """
    Turn an ``FT.SEARCH`` response into a list of dicts.

    Args:
        result: redis-py ``Result`` (RESP2) or the RESP3 mapping
        numeric_fields: Schema numeric field names to coerce
        normalize_metric: Metric for optional distance normalization
        normalize: Whether to convert distances to similarity scores
    """
    if isinstance(result, dict):
        documents = decode(result).get("results", [])
    else:
        documents = result.docs

    numeric_fields = tuple(numeric_fields)
    return [
        normalize_row(
            _document_to_row(document),
            numeric_fields=numeric_fields,
            normalize_metric=normalize_metric,
            normalize=normalize
        )
        for document in documents
    ]


def process_aggregate_result(
    result: Any,
    numeric_fields: Iterable[str] = (),
    distance_aliases: Iterable[str] = ()
) -> List[Dict[str, Any]]:
    """
    Turn an ``FT.AGGREGATE`` response into a list of dicts.

    Aggregation rows are flat ``[key, value, key, value, ...]`` lists whose
    values are always strings, so numeric aliases must be named explicitly.
    """
    if isinstance(result, dict):
        raw_rows = [
            entry.get("extra_attributes", {})
            for entry in decode(result).get("results", [])
        ]
    else:
        raw_rows = result.rows

    numeric_fields = tuple(numeric_fields)
    distance_aliases = tuple(distance_aliases)
    rows: List[Dict[str, Any]] = []
    for raw in raw_rows:
        if isinstance(raw, dict):
            row = decode(raw)
        else:
            values = decode(list(raw))
            row = dict(zip(values[::2], values[1::2]))
        rows.append(normalize_row(row, numeric_fields, distance_aliases))
    return rows
