"""
Filter expression algebra.

Filters are immutable expression trees that render to RediSearch query
syntax. Leaves are built with the ``Filter.<kind>`` constructors and
composed with ``Filter.and_``/``or_``/``not_`` or the ``&``, ``|`` and
``~`` operators::

    f = Filter.tag("brand", "nike", "adidas") & Filter.numeric("price").lt(100)
    f.build()  # '(@brand:{nike|adidas} @price:[-inf (100])'
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

from vecsearch.utils.token_escaper import TokenEscaper, escape_field_name, escape_text_value
from vecsearch.utils.utils import to_epoch_seconds

MATCH_ALL = "*"

# Tag value used to build an expression that can never match
EMPTY_TAG_SENTINEL = "__vecsearch_empty__"

_escaper = TokenEscaper()


class FilterKind(str, Enum):
    """Node types of a filter tree."""
    TAG = "tag"
    NUMERIC = "numeric"
    TEXT = "text"
    GEO = "geo"
    AND = "and"
    OR = "or"
    NOT = "not"
    CUSTOM = "custom"
    MATCH_NOTHING = "match_nothing"


class GeoUnit(str, Enum):
    """Distance units accepted by GEO radius queries."""
    M = "m"
    KM = "km"
    MI = "mi"
    FT = "ft"


def _require_field(field: Optional[str]) -> str:
    if field is None or not str(field).strip():
        raise ValueError("Field name is required")
    return field


def _require_value(value: Any) -> str:
    if value is None:
        raise ValueError("Value is required")
    return str(value)


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Numeric filter values must be int or float, got {type(value).__name__}")
    if isinstance(value, float):
        if math.isnan(value):
            raise ValueError("Numeric filter values must not be NaN")
        if math.isinf(value):
            return "+inf" if value > 0 else "-inf"
        if value.is_integer():
            return str(int(value))
    return str(value)


def _flatten_values(values: Iterable[Any]) -> Tuple[str, ...]:
    flat = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            flat.extend(_flatten_values(value))
        elif str(value) != "":
            flat.append(str(value))
    return tuple(flat)


@dataclass(frozen=True)
class Filter:
    """
    Immutable node of a filter expression tree.

    Leaves carry the rendered expression for one field; composite nodes
    carry their children and render lazily in :meth:`build`.
    """

    kind: FilterKind
    field: Optional[str] = None
    expression: Optional[str] = None
    children: Tuple["Filter", ...] = ()

    # Rendering

    def build(self) -> str:
        """Render the tree to a query string. Same tree, same string."""
        if self.kind == FilterKind.AND:
            parts = [child.build() for child in self.children]
            parts = [part for part in parts if part != MATCH_ALL]
            if not parts:
                return MATCH_ALL
            return "(" + " ".join(parts) + ")"

        if self.kind == FilterKind.OR:
            parts = [child.build() for child in self.children]
            if MATCH_ALL in parts:
                return MATCH_ALL
            return "(" + " | ".join(parts) + ")"

        if self.kind == FilterKind.NOT:
            return "(-" + self.children[0].build() + ")"

        return self.expression

    def __str__(self) -> str:
        return self.build()

    @property
    def is_match_all(self) -> bool:
        return self.build() == MATCH_ALL

    # Operators

    def __and__(self, other: "Filter") -> "Filter":
        return Filter.and_(self, other)

    def __or__(self, other: "Filter") -> "Filter":
        return Filter.or_(self, other)

    def __invert__(self) -> "Filter":
        return Filter.not_(self)

    # Composition

    @staticmethod
    def and_(*filters: "Filter") -> "Filter":
        """Intersection of the given filters, rendered ``(f1 f2 ...)``."""
        if not filters:
            raise ValueError("At least one filter is required")
        return Filter(FilterKind.AND, children=tuple(Filter.coerce(f) for f in filters))

    @staticmethod
    def or_(*filters: "Filter") -> "Filter":
        """Union of the given filters, rendered ``(f1 | f2 ...)``."""
        if not filters:
            raise ValueError("At least one filter is required")
        return Filter(FilterKind.OR, children=tuple(Filter.coerce(f) for f in filters))

    @staticmethod
    def not_(filter: "Filter") -> "Filter":
        """Negation, rendered ``(-f)``."""
        if filter is None:
            raise ValueError("Filter is required")
        return Filter(FilterKind.NOT, children=(Filter.coerce(filter),))

    @staticmethod
    def custom(expression: str) -> "Filter":
        """Literal query string, passed through as-is."""
        if expression is None:
            raise ValueError("Expression is required")
        return Filter(FilterKind.CUSTOM, expression=expression)

    @staticmethod
    def match_all() -> "Filter":
        return Filter(FilterKind.CUSTOM, expression=MATCH_ALL)

    @staticmethod
    def coerce(value: Union["Filter", str, None]) -> "Filter":
        """Accept a Filter, a raw query string or None (match all)."""
        if value is None:
            return Filter.match_all()
        if isinstance(value, Filter):
            return value
        if isinstance(value, str):
            return Filter.custom(value or MATCH_ALL)
        raise TypeError(f"Expected Filter or str, got {type(value).__name__}")

    # Tag filters

    @staticmethod
    def tag(field: str, *values: Union[str, Iterable[str]]) -> "Filter":
        """
        Match documents whose tag field holds any of ``values``.

        With no values the filter matches nothing: it renders an expression
        that intersects a tag clause with its own negation.
        """
        _require_field(field)
        flat = _flatten_values(values)
        name = escape_field_name(field)
        if not flat:
            clause = f"@{name}:{{{EMPTY_TAG_SENTINEL}}}"
            return Filter(
                FilterKind.MATCH_NOTHING,
                field=field,
                expression=f"({clause} -{clause})"
            )
        joined = "|".join(_escaper.escape(value) for value in flat)
        return Filter(FilterKind.TAG, field=field, expression=f"@{name}:{{{joined}}}")

    @staticmethod
    def tag_not(field: str, *values: Union[str, Iterable[str]]) -> "Filter":
        return Filter.not_(Filter.tag(field, *values))

    # Text filters

    @staticmethod
    def text(field: str, value: str) -> "Filter":
        """Full-text match; multi-word values are grouped in parentheses."""
        _require_field(field)
        escaped = escape_text_value(_require_value(value))
        name = escape_field_name(field)
        if " " in escaped.strip():
            expression = f"@{name}:({escaped})"
        else:
            expression = f"@{name}:{escaped}"
        return Filter(FilterKind.TEXT, field=field, expression=expression)

    @staticmethod
    def text_not(field: str, value: str) -> "Filter":
        return Filter.not_(Filter.text(field, value))

    @staticmethod
    def prefix(field: str, value: str) -> "Filter":
        _require_field(field)
        escaped = escape_text_value(_require_value(value))
        return Filter(
            FilterKind.TEXT,
            field=field,
            expression=f"@{escape_field_name(field)}:{escaped}*"
        )

    @staticmethod
    def wildcard(field: str, pattern: str) -> "Filter":
        """Pattern match; ``*`` and ``?`` in ``pattern`` are not escaped."""
        _require_field(field)
        return Filter(
            FilterKind.TEXT,
            field=field,
            expression=f"@{escape_field_name(field)}:{_require_value(pattern)}"
        )

    @staticmethod
    def fuzzy(field: str, value: str) -> "Filter":
        _require_field(field)
        return Filter(
            FilterKind.TEXT,
            field=field,
            expression=f"@{escape_field_name(field)}:%{escape_text_value(_require_value(value))}%"
        )

    @staticmethod
    def exact(field: str, value: str) -> "Filter":
        _require_field(field)
        quoted = _require_value(value).replace('"', '\\"')
        return Filter(
            FilterKind.TEXT,
            field=field,
            expression=f'@{escape_field_name(field)}:"{quoted}"'
        )

    # Builders

    @staticmethod
    def numeric(field: str) -> "NumericFilterBuilder":
        return NumericFilterBuilder(_require_field(field))

    @staticmethod
    def geo(field: str) -> "GeoFilterBuilder":
        return GeoFilterBuilder(_require_field(field))

    @staticmethod
    def timestamp(field: str) -> "TimestampFilterBuilder":
        return TimestampFilterBuilder(_require_field(field))


class NumericFilterBuilder:
    """Fluent builder for numeric range filters."""

    INCLUSIVE_OPTIONS = ("both", "neither", "left", "right")

    def __init__(self, field: str):
        self.field = field

    def _range(self, low: str, high: str) -> Filter:
        return Filter(
            FilterKind.NUMERIC,
            field=self.field,
            expression=f"@{escape_field_name(self.field)}:[{low} {high}]"
        )

    def eq(self, value: Union[int, float]) -> Filter:
        number = _format_number(value)
        return self._range(number, number)

    def ne(self, value: Union[int, float]) -> Filter:
        return Filter.not_(self.eq(value))

    def gt(self, value: Union[int, float]) -> Filter:
        return self._range(f"({_format_number(value)}", "+inf")

    def gte(self, value: Union[int, float]) -> Filter:
        return self._range(_format_number(value), "+inf")

    def lt(self, value: Union[int, float]) -> Filter:
        return self._range("-inf", f"({_format_number(value)}")

    def lte(self, value: Union[int, float]) -> Filter:
        return self._range("-inf", _format_number(value))

    def between(
        self,
        low: Union[int, float],
        high: Union[int, float],
        inclusive: str = "both"
    ) -> Filter:
        """
        Range filter between ``low`` and ``high``.

        Args:
            low: Lower bound
            high: Upper bound
            inclusive: Which bounds are inclusive: both, neither, left or right
        """
        if inclusive not in self.INCLUSIVE_OPTIONS:
            raise ValueError(f"inclusive must be one of {self.INCLUSIVE_OPTIONS}")
        low_str = _format_number(low)
        high_str = _format_number(high)
        if inclusive in ("neither", "right"):
            low_str = f"({low_str}"
        if inclusive in ("neither", "left"):
            high_str = f"({high_str}"
        return self._range(low_str, high_str)


class GeoFilterBuilder:
    """Fluent builder for GEO radius filters."""

    def __init__(self, field: str):
        self.field = field

    def radius(
        self,
        lon: float,
        lat: float,
        radius: float,
        unit: Union[GeoUnit, str] = GeoUnit.KM
    ) -> Filter:
        unit = GeoUnit(unit.lower() if isinstance(unit, str) else unit)
        if not -180 <= lon <= 180:
            raise ValueError(f"Longitude {lon} out of range [-180, 180]")
        if not -90 <= lat <= 90:
            raise ValueError(f"Latitude {lat} out of range [-90, 90]")
        if radius < 0:
            raise ValueError("Radius must not be negative")
        expression = (
            f"@{escape_field_name(self.field)}:"
            f"[{_format_number(lon)} {_format_number(lat)} {_format_number(radius)} {unit.value}]"
        )
        return Filter(FilterKind.GEO, field=self.field, expression=expression)

    def not_radius(
        self,
        lon: float,
        lat: float,
        radius: float,
        unit: Union[GeoUnit, str] = GeoUnit.KM
    ) -> Filter:
        return Filter.not_(self.radius(lon, lat, radius, unit))


class TimestampFilterBuilder:
    """Numeric filters over epoch-second fields that also accept datetimes."""

    def __init__(self, field: str):
        self._numeric = NumericFilterBuilder(field)

    def after(self, value: Union[int, float, datetime]) -> Filter:
        return self._numeric.gt(to_epoch_seconds(value))

    def before(self, value: Union[int, float, datetime]) -> Filter:
        return self._numeric.lt(to_epoch_seconds(value))

    def between(
        self,
        start: Union[int, float, datetime],
        end: Union[int, float, datetime],
        inclusive: str = "both"
    ) -> Filter:
        return self._numeric.between(to_epoch_seconds(start), to_epoch_seconds(end), inclusive)

    def eq(self, value: Union[int, float, datetime]) -> Filter:
        return self._numeric.eq(to_epoch_seconds(value))
