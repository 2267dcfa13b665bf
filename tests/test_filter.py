"""
Tests for the filter expression algebra.
"""

from datetime import datetime, timezone

import pytest

from vecsearch.query.filter import (
    EMPTY_TAG_SENTINEL,
    MATCH_ALL,
    Filter,
    FilterKind,
    GeoUnit
)


class TestTagFilter:
    """Test tag filter rendering."""

    def test_single_value(self):
        """Test a tag filter with one value."""
        assert Filter.tag("brand", "nike").build() == "@brand:{nike}"

    def test_multiple_values(self):
        """Test a tag filter with several values and a list argument."""
        assert Filter.tag("brand", "nike", "adidas").build() == "@brand:{nike|adidas}"
        assert Filter.tag("brand", ["nike", "adidas"]).build() == "@brand:{nike|adidas}"

    def test_values_are_escaped(self):
        """Test that punctuation and spaces in tag values are escaped."""
        assert Filter.tag("city", "new york").build() == "@city:{new\\ york}"
        assert Filter.tag("email", "a@b.com").build() == "@email:{a\\@b\\.com}"

    def test_empty_values_match_nothing(self):
        """Test that a tag filter with no values renders a never-matching clause."""
        f = Filter.tag("brand")
        clause = f"@brand:{{{EMPTY_TAG_SENTINEL}}}"

        assert f.kind == FilterKind.MATCH_NOTHING
        assert f.build() == f"({clause} -{clause})"
        assert not f.is_match_all

    def test_empty_list_and_none_values_match_nothing(self):
        """Test that empty lists and None values collapse to match-nothing."""
        assert Filter.tag("brand", []).kind == FilterKind.MATCH_NOTHING
        assert Filter.tag("brand", None, "").kind == FilterKind.MATCH_NOTHING

    def test_tag_not(self):
        """Test negated tag filters."""
        assert Filter.tag_not("brand", "nike").build() == "(-@brand:{nike})"

    def test_json_path_field(self):
        """Test that JSON path field names are escaped."""
        assert Filter.tag("$.brand", "nike").build() == "@\\$\\.brand:{nike}"

    def test_missing_field_name(self):
        """Test that a blank field name is rejected."""
        with pytest.raises(ValueError, match="Field name is required"):
            Filter.tag("", "x")


class TestNumericFilter:
    """Test numeric range rendering."""

    def test_comparisons(self):
        """Test every comparison operator."""
        price = Filter.numeric("price")

        assert price.eq(10).build() == "@price:[10 10]"
        assert price.ne(10).build() == "(-@price:[10 10])"
        assert price.gt(10).build() == "@price:[(10 +inf]"
        assert price.gte(10).build() == "@price:[10 +inf]"
        assert price.lt(10).build() == "@price:[-inf (10]"
        assert price.lte(10).build() == "@price:[-inf 10]"

    def test_between_inclusivity(self):
        """Test the four inclusivity modes of between."""
        price = Filter.numeric("price")

        assert price.between(1, 5).build() == "@price:[1 5]"
        assert price.between(1, 5, inclusive="neither").build() == "@price:[(1 (5]"
        assert price.between(1, 5, inclusive="left").build() == "@price:[1 (5]"
        assert price.between(1, 5, inclusive="right").build() == "@price:[(1 5]"

    def test_invalid_inclusive(self):
        """Test that an unknown inclusivity mode is rejected."""
        with pytest.raises(ValueError, match="inclusive must be one of"):
            Filter.numeric("price").between(1, 5, inclusive="sometimes")

    def test_number_formatting(self):
        """Test float and infinity formatting."""
        assert Filter.numeric("x").eq(2.0).build() == "@x:[2 2]"
        assert Filter.numeric("x").eq(2.5).build() == "@x:[2.5 2.5]"
        assert Filter.numeric("x").gte(float("-inf")).build() == "@x:[-inf +inf]"

    def test_rejects_non_numbers(self):
        """Test that NaN, bools and strings are rejected."""
        with pytest.raises(ValueError, match="NaN"):
            Filter.numeric("x").eq(float("nan"))
        with pytest.raises(TypeError):
            Filter.numeric("x").eq(True)
        with pytest.raises(TypeError):
            Filter.numeric("x").eq("5")


class TestTextFilter:
    """Test full-text filter rendering."""

    def test_single_word(self):
        """Test a one-word text match."""
        assert Filter.text("title", "shoes").build() == "@title:shoes"

    def test_multi_word_grouped(self):
        """Test that multi-word values are grouped."""
        assert Filter.text("title", "running shoes").build() == "@title:(running shoes)"

    def test_special_characters_escaped(self):
        """Test punctuation escaping in text values."""
        assert Filter.text("title", "t-shirt").build() == "@title:t\\-shirt"

    def test_variants(self):
        """Test prefix, wildcard, fuzzy, exact and negated text matches."""
        assert Filter.prefix("title", "run").build() == "@title:run*"
        assert Filter.wildcard("title", "r?n*").build() == "@title:r?n*"
        assert Filter.fuzzy("title", "shoe").build() == "@title:%shoe%"
        assert Filter.exact("title", "red shoe").build() == '@title:"red shoe"'
        assert Filter.text_not("title", "boots").build() == "(-@title:boots)"


class TestGeoFilter:
    """Test GEO radius rendering."""

    def test_radius(self):
        """Test a radius filter with an explicit unit."""
        f = Filter.geo("location").radius(-122.4194, 37.7749, 10, GeoUnit.MI)
        assert f.build() == "@location:[-122.4194 37.7749 10 mi]"

    def test_unit_string_case_insensitive(self):
        """Test that unit strings are accepted in any case."""
        f = Filter.geo("location").radius(0, 0, 5, "KM")
        assert f.build() == "@location:[0 0 5 km]"

    def test_not_radius(self):
        """Test the negated radius filter."""
        f = Filter.geo("location").not_radius(1, 2, 3)
        assert f.build() == "(-@location:[1 2 3 km])"

    def test_out_of_range_coordinates(self):
        """Test coordinate and radius validation."""
        with pytest.raises(ValueError, match="Longitude"):
            Filter.geo("location").radius(200, 0, 1)
        with pytest.raises(ValueError, match="Latitude"):
            Filter.geo("location").radius(0, 95, 1)
        with pytest.raises(ValueError, match="Radius"):
            Filter.geo("location").radius(0, 0, -1)


class TestTimestampFilter:
    """Test timestamp filters."""

    def test_datetime_converted_to_epoch(self):
        """Test that datetimes are rendered as epoch seconds."""
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert Filter.timestamp("created").after(moment).build() == "@created:[(1704067200 +inf]"

    def test_naive_datetime_is_utc(self):
        """Test that naive datetimes are read as UTC."""
        f = Filter.timestamp("created").before(datetime(2024, 1, 1))
        assert f.build() == "@created:[-inf (1704067200]"

    def test_between_numbers(self):
        """Test between with epoch numbers."""
        f = Filter.timestamp("created").between(100, 200)
        assert f.build() == "@created:[100 200]"


class TestComposition:
    """Test AND/OR/NOT composition."""

    def test_and(self):
        """Test AND rendering and the & operator."""
        brand = Filter.tag("brand", "nike")
        price = Filter.numeric("price").lt(100)

        assert Filter.and_(brand, price).build() == "(@brand:{nike} @price:[-inf (100])"
        assert (brand & price).build() == Filter.and_(brand, price).build()

    def test_or(self):
        """Test OR rendering and the | operator."""
        f = Filter.tag("brand", "nike") | Filter.tag("brand", "puma")
        assert f.build() == "(@brand:{nike} | @brand:{puma})"

    def test_not(self):
        """Test the ~ operator."""
        assert (~Filter.tag("brand", "nike")).build() == "(-@brand:{nike})"

    def test_nesting_is_structural(self):
        """Test that different groupings render different strings."""
        a = Filter.tag("a", "1")
        b = Filter.tag("b", "2")
        c = Filter.tag("c", "3")

        left = Filter.and_(Filter.and_(a, b), c).build()
        right = Filter.and_(a, Filter.and_(b, c)).build()

        assert left == "((@a:{1} @b:{2}) @c:{3})"
        assert right == "(@a:{1} (@b:{2} @c:{3}))"

    def test_match_all_in_and_is_dropped(self):
        """Test that match-all children do not narrow an AND."""
        brand = Filter.tag("brand", "nike")

        assert Filter.and_(brand, Filter.match_all()).build() == "(@brand:{nike})"
        assert Filter.and_(Filter.match_all(), Filter.match_all()).build() == MATCH_ALL

    def test_match_all_in_or_absorbs(self):
        """Test that a match-all child makes an OR match everything."""
        f = Filter.or_(Filter.tag("brand", "nike"), Filter.match_all())
        assert f.build() == MATCH_ALL
        assert f.is_match_all

    def test_match_nothing_composes(self):
        """Test that match-nothing stays a real clause inside compositions."""
        empty = Filter.tag("brand")
        empty_str = empty.build()
        price = Filter.numeric("price").gt(1)

        assert Filter.and_(empty, price).build() == f"({empty_str} @price:[(1 +inf])"
        assert Filter.or_(empty, price).build() == f"({empty_str} | @price:[(1 +inf])"
        assert Filter.not_(empty).build() == f"(-{empty_str})"

    def test_build_is_deterministic(self):
        """Test that building the same tree twice yields the same string."""
        f = Filter.tag("a", "x", "y") & (Filter.numeric("n").gte(3) | ~Filter.text("t", "z"))
        assert f.build() == f.build()
        assert str(f) == f.build()

    def test_empty_composition_rejected(self):
        """Test that and_/or_ need at least one filter."""
        with pytest.raises(ValueError):
            Filter.and_()
        with pytest.raises(ValueError):
            Filter.or_()

    def test_coerce(self):
        """Test coercion of None, strings and filters."""
        assert Filter.coerce(None).build() == MATCH_ALL
        assert Filter.coerce("").build() == MATCH_ALL
        assert Filter.coerce("@x:{y}").build() == "@x:{y}"

        f = Filter.tag("x", "y")
        assert Filter.coerce(f) is f

        with pytest.raises(TypeError):
            Filter.coerce(42)

    def test_filters_are_immutable(self):
        """Test that filters cannot be modified after construction."""
        f = Filter.tag("x", "y")
        with pytest.raises(Exception):
            f.expression = "@x:{z}"
