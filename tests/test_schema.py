"""
Tests for the index schema model.
"""

import tempfile
from pathlib import Path

import pytest
import yaml

from vecsearch.exceptions import SchemaValidationError
from vecsearch.models.fields import (
    StorageType,
    TagField,
    VectorAlgorithm,
    VectorDistanceMetric,
    VectorField
)
from vecsearch.models.index_schema import IndexSchema


def product_declaration():
    return {
        "index": {"name": "products", "prefix": "product", "storage_type": "hash"},
        "fields": [
            {"name": "brand", "type": "tag"},
            {"name": "title", "type": "text", "attrs": {"weight": 2.0}},
            {"name": "price", "type": "numeric", "attrs": {"sortable": True}},
            {"name": "location", "type": "geo"},
            {
                "name": "embedding",
                "type": "vector",
                "attrs": {
                    "dims": 3,
                    "algorithm": "hnsw",
                    "distance_metric": "cosine",
                    "datatype": "float32",
                    "m": 16,
                    "ef_construction": 200,
                },
            },
        ],
    }


class TestIndexSchemaParsing:
    """Test building schemas from declarations."""

    def test_from_dict(self):
        """Test that a declaration yields typed fields in order."""
        schema = IndexSchema.from_dict(product_declaration())

        assert schema.name == "products"
        assert schema.prefix == "product"
        assert schema.key_separator == ":"
        assert schema.storage_type == StorageType.HASH
        assert schema.field_names == ["brand", "title", "price", "location", "embedding"]
        assert isinstance(schema.fields["brand"], TagField)
        assert isinstance(schema.fields["embedding"], VectorField)
        assert schema.fields["embedding"].dims == 3
        assert schema.fields["embedding"].attrs.algorithm == VectorAlgorithm.HNSW
        assert list(schema.vector_fields) == ["embedding"]
        assert schema.numeric_field_names == ["price"]

    def test_prefix_defaults_to_name(self):
        """Test the default key prefix."""
        schema = IndexSchema.from_dict({"index": {"name": "docs"}, "fields": []})
        assert schema.prefix == "docs"

    def test_type_names_are_case_insensitive(self):
        """Test that field types and enum attributes accept any case."""
        schema = IndexSchema.from_dict({
            "index": {"name": "docs", "storage_type": "JSON"},
            "fields": [
                {"name": "v", "type": "VECTOR", "attrs": {"dims": 2, "distance_metric": "L2"}},
            ],
        })
        assert schema.storage_type == StorageType.JSON
        assert schema.fields["v"].distance_metric == VectorDistanceMetric.L2

    def test_missing_index_name(self):
        """Test that the index block needs a name."""
        with pytest.raises(SchemaValidationError, match="'index' block"):
            IndexSchema.from_dict({"index": {}, "fields": []})

    def test_invalid_storage_type(self):
        """Test that unknown storage types are rejected."""
        with pytest.raises(SchemaValidationError, match="Invalid storage_type"):
            IndexSchema.from_dict({"index": {"name": "x", "storage_type": "zset"}, "fields": []})

    def test_unknown_field_type(self):
        """Test that unknown field types are rejected."""
        with pytest.raises(SchemaValidationError, match="unknown type"):
            IndexSchema.from_dict({
                "index": {"name": "x"},
                "fields": [{"name": "f", "type": "blob"}],
            })

    def test_vector_requires_dims(self):
        """Test that vector fields must declare dims."""
        with pytest.raises(SchemaValidationError, match="must declare 'dims'"):
            IndexSchema.from_dict({
                "index": {"name": "x"},
                "fields": [{"name": "v", "type": "vector", "attrs": {}}],
            })

    def test_duplicate_field_names(self):
        """Test that field names must be unique."""
        with pytest.raises(SchemaValidationError, match="Duplicate field name"):
            IndexSchema.from_dict({
                "index": {"name": "x"},
                "fields": [{"name": "a", "type": "tag"}, {"name": "a", "type": "text"}],
            })

    def test_invalid_attribute_value(self):
        """Test that pydantic errors surface as schema errors."""
        with pytest.raises(SchemaValidationError, match="Invalid schema"):
            IndexSchema.from_dict({
                "index": {"name": "x"},
                "fields": [{"name": "v", "type": "vector", "attrs": {"dims": -1}}],
            })

    def test_unknown_attribute(self):
        """Test that unknown attributes are rejected."""
        with pytest.raises(SchemaValidationError):
            IndexSchema.from_dict({
                "index": {"name": "x"},
                "fields": [{"name": "t", "type": "tag", "attrs": {"colour": "red"}}],
            })

    def test_schema_is_immutable(self):
        """Test that schemas cannot be mutated."""
        schema = IndexSchema.from_dict(product_declaration())
        with pytest.raises(Exception):
            schema.index = None


class TestIndexSchemaSerialization:
    """Test schema round trips."""

    def test_dict_round_trip(self):
        """Test that to_dict reproduces the declaration."""
        declaration = product_declaration()
        schema = IndexSchema.from_dict(declaration)

        assert schema.to_dict() == declaration
        assert IndexSchema.from_dict(schema.to_dict()) == schema

    def test_yaml_round_trip(self):
        """Test writing and reading a YAML schema file."""
        schema = IndexSchema.from_dict(product_declaration())

        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "schema.yaml"
            schema.to_yaml(path)

            with open(path) as f:
                assert yaml.safe_load(f) == product_declaration()

            assert IndexSchema.from_yaml(path) == schema

    def test_to_yaml_without_overwrite(self, tmp_path):
        """Test that existing files are kept when overwrite is off."""
        path = tmp_path / "schema.yaml"
        path.write_text("keep")

        schema = IndexSchema.from_dict(product_declaration())
        with pytest.raises(FileExistsError):
            schema.to_yaml(path, overwrite=False)
        assert path.read_text() == "keep"

    def test_from_yaml_missing_file(self, tmp_path):
        """Test loading a missing YAML file."""
        with pytest.raises(FileNotFoundError):
            IndexSchema.from_yaml(tmp_path / "nope.yaml")


class TestRedisFieldArguments:
    """Test FT.CREATE argument rendering."""

    def test_hash_fields(self):
        """Test SCHEMA arguments for hash storage."""
        schema = IndexSchema.from_dict(product_declaration())

        assert schema.redis_fields() == [
            "brand", "TAG", "SEPARATOR", ",",
            "title", "TEXT", "WEIGHT", 2.0,
            "price", "NUMERIC", "SORTABLE",
            "location", "GEO",
            "embedding", "VECTOR", "HNSW", 10,
            "TYPE", "FLOAT32", "DIM", 3, "DISTANCE_METRIC", "COSINE",
            "M", 16, "EF_CONSTRUCTION", 200,
        ]

    def test_json_fields_use_paths(self):
        """Test that JSON fields are declared by path with an alias."""
        schema = IndexSchema.from_dict({
            "index": {"name": "docs", "storage_type": "json"},
            "fields": [
                {"name": "brand", "type": "tag"},
                {"name": "city", "type": "tag", "path": "$.address.city"},
            ],
        })
        assert schema.redis_fields() == [
            "$.brand", "AS", "brand", "TAG", "SEPARATOR", ",",
            "$.address.city", "AS", "city", "TAG", "SEPARATOR", ",",
        ]

    def test_hash_alias(self):
        """Test hash field aliases."""
        schema = IndexSchema.from_dict({
            "index": {"name": "docs"},
            "fields": [{"name": "cost", "alias": "price", "type": "numeric"}],
        })
        assert schema.redis_fields() == ["cost", "AS", "price", "NUMERIC"]
        assert schema.numeric_field_names == ["cost", "price"]
        assert schema.get_field("price").name == "cost"

    def test_tunables_outside_algorithm_are_omitted(self):
        """Test that HNSW tunables are not sent for FLAT indexes."""
        schema = IndexSchema.from_dict({
            "index": {"name": "docs"},
            "fields": [{
                "name": "v",
                "type": "vector",
                "attrs": {"dims": 4, "algorithm": "flat", "m": 8, "block_size": 100},
            }],
        })
        assert schema.redis_fields() == [
            "v", "VECTOR", "FLAT", 8,
            "TYPE", "FLOAT32", "DIM", 4, "DISTANCE_METRIC", "COSINE",
            "BLOCK_SIZE", 100,
        ]
        assert schema.fields["v"].attrs.m == 8
