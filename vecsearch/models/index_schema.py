"""
Index schema model.

An ``IndexSchema`` pairs index-level settings (name, key prefix, storage
type) with an ordered set of field definitions. Schemas are declared as a
nested mapping or YAML file::

    index:
      name: products
      prefix: product
      storage_type: hash
    fields:
      - name: brand
        type: tag
      - name: embedding
        type: vector
        attrs:
          dims: 384
          algorithm: hnsw
          distance_metric: cosine
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vecsearch.config.settings import settings
from vecsearch.exceptions import SchemaValidationError
from .fields import (
    FIELD_CLASSES,
    BaseField,
    FieldType,
    SchemaField,
    StorageType,
    VectorField,
    _lowercase,
)


class IndexInfo(BaseModel):
    """Index-level settings."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    prefix: Optional[str] = None
    key_separator: str = Field(default_factory=lambda: settings.KEY_SEPARATOR)
    storage_type: StorageType = StorageType.HASH

    @field_validator("storage_type", mode="before")
    @classmethod
    def case_insensitive_storage_type(cls, v):
        return _lowercase(v)


def _fields_by_name(fields: Any) -> Dict[str, Any]:
    if isinstance(fields, Mapping):
        return dict(fields)

    by_name: Dict[str, Any] = {}
    for field in fields or []:
        if isinstance(field, Mapping):
            field = dict(field)
            field["type"] = _lowercase(field.get("type"))
            name = field.get("name")
        else:
            name = field.name
        if name in by_name:
            raise SchemaValidationError(f"Duplicate field name '{name}' in schema")
        by_name[name] = field
    return by_name


class IndexSchema(BaseModel):
    """
    Declarative description of a search index.

    Instances are immutable. Build a new schema to change the index shape.
    """
    model_config = ConfigDict(frozen=True)

    index: IndexInfo
    fields: Dict[str, SchemaField] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def fields_from_list(cls, v):
        return _fields_by_name(v)

    # Accessors

    @property
    def name(self) -> str:
        return self.index.name

    @property
    def prefix(self) -> str:
        """Key prefix; defaults to the index name."""
        return self.index.prefix if self.index.prefix is not None else self.index.name

    @property
    def key_separator(self) -> str:
        return self.index.key_separator

    @property
    def storage_type(self) -> StorageType:
        return self.index.storage_type

    @property
    def field_names(self) -> List[str]:
        return list(self.fields.keys())

    @property
    def vector_fields(self) -> Dict[str, VectorField]:
        return {
            name: field
            for name, field in self.fields.items()
            if field.type == FieldType.VECTOR.value
        }

    @property
    def numeric_field_names(self) -> List[str]:
        """Names and aliases of numeric fields, as they appear in result rows."""
        names: List[str] = []
        for field in self.fields.values():
            if field.type == FieldType.NUMERIC.value:
                names.append(field.name)
                if field.alias:
                    names.append(field.alias)
        return names

    def get_field(self, name: str) -> Optional[BaseField]:
        """Look up a field by name, falling back to its alias."""
        if name in self.fields:
            return self.fields[name]
        for field in self.fields.values():
            if field.alias == name:
                return field
        return None

    def redis_fields(self) -> List[Any]:
        """``FT.CREATE`` SCHEMA arguments for all fields, in declaration order."""
        args: List[Any] = []
        for field in self.fields.values():
            args.extend(field.to_redis_args(self.storage_type))
        return args

    # Construction and serialization

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexSchema":
        """
        Build a schema from its declaration mapping.

        Args:
            data: Mapping with an ``index`` block and a ``fields`` list

        Returns:
            IndexSchema instance

        Raises:
            SchemaValidationError: If the declaration is malformed
        """
        if not isinstance(data, Mapping):
            raise SchemaValidationError("Schema declaration must be a mapping")

        index = data.get("index")
        if not isinstance(index, Mapping) or not index.get("name"):
            raise SchemaValidationError("Schema must declare an 'index' block with a 'name'")

        storage_type = _lowercase(index.get("storage_type", StorageType.HASH.value))
        if storage_type not in {s.value for s in StorageType}:
            raise SchemaValidationError(
                f"Invalid storage_type '{index.get('storage_type')}'. Must be 'hash' or 'json'"
            )

        fields = data.get("fields") or []
        if not isinstance(fields, list):
            raise SchemaValidationError("'fields' must be a list of field declarations")

        seen = set()
        for position, field in enumerate(fields):
            if not isinstance(field, Mapping):
                raise SchemaValidationError(f"Field at position {position} must be a mapping")
            if not field.get("name"):
                raise SchemaValidationError(f"Field at position {position} is missing 'name'")
            if not field.get("type"):
                raise SchemaValidationError(f"Field '{field['name']}' is missing 'type'")

            field_type = _lowercase(field["type"])
            if field_type not in FIELD_CLASSES:
                raise SchemaValidationError(
                    f"Field '{field['name']}' has unknown type '{field['type']}'"
                )
            if field_type == FieldType.VECTOR.value and not (field.get("attrs") or {}).get("dims"):
                raise SchemaValidationError(f"Vector field '{field['name']}' must declare 'dims'")
            if field["name"] in seen:
                raise SchemaValidationError(f"Duplicate field name '{field['name']}' in schema")
            seen.add(field["name"])

        try:
            return cls(index=dict(index), fields=fields)
        except ValidationError as e:
            raise SchemaValidationError(f"Invalid schema: {e}") from e

    @classmethod
    def from_yaml(cls, file_path: Union[str, Path]) -> "IndexSchema":
        """
        Build a schema from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist
            SchemaValidationError: If the declaration is malformed
        """
        path = Path(file_path).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Schema file {file_path} does not exist")

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the declaration mapping accepted by :meth:`from_dict`."""
        return {
            "index": self.index.model_dump(mode="json", exclude_unset=True),
            "fields": [field.to_dict() for field in self.fields.values()],
        }

    def to_yaml(self, file_path: Union[str, Path], overwrite: bool = True) -> None:
        """Write the declaration to a YAML file."""
        path = Path(file_path).resolve()
        if path.exists() and not overwrite:
            raise FileExistsError(f"Schema file {file_path} already exists")

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
