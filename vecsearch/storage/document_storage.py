"""
Schema-aware document storage for hash and JSON layouts.

Documents are validated against the index schema before they are written,
then written through a non-transactional pipeline in batches.
"""

import json
import math
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import uuid4

import numpy as np

from vecsearch.config.settings import settings
from vecsearch.exceptions import DocumentValidationError
from vecsearch.models.fields import BaseField, FieldType, StorageType
from vecsearch.models.index_schema import IndexSchema
from vecsearch.utils.array_utils import array_to_buffer, buffer_to_array, to_float_list
from vecsearch.utils.logger import LoggerMixin
from vecsearch.utils.utils import decode, to_number
from .base import IDocumentStorage

_MISSING = object()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


class BaseStorage(IDocumentStorage, LoggerMixin):
    """Key creation, validation and batched writes shared by both layouts."""

    storage_type: StorageType

    def __init__(self, schema: IndexSchema):
        self.schema = schema

    # Keys

    def key(self, id: str) -> str:
        """
        Build the full key for a document id.

        The separator is added once even if the prefix already ends with it;
        an empty prefix yields the bare id.
        """
        prefix = self.schema.prefix
        separator = self.schema.key_separator
        if not prefix:
            return str(id)
        if separator and prefix.endswith(separator):
            prefix = prefix[: -len(separator)]
        return f"{prefix}{separator}{id}"

    def _create_key(self, document: Dict[str, Any], id_field: Optional[str] = None) -> str:
        if id_field is None:
            return self.key(uuid4().hex)
        try:
            id = document[id_field]
        except KeyError:
            raise DocumentValidationError(
                f"Document is missing the id field '{id_field}'"
            ) from None
        return self.key(str(id))

    # Validation

    def _check_field(self, field: BaseField, value: Any) -> None:
        field_type = field.type
        if field_type == FieldType.TAG.value:
            values = value if isinstance(value, (list, tuple, set)) else [value]
            if not all(isinstance(v, str) for v in values):
                raise DocumentValidationError(
                    f"Tag field '{field.name}' expects a string or a list of strings"
                )
        elif field_type == FieldType.TEXT.value:
            if not isinstance(value, str):
                raise DocumentValidationError(f"Text field '{field.name}' expects a string")
        elif field_type == FieldType.NUMERIC.value:
            if not _is_number(value) or math.isnan(float(value)):
                raise DocumentValidationError(f"Numeric field '{field.name}' expects a number")
        elif field_type == FieldType.GEO.value:
            self._check_geo(field, value)
        elif field_type == FieldType.VECTOR.value:
            self._check_vector(field, value)

    def _check_geo(self, field: BaseField, value: Any) -> None:
        if isinstance(value, str):
            parts = value.split(",")
        elif isinstance(value, (list, tuple)):
            parts = list(value)
        else:
            parts = []
        try:
            lon, lat = (float(p) for p in parts)
        except (TypeError, ValueError):
            raise DocumentValidationError(
                f"Geo field '{field.name}' expects 'lon,lat' or a (lon, lat) pair"
            ) from None
        if not (-180 <= lon <= 180 and -90 <= lat <= 90):
            raise DocumentValidationError(
                f"Geo field '{field.name}' has out-of-range coordinates {lon},{lat}"
            )

    def _check_vector(self, field: BaseField, value: Any) -> None:
        dims = field.attrs.dims
        if isinstance(value, bytes):
            itemsize = 4 if field.attrs.datatype.value == "float32" else 8
            length = len(value) // itemsize
        elif isinstance(value, (list, tuple, np.ndarray)):
            length = len(value)
        else:
            raise DocumentValidationError(
                f"Vector field '{field.name}' expects a list of floats or bytes"
            )
        if length != dims:
            raise DocumentValidationError(
                f"Vector field '{field.name}' expects {dims} dimensions, got {length}"
            )

    def validate(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a document against the schema.

        Args:
            document: Document to validate

        Returns:
            The document in the form it is written to Redis

        Raises:
            DocumentValidationError: If a field value does not match its type
        """
        if not isinstance(document, dict):
            raise DocumentValidationError(
                f"Documents must be dicts, got {type(document).__name__}"
            )
        for field in self.schema.fields.values():
            value = self._lookup(document, field)
            if value is _MISSING or value is None:
                continue
            self._check_field(field, value)
        return self._serialize(document)

    def _lookup(self, document: Dict[str, Any], field: BaseField) -> Any:
        return document.get(field.name, _MISSING)

    def _serialize(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return document

    # Writes and reads

    def write(
        self,
        client: Any,
        documents: Iterable[Dict[str, Any]],
        id_field: Optional[str] = None,
        keys: Optional[List[str]] = None,
        ttl: Optional[int] = None,
        batch_size: Optional[int] = None,
        preprocess: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    ) -> List[str]:
        """
        Write documents through a pipeline.

        Args:
            client: redis-py client
            documents: Documents to write
            id_field: Document field holding the id used in the key
            keys: Explicit full keys, one per document
            ttl: Optional expiry in seconds
            batch_size: Documents per pipeline flush
            preprocess: Optional transform applied to each document first

        Returns:
            Keys written, in input order
        """
        documents = list(documents)
        if keys is not None and len(keys) != len(documents):
            raise ValueError("Length of keys does not match the number of documents")
        batch_size = batch_size or settings.LOAD_BATCH_SIZE

        # Validate everything up front so a bad document writes nothing
        prepared = []
        for i, document in enumerate(documents):
            if preprocess is not None:
                document = preprocess(document)
            key = keys[i] if keys is not None else self._create_key(document, id_field)
            prepared.append((key, self.validate(document)))

        written: List[str] = []
        pipe = client.pipeline(transaction=False)
        for key, document in prepared:
            self._set(pipe, key, document)
            if ttl:
                pipe.expire(key, ttl)
            written.append(key)

            if len(written) % batch_size == 0:
                pipe.execute()
        pipe.execute()

        self.logger.debug(f"Wrote {len(written)} documents to '{self.schema.name}'")
        return written

    def get(self, client: Any, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        """Read documents by key; missing keys yield None."""
        if not keys:
            return []
        pipe = client.pipeline(transaction=False)
        for key in keys:
            self._get(pipe, key)
        return [self._deserialize(raw) for raw in pipe.execute()]

    def _set(self, pipe: Any, key: str, document: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _get(self, pipe: Any, key: str) -> None:
        raise NotImplementedError

    def _deserialize(self, raw: Any) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class HashStorage(BaseStorage):
    """Documents stored as flat Redis hashes."""

    storage_type = StorageType.HASH

    def _serialize(self, document: Dict[str, Any]) -> Dict[str, Any]:
        mapping: Dict[str, Any] = {}
        for name, value in document.items():
            if value is None:
                continue
            field = self.schema.fields.get(name)
            if field is not None and field.type == FieldType.VECTOR.value and not isinstance(value, bytes):
                value = array_to_buffer(value, field.attrs.datatype.value)
            elif field is not None and field.type == FieldType.TAG.value and not isinstance(value, str):
                value = field.attrs.separator.join(value)
            elif field is not None and field.type == FieldType.GEO.value and not isinstance(value, str):
                value = f"{value[0]},{value[1]}"
            elif isinstance(value, bool):
                value = int(value)
            elif isinstance(value, (np.integer, np.floating)):
                value = value.item()
            elif isinstance(value, (dict, list, tuple)):
                value = json.dumps(value)
            mapping[name] = value
        return mapping

    def _set(self, pipe: Any, key: str, document: Dict[str, Any]) -> None:
        pipe.hset(key, mapping=document)

    def _get(self, pipe: Any, key: str) -> None:
        pipe.hgetall(key)

    def _deserialize(self, raw: Any) -> Optional[Dict[str, Any]]:
        if not raw:
            return None
        document: Dict[str, Any] = {}
        for name, value in raw.items():
            name = decode(name)
            field = self.schema.fields.get(name)
            if field is not None and field.type == FieldType.VECTOR.value:
                document[name] = buffer_to_array(value, field.attrs.datatype.value)
            elif field is not None and field.type == FieldType.NUMERIC.value:
                document[name] = to_number(value)
            else:
                document[name] = decode(value)
        return document


class JsonStorage(BaseStorage):
    """Documents stored as RedisJSON documents."""

    storage_type = StorageType.JSON

    def _lookup(self, document: Dict[str, Any], field: BaseField) -> Any:
        path = field.resolved_path(StorageType.JSON)
        if not path.startswith("$."):
            return _MISSING
        current: Any = document
        for part in path[2:].split("."):
            if not isinstance(current, dict) or part not in current:
                return _MISSING
            current = current[part]
        return current

    def _serialize(self, document: Dict[str, Any]) -> Dict[str, Any]:
        serialized = dict(document)
        for field in self.schema.vector_fields.values():
            value = serialized.get(field.name)
            if isinstance(value, np.ndarray):
                serialized[field.name] = to_float_list(value)
        return serialized

    def _set(self, pipe: Any, key: str, document: Dict[str, Any]) -> None:
        pipe.json().set(key, "$", document)

    def _get(self, pipe: Any, key: str) -> None:
        pipe.json().get(key)

    def _deserialize(self, raw: Any) -> Optional[Dict[str, Any]]:
        return raw or None


def storage_for(schema: IndexSchema) -> BaseStorage:
    """Storage implementation matching the schema's storage type."""
    if schema.storage_type == StorageType.JSON:
        return JsonStorage(schema)
    return HashStorage(schema)
