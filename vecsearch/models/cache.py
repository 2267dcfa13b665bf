"""
Cache entry models used by the semantic and embeddings caches.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from vecsearch.utils.utils import current_timestamp, hashify


def _json_or_value(v):
    if isinstance(v, (bytes, str)):
        return json.loads(v) if v else None
    return v


class CacheEntry(BaseModel):
    """A prompt/response pair as written to the semantic cache index."""

    entry_id: Optional[str] = None
    prompt: str = Field(..., min_length=1)
    response: str
    prompt_vector: List[float] = Field(..., min_length=1)
    inserted_at: float = Field(default_factory=current_timestamp)
    updated_at: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None
    filters: Optional[Dict[str, Any]] = None

    @model_validator(mode='after')
    def fill_defaults(self):
        if self.entry_id is None:
            # Same prompt with the same filters maps to the same entry
            scope = json.dumps(self.filters, sort_keys=True) if self.filters else ""
            self.entry_id = hashify(self.prompt + scope)
        if self.updated_at is None:
            self.updated_at = self.inserted_at
        return self

    def to_document(self) -> Dict[str, Any]:
        """Flatten into a hash-storable document; filters become top-level fields."""
        document = self.model_dump(exclude={"metadata", "filters"}, exclude_none=True)
        if self.metadata is not None:
            document["metadata"] = json.dumps(self.metadata)
        document.update(self.filters or {})
        return document


class CacheHit(BaseModel):
    """A cached response returned by a semantic cache lookup."""

    key: str
    entry_id: str
    prompt: str
    response: str
    vector_distance: float
    inserted_at: float
    updated_at: float
    metadata: Optional[Dict[str, Any]] = None
    filters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('metadata', mode='before')
    @classmethod
    def parse_metadata(cls, v):
        return _json_or_value(v)


class EmbeddingCacheEntry(BaseModel):
    """A cached embedding for one text and model."""

    entry_id: str
    text: str
    model_name: str
    embedding: List[float]
    dimensions: int
    inserted_at: float
    metadata: Optional[Dict[str, Any]] = None

    @field_validator('embedding', mode='before')
    @classmethod
    def parse_embedding(cls, v):
        return _json_or_value(v)

    @field_validator('metadata', mode='before')
    @classmethod
    def parse_metadata(cls, v):
        return _json_or_value(v)

    def to_mapping(self) -> Dict[str, Any]:
        """Hash fields for this entry."""
        mapping = self.model_dump(exclude={"embedding", "metadata"})
        mapping["embedding"] = json.dumps(self.embedding)
        if self.metadata is not None:
            mapping["metadata"] = json.dumps(self.metadata)
        return mapping
