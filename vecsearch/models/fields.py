"""
Field definitions for index schemas.

Each field variant is a frozen pydantic model discriminated on ``type`` and
knows how to render itself into the SCHEMA section of an ``FT.CREATE``
command for either storage type.
"""

from abc import abstractmethod
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StorageType(str, Enum):
    """How documents are laid out in Redis."""
    HASH = "hash"
    JSON = "json"


class FieldType(str, Enum):
    """Supported index field types."""
    TAG = "tag"
    TEXT = "text"
    NUMERIC = "numeric"
    GEO = "geo"
    VECTOR = "vector"


class VectorAlgorithm(str, Enum):
    """Vector index algorithms."""
    FLAT = "flat"
    HNSW = "hnsw"


class VectorDistanceMetric(str, Enum):
    """Vector distance metrics."""
    COSINE = "cosine"
    L2 = "l2"
    IP = "ip"


class VectorDataType(str, Enum):
    """Element types for stored vectors."""
    FLOAT32 = "float32"
    FLOAT64 = "float64"


def _lowercase(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class BaseFieldAttributes(BaseModel):
    """Attributes shared by every field type."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    sortable: bool = False
    no_index: bool = False

    def _common_args(self) -> List[Any]:
        args: List[Any] = []
        if self.sortable:
            args.append("SORTABLE")
        if self.no_index:
            args.append("NOINDEX")
        return args


class TagFieldAttributes(BaseFieldAttributes):
    separator: str = Field(default=",", min_length=1, max_length=1)
    case_sensitive: bool = False


class TextFieldAttributes(BaseFieldAttributes):
    weight: float = Field(default=1.0, gt=0)
    no_stem: bool = False
    phonetic_matcher: Optional[str] = None


class NumericFieldAttributes(BaseFieldAttributes):
    pass


class GeoFieldAttributes(BaseFieldAttributes):
    pass


class VectorFieldAttributes(BaseModel):
    """
    Vector field attributes.

    Tunables belong to one algorithm or the other; a tunable that does not
    apply to the chosen algorithm is kept on the model but left out of the
    index definition.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    dims: int = Field(..., gt=0)
    algorithm: VectorAlgorithm = VectorAlgorithm.FLAT
    distance_metric: VectorDistanceMetric = VectorDistanceMetric.COSINE
    datatype: VectorDataType = VectorDataType.FLOAT32

    # FLAT and HNSW
    initial_cap: Optional[int] = Field(default=None, gt=0)
    # FLAT only
    block_size: Optional[int] = Field(default=None, gt=0)
    # HNSW only
    m: Optional[int] = Field(default=None, gt=0)
    ef_construction: Optional[int] = Field(default=None, gt=0)
    ef_runtime: Optional[int] = Field(default=None, gt=0)
    epsilon: Optional[float] = Field(default=None, gt=0)

    @field_validator("algorithm", "distance_metric", "datatype", mode="before")
    @classmethod
    def case_insensitive_enums(cls, v):
        return _lowercase(v)

    def tunables(self) -> Dict[str, Any]:
        """Algorithm-specific parameters that apply to the configured algorithm."""
        if self.algorithm == VectorAlgorithm.FLAT:
            names = ("initial_cap", "block_size")
        else:
            names = ("initial_cap", "m", "ef_construction", "ef_runtime", "epsilon")
        return {
            name: getattr(self, name)
            for name in names
            if getattr(self, name) is not None
        }


class BaseField(BaseModel):
    """Common behaviour of all field variants."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    path: Optional[str] = None
    alias: Optional[str] = None

    @property
    def query_name(self) -> str:
        """Name used after ``@`` in queries and as the key of returned fields."""
        return self.alias or self.name

    def resolved_path(self, storage_type: StorageType) -> str:
        """Physical location of the field for the given storage type."""
        if StorageType(storage_type) == StorageType.JSON:
            return self.path or f"$.{self.name}"
        return self.name

    def to_redis_args(self, storage_type: StorageType) -> List[Any]:
        """Render this field as ``FT.CREATE ... SCHEMA`` arguments."""
        if StorageType(storage_type) == StorageType.JSON:
            args: List[Any] = [self.resolved_path(storage_type), "AS", self.query_name]
        else:
            args = [self.name]
            if self.alias:
                args.extend(["AS", self.alias])
        return args + self._type_args()

    @abstractmethod
    def _type_args(self) -> List[Any]:
        ...

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the declaration format."""
        data: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.path is not None:
            data["path"] = self.path
        if self.alias is not None:
            data["alias"] = self.alias
        if "attrs" in self.model_fields_set:
            data["attrs"] = self.attrs.model_dump(mode="json", exclude_unset=True)
        return data


class TagField(BaseField):
    type: Literal["tag"] = "tag"
    attrs: TagFieldAttributes = Field(default_factory=TagFieldAttributes)

    def _type_args(self) -> List[Any]:
        args: List[Any] = ["TAG", "SEPARATOR", self.attrs.separator]
        if self.attrs.case_sensitive:
            args.append("CASESENSITIVE")
        return args + self.attrs._common_args()


class TextField(BaseField):
    type: Literal["text"] = "text"
    attrs: TextFieldAttributes = Field(default_factory=TextFieldAttributes)

    def _type_args(self) -> List[Any]:
        args: List[Any] = ["TEXT", "WEIGHT", self.attrs.weight]
        if self.attrs.no_stem:
            args.append("NOSTEM")
        if self.attrs.phonetic_matcher:
            args.extend(["PHONETIC", self.attrs.phonetic_matcher])
        return args + self.attrs._common_args()


class NumericField(BaseField):
    type: Literal["numeric"] = "numeric"
    attrs: NumericFieldAttributes = Field(default_factory=NumericFieldAttributes)

    def _type_args(self) -> List[Any]:
        return ["NUMERIC"] + self.attrs._common_args()


class GeoField(BaseField):
    type: Literal["geo"] = "geo"
    attrs: GeoFieldAttributes = Field(default_factory=GeoFieldAttributes)

    def _type_args(self) -> List[Any]:
        return ["GEO"] + self.attrs._common_args()


class VectorField(BaseField):
    type: Literal["vector"] = "vector"
    attrs: VectorFieldAttributes

    @property
    def dims(self) -> int:
        return self.attrs.dims

    @property
    def datatype(self) -> VectorDataType:
        return self.attrs.datatype

    @property
    def distance_metric(self) -> VectorDistanceMetric:
        return self.attrs.distance_metric

    def _type_args(self) -> List[Any]:
        params: List[Any] = [
            "TYPE", self.attrs.datatype.value.upper(),
            "DIM", self.attrs.dims,
            "DISTANCE_METRIC", self.attrs.distance_metric.value.upper(),
        ]
        for name, value in self.attrs.tunables().items():
            params.extend([name.upper(), value])
        return ["VECTOR", self.attrs.algorithm.value.upper(), len(params)] + params


SchemaField = Annotated[
    Union[TagField, TextField, NumericField, GeoField, VectorField],
    Field(discriminator="type")
]

FIELD_CLASSES = {
    FieldType.TAG.value: TagField,
    FieldType.TEXT.value: TextField,
    FieldType.NUMERIC.value: NumericField,
    FieldType.GEO.value: GeoField,
    FieldType.VECTOR.value: VectorField,
}
