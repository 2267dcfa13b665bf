"""
Index schema backing a semantic router.
"""

from typing import Union

from vecsearch.models.fields import VectorDataType
from vecsearch.models.index_schema import IndexSchema

ROUTE_NAME_FIELD = "route_name"
REFERENCE_ID_FIELD = "reference_id"
REFERENCE_FIELD = "reference"
VECTOR_FIELD = "vector"


class SemanticRouterIndexSchema(IndexSchema):
    """One hash row per route reference, keyed ``{router}:{route}:{reference_id}``."""

    @classmethod
    def from_params(
        cls,
        name: str,
        dims: int,
        dtype: Union[str, VectorDataType] = VectorDataType.FLOAT32
    ) -> "SemanticRouterIndexSchema":
        """
        Build the router schema.

        Args:
            name: Router name, used as index name and key prefix
            dims: Embedding dimensions of the router's vectorizer
            dtype: Embedding data type

        Returns:
            SemanticRouterIndexSchema instance
        """
        if isinstance(dtype, VectorDataType):
            dtype = dtype.value
        return cls.from_dict({
            "index": {"name": name, "prefix": name, "storage_type": "hash"},
            "fields": [
                {"name": REFERENCE_ID_FIELD, "type": "tag"},
                {"name": ROUTE_NAME_FIELD, "type": "tag"},
                {"name": REFERENCE_FIELD, "type": "text"},
                {
                    "name": VECTOR_FIELD,
                    "type": "vector",
                    "attrs": {
                        "dims": dims,
                        "algorithm": "flat",
                        "distance_metric": "cosine",
                        "datatype": dtype,
                    },
                },
            ],
        })
