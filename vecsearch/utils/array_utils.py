"""
Conversions between Python/numpy vectors and the byte buffers Redis stores.
"""

from typing import List, Sequence, Union

import numpy as np

# Redis expects little-endian IEEE-754 values
_DTYPES = {
    "float32": np.dtype("<f4"),
    "float64": np.dtype("<f8"),
}

VectorLike = Union[Sequence[float], np.ndarray]


def _resolve_dtype(dtype: str) -> np.dtype:
    try:
        return _DTYPES[str(dtype).lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported vector dtype '{dtype}'. Expected one of {sorted(_DTYPES)}"
        ) from None


def array_to_buffer(vector: VectorLike, dtype: str = "float32") -> bytes:
    """
    Serialize a vector to a little-endian byte buffer.

    Args:
        vector: Sequence of numbers or a 1-D numpy array
        dtype: ``float32`` or ``float64``

    Returns:
        Raw bytes suitable for a query parameter or a hash field
    """
    array = np.asarray(vector, dtype=_resolve_dtype(dtype))
    if array.ndim != 1:
        raise ValueError(f"Vector must be one-dimensional, got shape {array.shape}")
    return array.tobytes()


def buffer_to_array(buffer: bytes, dtype: str = "float32") -> List[float]:
    """Deserialize a byte buffer produced by :func:`array_to_buffer`."""
    return np.frombuffer(buffer, dtype=_resolve_dtype(dtype)).tolist()


def to_float_list(vector: VectorLike) -> List[float]:
    """Coerce any vector-like input to a plain list of floats."""
    if isinstance(vector, np.ndarray):
        return vector.astype(float).ravel().tolist()
    return [float(v) for v in vector]
