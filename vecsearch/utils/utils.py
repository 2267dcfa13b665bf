"""Small helpers shared across vecsearch modules."""

import hashlib
import time
from datetime import datetime, timezone
from typing import Any, Union


def current_timestamp() -> float:
    """Epoch seconds as a float."""
    return time.time()


def to_epoch_seconds(value: Union[int, float, datetime]) -> float:
    """Convert a datetime (naive values are taken as UTC) or a number to epoch seconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a datetime or epoch number, got {type(value).__name__}")
    return value


def hashify(content: str) -> str:
    """First 8 bytes of the SHA-256 digest of ``content``, hex encoded."""
    return hashlib.sha256(content.encode("utf-8")).digest()[:8].hex()


def norm_cosine_distance(value: float) -> float:
    """Map a COSINE distance (0-2) to a similarity score (0-1)."""
    return max((2.0 - value) / 2.0, 0.0)


def denorm_cosine_distance(value: float) -> float:
    """Map a similarity score (0-1) back to a COSINE distance (0-2)."""
    return max(2.0 - 2.0 * value, 0.0)


def norm_l2_distance(value: float) -> float:
    """Map an L2 distance (0-inf) to a similarity score (0-1]."""
    return 1.0 / (1.0 + value)


def decode(value: Any) -> Any:
    """Decode bytes to str, recursing into lists and dicts."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, list):
        return [decode(v) for v in value]
    if isinstance(value, dict):
        return {decode(k): decode(v) for k, v in value.items()}
    return value


def to_number(value: Any) -> Any:
    """Parse an int or float from a string; other values pass through unchanged."""
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if not isinstance(value, str):
        return value
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value
