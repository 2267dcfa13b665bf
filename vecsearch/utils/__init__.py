"""Shared utilities: logging, escaping, vector encoding."""

from .logger import get_logger, setup_logger, LoggerMixin
from .token_escaper import TokenEscaper, escape_text_value, escape_field_name
from .array_utils import array_to_buffer, buffer_to_array, to_float_list
from .utils import (
    current_timestamp,
    decode,
    to_number,
    to_epoch_seconds,
    hashify,
    norm_cosine_distance,
    denorm_cosine_distance,
    norm_l2_distance
)

__all__ = [
    "get_logger",
    "setup_logger",
    "LoggerMixin",
    "TokenEscaper",
    "escape_text_value",
    "escape_field_name",
    "array_to_buffer",
    "buffer_to_array",
    "to_float_list",
    "current_timestamp",
    "decode",
    "to_number",
    "to_epoch_seconds",
    "hashify",
    "norm_cosine_distance",
    "denorm_cosine_distance",
    "norm_l2_distance"
]
