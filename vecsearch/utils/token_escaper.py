"""
Escaping helpers for RediSearch query syntax.
"""

import re
from typing import Optional, Pattern


class TokenEscaper:
    """
    Escape punctuation within an input string.

    Tag values and other tokens that are interpolated into a query string
    must have the RediSearch punctuation set escaped with a backslash.
    """

    # Characters that RediSearch requires us to escape during queries.
    # Source: https://redis.io/docs/stack/search/reference/escaping/#the-rules-of-text-field-tokenization
    DEFAULT_ESCAPED_CHARS = r"[,.<>{}\[\]\\\"\':;!@#$%^&*()\-+=~\/ ]"

    def __init__(self, escape_chars_re: Optional[Pattern] = None):
        if escape_chars_re:
            self.escaped_chars_re = escape_chars_re
        else:
            self.escaped_chars_re = re.compile(self.DEFAULT_ESCAPED_CHARS)

    def escape(self, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError(
                f"Value must be a string object for token escaping, got type {type(value)}"
            )

        def escape_symbol(match):
            value = match.group(0)
            return f"\\{value}"

        return self.escaped_chars_re.sub(escape_symbol, value)


_TEXT_SPECIAL_CHARS = re.compile(r"([\\\-@:*\[\](){}+~\"'/%<>=|&^$.,!?;])")


def escape_text_value(value: str) -> str:
    """Escape a free-text value for an ``@field:value`` clause."""
    return _TEXT_SPECIAL_CHARS.sub(r"\\\1", value)


def escape_field_name(field: str) -> str:
    """
    Escape a field name for use after ``@`` in a query.

    JSON path names such as ``$.price`` become ``\\$\\.price``; plain
    attribute names are returned unchanged.
    """
    if field.startswith("$."):
        return field.replace("$", "\\$").replace(".", "\\.")
    return field
