#!/usr/bin/env python3
"""Helpers for turning localization keys into legal properties-file keys."""

from typing import Optional
import re

__all__ = [
    "to_properties_key",
    "unescape_properties_key",
    "to_translation_value",
    "find_illegal_key_reason",
]

# Characters that terminate a key in the properties format and must be escaped.
_KEY_SEPARATORS = ("=", ":")
_ESCAPED_SEPARATOR_PATTERN = re.compile(r"\\([=:])")
_NEWLINE_ESCAPE = "\\n"


def to_properties_key(key: Optional[str]) -> Optional[str]:
    """
    Canonicalize a localization key into the form used in the properties file.

    Spaces become underscores and key separators are backslash-escaped, so
    ``"Open file: %0"`` becomes ``"Open_file\\:_%0"``. The text is not
    trimmed; callers decide whether surrounding whitespace is significant.
    """
    if key is None:
        return None
    if key == "":
        return ""

    value = key.replace(" ", "_")
    for separator in _KEY_SEPARATORS:
        value = value.replace(separator, f"\\{separator}")
    return value


def unescape_properties_key(key: Optional[str]) -> Optional[str]:
    """Remove the separator escaping added by :func:`to_properties_key`."""
    if not key:
        return key
    return _ESCAPED_SEPARATOR_PATTERN.sub(r"\1", key)


def to_translation_value(key: Optional[str]) -> Optional[str]:
    """Return the human-readable text a properties key stands for."""
    if not key:
        return key
    return unescape_properties_key(key).replace("_", " ")


def find_illegal_key_reason(properties_key: str) -> Optional[str]:
    """
    Check a normalized key against the rules a properties key must satisfy.

    Returns a description of the problem, or None when the key is legal.
    """
    if properties_key.endswith("_"):
        return "ends with a space. As this is a localization key, this is illegal!"
    if _NEWLINE_ESCAPE in properties_key:
        return "contains a new line character. As this is a localization key, this is illegal!"
    return None
