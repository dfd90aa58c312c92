"""Utility functions for memory bridge operations."""

import json
from typing import Any


def as_string(value: Any) -> str | None:
    """Return value if it is a non-blank string, else None. The value is not trimmed."""
    return value if isinstance(value, str) and value.strip() else None


def trimmed(value: Any) -> str:
    """Return the trimmed string, or "" for anything that is not a string."""
    return value.strip() if isinstance(value, str) else ""


def clean_strings(values: Any) -> list[str]:
    """Keep the non-blank strings of a list, trimmed. Non-lists yield []."""
    if not isinstance(values, list):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def string_items(values: Any) -> list[str] | None:
    """Keep only string entries of a list. Returns None if values is not a list."""
    if not isinstance(values, list):
        return None
    return [v for v in values if isinstance(v, str)]


def error_message(error: Any) -> str:
    """Normalize any error representation to plain text."""
    if isinstance(error, BaseExceptionGroup) and len(error.exceptions) == 1:
        return error_message(error.exceptions[0])
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    if isinstance(error, str):
        return error
    try:
        return json.dumps(error)
    except (TypeError, ValueError):
        return repr(error)
