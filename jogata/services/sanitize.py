"""Helpers for putting user-supplied values into log records."""

from typing import Any
from urllib.parse import quote


def sanitize_for_log(value: Any) -> str:
    """
    Percent-encode a value so it cannot forge log lines.

    Newlines, control characters and anything outside the URL-safe set are
    escaped; non-string values are stringified first.
    """
    if not isinstance(value, str):
        return str(value)
    return quote(value, safe="-_.!~*'()")
