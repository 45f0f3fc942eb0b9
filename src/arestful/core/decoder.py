r"""Decode raw transport bodies into usable values.

The decoder dispatches on the declared content type: JSON bodies are
parsed, other textual bodies are returned as ``str`` and binary bodies as
``bytes``.
"""

from __future__ import annotations

__all__ = [
    "content_type_of",
    "decode_response",
    "is_json",
    "is_textual",
    "parse_response_data",
]

import json
from typing import TYPE_CHECKING, Any

from arestful.core.config import CONTENT_TYPE_NAME, TYPE_JSON

if TYPE_CHECKING:
    import httpx

_TEXTUAL_MARKERS = ("json", "xml", "javascript", "x-www-form-urlencoded")


def content_type_of(response: httpx.Response) -> str:
    """Return the declared content type of a response, or an empty
    string."""
    return response.headers.get(CONTENT_TYPE_NAME, "")


def is_json(content_type: str | None) -> bool:
    return bool(content_type) and TYPE_JSON in content_type.lower()


def is_textual(content_type: str | None) -> bool:
    """Tell whether a media type describes a textual body.

    Example:
        ```pycon
        >>> from arestful.core.decoder import is_textual
        >>> is_textual("text/html; charset=utf-8")
        True
        >>> is_textual("application/octet-stream")
        False

        ```
    """
    if not content_type:
        return False
    content_type = content_type.lower()
    return content_type.startswith("text/") or any(m in content_type for m in _TEXTUAL_MARKERS)


def parse_response_data(data: Any, content_type: str | None) -> Any:
    """Parse a response body according to its content type.

    A ``str`` body declared as JSON is trimmed; an empty result gives
    ``None``, anything else is parsed as JSON. Every other body is returned
    unchanged.

    Args:
        data: The raw body.
        content_type: The declared content type.

    Returns:
        The decoded body.

    Raises:
        json.JSONDecodeError: If a JSON body is malformed.

    Example:
        ```pycon
        >>> from arestful.core.decoder import parse_response_data
        >>> parse_response_data(' {"id": 1} ', "application/json")
        {'id': 1}
        >>> parse_response_data("   ", "application/json") is None
        True
        >>> parse_response_data("hello", "text/plain")
        'hello'

        ```
    """
    if isinstance(data, str) and is_json(content_type):
        data = data.strip()
        return json.loads(data) if data else None
    return data


def decode_response(response: httpx.Response, response_type: str = "auto") -> Any:
    """Decode the body of a response.

    A response without ``Content-Type`` is handled as JSON.

    Args:
        response: The response to decode.
        response_type: ``"auto"`` decodes the body from its content
            type, ``"bytes"`` returns the raw content unchanged.

    Returns:
        The decoded body: a JSON value, a ``str`` for other textual media
        types, or ``bytes``.

    Raises:
        json.JSONDecodeError: If a JSON body is malformed.
    """
    if response_type == "bytes":
        return response.content
    content_type = content_type_of(response) or TYPE_JSON
    data = response.text if is_textual(content_type) else response.content
    return parse_response_data(data, content_type)
