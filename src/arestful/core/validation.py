r"""Parameter validation utilities for the request pipeline.

This module provides validation functions used before a request
descriptor is handed to the transport.
"""

from __future__ import annotations

__all__ = [
    "SUPPORTED_METHODS",
    "validate_chunk_size",
    "validate_method",
    "validate_timeout",
]

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")


def validate_timeout(timeout: int) -> None:
    """Validate a timeout expressed in milliseconds.

    Args:
        timeout: Maximum milliseconds to wait for the server. Must be > 0.

    Raises:
        ValueError: If timeout is not a positive number.

    Example:
        ```pycon
        >>> from arestful.core.validation import validate_timeout
        >>> validate_timeout(60000)
        >>> validate_timeout(0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got 0

        ```
    """
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_chunk_size(chunk_size: int) -> None:
    """Validate the upload chunk size.

    Raises:
        ValueError: If chunk_size is not a positive integer.
    """
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        msg = f"upload_chunk_size must be > 0, got {chunk_size}"
        raise ValueError(msg)


def validate_method(method: str) -> str:
    """Validate an HTTP method name and return it in upper case.

    Args:
        method: The HTTP method name, in any case.

    Returns:
        The upper-case method name.

    Raises:
        ValueError: If the method is not one of GET, POST, PUT or DELETE.

    Example:
        ```pycon
        >>> from arestful.core.validation import validate_method
        >>> validate_method("get")
        'GET'

        ```
    """
    normalized = method.upper() if isinstance(method, str) else method
    if normalized not in SUPPORTED_METHODS:
        msg = f"method must be one of {', '.join(SUPPORTED_METHODS)}, got {method!r}"
        raise ValueError(msg)
    return normalized
