r"""Normalize every request failure into an ``ApiError``.

This module collapses the three failure families of a request into the
single ``ApiError`` taxonomy:

- the server answered with an error status: the status is kept and the
  body becomes the error details, shaped by the response content type,
- the request was sent but no response was received: status ``-1`` and a
  stable network error code (100 to 105),
- the request was never sent: status ``-1`` and code 106.
"""

from __future__ import annotations

__all__ = [
    "build_config_error",
    "build_parse_error",
    "build_response_error",
    "build_transport_error",
    "classify_transport_error",
    "normalize_exception",
]

import asyncio
import errno
import logging
import socket
from typing import TYPE_CHECKING, Any

import httpx

from arestful.core.config import HTML_SNIPPET_LENGTH, TYPE_HTML
from arestful.core.decoder import content_type_of, is_json, is_textual, parse_response_data
from arestful.exceptions import (
    CODE_CANCELLED,
    CODE_CONFIG_ERROR,
    CODE_CONNECTION_REFUSED,
    CODE_HOST_NOT_FOUND,
    CODE_NETWORK_ERROR,
    CODE_NETWORK_UNREACHABLE,
    CODE_TIMEOUT,
    NO_RESPONSE_STATUS,
    ApiError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger: logging.Logger = logging.getLogger(__name__)

_HOST_NOT_FOUND_MESSAGES = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "no address associated with hostname",
    "temporary failure in name resolution",
)

# Failures raised before anything was written to the network
_NOT_SENT_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)


def _raw_body(response: httpx.Response, content_type: str) -> str | bytes:
    if not content_type or is_textual(content_type):
        return response.text
    return response.content


def build_parse_error(response: httpx.Response, exc: Exception) -> ApiError:
    """Create the error for a declared-JSON body that cannot be parsed.

    Args:
        response: The response whose body is malformed.
        exc: The parsing exception.

    Returns:
        An ``ApiError`` keyed by the response status whose details carry
        the reason phrase, the parsing message and the raw body.
    """
    logger.debug(f"Failed to parse the {response.status_code} response body: {exc}")
    return ApiError(
        response.status_code,
        {
            "code": response.status_code,
            "message": response.reason_phrase,
            "parseError": str(exc),
            "raw": _raw_body(response, content_type_of(response)),
        },
    )


def build_response_error(response: httpx.Response) -> ApiError:
    """Create the error for a response with an error status.

    The details depend on the response content type:

    - JSON: the parsed body (a parse failure gives the details of
      ``build_parse_error``),
    - HTML: ``{"code": status, "htmlContent": <first 200 characters>}``,
    - anything else: ``{"code": status, "raw": <body>}``.

    Args:
        response: The error response.

    Returns:
        The ``ApiError`` keyed by the response status.

    Example:
        ```pycon
        >>> import httpx
        >>> from arestful.utils.exceptions import build_response_error
        >>> response = httpx.Response(
        ...     503, text="maintenance", headers={"Content-Type": "text/plain"}
        ... )
        >>> error = build_response_error(response)
        >>> error.status, error.details
        (503, {'code': 503, 'raw': 'maintenance'})

        ```
    """
    status = response.status_code
    content_type = content_type_of(response)
    logger.debug(
        f"HTTP error response: status={status} content_type={content_type!r} "
        f"reason={response.reason_phrase!r}"
    )
    try:
        if is_json(content_type):
            details: Any = parse_response_data(response.text, content_type)
        elif TYPE_HTML in content_type.lower():
            details = {"code": status, "htmlContent": response.text[:HTML_SNIPPET_LENGTH]}
        else:
            details = {"code": status, "raw": _raw_body(response, content_type)}
    except ValueError as exc:
        return build_parse_error(response, exc)
    return ApiError(status, details)


def _iter_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(getattr(current, "exceptions", ()))
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                stack.append(linked)


def _is_host_not_found(exc: BaseException) -> bool:
    for error in _iter_exception_chain(exc):
        if isinstance(error, socket.gaierror):
            return True
        message = str(error).lower()
        if any(marker in message for marker in _HOST_NOT_FOUND_MESSAGES):
            return True
    return False


def _is_connection_refused(exc: BaseException) -> bool:
    for error in _iter_exception_chain(exc):
        if isinstance(error, ConnectionRefusedError):
            return True
        if isinstance(error, OSError) and error.errno == errno.ECONNREFUSED:
            return True
        if "connection refused" in str(error).lower():
            return True
    return False


def _original_code(exc: BaseException) -> str:
    for error in _iter_exception_chain(exc):
        if isinstance(error, OSError) and isinstance(error.errno, int):
            name = errno.errorcode.get(error.errno)
            if name is not None:
                return name
    return type(exc).__name__


def classify_transport_error(exc: BaseException) -> int:
    """Map a transport failure to its stable network error code.

    Args:
        exc: The exception raised while the request was in flight.

    Returns:
        101 for timeouts, 103 for cancellation, 104 when the host cannot
        be resolved, 105 when the connection is refused, 102 for other
        network failures and 100 for anything else.

    Example:
        ```pycon
        >>> import httpx
        >>> from arestful.utils.exceptions import classify_transport_error
        >>> classify_transport_error(httpx.ReadTimeout("timed out"))
        101
        >>> classify_transport_error(httpx.ConnectError("[Errno 111] Connection refused"))
        105

        ```
    """
    if isinstance(exc, asyncio.CancelledError):
        return CODE_CANCELLED
    if isinstance(exc, httpx.TimeoutException):
        return CODE_TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        if _is_host_not_found(exc):
            return CODE_HOST_NOT_FOUND
        if _is_connection_refused(exc):
            return CODE_CONNECTION_REFUSED
    if isinstance(exc, httpx.NetworkError):
        return CODE_NETWORK_UNREACHABLE
    return CODE_NETWORK_ERROR


def build_transport_error(exc: BaseException) -> ApiError:
    """Create the error for a request that got no response."""
    code = classify_transport_error(exc)
    logger.debug(f"Network error {code}: {type(exc).__name__}: {exc}")
    return ApiError(
        NO_RESPONSE_STATUS,
        {
            "code": code,
            "networkError": True,
            "originalCode": _original_code(exc),
            "originalMessage": str(exc),
        },
    )


def build_config_error(exc: BaseException) -> ApiError:
    """Create the error for a request that could not be sent."""
    logger.debug(f"Request configuration error: {type(exc).__name__}: {exc}")
    return ApiError(
        NO_RESPONSE_STATUS,
        {
            "code": CODE_CONFIG_ERROR,
            "message": f"configuration error: {exc}",
            "configError": True,
            "originalMessage": str(exc),
        },
    )


def normalize_exception(exc: BaseException) -> ApiError:
    """Convert any exception raised by a request into an ``ApiError``.

    An ``ApiError`` is returned unchanged. Exceptions raised before the
    request reached the network (invalid URL, unsupported scheme, body
    that cannot be encoded, failing pre-request hook) are configuration
    errors; httpx request errors and cancellation are transport errors.

    Args:
        exc: The exception to normalize.

    Returns:
        The matching ``ApiError``.

    Example:
        ```pycon
        >>> from arestful.utils.exceptions import normalize_exception
        >>> normalize_exception(TypeError("bad body")).details["code"]
        106

        ```
    """
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, _NOT_SENT_ERRORS):
        return build_config_error(exc)
    if isinstance(exc, (httpx.RequestError, asyncio.CancelledError)):
        return build_transport_error(exc)
    return build_config_error(exc)
