r"""Structured logging utilities for request tracing.

When debug tracing is enabled, ``RestClient`` logs every outgoing request
descriptor and every decoded payload through ``log_structured``. The
fields of those records are rendered as JSON by ``StructuredFormatter``,
which also attaches the correlation id of the current context.

Example:
    Enable JSON traces for arestful:

    ```python
    import logging

    from arestful import RestClient
    from arestful.utils.structured_logging import StructuredFormatter, set_correlation_id

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger("arestful")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    RestClient.set_debug(True)
    set_correlation_id("checkout-42")
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_correlation_id",
    "get_correlation_id",
    "log_structured",
    "redact_headers",
    "set_correlation_id",
]

import contextvars
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from arestful.core.config import SENSITIVE_HEADERS

if TYPE_CHECKING:
    from collections.abc import Mapping

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "arestful_correlation_id", default=None
)

# Attributes every LogRecord has; anything else was passed through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}

REDACTED = "***"


def get_correlation_id() -> str | None:
    """Get the correlation id of the current context.

    Example:
        ```pycon
        >>> from arestful.utils.structured_logging import (
        ...     clear_correlation_id,
        ...     get_correlation_id,
        ...     set_correlation_id,
        ... )
        >>> set_correlation_id("req-123")
        >>> get_correlation_id()
        'req-123'
        >>> clear_correlation_id()
        >>> get_correlation_id() is None
        True

        ```
    """
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation id attached to the structured records emitted
    in the current context (thread or task)."""
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of headers with credential values masked.

    Example:
        ```pycon
        >>> from arestful.utils.structured_logging import redact_headers
        >>> redact_headers({"Authorization": "Bearer abc", "Accept": "*/*"})
        {'Authorization': '***', 'Accept': '*/*'}

        ```
    """
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Every record is rendered as one JSON object with the fields
    ``timestamp`` (ISO 8601, UTC), ``level``, ``logger``, ``message``,
    ``module``, ``function`` and ``line``, the optional
    ``correlation_id`` and ``exception``, and every field passed through
    the ``extra`` argument of the logging call. Values that are not JSON
    serializable are rendered with ``repr``.

    Example:
        ```pycon
        >>> import json
        >>> import logging
        >>> from io import StringIO
        >>> from arestful.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("arestful.doctest")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.DEBUG)
        >>> logger.debug("Sending GET request", extra={"url": "https://api.example.com/users"})
        >>> json.loads(stream.getvalue())["url"]
        'https://api.example.com/users'

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        correlation_id = get_correlation_id()
        if correlation_id is not None:
            log_data["correlation_id"] = correlation_id
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value
        return json.dumps(log_data, default=repr)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        """Format the record time as ISO 8601 with millisecond precision;
        ``datefmt`` is ignored."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


def log_structured(logger: logging.Logger, level: int, message: str, **extra: Any) -> None:
    """Log a message with structured fields.

    Args:
        logger: Logger to use.
        level: Log level (e.g., ``logging.DEBUG``).
        message: Log message.
        **extra: Structured fields included in the JSON output of
            ``StructuredFormatter``.
    """
    logger.log(level, message, extra=extra)
