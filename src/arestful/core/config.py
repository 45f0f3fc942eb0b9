r"""Configuration dataclass and defaults for RestClient.

This module provides the constants shared by the request pipeline and a
dataclass-based configuration object for the ``RestClient`` façade.
"""

from __future__ import annotations

__all__ = [
    "CONTENT_TYPE_NAME",
    "DEFAULT_FILE_KEY",
    "DEFAULT_TIMEOUT",
    "DEFAULT_UPLOAD_CHUNK_SIZE",
    "HTML_SNIPPET_LENGTH",
    "SENSITIVE_HEADERS",
    "TYPE_FORM",
    "TYPE_HTML",
    "TYPE_JSON",
    "TYPE_MULTIPART",
    "TYPE_TEXT",
    "ClientConfig",
]

from dataclasses import dataclass, replace
from typing import Any

from arestful.core.validation import validate_chunk_size, validate_timeout

# Default request timeout in milliseconds (one minute)
DEFAULT_TIMEOUT = 60_000

# Form field name used for the uploaded file when the caller does not
# provide one
DEFAULT_FILE_KEY = "filename"

# Size of the chunks streamed to the server during a progress-tracked upload
DEFAULT_UPLOAD_CHUNK_SIZE = 64 * 1024

# Number of characters of an HTML error page kept in ApiError details
HTML_SNIPPET_LENGTH = 200

CONTENT_TYPE_NAME = "Content-Type"
TYPE_JSON = "application/json"
TYPE_HTML = "text/html"
TYPE_TEXT = "text/plain"
TYPE_FORM = "application/x-www-form-urlencoded"
TYPE_MULTIPART = "multipart/form-data"

# Header values masked in debug traces
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "proxy-authorization"})


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for RestClient behavior.

    Args:
        timeout: Default request timeout in milliseconds. Used when no
            pre-request hook is configured, or when the hook does not
            provide a timeout. Must be > 0.
        debug: Per-instance debug tracing switch. ``None`` defers to the
            process-wide flag set with ``RestClient.set_debug``.
        follow_redirects: Whether the transport follows 3xx redirects.
            A 3xx response that reaches the pipeline is reported as an
            ``ApiError``.
        upload_chunk_size: Size in bytes of the chunks used to report
            upload progress. Must be > 0.

    Example:
        ```pycon
        >>> from arestful.core.config import ClientConfig
        >>> config = ClientConfig()
        >>> config.timeout
        60000
        >>> config = config.merge(timeout=5000, debug=None)
        >>> config.timeout
        5000

        ```
    """

    timeout: int = DEFAULT_TIMEOUT
    debug: bool | None = None
    follow_redirects: bool = True
    upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE

    def __post_init__(self) -> None:
        validate_timeout(self.timeout)
        validate_chunk_size(self.upload_chunk_size)

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new ClientConfig instance with overrides applied.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)
