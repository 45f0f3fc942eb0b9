r"""Define the unified error raised by the REST client.

Every failure of a request, whether the server answered with an error
status, the transport failed, or the request could not even be built, is
surfaced as a single ``ApiError``. A status of ``-1`` means no real HTTP
response was received and ``details["code"]`` carries one of the stable
codes defined in this module.
"""

from __future__ import annotations

__all__ = [
    "CODE_CANCELLED",
    "CODE_CONFIG_ERROR",
    "CODE_CONNECTION_REFUSED",
    "CODE_HOST_NOT_FOUND",
    "CODE_NETWORK_ERROR",
    "CODE_NETWORK_UNREACHABLE",
    "CODE_TIMEOUT",
    "NO_RESPONSE_STATUS",
    "ApiError",
]

from collections.abc import Mapping
from typing import Any

# Status used when no HTTP response was received
NO_RESPONSE_STATUS = -1

# Stable application codes for failures without an HTTP response
CODE_NETWORK_ERROR = 100
CODE_TIMEOUT = 101
CODE_NETWORK_UNREACHABLE = 102
CODE_CANCELLED = 103
CODE_HOST_NOT_FOUND = 104
CODE_CONNECTION_REFUSED = 105
CODE_CONFIG_ERROR = 106


class ApiError(Exception):
    """Exception raised when a REST call fails.

    Args:
        status: The HTTP status code of the response, or ``-1`` when no
            response was received.
        details: The structured error payload. For server errors it is the
            parsed JSON body or a ``{code, htmlContent}`` / ``{code, raw}``
            mapping; for transport and configuration failures it is a
            mapping describing the failure.

    Example:
        ```pycon
        >>> from arestful import ApiError
        >>> error = ApiError(404, {"code": "USER_NOT_FOUND"})
        >>> error.status
        404
        >>> error.code
        'USER_NOT_FOUND'
        >>> ApiError(500, None).code
        500

        ```
    """

    def __init__(self, status: int, details: Any = None) -> None:
        code = details.get("code") if isinstance(details, Mapping) else None
        if code is None:
            code = status
        super().__init__(str(code))
        self._status = status
        self._code = code
        self._details = details

    @property
    def status(self) -> int:
        return self._status

    @property
    def code(self) -> Any:
        return self._code

    @property
    def details(self) -> Any:
        return self._details

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(status={self._status}, details={self._details!r})"
