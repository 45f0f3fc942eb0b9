r"""Hook types for customizing the request pipeline.

Three hooks can be given to a ``RestClient``:

- a pre-request hook (synchronous) that returns extra headers and an
  optional timeout for each outgoing request,
- a post-response hook (asynchronous) that transforms every successfully
  decoded body,
- an error hook that observes every ``ApiError`` before it is raised.

Example:
    ```pycon
    >>> from arestful import RestClient
    >>> from arestful.interceptors import PreInterceptorResult
    >>> def add_token(method: str, url: str) -> PreInterceptorResult:
    ...     return PreInterceptorResult(headers={"Authorization": "Bearer cached-token"})
    ...
    >>> client = RestClient("https://api.example.com", pre_request_hook=add_token)

    ```
"""

from __future__ import annotations

__all__ = [
    "DataProcessor",
    "ErrorHook",
    "PostResponseHook",
    "PreInterceptorResult",
    "PreRequestHook",
]

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from arestful.exceptions import ApiError


@dataclass(frozen=True)
class PreInterceptorResult:
    """Value returned by a pre-request hook.

    Attributes:
        headers: Headers merged into the request. Keys overwrite the ones
            already set on the request.
        timeout: Optional timeout override in milliseconds. A missing or
            zero value falls back to the client default.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: int | None = None


# Called with (method, path) before every request; must not block on I/O
PreRequestHook = Callable[[str, str], Optional[PreInterceptorResult]]

# Awaited with the decoded (and processed) body of every successful response
PostResponseHook = Callable[[Any], Awaitable[Any]]

# Receives every ApiError right before it is raised; the return value is
# informational only
ErrorHook = Callable[["ApiError"], Union[bool, None]]

# Synchronous per-call transform applied to a decoded body
DataProcessor = Callable[[Any], Any]
