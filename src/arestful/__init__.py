r"""arestful - Asynchronous REST client with hooks and a unified error model.

This package normalizes HTTP interaction (GET, POST, PUT, DELETE, file
upload and file download) behind a single ``RestClient`` façade built on
top of the httpx library.

Key Features:
    - One pipeline for every call: descriptor building, pre-request hook,
      transport, response decoding, data processor and post-response hook
    - A single ``ApiError`` for server errors, transport failures and
      configuration failures, with stable codes for failures without an
      HTTP response
    - Error hook observing every failure before it is raised
    - Cancellable, progress-tracked file uploads
    - File downloads stored through a pluggable file saver
    - Opt-in debug tracing of requests and payloads with structured logging

Example:
    ```pycon
    >>> import asyncio
    >>> from arestful import PreInterceptorResult, RestClient
    >>> def add_token(method, path):
    ...     return PreInterceptorResult(headers={"Authorization": "Bearer cached-token"})
    ...
    >>> async def main():  # doctest: +SKIP
    ...     client = RestClient("https://api.example.com", pre_request_hook=add_token)
    ...     users = await client.get("/users", {"page": 1})
    ...     created = await client.post("/users", {"name": "Ada"})
    ...
    >>> asyncio.run(main())  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = [
    "ApiError",
    "ClientConfig",
    "PreInterceptorResult",
    "RestClient",
    "UploadCallback",
    "UploadFile",
    "UploadProgress",
    "__version__",
]

from importlib.metadata import PackageNotFoundError, version

from arestful.callbacks import UploadCallback, UploadProgress
from arestful.client import RestClient
from arestful.core.config import ClientConfig
from arestful.core.descriptor import UploadFile
from arestful.exceptions import ApiError
from arestful.interceptors import PreInterceptorResult

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
