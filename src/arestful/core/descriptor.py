r"""Build the request descriptors handed to the transport.

A ``RequestDescriptor`` is a transient, fully specified request value
created fresh for every call: method, absolute URL, query parameters,
body, headers and timeout. The builders in this module assemble the base
descriptor and then pass it through the optional pre-request hook.
"""

from __future__ import annotations

__all__ = [
    "FormPayload",
    "RequestDescriptor",
    "UploadFile",
    "apply_pre_interceptor",
    "build_request",
    "build_upload_request",
]

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Literal

from arestful.core.config import (
    CONTENT_TYPE_NAME,
    DEFAULT_FILE_KEY,
    DEFAULT_TIMEOUT,
    TYPE_JSON,
    TYPE_MULTIPART,
)
from arestful.core.validation import validate_method, validate_timeout

if TYPE_CHECKING:
    from collections.abc import Mapping

    from arestful.interceptors import PreRequestHook


@dataclass(frozen=True)
class UploadFile:
    """A file to be sent in a multipart upload.

    Attributes:
        filename: The file name announced to the server.
        content: The file content, as bytes or a binary file object.
        media_type: Optional media type of the file. When ``None`` the
            transport picks one from the file name.
    """

    filename: str
    content: bytes | IO[bytes]
    media_type: str | None = None

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> UploadFile:
        """Read a local file into an ``UploadFile``.

        Args:
            path: Path of the file to read.
            media_type: Optional media type. Guessed from the file
                extension when omitted.

        Returns:
            The upload file.
        """
        path = Path(path)
        if media_type is None:
            media_type = mimetypes.guess_type(path.name)[0]
        return cls(filename=path.name, content=path.read_bytes(), media_type=media_type)

    @property
    def size(self) -> int | None:
        """The content size in bytes, or ``None`` if it cannot be known
        without reading the stream."""
        if isinstance(self.content, (bytes, bytearray)):
            return len(self.content)
        return None


@dataclass(frozen=True)
class FormPayload:
    """Multipart form body carrying one file and scalar fields."""

    file: UploadFile
    file_key: str = DEFAULT_FILE_KEY
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class RequestDescriptor:
    """The ready-to-send description of one request.

    Attributes:
        method: The HTTP method (GET, POST, PUT or DELETE).
        url: The absolute URL (base URL followed by the request path).
        params: Optional query parameters.
        body: Optional body: a JSON value, raw ``bytes``/``str`` content,
            or a ``FormPayload`` for multipart uploads.
        headers: Request headers.
        timeout: Timeout in milliseconds.
        with_credentials: Cookies and credentials are always sent.
        response_type: ``"auto"`` decodes the response from its content
            type, ``"bytes"`` keeps the raw content.
    """

    method: str
    url: str
    params: Mapping[str, Any] | None = None
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: int = DEFAULT_TIMEOUT
    with_credentials: bool = field(default=True, init=False)
    response_type: Literal["auto", "bytes"] = "auto"

    @property
    def content_type(self) -> str | None:
        for key, value in self.headers.items():
            if key.lower() == CONTENT_TYPE_NAME.lower():
                return value
        return None


def apply_pre_interceptor(
    descriptor: RequestDescriptor,
    path: str,
    pre_request_hook: PreRequestHook | None,
    default_timeout: int = DEFAULT_TIMEOUT,
) -> RequestDescriptor:
    """Merge the pre-request hook result into a descriptor.

    Every header returned by the hook overwrites the header of the same
    name. The timeout is the hook's value when present and non-zero, else
    ``default_timeout``. Without hook, or when the hook returns ``None``,
    the headers are left unchanged and the default timeout applies.

    Args:
        descriptor: The descriptor to update in place.
        path: The relative request path, passed to the hook.
        pre_request_hook: Optional synchronous hook called with
            ``(method, path)``.
        default_timeout: The timeout used when the hook does not set one.

    Returns:
        The updated descriptor.

    Raises:
        ValueError: If the hook returns an invalid timeout.
    """
    result = None if pre_request_hook is None else pre_request_hook(descriptor.method, path)
    if result is None:
        descriptor.timeout = default_timeout
        return descriptor

    _merge_headers(descriptor.headers, result.headers or {})
    timeout = result.timeout or default_timeout
    validate_timeout(timeout)
    descriptor.timeout = timeout
    return descriptor


def build_request(
    base_url: str,
    path: str,
    method: str,
    params: Mapping[str, Any] | None = None,
    body: Any = None,
    content_type: str = TYPE_JSON,
    *,
    pre_request_hook: PreRequestHook | None = None,
    default_timeout: int = DEFAULT_TIMEOUT,
) -> RequestDescriptor:
    """Build the descriptor of a GET, POST, PUT or DELETE request.

    Args:
        base_url: The client base URL.
        path: The request path, appended verbatim to ``base_url``.
        method: The HTTP method name.
        params: Optional query parameters.
        body: Optional body, attached verbatim.
        content_type: The ``Content-Type`` header value.
        pre_request_hook: Optional pre-request hook.
        default_timeout: The timeout used when the hook does not set one.

    Returns:
        The request descriptor.

    Raises:
        ValueError: If the method is not supported.

    Example:
        ```pycon
        >>> from arestful.core.descriptor import build_request
        >>> descriptor = build_request("https://api.example.com", "/users", "get", {"page": 1})
        >>> descriptor.method, descriptor.url, descriptor.timeout
        ('GET', 'https://api.example.com/users', 60000)
        >>> descriptor.headers
        {'Content-Type': 'application/json'}

        ```
    """
    descriptor = RequestDescriptor(
        method=validate_method(method),
        url=f"{base_url}{path}",
        params=params,
        body=body,
        headers={CONTENT_TYPE_NAME: content_type or TYPE_JSON},
    )
    return apply_pre_interceptor(descriptor, path, pre_request_hook, default_timeout)


def build_upload_request(
    base_url: str,
    path: str,
    params: Mapping[str, Any] | None,
    file: UploadFile,
    file_key: str = DEFAULT_FILE_KEY,
    *,
    pre_request_hook: PreRequestHook | None = None,
    default_timeout: int = DEFAULT_TIMEOUT,
) -> RequestDescriptor:
    """Build the descriptor of a multipart file upload.

    The file is sent under ``file_key`` and every scalar entry of
    ``params`` becomes an extra form field. The content type is forced to
    ``multipart/form-data``.

    Args:
        base_url: The client base URL.
        path: The request path, appended verbatim to ``base_url``.
        params: Optional scalar form fields.
        file: The file to upload.
        file_key: The form field name of the file.
        pre_request_hook: Optional pre-request hook.
        default_timeout: The timeout used when the hook does not set one.

    Returns:
        The request descriptor.

    Raises:
        TypeError: If ``file`` is not an ``UploadFile`` or a field value is
            not a scalar.
    """
    if not isinstance(file, UploadFile):
        msg = f"file must be an UploadFile, got {type(file).__name__}"
        raise TypeError(msg)
    fields = dict(params or {})
    for name, value in fields.items():
        if not isinstance(value, (str, int, float, bool)):
            msg = f"form field {name!r} must be a scalar, got {type(value).__name__}"
            raise TypeError(msg)
    descriptor = RequestDescriptor(
        method="POST",
        url=f"{base_url}{path}",
        body=FormPayload(file=file, file_key=file_key or DEFAULT_FILE_KEY, fields=fields),
        headers={CONTENT_TYPE_NAME: TYPE_MULTIPART},
    )
    return apply_pre_interceptor(descriptor, path, pre_request_hook, default_timeout)


def _merge_headers(headers: dict[str, str], extra: Mapping[str, str]) -> None:
    # Header names are case-insensitive: drop any existing spelling first
    for key, value in extra.items():
        for existing in [k for k in headers if k.lower() == key.lower()]:
            del headers[existing]
        headers[key] = value
