r"""Adapt request descriptors to the httpx transport.

This module turns a ``RequestDescriptor`` into an ``httpx.Request``,
serializing the body according to its content type, and provides the
byte stream wrapper used to report upload progress.
"""

from __future__ import annotations

__all__ = ["ProgressStream", "build_httpx_request", "open_client", "send_request"]

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx

from arestful.core.config import DEFAULT_UPLOAD_CHUNK_SIZE, TYPE_FORM
from arestful.core.decoder import is_json
from arestful.core.descriptor import FormPayload

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Callable

    from arestful.core.descriptor import RequestDescriptor

logger: logging.Logger = logging.getLogger(__name__)


class ProgressStream(httpx.AsyncByteStream):
    r"""Request body stream that reports the percentage of bytes sent.

    The wrapped stream is re-chunked to ``chunk_size`` so that progress is
    reported at a regular pace. Nothing is reported when the total size
    is unknown.

    Args:
        stream: The request body stream to wrap.
        total: The total body size in bytes, or ``None`` if unknown.
        on_progress: Called with an integer percentage in [0, 100] each
            time a consumed chunk changes the percentage.
        chunk_size: Maximum size of the yielded chunks.
    """

    def __init__(
        self,
        stream: AsyncIterable[bytes],
        total: int | None,
        on_progress: Callable[[int], None],
        chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
    ) -> None:
        self._stream = stream
        self._total = total
        self._on_progress = on_progress
        self._chunk_size = chunk_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        sent = 0
        reported = -1
        async for chunk in self._stream:
            for start in range(0, len(chunk), self._chunk_size):
                piece = chunk[start : start + self._chunk_size]
                yield piece
                sent += len(piece)
                if not self._total:
                    continue
                # Only changes are reported
                percent = min(100, round(sent * 100 / self._total))
                if percent != reported:
                    reported = percent
                    self._on_progress(percent)


def _encode_body(descriptor: RequestDescriptor, headers: dict[str, str]) -> dict[str, Any]:
    body = descriptor.body
    if body is None:
        return {}
    if isinstance(body, FormPayload):
        # httpx generates the multipart boundary only when no Content-Type
        # header is set
        for key in [k for k in headers if k.lower() == "content-type"]:
            del headers[key]
        file = body.file
        file_value = (
            (file.filename, file.content)
            if file.media_type is None
            else (file.filename, file.content, file.media_type)
        )
        return {
            "data": {name: _form_value(value) for name, value in body.fields.items()},
            "files": {body.file_key: file_value},
        }
    if isinstance(body, (bytes, bytearray, str)):
        return {"content": body}
    content_type = descriptor.content_type
    if is_json(content_type):
        return {"json": body}
    if content_type and TYPE_FORM in content_type.lower() and isinstance(body, Mapping):
        return {"data": body}
    msg = f"cannot encode a {type(body).__name__} body as {content_type!r}"
    raise TypeError(msg)


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_httpx_request(client: httpx.AsyncClient, descriptor: RequestDescriptor) -> httpx.Request:
    """Build the httpx request described by a descriptor.

    Args:
        client: The httpx client used to build (and later send) the request.
        descriptor: The request descriptor.

    Returns:
        The httpx request.

    Raises:
        TypeError: If the body cannot be encoded for its content type.
        httpx.InvalidURL: If the URL is malformed.
    """
    headers = dict(descriptor.headers)
    body_kwargs = _encode_body(descriptor, headers)
    return client.build_request(
        descriptor.method,
        descriptor.url,
        params=descriptor.params,
        headers=headers,
        timeout=httpx.Timeout(descriptor.timeout / 1000),
        **body_kwargs,
    )


@asynccontextmanager
async def open_client(
    client: httpx.AsyncClient | None,
    follow_redirects: bool = True,
    cookies: httpx.Cookies | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one closed on exit.

    An injected client is used as-is; its lifecycle and its cookies are
    managed by the caller.

    Args:
        client: Optional injected client.
        follow_redirects: Whether the short-lived client follows
            redirects.
        cookies: Optional cookie jar shared by the short-lived clients.
            It seeds the new client and receives its cookies on exit,
            even when the request failed.
    """
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(follow_redirects=follow_redirects, cookies=cookies) as new_client:
        try:
            yield new_client
        finally:
            if cookies is not None:
                cookies.clear()
                cookies.update(new_client.cookies)


async def send_request(
    client: httpx.AsyncClient,
    descriptor: RequestDescriptor,
    *,
    follow_redirects: bool = True,
    on_progress: Callable[[int], None] | None = None,
    chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
) -> httpx.Response:
    """Send the request described by a descriptor.

    Args:
        client: The httpx client.
        descriptor: The request descriptor.
        follow_redirects: Whether 3xx redirects are followed.
        on_progress: Optional callback receiving the upload percentage.
        chunk_size: Chunk size used when reporting upload progress.

    Returns:
        The response, with its body already read.
    """
    request = build_httpx_request(client, descriptor)
    if on_progress is not None:
        length = request.headers.get("Content-Length")
        total = int(length) if length else None
        if total is None:
            logger.debug(f"Upload size to {descriptor.url} is unknown, progress is not reported")
        request.stream = ProgressStream(request.stream, total, on_progress, chunk_size)
    return await client.send(request, follow_redirects=follow_redirects)
