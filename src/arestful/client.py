r"""REST client façade.

This module provides the ``RestClient`` class. Every verb, upload and
download method funnels through one pipeline: the request descriptor is
built and passed through the pre-request hook, sent with httpx, decoded,
and transformed by the optional data processor and post-response hook.
Any failure is normalized into a single ``ApiError``, handed to the error
hook, and raised.
"""

from __future__ import annotations

__all__ = ["RestClient"]

import asyncio
import logging
from typing import TYPE_CHECKING, Any, ClassVar, NoReturn

import httpx

from arestful.callbacks import UploadProgress
from arestful.core.config import DEFAULT_FILE_KEY, TYPE_JSON, ClientConfig
from arestful.core.decoder import content_type_of, decode_response
from arestful.core.descriptor import FormPayload, build_request, build_upload_request
from arestful.core.transport import open_client, send_request
from arestful.utils.callbacks import (
    apply_processors,
    invoke_error_hook,
    invoke_handle_error,
    invoke_on_completed,
    invoke_progress_update,
)
from arestful.utils.exceptions import build_parse_error, build_response_error, normalize_exception
from arestful.utils.files import save_to_disk
from arestful.utils.structured_logging import log_structured, redact_headers

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from arestful.callbacks import UploadCallback
    from arestful.core.descriptor import RequestDescriptor, UploadFile
    from arestful.interceptors import DataProcessor, ErrorHook, PostResponseHook, PreRequestHook
    from arestful.utils.files import FileSaver

logger: logging.Logger = logging.getLogger(__name__)


class RestClient:
    r"""Asynchronous REST client with hooks and a unified error model.

    The configuration is immutable after construction. Without an
    injected ``httpx.AsyncClient``, the cookies set by the server are
    kept in a jar shared by the calls of the instance, so a session
    cookie survives from one call to the next. With an injected client,
    its own cookie jar is used.

    Args:
        base_url: Prefix of every request path. Paths are appended
            verbatim, without slash normalization.
        error_hook: Optional function receiving every ``ApiError`` right
            before it is raised. Its return value does not stop the error
            from propagating.
        pre_request_hook: Optional synchronous function called with
            ``(method, path)`` before each request. It returns a
            ``PreInterceptorResult`` with extra headers and an optional
            timeout, or ``None``.
        post_response_hook: Optional async function transforming every
            successfully decoded body.
        config: Optional ``ClientConfig``. If ``None``, a default config
            is used.
        client: Optional ``httpx.AsyncClient`` used to send the requests.
            Its lifecycle is managed by the caller. If ``None``, a
            short-lived client is opened for each call.
        file_saver: Function storing downloaded files, called with
            ``(filename, content, media_type)``. Defaults to writing the
            file on the local disk.

    Example:
        ```pycon
        >>> import asyncio
        >>> from arestful import ApiError, RestClient
        >>> async def main():  # doctest: +SKIP
        ...     client = RestClient("https://api.example.com")
        ...     try:
        ...         user = await client.get("/users", {"page": 1})
        ...     except ApiError as error:
        ...         if error.status == -1:
        ...             print("no response", error.details["code"])
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    _debug: ClassVar[bool] = False

    def __init__(
        self,
        base_url: str,
        error_hook: ErrorHook | None = None,
        pre_request_hook: PreRequestHook | None = None,
        post_response_hook: PostResponseHook | None = None,
        *,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
        file_saver: FileSaver | None = None,
    ) -> None:
        self._base_url = base_url
        self._error_hook = error_hook
        self._pre_request_hook = pre_request_hook
        self._post_response_hook = post_response_hook
        self._config = config if config is not None else ClientConfig()
        self._client = client
        self._file_saver = file_saver if file_saver is not None else save_to_disk
        self._cookies = httpx.Cookies()

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_url={self._base_url!r})"

    @staticmethod
    def set_debug(value: bool) -> None:
        """Enable or disable debug tracing for every client of the
        process.

        A client whose ``ClientConfig.debug`` is set ignores this flag.
        Tracing only emits DEBUG log records; it never changes results.
        """
        RestClient._debug = bool(value)

    @staticmethod
    def is_debug() -> bool:
        return RestClient._debug

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def debug(self) -> bool:
        """Whether this client traces its requests and payloads."""
        if self._config.debug is not None:
            return self._config.debug
        return RestClient._debug

    async def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        processor: DataProcessor | None = None,
    ) -> Any:
        r"""Send a GET request.

        Args:
            path: The request path, relative to the base URL.
            params: Optional query parameters.
            processor: Optional function applied to the decoded body.

        Returns:
            The decoded body, transformed by the processor and the
            post-response hook.

        Raises:
            ApiError: If the request fails for any reason.
        """
        return await self._execute(lambda: self._build(path, "GET", params), processor)

    async def post(
        self,
        path: str,
        body: Any,
        params: Mapping[str, Any] | None = None,
        content_type: str = TYPE_JSON,
        processor: DataProcessor | None = None,
    ) -> Any:
        r"""Send a POST request.

        Args:
            path: The request path, relative to the base URL.
            body: The request body. It is serialized by the transport
                according to ``content_type``: JSON values for
                ``application/json``, mappings for form payloads, and
                ``bytes``/``str`` as-is.
            params: Optional query parameters.
            content_type: The ``Content-Type`` of the body.
            processor: Optional function applied to the decoded body.

        Returns:
            The decoded body, transformed by the processor and the
            post-response hook.

        Raises:
            ApiError: If the request fails for any reason.
        """
        return await self._execute(
            lambda: self._build(path, "POST", params, body, content_type), processor
        )

    async def put(
        self,
        path: str,
        body: Any,
        params: Mapping[str, Any] | None = None,
        content_type: str = TYPE_JSON,
        processor: DataProcessor | None = None,
    ) -> Any:
        r"""Send a PUT request. See ``post`` for the arguments."""
        return await self._execute(
            lambda: self._build(path, "PUT", params, body, content_type), processor
        )

    async def delete(
        self,
        path: str,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        content_type: str = TYPE_JSON,
        processor: DataProcessor | None = None,
    ) -> Any:
        r"""Send a DELETE request. See ``post`` for the arguments; the body
        is optional."""
        return await self._execute(
            lambda: self._build(path, "DELETE", params, body, content_type), processor
        )

    async def upload(
        self,
        path: str,
        params: Mapping[str, Any] | None,
        file: UploadFile,
        file_key: str = DEFAULT_FILE_KEY,
        processor: DataProcessor | None = None,
    ) -> Any:
        r"""Upload a single file as a multipart form.

        Args:
            path: The request path, relative to the base URL.
            params: Optional scalar form fields sent along the file.
            file: The file to upload.
            file_key: The form field name of the file.
            processor: Optional function applied to the decoded body.

        Returns:
            The decoded body, transformed by the processor and the
            post-response hook.

        Raises:
            ApiError: If the upload fails for any reason.
        """
        return await self._execute(
            lambda: self._build_upload(path, params, file, file_key), processor
        )

    def async_upload(
        self,
        path: str,
        params: Mapping[str, Any] | None,
        file: UploadFile,
        callback: UploadCallback | None,
        file_key: str = DEFAULT_FILE_KEY,
    ) -> UploadProgress:
        r"""Start a cancellable upload reporting its progress.

        The upload runs in a background task of the running event loop
        and this method returns at once. Progress, completion and failure
        are reported through ``callback``; a cancelled upload reports
        nothing. Neither the data processor, the post-response hook nor
        the error hook are involved.

        Args:
            path: The request path, relative to the base URL.
            params: Optional scalar form fields sent along the file.
            file: The file to upload.
            callback: The functions notified of the upload events.
            file_key: The form field name of the file.

        Returns:
            The handle used to cancel the upload or wait for it. Awaiting
            it never raises.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._run_upload(path, params, file, callback, file_key)
        )
        return UploadProgress(task)

    async def download(
        self,
        path: str,
        filename: str,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        body: Any = None,
    ) -> None:
        r"""Download a payload and store it with the file saver.

        Args:
            path: The request path, relative to the base URL.
            filename: The name of the file to store.
            params: Optional query parameters.
            method: The HTTP method of the request.
            body: Optional request body (e.g. the filters of an export).

        Raises:
            ApiError: If the request fails for any reason.
            Exception: Any error raised by the file saver, unchanged.
        """

        def build() -> RequestDescriptor:
            descriptor = self._build(path, method, params, body)
            descriptor.response_type = "bytes"
            return descriptor

        try:
            descriptor, response = await self._send(build)
            content = self._decode(response, descriptor.response_type)
        except Exception as exc:
            self._raise_failure(exc)
        media_type = content_type_of(response) or None
        self._trace(f"Saving download as {filename}", target=filename, media_type=media_type)
        self._file_saver(filename, content, media_type)

    def _build(
        self,
        path: str,
        method: str,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        content_type: str = TYPE_JSON,
    ) -> RequestDescriptor:
        return build_request(
            self._base_url,
            path,
            method,
            params,
            body,
            content_type,
            pre_request_hook=self._pre_request_hook,
            default_timeout=self._config.timeout,
        )

    def _build_upload(
        self,
        path: str,
        params: Mapping[str, Any] | None,
        file: UploadFile,
        file_key: str,
    ) -> RequestDescriptor:
        return build_upload_request(
            self._base_url,
            path,
            params,
            file,
            file_key,
            pre_request_hook=self._pre_request_hook,
            default_timeout=self._config.timeout,
        )

    async def _send(
        self,
        build: Callable[[], RequestDescriptor],
        on_progress: Callable[[int], None] | None = None,
    ) -> tuple[RequestDescriptor, httpx.Response]:
        descriptor = build()
        self._trace_descriptor(descriptor)
        async with open_client(
            self._client, self._config.follow_redirects, self._cookies
        ) as client:
            response = await send_request(
                client,
                descriptor,
                follow_redirects=self._config.follow_redirects,
                on_progress=on_progress,
                chunk_size=self._config.upload_chunk_size,
            )
        return descriptor, response

    def _decode(self, response: httpx.Response, response_type: str = "auto") -> Any:
        if response.status_code >= 300:
            raise build_response_error(response)
        try:
            data = decode_response(response, response_type)
        except ValueError as exc:
            raise build_parse_error(response, exc) from exc
        if response_type == "bytes":
            self._trace(
                f"Received {response.status_code} response",
                status=response.status_code,
                size=len(data),
            )
        else:
            self._trace(
                f"Decoded {response.status_code} response", status=response.status_code, data=data
            )
        return data

    async def _execute(
        self, build: Callable[[], RequestDescriptor], processor: DataProcessor | None
    ) -> Any:
        try:
            descriptor, response = await self._send(build)
            data = self._decode(response, descriptor.response_type)
            if processor is not None or self._post_response_hook is not None:
                data = await apply_processors(data, processor, self._post_response_hook)
                self._trace("Processed response data", data=data)
        except Exception as exc:
            self._raise_failure(exc)
        return data

    def _raise_failure(self, exc: Exception) -> NoReturn:
        error = normalize_exception(exc)
        invoke_error_hook(self._error_hook, error)
        if error is exc:
            raise error
        raise error from exc

    async def _run_upload(
        self,
        path: str,
        params: Mapping[str, Any] | None,
        file: UploadFile,
        callback: UploadCallback | None,
        file_key: str,
    ) -> None:
        try:
            descriptor, response = await self._send(
                lambda: self._build_upload(path, params, file, file_key),
                on_progress=lambda progress: invoke_progress_update(callback, progress),
            )
            data = self._decode(response, descriptor.response_type)
        except asyncio.CancelledError:
            logger.debug(f"Upload to {self._base_url}{path} cancelled")
            raise
        except Exception as exc:
            self._notify(invoke_handle_error, callback, normalize_exception(exc))
            return
        self._notify(invoke_on_completed, callback, data)

    @staticmethod
    def _notify(
        invoke: Callable[[UploadCallback | None, Any], None],
        callback: UploadCallback | None,
        value: Any,
    ) -> None:
        # Nobody awaits the upload task for its result, so a failing
        # callback can only be reported through the log
        try:
            invoke(callback, value)
        except Exception:
            logger.exception("Upload callback raised an exception")

    def _trace(self, message: str, **fields: Any) -> None:
        if self.debug:
            log_structured(logger, logging.DEBUG, message, **fields)

    def _trace_descriptor(self, descriptor: RequestDescriptor) -> None:
        if not self.debug:
            return
        body = descriptor.body
        if isinstance(body, FormPayload):
            body = {"fields": dict(body.fields), body.file_key: body.file.filename}
        self._trace(
            f"Sending {descriptor.method} request to {descriptor.url}",
            method=descriptor.method,
            url=descriptor.url,
            params=descriptor.params,
            headers=redact_headers(descriptor.headers),
            timeout=descriptor.timeout,
            body=body,
        )