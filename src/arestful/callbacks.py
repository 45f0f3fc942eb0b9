r"""Callback types and the handle of progress-tracked uploads.

``RestClient.async_upload`` does not report its outcome through its own
return value: it returns an ``UploadProgress`` handle right away and
delivers progress, completion and failure to the functions of an
``UploadCallback``.

Example:
    ```pycon
    >>> import asyncio
    >>> from arestful import RestClient
    >>> from arestful.callbacks import UploadCallback
    >>> from arestful.core.descriptor import UploadFile
    >>> async def main():  # doctest: +SKIP
    ...     client = RestClient("https://api.example.com")
    ...     progress = client.async_upload(
    ...         "/files",
    ...         {"folder": "reports"},
    ...         UploadFile.from_path("report.pdf"),
    ...         UploadCallback(
    ...             progress_update=lambda percent: print(f"{percent}%"),
    ...             on_completed=print,
    ...             handle_error=lambda error: print(error.details),
    ...         ),
    ...     )
    ...     await progress
    ...
    >>> asyncio.run(main())  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = ["ErrorCallback", "OnCompleted", "ProgressUpdate", "UploadCallback", "UploadProgress"]

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

    from arestful.exceptions import ApiError

logger: logging.Logger = logging.getLogger(__name__)

ProgressUpdate = Callable[[int], None]
ErrorCallback = Callable[["ApiError"], None]
OnCompleted = Callable[[Any], None]


@dataclass(frozen=True)
class UploadCallback:
    """Functions notified during a progress-tracked upload.

    Attributes:
        progress_update: Called with the percentage (0 to 100) of bytes
            sent. Never called when the upload size is unknown.
        on_completed: Called with the decoded response body once the
            upload succeeded.
        handle_error: Called with the ``ApiError`` of a failed upload.
            Not called when the upload was cancelled.
    """

    progress_update: ProgressUpdate | None = None
    on_completed: OnCompleted | None = None
    handle_error: ErrorCallback | None = None


class UploadProgress:
    r"""Handle of an upload running in the background.

    The handle can cancel the transfer and be awaited until the transfer
    settles. Awaiting it never raises: the outcome is only reported
    through the ``UploadCallback``.

    Args:
        task: The task running the upload.
    """

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def done(self) -> bool:
        """``True`` once the upload succeeded, failed or was cancelled."""
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> None:
        """Abort the in-flight upload.

        Bytes already sent are not rolled back. Calling this method after
        the upload settled does nothing.
        """
        if self._task.done():
            return
        logger.debug("Cancelling upload")
        self._task.cancel()

    async def wait(self) -> None:
        """Wait until the upload settles, whatever its outcome."""
        await asyncio.wait({self._task})

    def __await__(self) -> Generator[Any, None, None]:
        return self.wait().__await__()
