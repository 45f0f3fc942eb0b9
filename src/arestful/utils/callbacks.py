r"""Callback invocation utilities for the request pipeline.

This module provides the functions invoking the user-defined hooks and
upload callbacks at the various points of a request.
"""

from __future__ import annotations

__all__ = [
    "apply_processors",
    "invoke_error_hook",
    "invoke_handle_error",
    "invoke_on_completed",
    "invoke_progress_update",
]

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from arestful.callbacks import UploadCallback
    from arestful.exceptions import ApiError
    from arestful.interceptors import DataProcessor, ErrorHook, PostResponseHook

logger: logging.Logger = logging.getLogger(__name__)


async def apply_processors(
    data: Any,
    processor: DataProcessor | None,
    post_response_hook: PostResponseHook | None,
) -> Any:
    """Run the data processor and then the post-response hook on a
    decoded body.

    Args:
        data: The decoded body.
        processor: Optional synchronous per-call transform.
        post_response_hook: Optional asynchronous client-wide transform.

    Returns:
        ``post_response_hook(processor(data))``, skipping the missing
        steps.
    """
    if processor is not None:
        data = processor(data)
    if post_response_hook is not None:
        data = await post_response_hook(data)
    return data


def invoke_error_hook(error_hook: ErrorHook | None, error: ApiError) -> None:
    """Invoke the error hook if provided.

    The value returned by the hook is logged but never prevents the error
    from being raised.
    """
    if error_hook is None:
        return
    handled = error_hook(error)
    if handled:
        logger.debug(f"Error hook reported {error!r} as handled, raising it anyway")


def invoke_progress_update(callback: UploadCallback | None, progress: int) -> None:
    if callback is not None and callback.progress_update is not None:
        callback.progress_update(progress)


def invoke_on_completed(callback: UploadCallback | None, data: Any) -> None:
    if callback is not None and callback.on_completed is not None:
        callback.on_completed(data)


def invoke_handle_error(callback: UploadCallback | None, error: ApiError) -> None:
    if callback is not None and callback.handle_error is not None:
        callback.handle_error(error)
