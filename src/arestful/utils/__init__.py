r"""Utility functions for the request pipeline.

This package provides the error normalizer, the hook and callback
invocation helpers, the default file saver and the structured logging
helpers.
"""

from __future__ import annotations

__all__ = [
    "apply_processors",
    "build_config_error",
    "build_parse_error",
    "build_response_error",
    "build_transport_error",
    "classify_transport_error",
    "invoke_error_hook",
    "invoke_handle_error",
    "invoke_on_completed",
    "invoke_progress_update",
    "normalize_exception",
    "save_to_disk",
]

from arestful.utils.callbacks import (
    apply_processors,
    invoke_error_hook,
    invoke_handle_error,
    invoke_on_completed,
    invoke_progress_update,
)
from arestful.utils.exceptions import (
    build_config_error,
    build_parse_error,
    build_response_error,
    build_transport_error,
    classify_transport_error,
    normalize_exception,
)
from arestful.utils.files import save_to_disk
