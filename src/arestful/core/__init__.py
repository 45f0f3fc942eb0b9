r"""Core request pipeline: configuration, validation, descriptor
building, response decoding and transport adaptation."""

from __future__ import annotations

__all__ = [
    "DEFAULT_FILE_KEY",
    "DEFAULT_TIMEOUT",
    "DEFAULT_UPLOAD_CHUNK_SIZE",
    "ClientConfig",
    "FormPayload",
    "RequestDescriptor",
    "UploadFile",
    "apply_pre_interceptor",
    "build_request",
    "build_upload_request",
    "decode_response",
    "parse_response_data",
    "validate_method",
    "validate_timeout",
]

from arestful.core.config import (
    DEFAULT_FILE_KEY,
    DEFAULT_TIMEOUT,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    ClientConfig,
)
from arestful.core.decoder import decode_response, parse_response_data
from arestful.core.descriptor import (
    FormPayload,
    RequestDescriptor,
    UploadFile,
    apply_pre_interceptor,
    build_request,
    build_upload_request,
)
from arestful.core.validation import validate_method, validate_timeout
