r"""Shared test helpers for RestClient tests.

The transport is replaced by ``httpx.MockTransport`` so that every test
runs the real pipeline without network access.
"""

from __future__ import annotations

__all__ = [
    "BASE_URL",
    "RecordingHandler",
    "create_client",
    "raise_on_request",
]

from typing import TYPE_CHECKING, Any

import httpx

from arestful import RestClient

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://api.example.com"


class RecordingHandler:
    """MockTransport handler recording every request it receives.

    Args:
        response: The response returned for every request, or a function
            building it from the request.
    """

    def __init__(
        self, response: httpx.Response | Callable[[httpx.Request], httpx.Response]
    ) -> None:
        self._response = response
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(await request.aread())
        self.requests.append(request)
        if callable(self._response):
            return self._response(request)
        return self._response


def raise_on_request(exc: Exception) -> Callable[[httpx.Request], httpx.Response]:
    """Create a MockTransport handler raising ``exc`` for every request."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return handler


def create_client(
    handler: Callable[[httpx.Request], Any], base_url: str = BASE_URL, **kwargs: Any
) -> RestClient:
    """Create a RestClient sending its requests to a mock transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RestClient(base_url, client=client, **kwargs)
