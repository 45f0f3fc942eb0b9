from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, Mock

import pytest

from arestful import RestClient

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_debug() -> Generator[None, None, None]:
    """Restore the process-wide debug flag after each test."""
    previous = RestClient.is_debug()
    yield
    RestClient.set_debug(previous)


@pytest.fixture
def mock_error_hook() -> Mock:
    """Create a mock error hook for testing."""
    return Mock(return_value=None)


@pytest.fixture
def mock_post_hook() -> AsyncMock:
    """Create a mock post-response hook returning its input unchanged."""
    return AsyncMock(side_effect=lambda data: data)


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing upload callbacks."""
    return Mock()
