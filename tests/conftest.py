from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import httpx
import pytest

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


@pytest.fixture
def mock_asleep() -> Generator[Mock, None, None]:
    """Patch asyncio.sleep to make retry tests run faster."""
    with patch("asyncio.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def make_client() -> Callable[..., httpx.AsyncClient]:
    """Create httpx.AsyncClient instances backed by a MockTransport.

    The handler receives the httpx.Request and returns an
    httpx.Response (or a coroutine resolving to one). The requests
    received by the transport are recorded on ``client.requests``.
    """

    def _make_client(handler: Callable[[httpx.Request], object]) -> httpx.AsyncClient:
        requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> object:
            requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        client.requests = requests  # type: ignore[attr-defined]
        return client

    return _make_client
