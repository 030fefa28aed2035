r"""Unit tests for the validated request executor."""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING
from unittest.mock import Mock, call

import httpx
import pytest
from coola.equality import objects_are_equal
from pydantic import BaseModel

from schemafetch import (
    AbortController,
    ErrorKind,
    FetchError,
    RetryPolicy,
    fetch,
)
from schemafetch.schema import ValidationResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

TEST_URL = "https://api.example.com/users/1"


class User(BaseModel):
    id: int
    name: str
    email: str


USER_PAYLOAD = {"id": 1, "name": "John Doe", "email": "john@example.com"}


def ok_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=USER_PAYLOAD)


async def slow_handler(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(5)
    return httpx.Response(200, json={"ok": True})


###########################################
#     Tests for fetch (happy path)        #
###########################################


@pytest.mark.asyncio
async def test_fetch_returns_validated_model(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    """Test that a 2xx response matching the schema is returned without
    retry."""
    client = make_client(ok_handler)

    user = await fetch(TEST_URL, User, client=client, retry=3)

    assert user == User(id=1, name="John Doe", email="john@example.com")
    assert len(client.requests) == 1
    mock_asleep.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_with_plain_type_schema(make_client: Callable[..., httpx.AsyncClient]) -> None:
    client = make_client(ok_handler)
    assert objects_are_equal(await fetch(TEST_URL, dict, client=client), USER_PAYLOAD)


@pytest.mark.asyncio
async def test_fetch_parses_json_without_json_content_type(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    """Test that a body parsing as JSON is treated as JSON whatever its
    content type."""
    client = make_client(
        lambda request: httpx.Response(
            200, text='{"count": 3}', headers={"Content-Type": "text/plain"}
        )
    )
    assert await fetch(TEST_URL, dict[str, int], client=client) == {"count": 3}


@pytest.mark.asyncio
async def test_fetch_falls_back_to_text(make_client: Callable[..., httpx.AsyncClient]) -> None:
    client = make_client(lambda request: httpx.Response(200, text="hello world"))
    assert await fetch(TEST_URL, str, client=client) == "hello world"


@pytest.mark.asyncio
async def test_fetch_sends_method_headers_and_query(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(ok_handler)

    await fetch(
        "https://api.example.com/users?sort=asc",
        dict,
        method="DELETE",
        headers={"X-Trace": "abc"},
        params={"page": 2, "filter": None, "active": True},
        client=client,
    )

    request = client.requests[0]
    assert request.method == "DELETE"
    assert request.headers["X-Trace"] == "abc"
    assert str(request.url) == "https://api.example.com/users?sort=asc&page=2&active=true"


@pytest.mark.asyncio
async def test_fetch_json_body_round_trip(make_client: Callable[..., httpx.AsyncClient]) -> None:
    """Test that a structured body is received as the same JSON by the
    server."""
    body = {"title": "Hello", "tags": ["a", "b"], "meta": {"draft": False, "score": 1.5}}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"id": 101, **json.loads(request.content)})

    client = make_client(handler)
    result = await fetch(TEST_URL, dict, method="POST", body=body, client=client)

    assert objects_are_equal(result, {"id": 101, **body})
    assert client.requests[0].headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_fetch_keeps_explicit_content_type(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(ok_handler)

    await fetch(
        TEST_URL,
        dict,
        method="POST",
        headers={"content-type": "application/merge-patch+json"},
        body={"name": "Jane"},
        client=client,
    )

    request = client.requests[0]
    assert request.headers["Content-Type"] == "application/merge-patch+json"
    assert json.loads(request.content) == {"name": "Jane"}


@pytest.mark.asyncio
async def test_fetch_sends_raw_body_unchanged(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(ok_handler)

    await fetch(TEST_URL, dict, method="PUT", body=b"\x00\x01raw", client=client)

    request = client.requests[0]
    assert request.content == b"\x00\x01raw"
    assert "Content-Type" not in request.headers


@pytest.mark.asyncio
async def test_fetch_sends_sync_iterator_body(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(ok_handler)

    await fetch(TEST_URL, dict, method="POST", body=iter([b"a", b"b"]), client=client)

    assert client.requests[0].content == b"ab"


@pytest.mark.asyncio
async def test_fetch_sends_byte_stream_body(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(ok_handler)

    await fetch(TEST_URL, dict, method="POST", body=httpx.ByteStream(b"abc"), client=client)

    assert client.requests[0].content == b"abc"


@pytest.mark.asyncio
async def test_fetch_resends_byte_stream_body_on_retry(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])
    client = make_client(lambda request: next(responses))

    await fetch(
        TEST_URL, dict, method="POST", body=httpx.ByteStream(b"abc"), client=client, retry=1
    )

    assert [request.content for request in client.requests] == [b"abc", b"abc"]


@pytest.mark.asyncio
async def test_fetch_sends_async_iterator_body(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    async def chunks() -> AsyncIterator[bytes]:
        yield b"a"
        yield b"b"

    client = make_client(ok_handler)

    await fetch(TEST_URL, dict, method="POST", body=chunks(), client=client)

    assert client.requests[0].content == b"ab"


@pytest.mark.asyncio
async def test_fetch_leaves_injected_client_open(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(ok_handler)
    await fetch(TEST_URL, dict, client=client)
    assert not client.is_closed


##########################################
#     Tests for fetch (HTTP errors)      #
##########################################


@pytest.mark.asyncio
async def test_fetch_404_raises_network_error_without_retry(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(lambda request: httpx.Response(404, json={"detail": "missing"}))

    with pytest.raises(FetchError, match=r"Request failed with status 404") as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=3)

    error = exc_info.value
    assert error.kind is ErrorKind.NETWORK
    assert error.status_code == 404
    assert error.status_text == "Not Found"
    assert error.url == TEST_URL
    assert error.data == {"detail": "missing"}
    assert error.response is not None
    assert len(client.requests) == 1
    mock_asleep.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_error_body_falls_back_to_text(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(lambda request: httpx.Response(400, text="bad input"))

    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client)

    assert exc_info.value.data == "bad input"


@pytest.mark.asyncio
async def test_fetch_500_retries_then_raises(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    """Test that a permanent 500 is retried with real delays."""
    client = make_client(lambda request: httpx.Response(500))

    start = time.monotonic()
    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client, retry={"attempts": 2, "delay": 0.1})
    elapsed = time.monotonic() - start

    assert elapsed >= 0.19
    assert len(client.requests) == 3
    assert exc_info.value.kind is ErrorKind.NETWORK
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_fetch_bare_integer_retry_uses_one_second_delay(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(lambda request: httpx.Response(503))

    with pytest.raises(FetchError):
        await fetch(TEST_URL, dict, client=client, retry=2)

    assert len(client.requests) == 3
    assert mock_asleep.call_args_list == [call(1.0), call(1.0)]


@pytest.mark.asyncio
async def test_fetch_zero_delay_retries_immediately(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(lambda request: httpx.Response(503))

    with pytest.raises(FetchError):
        await fetch(TEST_URL, dict, client=client, retry={"attempts": 1, "delay": 0})

    assert len(client.requests) == 2
    assert mock_asleep.call_args_list == [call(0)]


@pytest.mark.asyncio
async def test_fetch_exponential_backoff(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(lambda request: httpx.Response(502))

    with pytest.raises(FetchError):
        await fetch(
            TEST_URL,
            dict,
            client=client,
            retry=RetryPolicy(attempts=3, delay=0.5, backoff="exponential"),
        )

    assert len(client.requests) == 4
    assert mock_asleep.call_args_list == [call(0.5), call(1.0), call(2.0)]


@pytest.mark.asyncio
async def test_fetch_succeeds_after_server_errors(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    responses = iter(
        [httpx.Response(500), httpx.Response(503), httpx.Response(200, json=USER_PAYLOAD)]
    )
    client = make_client(lambda request: next(responses))

    user = await fetch(TEST_URL, User, client=client, retry=5)

    assert user.id == 1
    assert len(client.requests) == 3
    assert mock_asleep.call_count == 2


@pytest.mark.asyncio
async def test_fetch_without_retry_makes_one_call(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(lambda request: httpx.Response(500))

    with pytest.raises(FetchError):
        await fetch(TEST_URL, dict, client=client)

    assert len(client.requests) == 1
    mock_asleep.assert_not_called()


##############################################
#     Tests for fetch (transport errors)     #
##############################################


@pytest.mark.asyncio
async def test_fetch_connect_error_retries_then_raises_network(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "connection refused"
        raise httpx.ConnectError(msg, request=request)

    client = make_client(handler)

    with pytest.raises(FetchError, match=r"connection refused") as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=2)

    error = exc_info.value
    assert error.kind is ErrorKind.NETWORK
    assert error.status_code is None
    assert isinstance(error.data, httpx.ConnectError)
    assert isinstance(error.__cause__, httpx.ConnectError)
    assert len(client.requests) == 3
    assert mock_asleep.call_count == 2


@pytest.mark.asyncio
async def test_fetch_malformed_json_is_not_retried(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(
        lambda request: httpx.Response(
            200, text="{not json", headers={"Content-Type": "application/json"}
        )
    )

    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=2)

    assert exc_info.value.kind is ErrorKind.NETWORK
    assert len(client.requests) == 1
    mock_asleep.assert_not_called()


##########################################
#     Tests for fetch (validation)       #
##########################################


@pytest.mark.asyncio
async def test_fetch_validation_error_is_raised_once(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    class StringId(BaseModel):
        id: str

    client = make_client(ok_handler)

    with pytest.raises(FetchError, match=r"Validation error") as exc_info:
        await fetch(TEST_URL, StringId, client=client, retry=3)

    error = exc_info.value
    assert error.kind is ErrorKind.VALIDATION
    assert error.issues
    assert error.issues[0]["loc"] == ("id",)
    assert error.data == USER_PAYLOAD
    assert len(client.requests) == 1
    mock_asleep.assert_not_called()


#######################################
#     Tests for fetch (timeout)       #
#######################################


@pytest.mark.asyncio
async def test_fetch_timeout_without_retry(make_client: Callable[..., httpx.AsyncClient]) -> None:
    client = make_client(slow_handler)

    start = time.monotonic()
    with pytest.raises(FetchError, match=r"Request timed out") as exc_info:
        await fetch(TEST_URL, dict, client=client, timeout=0.05)

    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert time.monotonic() - start < 2
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_fetch_timeout_after_retries(make_client: Callable[..., httpx.AsyncClient]) -> None:
    client = make_client(slow_handler)

    with pytest.raises(FetchError) as exc_info:
        await fetch(
            TEST_URL, dict, client=client, timeout=0.05, retry={"attempts": 2, "delay": 0.01}
        )

    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert len(client.requests) == 3


@pytest.mark.asyncio
async def test_fetch_httpx_timeout_is_classified_as_timeout(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "read timeout"
        raise httpx.ReadTimeout(msg, request=request)

    client = make_client(handler)

    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=1)

    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert len(client.requests) == 2


#####################################
#     Tests for fetch (abort)       #
#####################################


@pytest.mark.asyncio
async def test_fetch_already_aborted_signal(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    controller = AbortController()
    controller.abort()
    client = make_client(ok_handler)

    with pytest.raises(FetchError, match=r"Request aborted") as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=5, signal=controller.signal)

    assert exc_info.value.kind is ErrorKind.ABORT
    assert len(client.requests) == 0
    mock_asleep.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_abort_during_call_cancels_it(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    controller = AbortController()
    client = make_client(slow_handler)
    asyncio.get_running_loop().call_later(0.05, controller.abort)

    start = time.monotonic()
    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=5, timeout=10, signal=controller.signal)

    assert exc_info.value.kind is ErrorKind.ABORT
    assert time.monotonic() - start < 2
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_fetch_abort_during_retry_delay(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    controller = AbortController()
    client = make_client(lambda request: httpx.Response(500))
    asyncio.get_running_loop().call_later(0.05, controller.abort)

    with pytest.raises(FetchError) as exc_info:
        await fetch(
            TEST_URL,
            dict,
            client=client,
            retry={"attempts": 3, "delay": 5.0},
            signal=controller.signal,
        )

    assert exc_info.value.kind is ErrorKind.ABORT
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_fetch_abort_wins_over_timeout(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    """Test that an external abort is reported even if the attempt also
    timed out."""
    controller = AbortController()

    def handler(request: httpx.Request) -> httpx.Response:
        controller.abort()
        msg = "read timeout"
        raise httpx.ReadTimeout(msg, request=request)

    client = make_client(handler)

    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=2, signal=controller.signal)

    assert exc_info.value.kind is ErrorKind.ABORT
    assert len(client.requests) == 1
    mock_asleep.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_releases_signal_listeners(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    controller = AbortController()
    client = make_client(ok_handler)

    await fetch(TEST_URL, dict, client=client, signal=controller.signal)

    assert controller.signal._listeners == []


#########################################
#     Tests for fetch (callbacks)       #
#########################################


@pytest.mark.asyncio
async def test_fetch_invokes_callbacks(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    responses = iter([httpx.Response(500), httpx.Response(200, json=USER_PAYLOAD)])
    client = make_client(lambda request: next(responses))
    on_request, on_retry, on_success, on_failure = Mock(), Mock(), Mock(), Mock()

    await fetch(
        TEST_URL,
        User,
        client=client,
        retry={"attempts": 2, "delay": 0.25},
        on_request=on_request,
        on_retry=on_retry,
        on_success=on_success,
        on_failure=on_failure,
    )

    assert [c.args[0].attempt for c in on_request.call_args_list] == [1, 2]
    retry_info = on_retry.call_args.args[0]
    assert retry_info.attempt == 2
    assert retry_info.attempts == 2
    assert retry_info.wait_time == 0.25
    assert retry_info.status_code == 500
    success_info = on_success.call_args.args[0]
    assert success_info.attempt == 2
    assert success_info.value.id == 1
    assert success_info.response.status_code == 200
    on_failure.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_invokes_on_failure(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    client = make_client(lambda request: httpx.Response(503))
    on_failure = Mock()

    with pytest.raises(FetchError) as exc_info:
        await fetch(TEST_URL, dict, client=client, retry=1, on_failure=on_failure)

    failure_info = on_failure.call_args.args[0]
    assert failure_info.error is exc_info.value
    assert failure_info.attempt == 2
    assert failure_info.status_code == 503


##########################################
#     Tests for fetch (arguments)        #
##########################################


@pytest.mark.asyncio
async def test_fetch_invalid_timeout() -> None:
    with pytest.raises(ValueError, match=r"timeout must be > 0"):
        await fetch(TEST_URL, dict, timeout=0)


@pytest.mark.asyncio
async def test_fetch_invalid_retry() -> None:
    with pytest.raises(ValueError, match=r"attempts must be >= 0"):
        await fetch(TEST_URL, dict, retry=-1)


@pytest.mark.asyncio
async def test_fetch_with_custom_schema(make_client: Callable[..., httpx.AsyncClient]) -> None:
    class IdOnly:
        def validate(self, value: dict) -> ValidationResult[int]:
            if "id" in value:
                return ValidationResult.ok(value["id"])
            return ValidationResult.fail([{"msg": "missing id"}])

    client = make_client(ok_handler)
    assert await fetch(TEST_URL, IdOnly(), client=client) == 1


@pytest.mark.asyncio
async def test_fetch_schema_type_error_propagates(
    make_client: Callable[..., httpx.AsyncClient], mock_asleep: Mock
) -> None:
    class Broken:
        def validate(self, value: object) -> bool:
            return True

    client = make_client(ok_handler)

    with pytest.raises(TypeError, match=r"must return a ValidationResult, got bool"):
        await fetch(TEST_URL, Broken(), client=client, retry=2)

    assert len(client.requests) == 1
    mock_asleep.assert_not_called()
