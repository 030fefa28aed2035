r"""Contain the validated request executor entry point."""

from __future__ import annotations

__all__ = ["fetch"]

from typing import TYPE_CHECKING, Any

import httpx

from schemafetch.core.config import DEFAULT_TIMEOUT
from schemafetch.core.http_logic import build_url, serialize_body
from schemafetch.core.validation import validate_timeout
from schemafetch.retry import AsyncFetchExecutor, CallbackConfig, RetryPolicy
from schemafetch.schema import as_schema

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from schemafetch.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo
    from schemafetch.signal import AbortSignal


async def fetch(
    url: str | httpx.URL,
    schema: Any,
    *,
    method: str = "GET",
    headers: Mapping[str, str] | httpx.Headers | None = None,
    params: Mapping[str, Any] | None = None,
    body: Any = None,
    timeout: float = DEFAULT_TIMEOUT,
    retry: int | RetryPolicy | Mapping[str, Any] | None = None,
    signal: AbortSignal | None = None,
    client: httpx.AsyncClient | None = None,
    on_request: Callable[[RequestInfo], None] | None = None,
    on_retry: Callable[[RetryInfo], None] | None = None,
    on_success: Callable[[ResponseInfo], None] | None = None,
    on_failure: Callable[[FailureInfo], None] | None = None,
) -> Any:
    r"""Send an HTTP request and return the schema-validated payload.

    The request is retried on timeouts, connectivity failures and 5xx
    responses, up to ``retry`` additional attempts. Any other non-2xx
    response fails immediately. A 2xx payload is decoded (JSON when
    possible, text otherwise) and validated with ``schema``.

    Args:
        url: The URL to send the request to.
        schema: The expected response shape: a pydantic model, a type,
            a ``TypeAdapter``, or a ``Schema`` implementation.
        method: The HTTP method.
        headers: The request headers.
        params: Query parameters appended to the URL. ``None`` values
            are skipped.
        body: The request body. Bytes, strings, streams, ``FormData``
            and ``UrlEncodedForm`` are sent unchanged, any other value is
            serialized to JSON.
        timeout: Deadline in seconds for each attempt. Must be > 0.
        retry: ``None`` (no retry), a number of additional attempts
            (1 second apart), a mapping of ``RetryPolicy`` fields, or a
            ``RetryPolicy``.
        signal: Optional cancellation signal. Aborting it cancels the
            in-flight call and raises an ``abort`` error, never retried.
        client: Optional client used to send the request. If None, a new
            client is created and closed after use.
        on_request: Optional callback called before each attempt.
        on_retry: Optional callback called before each retry delay.
        on_success: Optional callback called when the request succeeds.
        on_failure: Optional callback called when the request fails.

    Returns:
        The validated payload.

    Raises:
        FetchError: If the request fails. ``error.kind`` tells whether it
            was a network, timeout, validation or abort failure.
        ValueError: If timeout or the retry policy is invalid.
        TypeError: If ``schema`` does not return a ``ValidationResult``.

    Example:
        ```pycon
        >>> import asyncio
        >>> from pydantic import BaseModel
        >>> from schemafetch import fetch
        >>> class User(BaseModel):
        ...     id: int
        ...     name: str
        ...
        >>> user = asyncio.run(
        ...     fetch("https://api.example.com/users/1", User, retry={"attempts": 2, "delay": 0.5})
        ... )  # doctest: +SKIP

        ```
    """
    validate_timeout(timeout)
    policy = RetryPolicy.from_value(retry)
    request_headers = httpx.Headers(headers)
    content = serialize_body(body, request_headers)
    request_url = build_url(url, params)
    executor = AsyncFetchExecutor(
        policy,
        CallbackConfig(
            on_request=on_request,
            on_retry=on_retry,
            on_success=on_success,
            on_failure=on_failure,
        ),
        timeout=timeout,
    )

    if client is not None:
        request = client.build_request(method, request_url, headers=request_headers, **content)
        return await executor.execute(client, request, as_schema(schema), signal)

    # Deadlines are enforced by the executor, not by httpx
    async with httpx.AsyncClient(timeout=None) as owned_client:
        request = owned_client.build_request(method, request_url, headers=request_headers, **content)
        return await executor.execute(owned_client, request, as_schema(schema), signal)
