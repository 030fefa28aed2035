r"""Contain the streaming variant of the request executor.

The response body is consumed fragment by fragment, and every fragment
is validated on its own. There is no retry loop and no deadline besides
the transport limits.

Fragment boundaries are assumed to match JSON value boundaries: a JSON
value split across two network chunks is dropped.
"""

from __future__ import annotations

__all__ = ["stream"]

import logging
from typing import TYPE_CHECKING, Any

import httpx

from schemafetch.core.http_logic import build_url, parse_json_or_text, serialize_body
from schemafetch.exceptions import ErrorKind, FetchError
from schemafetch.schema import as_schema, validate_value
from schemafetch.signal import AbortError, run_abortable

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from schemafetch.schema import Schema
    from schemafetch.signal import AbortSignal

logger: logging.Logger = logging.getLogger(__name__)

# Status codes of responses that never carry a body
_NO_BODY_STATUS_CODES = (204, 205, 304)


async def stream(
    url: str | httpx.URL,
    schema: Any,
    on_chunk: Callable[[Any], None],
    *,
    method: str = "GET",
    headers: Mapping[str, str] | httpx.Headers | None = None,
    params: Mapping[str, Any] | None = None,
    body: Any = None,
    signal: AbortSignal | None = None,
    client: httpx.AsyncClient | None = None,
) -> None:
    r"""Send an HTTP request and validate the response body fragment by
    fragment.

    Each decoded text fragment is parsed as JSON (falling back to the raw
    string) and validated with ``schema``. ``on_chunk`` is called with
    every validated value, in order, before the next fragment is read.
    Fragments rejected by the schema are dropped silently.

    Args:
        url: The URL to send the request to.
        schema: The expected shape of one fragment.
        on_chunk: Callback receiving each validated fragment.
        method: The HTTP method.
        headers: The request headers.
        params: Query parameters appended to the URL.
        body: The request body, serialized like in ``fetch``.
        signal: Optional cancellation signal.
        client: Optional client used to send the request. If None, a new
            client without timeout is created and closed after use.

    Raises:
        FetchError: If the request fails, the response status is not
            2xx, or the response has no body.
        TypeError: If ``schema`` does not return a ``ValidationResult``.

    Exceptions raised by ``on_chunk`` propagate unchanged and end the
    stream.

    Example:
        ```pycon
        >>> import asyncio
        >>> from schemafetch import stream
        >>> asyncio.run(
        ...     stream("https://api.example.com/events", dict, on_chunk=print)
        ... )  # doctest: +SKIP

        ```
    """
    request_headers = httpx.Headers(headers)
    content = serialize_body(body, request_headers)
    request_url = build_url(url, params)

    if client is not None:
        request = client.build_request(method, request_url, headers=request_headers, **content)
        await _stream(client, request, as_schema(schema), on_chunk, signal)
        return

    async with httpx.AsyncClient(timeout=None) as owned_client:
        request = owned_client.build_request(method, request_url, headers=request_headers, **content)
        await _stream(owned_client, request, as_schema(schema), on_chunk, signal)


async def _stream(
    client: httpx.AsyncClient,
    request: httpx.Request,
    schema: Schema[Any],
    on_chunk: Callable[[Any], None],
    signal: AbortSignal | None,
) -> None:
    url = str(request.url)
    try:
        if signal is None:
            await _consume(client, request, schema, on_chunk)
        else:
            await run_abortable(_consume(client, request, schema, on_chunk), signal)
    except AbortError as exc:
        raise FetchError(
            "Request aborted", kind=ErrorKind.ABORT, url=url, method=request.method
        ) from exc
    except httpx.TimeoutException as exc:
        raise FetchError(
            "Request timed out", kind=ErrorKind.TIMEOUT, url=url, method=request.method
        ) from exc
    except httpx.HTTPError as exc:
        # Transport failures and body decoding errors
        raise FetchError(
            str(exc) or "Network error",
            kind=ErrorKind.NETWORK,
            url=url,
            method=request.method,
            data=exc,
        ) from exc


async def _consume(
    client: httpx.AsyncClient,
    request: httpx.Request,
    schema: Schema[Any],
    on_chunk: Callable[[Any], None],
) -> None:
    url = str(request.url)
    response = await client.send(request, stream=True)
    try:
        if not response.is_success:
            data = None
            try:
                await response.aread()
                data = parse_json_or_text(response.text)
            except httpx.HTTPError as exc:
                logger.debug(f"Failed to read the body of the error response from {url}: {exc}")
            raise FetchError(
                f"Request failed with status {response.status_code}",
                kind=ErrorKind.NETWORK,
                url=url,
                method=request.method,
                status_code=response.status_code,
                status_text=response.reason_phrase,
                response=response,
                data=data,
            )
        if request.method == "HEAD" or response.status_code in _NO_BODY_STATUS_CODES:
            raise FetchError(
                "Response body is null",
                kind=ErrorKind.UNKNOWN,
                url=url,
                method=request.method,
                status_code=response.status_code,
                response=response,
            )

        fragments = 0
        async for fragment in response.aiter_text():
            fragments += 1
            data = parse_json_or_text(fragment)
            result = await validate_value(schema, data)
            if result.success:
                on_chunk(result.value)
            else:
                logger.debug(
                    f"Dropping fragment {fragments} from {url} rejected by the schema: {result.issues}"
                )
    finally:
        await response.aclose()
