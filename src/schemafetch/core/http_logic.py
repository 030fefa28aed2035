r"""Shared HTTP logic for the request executor and its variants.

This module contains the URL assembly, body serialization and response
payload decoding used by ``fetch``, ``stream`` and ``upload``.
"""

from __future__ import annotations

__all__ = [
    "FormData",
    "UrlEncodedForm",
    "build_url",
    "decode_payload",
    "parse_json_or_text",
    "receive",
    "serialize_body",
]

import json
import logging
from collections.abc import AsyncIterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from pydantic_core import to_jsonable_python

from schemafetch.core.config import JSON_CONTENT_TYPE

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Mapping

logger: logging.Logger = logging.getLogger(__name__)

# Bodies of these types are already encoded and sent unchanged
_RAW_BODY_TYPES = (bytes, bytearray, memoryview, str)


@dataclass
class FormData:
    r"""Multi-part form payload, encoded by httpx.

    Args:
        data: The non-file form fields.
        files: The file fields, in any format accepted by httpx ``files=``.
    """

    data: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class UrlEncodedForm:
    r"""``application/x-www-form-urlencoded`` payload, encoded by httpx.

    Args:
        fields: The form fields.
    """

    fields: Mapping[str, Any] = field(default_factory=dict)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(url: str | httpx.URL, params: Mapping[str, Any] | None = None) -> httpx.URL:
    r"""Parse ``url`` and append the query parameters.

    Parameters whose value is ``None`` are skipped entirely. The other
    values are converted to strings and appended in mapping order after
    any query items already present in ``url``.

    Args:
        url: The target URL.
        params: The optional query parameters.

    Returns:
        The assembled URL.

    Example:
        ```pycon
        >>> from schemafetch.core.http_logic import build_url
        >>> str(build_url("https://api.example.com/users?sort=asc", {"page": 2, "q": None, "all": True}))
        'https://api.example.com/users?sort=asc&page=2&all=true'

        ```
    """
    request_url = httpx.URL(str(url))
    for key, value in (params or {}).items():
        if value is not None:
            request_url = request_url.copy_add_param(key, _stringify(value))
    return request_url


def serialize_body(body: Any, headers: httpx.Headers) -> dict[str, Any]:
    r"""Convert a request body to keyword arguments for
    ``httpx.AsyncClient.build_request``.

    Bytes and strings are sent unchanged. An ``httpx.ByteStream`` is sent
    as its bytes. Other byte streams and byte iterators, sync or async,
    are sent as an async stream, which cannot be replayed on retry.
    ``FormData`` and ``UrlEncodedForm`` are encoded by httpx. Any other
    value is serialized to JSON and, unless ``headers`` already defines a
    Content-Type, ``Content-Type: application/json`` is added to
    ``headers``.

    Args:
        body: The request body, or ``None`` for no body.
        headers: The request headers, updated in place.

    Returns:
        The keyword arguments describing the body.

    Example:
        ```pycon
        >>> import httpx
        >>> from schemafetch.core.http_logic import serialize_body
        >>> headers = httpx.Headers()
        >>> serialize_body({"name": "Ada"}, headers)
        {'content': b'{"name": "Ada"}'}
        >>> headers["content-type"]
        'application/json'

        ```
    """
    if body is None:
        return {}
    if isinstance(body, FormData):
        return {"data": dict(body.data), "files": dict(body.files)}
    if isinstance(body, UrlEncodedForm):
        return {"data": dict(body.fields)}
    if isinstance(body, _RAW_BODY_TYPES):
        return {"content": body}
    if isinstance(body, httpx.ByteStream):
        # In-memory stream, kept as bytes so that retries can resend it
        return {"content": b"".join(body)}
    if isinstance(body, (httpx.AsyncByteStream, httpx.SyncByteStream, AsyncIterable, Iterator)):
        # AsyncClient only sends async streams
        return {"content": _aiter_bytes(body)}
    if "content-type" not in headers:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    return {"content": json.dumps(to_jsonable_python(body)).encode()}


async def _aiter_bytes(body: Iterable[bytes] | AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    if isinstance(body, AsyncIterable):
        async for chunk in body:
            yield chunk
    else:
        for chunk in body:
            yield chunk


def parse_json_or_text(text: str) -> Any:
    r"""Parse ``text`` as JSON, falling back to the raw string.

    Example:
        ```pycon
        >>> from schemafetch.core.http_logic import parse_json_or_text
        >>> parse_json_or_text('{"count": 1}')
        {'count': 1}
        >>> parse_json_or_text("plain text")
        'plain text'

        ```
    """
    try:
        return json.loads(text)
    except ValueError:
        return text


def decode_payload(response: httpx.Response) -> Any:
    r"""Decode the body of a successful response.

    A JSON content type is parsed strictly. Any other content type is
    read as text and opportunistically parsed as JSON.

    Args:
        response: A response whose body was read.

    Returns:
        The decoded payload.

    Raises:
        ValueError: If the response declares JSON but the body is not
            valid JSON.
    """
    content_type = response.headers.get("content-type", "")
    if JSON_CONTENT_TYPE in content_type:
        return response.json()
    return parse_json_or_text(response.text)


async def receive(client: httpx.AsyncClient, request: httpx.Request) -> tuple[httpx.Response, bool]:
    r"""Send ``request`` and read the response body.

    Body read failures are only tolerated on error responses, where the
    body is informational.

    Args:
        client: The client used to send the request.
        request: The request to send.

    Returns:
        The closed response, and whether its body could be read.

    Raises:
        httpx.HTTPError: If the request fails, or the body of a successful
            response cannot be read.
    """
    response = await client.send(request, stream=True)
    try:
        await response.aread()
    except httpx.HTTPError as exc:
        if response.is_success:
            raise
        logger.debug(f"Ignoring unreadable body of {response.status_code} response: {exc}")
        return response, False
    finally:
        await response.aclose()
    return response, True
