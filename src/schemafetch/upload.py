r"""Contain the upload variant of the request executor.

The file is sent as a single-field multipart form in one POST request,
without retry. The multipart body is streamed through
``ProgressByteStream`` to report upload progress.
"""

from __future__ import annotations

__all__ = ["ProgressByteStream", "upload"]

import logging
from typing import TYPE_CHECKING, Any

import httpx

from schemafetch.core.http_logic import parse_json_or_text
from schemafetch.exceptions import ErrorKind, FetchError
from schemafetch.schema import as_schema, validate_value

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Callable, Mapping

logger: logging.Logger = logging.getLogger(__name__)


class ProgressByteStream(httpx.AsyncByteStream):
    r"""Wrap a request body and report the percentage sent.

    Progress is reported after each chunk was handed to the transport,
    and only when the total size is known.

    Args:
        stream: The wrapped request body.
        total: The body size in bytes, or None if unknown.
        on_progress: Callback receiving the percentage sent, in [0, 100].
    """

    def __init__(
        self,
        stream: AsyncIterable[bytes],
        total: int | None,
        on_progress: Callable[[float], None] | None = None,
    ) -> None:
        self._stream = stream
        self._total = total
        self._on_progress = on_progress

    async def __aiter__(self) -> AsyncIterator[bytes]:
        loaded = 0
        async for chunk in self._stream:
            loaded += len(chunk)
            yield chunk
            if self._on_progress is not None and self._total:
                percent = loaded / self._total * 100
                logger.debug(f"Uploaded {loaded}/{self._total} bytes ({percent:.1f}%)")
                self._on_progress(percent)


async def upload(
    url: str | httpx.URL,
    file: Any,
    schema: Any,
    *,
    on_progress: Callable[[float], None] | None = None,
    headers: Mapping[str, str] | httpx.Headers | None = None,
    field_name: str = "file",
    filename: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> Any:
    r"""Upload a file and return the schema-validated response payload.

    Args:
        url: The URL to POST the file to.
        file: The file content: bytes, a binary file object, or any file
            value accepted by httpx ``files=``.
        schema: The expected response shape.
        on_progress: Optional callback receiving the percentage sent.
        headers: The request headers.
        field_name: The name of the form field holding the file.
        filename: Optional file name sent in the form field.
        client: Optional client used to send the request. If None, a new
            client without timeout is created and closed after use.

    Returns:
        The validated payload.

    Raises:
        FetchError: If the upload fails, the response status is not 2xx,
            or the payload is rejected by the schema.
        TypeError: If ``schema`` does not return a ``ValidationResult``.

    Example:
        ```pycon
        >>> import asyncio
        >>> from schemafetch import upload
        >>> asyncio.run(
        ...     upload("https://api.example.com/upload", b"content", dict, on_progress=print)
        ... )  # doctest: +SKIP

        ```
    """
    file_value = (filename, file) if filename is not None else file
    if client is not None:
        return await _upload(client, url, file_value, schema, on_progress, headers, field_name)
    async with httpx.AsyncClient(timeout=None) as owned_client:
        return await _upload(owned_client, url, file_value, schema, on_progress, headers, field_name)


async def _upload(
    client: httpx.AsyncClient,
    url: str | httpx.URL,
    file_value: Any,
    schema: Any,
    on_progress: Callable[[float], None] | None,
    headers: Mapping[str, str] | httpx.Headers | None,
    field_name: str,
) -> Any:
    form_request = client.build_request(
        "POST", str(url), headers=headers, files={field_name: file_value}
    )
    content_length = form_request.headers.get("Content-Length")
    request = httpx.Request(
        "POST",
        form_request.url,
        headers=form_request.headers,
        stream=ProgressByteStream(
            form_request.stream,
            int(content_length) if content_length is not None else None,
            on_progress,
        ),
        extensions=form_request.extensions,
    )
    request_url = str(request.url)

    try:
        response = await client.send(request)
    except httpx.HTTPError as exc:
        raise FetchError(
            "Network error during upload",
            kind=ErrorKind.NETWORK,
            url=request_url,
            method="POST",
            data=exc,
        ) from exc

    if not response.is_success:
        raise FetchError(
            f"Upload failed with status {response.status_code}",
            kind=ErrorKind.NETWORK,
            url=request_url,
            method="POST",
            status_code=response.status_code,
            status_text=response.reason_phrase,
            response=response,
        )

    data = parse_json_or_text(response.text)
    result = await validate_value(as_schema(schema), data)
    if not result.success:
        raise FetchError(
            "Validation error",
            kind=ErrorKind.VALIDATION,
            url=request_url,
            method="POST",
            status_code=response.status_code,
            response=response,
            issues=result.issues,
            data=data,
        )
    return result.value
