from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
from pydantic import BaseModel

from schemafetch import ErrorKind, FetchError, upload
from schemafetch.upload import ProgressByteStream

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

TEST_URL = "https://api.example.com/upload"


class UploadResult(BaseModel):
    id: str


def created_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(201, json={"id": "file_123"})


async def byte_chunks(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


########################################
#     Tests for ProgressByteStream     #
########################################


@pytest.mark.asyncio
async def test_progress_byte_stream_reports_percentages() -> None:
    progress = []
    stream = ProgressByteStream(byte_chunks(b"ab", b"cd", b"efgh"), 8, progress.append)
    assert [chunk async for chunk in stream] == [b"ab", b"cd", b"efgh"]
    assert progress == [25.0, 50.0, 100.0]


@pytest.mark.asyncio
async def test_progress_byte_stream_unknown_total() -> None:
    progress = []
    stream = ProgressByteStream(byte_chunks(b"ab", b"cd"), None, progress.append)
    assert [chunk async for chunk in stream] == [b"ab", b"cd"]
    assert progress == []


@pytest.mark.asyncio
async def test_progress_byte_stream_without_callback() -> None:
    stream = ProgressByteStream(byte_chunks(b"ab"), 2)
    assert [chunk async for chunk in stream] == [b"ab"]


############################
#     Tests for upload     #
############################


@pytest.mark.asyncio
async def test_upload_returns_validated_payload(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(created_handler)
    progress = []

    result = await upload(
        TEST_URL, b"file content", UploadResult, on_progress=progress.append, client=client
    )

    assert result == UploadResult(id="file_123")
    assert progress
    assert progress[-1] == 100.0
    assert progress == sorted(progress)
    assert all(0 < value <= 100 for value in progress)
    request = client.requests[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b"file content" in request.content
    assert b'name="file"' in request.content


@pytest.mark.asyncio
async def test_upload_field_name_and_filename(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(created_handler)

    await upload(
        TEST_URL,
        b"a,b\n1,2\n",
        UploadResult,
        field_name="document",
        filename="data.csv",
        headers={"Authorization": "Bearer token"},
        client=client,
    )

    request = client.requests[0]
    assert b'name="document"' in request.content
    assert b'filename="data.csv"' in request.content
    assert request.headers["Authorization"] == "Bearer token"


@pytest.mark.asyncio
async def test_upload_parses_text_response(make_client: Callable[..., httpx.AsyncClient]) -> None:
    client = make_client(lambda request: httpx.Response(200, text="stored"))
    assert await upload(TEST_URL, b"x", str, client=client) == "stored"


@pytest.mark.asyncio
async def test_upload_non_2xx_raises_network_error(
    make_client: Callable[..., httpx.AsyncClient],
) -> None:
    client = make_client(lambda request: httpx.Response(500))

    with pytest.raises(FetchError, match=r"Upload failed with status 500") as exc_info:
        await upload(TEST_URL, b"x", UploadResult, client=client)

    error = exc_info.value
    assert error.kind is ErrorKind.NETWORK
    assert error.status_code == 500
    assert error.status_text == "Internal Server Error"
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_upload_transport_error(make_client: Callable[..., httpx.AsyncClient]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "connection reset"
        raise httpx.ReadError(msg, request=request)

    client = make_client(handler)

    with pytest.raises(FetchError, match=r"Network error during upload") as exc_info:
        await upload(TEST_URL, b"x", UploadResult, client=client)

    assert exc_info.value.kind is ErrorKind.NETWORK
    assert isinstance(exc_info.value.data, httpx.ReadError)


@pytest.mark.asyncio
async def test_upload_validation_error(make_client: Callable[..., httpx.AsyncClient]) -> None:
    client = make_client(lambda request: httpx.Response(201, json={"id": 5}))

    with pytest.raises(FetchError, match=r"Validation error") as exc_info:
        await upload(TEST_URL, b"x", UploadResult, client=client)

    error = exc_info.value
    assert error.kind is ErrorKind.VALIDATION
    assert error.issues[0]["loc"] == ("id",)
    assert error.data == {"id": 5}
