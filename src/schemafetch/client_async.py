r"""Asynchronous context manager client for validated HTTP requests.

This module provides an async context manager-based client sharing a
base URL, default headers and retry configuration across requests. The
AsyncFetchClient manages the underlying httpx.AsyncClient lifecycle and
delegates every call to ``fetch``, ``stream`` or ``upload``.
"""

from __future__ import annotations

__all__ = ["AsyncFetchClient"]

from typing import TYPE_CHECKING, Any

import httpx

from schemafetch.core.config import ClientConfig
from schemafetch.fetch import fetch
from schemafetch.stream import stream
from schemafetch.upload import upload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType
    from typing import Self


class AsyncFetchClient:
    r"""Asynchronous context manager for validated HTTP requests.

    Args:
        base_url: Optional base URL. Relative URLs (strings that do not
            start with ``http``) are joined onto it.
        headers: Default headers sent with every request. Per-request
            headers take precedence.
        config: Optional ClientConfig with the default timeout, retry
            policy and callbacks. If ``None``, a default ClientConfig is
            used.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``
            in tests.

    Example:
        ```pycon
        >>> import asyncio
        >>> from pydantic import BaseModel
        >>> from schemafetch import AsyncFetchClient
        >>> from schemafetch.core import ClientConfig
        >>> class Post(BaseModel):
        ...     id: int
        ...     title: str
        ...
        >>> async def main():
        ...     async with AsyncFetchClient(
        ...         "https://api.example.com",
        ...         headers={"X-API-Key": "secret"},
        ...         config=ClientConfig(retry=2),
        ...     ) as client:
        ...         return await client.post("/posts", Post, body={"title": "Hello"})
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        headers: Mapping[str, str] | httpx.Headers | None = None,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._headers = httpx.Headers(headers)
        self._config = config if config is not None else ClientConfig()
        self._transport = transport

        # Client will be created when entering context
        self._client: httpx.AsyncClient | None = None
        self._entered = False

    async def __aenter__(self) -> Self:
        # Deadlines are enforced per attempt by the executor
        self._client = httpx.AsyncClient(timeout=None, transport=self._transport)
        self._entered = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._entered = False

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure the client is available for use.

        Returns:
            The httpx.AsyncClient instance.

        Raises:
            RuntimeError: If the client is used outside of a context manager.
        """
        if not self._entered or self._client is None:
            msg = "AsyncFetchClient must be used within an async context manager (async with statement)"
            raise RuntimeError(msg)
        return self._client

    def resolve_url(self, url: str | httpx.URL) -> str | httpx.URL:
        r"""Join a relative URL onto the base URL.

        Args:
            url: An absolute or relative URL. ``httpx.URL`` instances are
                returned unchanged.

        Returns:
            The resolved URL.

        Example:
            ```pycon
            >>> from schemafetch import AsyncFetchClient
            >>> client = AsyncFetchClient("https://api.example.com/v1")
            >>> client.resolve_url("/users/1")
            'https://api.example.com/v1/users/1'
            >>> client.resolve_url("https://other.example.com/ping")
            'https://other.example.com/ping'

            ```
        """
        if isinstance(url, httpx.URL):
            return url
        if self._base_url and not url.startswith("http"):
            base = self._base_url if self._base_url.endswith("/") else f"{self._base_url}/"
            path = url[1:] if url.startswith("/") else url
            return f"{base}{path}"
        return url

    def merge_headers(self, headers: Mapping[str, str] | httpx.Headers | None) -> httpx.Headers:
        r"""Merge the default headers with per-request headers.

        Args:
            headers: The per-request headers, which take precedence.

        Returns:
            The merged headers.
        """
        merged = httpx.Headers(self._headers)
        if headers:
            merged.update(httpx.Headers(headers))
        return merged

    async def request(
        self,
        method: str,
        url: str | httpx.URL,
        schema: Any,
        *,
        headers: Mapping[str, str] | httpx.Headers | None = None,
        timeout: float | None = None,
        retry: Any = None,
        on_request: Callable[..., None] | None = None,
        on_retry: Callable[..., None] | None = None,
        on_success: Callable[..., None] | None = None,
        on_failure: Callable[..., None] | None = None,
        **kwargs: Any,
    ) -> Any:
        r"""Send an HTTP request and return the validated payload.

        Args:
            method: The HTTP method.
            url: An absolute URL, or a URL relative to the base URL.
            schema: The expected response shape.
            headers: Per-request headers, merged over the default headers.
            timeout: Override client's timeout for this request.
            retry: Override client's retry policy for this request.
            on_request: Override client's on_request callback for this request.
            on_retry: Override client's on_retry callback for this request.
            on_success: Override client's on_success callback for this request.
            on_failure: Override client's on_failure callback for this request.
            **kwargs: Additional keyword arguments passed to ``fetch``
                (``params``, ``body``, ``signal``).

        Returns:
            The validated payload.

        Raises:
            RuntimeError: If called outside of a context manager.
            FetchError: If the request fails.
        """
        client = self._ensure_client()
        request_config = self._config.merge(
            timeout=timeout,
            retry=retry,
            on_request=on_request,
            on_retry=on_retry,
            on_success=on_success,
            on_failure=on_failure,
        )
        return await fetch(
            self.resolve_url(url),
            schema,
            method=method,
            headers=self.merge_headers(headers),
            client=client,
            **request_config.to_dict(),
            **kwargs,
        )

    async def fetch(self, url: str | httpx.URL, schema: Any, *, method: str = "GET", **kwargs: Any) -> Any:
        r"""Send a request with any HTTP method. See ``request``."""
        return await self.request(method, url, schema, **kwargs)

    async def get(self, url: str | httpx.URL, schema: Any, **kwargs: Any) -> Any:
        r"""Send a GET request. See ``request``."""
        return await self.request("GET", url, schema, **kwargs)

    async def post(self, url: str | httpx.URL, schema: Any, **kwargs: Any) -> Any:
        r"""Send a POST request. See ``request``."""
        return await self.request("POST", url, schema, **kwargs)

    async def put(self, url: str | httpx.URL, schema: Any, **kwargs: Any) -> Any:
        r"""Send a PUT request. See ``request``."""
        return await self.request("PUT", url, schema, **kwargs)

    async def patch(self, url: str | httpx.URL, schema: Any, **kwargs: Any) -> Any:
        r"""Send a PATCH request. See ``request``."""
        return await self.request("PATCH", url, schema, **kwargs)

    async def delete(self, url: str | httpx.URL, schema: Any, **kwargs: Any) -> Any:
        r"""Send a DELETE request. See ``request``."""
        return await self.request("DELETE", url, schema, **kwargs)

    async def stream(
        self,
        url: str | httpx.URL,
        schema: Any,
        on_chunk: Callable[[Any], None],
        *,
        headers: Mapping[str, str] | httpx.Headers | None = None,
        **kwargs: Any,
    ) -> None:
        r"""Stream a response fragment by fragment. See ``schemafetch.stream``."""
        await stream(
            self.resolve_url(url),
            schema,
            on_chunk,
            headers=self.merge_headers(headers),
            client=self._ensure_client(),
            **kwargs,
        )

    async def upload(
        self,
        url: str | httpx.URL,
        file: Any,
        schema: Any,
        *,
        headers: Mapping[str, str] | httpx.Headers | None = None,
        **kwargs: Any,
    ) -> Any:
        r"""Upload a file. See ``schemafetch.upload``."""
        return await upload(
            self.resolve_url(url),
            file,
            schema,
            headers=self.merge_headers(headers),
            client=self._ensure_client(),
            **kwargs,
        )
