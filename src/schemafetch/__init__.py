r"""schemafetch - Validated HTTP requests with timeout and retry logic.

This package sends HTTP requests with httpx and validates the response
payload against a schema (pydantic by default) before returning typed
data. Every failure is reported as a ``FetchError`` whose ``kind`` tells
network failures, timeouts, validation failures and cancellations
apart.

Key Features:
    - Per-attempt deadline and cooperative cancellation with AbortSignal
    - Automatic retry of timeouts, connectivity failures and 5xx responses
    - Linear or exponential backoff, with optional jitter
    - Response validation with pydantic models, types or custom schemas
    - Streaming responses validated fragment by fragment
    - File uploads with progress reporting
    - Client with base URL and default headers
    - Callbacks for observability (logging, metrics, alerting)

Example:
    ```pycon
    >>> from pydantic import BaseModel
    >>> from schemafetch import fetch
    >>> class User(BaseModel):
    ...     id: int
    ...     name: str
    ...
    >>> user = await fetch("https://api.example.com/users/1", User, retry=2)  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = [
    "AbortController",
    "AbortSignal",
    "AsyncFetchClient",
    "Backoff",
    "ErrorKind",
    "FetchError",
    "FormData",
    "RetryPolicy",
    "UrlEncodedForm",
    "__version__",
    "fetch",
    "stream",
    "upload",
]

from importlib.metadata import PackageNotFoundError, version

from schemafetch.client_async import AsyncFetchClient
from schemafetch.core.http_logic import FormData, UrlEncodedForm
from schemafetch.exceptions import ErrorKind, FetchError
from schemafetch.fetch import fetch
from schemafetch.retry.config import Backoff, RetryPolicy
from schemafetch.signal import AbortController, AbortSignal
from schemafetch.stream import stream
from schemafetch.upload import upload

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
