r"""Callback data structures for observability.

This module provides the payloads passed to the lifecycle hooks of
``fetch``, enabling logging, metrics and alerting around the retry
loop.

The callback system provides four lifecycle hooks:
- on_request: Called before each attempt
- on_retry: Called before each retry delay
- on_success: Called when a response passed validation
- on_failure: Called when the request fails for good

Example:
    ```pycon
    >>> from schemafetch import fetch
    >>> from schemafetch.callbacks import RetryInfo
    >>> def log_retry(info: RetryInfo):
    ...     print(f"Retry {info.attempt}/{info.attempts + 1} in {info.wait_time}s")
    ...
    >>> await fetch("https://api.example.com/data", dict, retry=3, on_retry=log_retry)  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = ["FailureInfo", "RequestInfo", "ResponseInfo", "RetryInfo"]

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

    from schemafetch.exceptions import FetchError


@dataclass
class RequestInfo:
    """Information passed to on_request callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The current attempt number (1-indexed).
        attempts: Number of additional attempts allowed after the first.
    """

    url: str
    method: str
    attempt: int
    attempts: int


@dataclass
class RetryInfo:
    """Information passed to on_retry callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The number of the upcoming attempt (1-indexed). First
            retry is attempt 2.
        attempts: Number of additional attempts allowed after the first.
        wait_time: The delay in seconds before the upcoming attempt.
        error: The exception that triggered the retry.
        status_code: The HTTP status code that triggered the retry (if any).
    """

    url: str
    method: str
    attempt: int
    attempts: int
    wait_time: float
    error: Exception
    status_code: int | None


@dataclass
class ResponseInfo:
    """Information passed to on_success callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The attempt number that succeeded (1-indexed).
        attempts: Number of additional attempts allowed after the first.
        response: The successful HTTP response.
        value: The validated value returned to the caller.
        total_time: Total time spent on all attempts including delays (seconds).
    """

    url: str
    method: str
    attempt: int
    attempts: int
    response: httpx.Response
    value: Any
    total_time: float


@dataclass
class FailureInfo:
    """Information passed to on_failure callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The final attempt number (1-indexed).
        attempts: Number of additional attempts allowed after the first.
        error: The error raised to the caller.
        total_time: Total time spent on all attempts including delays (seconds).
    """

    url: str
    method: str
    attempt: int
    attempts: int
    error: FetchError
    total_time: float

    @property
    def status_code(self) -> int | None:
        return self.error.status_code
