r"""Callback manager for orchestrating request lifecycle events."""

from __future__ import annotations

__all__ = ["CallbackManager"]

import time
from typing import TYPE_CHECKING, Any

from schemafetch.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo

if TYPE_CHECKING:
    import httpx

    from schemafetch.exceptions import FetchError
    from schemafetch.retry.config import CallbackConfig


class CallbackManager:
    """Invokes the user-defined callbacks of a request.

    Attempt numbers are 1-indexed everywhere.

    Attributes:
        callbacks: Configuration containing callback functions for lifecycle events.
    """

    def __init__(self, callbacks: CallbackConfig) -> None:
        self.callbacks = callbacks

    def on_request(self, url: str, method: str, attempt: int, attempts: int) -> None:
        if self.callbacks.on_request is not None:
            self.callbacks.on_request(
                RequestInfo(url=url, method=method, attempt=attempt, attempts=attempts)
            )

    def on_retry(
        self,
        url: str,
        method: str,
        attempt: int,
        attempts: int,
        wait_time: float,
        error: Exception,
    ) -> None:
        """Invoke on_retry callback.

        Args:
            url: The URL being requested.
            method: The HTTP method.
            attempt: The attempt that failed. The callback receives the
                number of the upcoming attempt.
            attempts: Number of additional attempts allowed.
            wait_time: Delay before the upcoming attempt.
            error: Exception that triggered the retry.
        """
        if self.callbacks.on_retry is not None:
            self.callbacks.on_retry(
                RetryInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 1,
                    attempts=attempts,
                    wait_time=wait_time,
                    error=error,
                    status_code=getattr(error, "status_code", None),
                )
            )

    def on_success(
        self,
        url: str,
        method: str,
        attempt: int,
        attempts: int,
        response: httpx.Response,
        value: Any,
        start_time: float,
    ) -> None:
        if self.callbacks.on_success is not None:
            self.callbacks.on_success(
                ResponseInfo(
                    url=url,
                    method=method,
                    attempt=attempt,
                    attempts=attempts,
                    response=response,
                    value=value,
                    total_time=time.time() - start_time,
                )
            )

    def on_failure(
        self,
        url: str,
        method: str,
        attempt: int,
        attempts: int,
        error: FetchError,
        start_time: float,
    ) -> None:
        if self.callbacks.on_failure is not None:
            self.callbacks.on_failure(
                FailureInfo(
                    url=url,
                    method=method,
                    attempt=attempt,
                    attempts=attempts,
                    error=error,
                    total_time=time.time() - start_time,
                )
            )
