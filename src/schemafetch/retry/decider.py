r"""Retry decision logic for the request executor.

This module provides the RetryDecider class that decides whether a
failed attempt should be retried, and maps failures that are not
retried into ``FetchError``.
"""

from __future__ import annotations

__all__ = ["RetryDecider"]

import logging

import httpx

from schemafetch.core.config import SERVER_ERROR_STATUS
from schemafetch.exceptions import ErrorKind, FetchError
from schemafetch.signal import AbortError

logger: logging.Logger = logging.getLogger(__name__)


class RetryDecider:
    """Decides whether a failed attempt should be retried.

    An attempt is retry-eligible if it timed out (its internal signal
    aborted, or the transport raised ``httpx.TimeoutException``), if the
    transport failed to reach the server, or if the server answered with
    a 5xx status.

    Args:
        server_error_status: The lowest retried HTTP status.

    Example:
        ```pycon
        >>> import httpx
        >>> from schemafetch.retry import RetryDecider
        >>> decider = RetryDecider()
        >>> decider.should_retry(httpx.ConnectError("refused"), attempt=1, attempts=2)
        (True, 'ConnectError')
        >>> decider.should_retry(httpx.ConnectError("refused"), attempt=3, attempts=2)
        (False, 'attempts exhausted')

        ```
    """

    def __init__(self, server_error_status: int = SERVER_ERROR_STATUS) -> None:
        self.server_error_status = server_error_status

    @staticmethod
    def is_timeout(exc: Exception) -> bool:
        r"""Return ``True`` for timeout-style failures."""
        return isinstance(exc, (AbortError, httpx.TimeoutException))

    def is_retryable(self, exc: Exception) -> bool:
        r"""Return ``True`` if ``exc`` belongs to a retry-eligible category."""
        if self.is_timeout(exc):
            return True
        if isinstance(exc, FetchError):
            return exc.status_code is not None and exc.status_code >= self.server_error_status
        return isinstance(exc, httpx.TransportError) and not isinstance(
            exc, httpx.UnsupportedProtocol
        )

    def should_retry(self, exc: Exception, attempt: int, attempts: int) -> tuple[bool, str]:
        """Determine if a failed attempt should trigger a retry.

        Args:
            exc: The exception raised by the attempt.
            attempt: The attempt number (1-indexed).
            attempts: Number of additional attempts allowed after the first.

        Returns:
            Tuple of (should_retry, reason).
        """
        if not self.is_retryable(exc):
            return (False, f"{type(exc).__name__} is not retryable")
        if attempt > attempts:
            return (False, "attempts exhausted")
        if isinstance(exc, FetchError):
            return (True, f"status {exc.status_code}")
        return (True, type(exc).__name__)

    def classify(self, exc: Exception, *, url: str, method: str) -> FetchError:
        """Map a failure that is not retried into a ``FetchError``.

        ``FetchError`` instances are returned unchanged.

        Args:
            exc: The exception raised by the last attempt.
            url: The requested URL.
            method: The HTTP method.

        Returns:
            The error to raise to the caller.
        """
        if isinstance(exc, FetchError):
            return exc
        if self.is_timeout(exc):
            logger.debug(f"{method} request to {url} timed out")
            return FetchError("Request timed out", kind=ErrorKind.TIMEOUT, url=url, method=method)
        return FetchError(
            str(exc) or "Network error",
            kind=ErrorKind.NETWORK,
            url=url,
            method=method,
            data=exc,
        )
