r"""Define the exception raised by every schemafetch operation."""

from __future__ import annotations

__all__ = ["ErrorKind", "FetchError"]

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx


class ErrorKind(str, Enum):
    r"""Enumerate the failure kinds a ``FetchError`` can carry.

    - ``NETWORK``: connectivity failure or non-2xx HTTP status.
    - ``TIMEOUT``: the request deadline elapsed without external cancellation.
    - ``VALIDATION``: the response payload was rejected by the schema.
    - ``ABORT``: the caller cancelled the request through its signal.
    - ``UNKNOWN``: anything not otherwise classifiable.
    """

    NETWORK = "network"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    ABORT = "abort"
    UNKNOWN = "unknown"


class FetchError(Exception):
    r"""Exception raised when a validated HTTP request fails.

    Every request failure is reported with this exception type. It
    carries enough structured context to let callers branch on ``kind``
    without parsing the message. Exceptions raised by user callbacks, and
    the ``TypeError`` of a schema that does not return a
    ``ValidationResult``, propagate unchanged.

    Args:
        message: A human readable description of the failure.
        kind: The failure kind.
        url: The URL that was requested.
        method: The HTTP method that was used.
        status_code: The HTTP status code, if a response was received.
        status_text: The HTTP reason phrase, if a response was received.
        response: The ``httpx.Response`` object, if available.
        issues: The structured validation issues reported by the schema.
        data: The raw response payload, or the original error for
            unclassified network failures.

    Example:
        ```pycon
        >>> from schemafetch import ErrorKind, FetchError
        >>> error = FetchError(
        ...     "Request failed with status 404",
        ...     kind=ErrorKind.NETWORK,
        ...     url="https://api.example.com/users/1",
        ...     status_code=404,
        ... )
        >>> error.kind
        <ErrorKind.NETWORK: 'network'>
        >>> error.status_code
        404

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        url: str | None = None,
        method: str | None = None,
        status_code: int | None = None,
        status_text: str | None = None,
        response: httpx.Response | None = None,
        issues: list[dict[str, Any]] | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = ErrorKind(kind)
        self.url = url
        self.method = method
        self.status_code = status_code
        self.status_text = status_text
        self.response = response
        self.issues = issues
        self.data = data

    def __repr__(self) -> str:
        args = [f"{self.message!r}", f"kind={self.kind.value!r}"]
        if self.status_code is not None:
            args.append(f"status_code={self.status_code}")
        if self.url is not None:
            args.append(f"url={self.url!r}")
        return f"{self.__class__.__qualname__}({', '.join(args)})"
