r"""Configuration dataclass and defaults for schemafetch.

This module provides the configuration constants used by the request
executor and a dataclass-based configuration object holding the
client-wide defaults of ``AsyncFetchClient``.
"""

from __future__ import annotations

__all__ = [
    "ClientConfig",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "JSON_CONTENT_TYPE",
    "SERVER_ERROR_STATUS",
    "TIMEOUT_REASON",
]

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from schemafetch.core.validation import validate_timeout

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from schemafetch.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo
    from schemafetch.retry.config import RetryPolicy


# Default deadline in seconds for a single attempt
DEFAULT_TIMEOUT = 10.0

# Default delay in seconds between two attempts
# A bare integer retry value uses this delay with the linear backoff mode
DEFAULT_RETRY_DELAY = 1.0

# Responses with a status code greater or equal to this value are retried
SERVER_ERROR_STATUS = 500

JSON_CONTENT_TYPE = "application/json"

# Abort reason used by the per-attempt deadline timer
TIMEOUT_REASON = "timeout"


@dataclass
class ClientConfig:
    """Client-wide defaults for ``AsyncFetchClient``.

    Args:
        timeout: Deadline in seconds for each attempt. Must be > 0.
        retry: Retry policy, as accepted by ``RetryPolicy.from_value``.
        on_request: Optional callback called before each request attempt.
        on_retry: Optional callback called before each retry delay.
        on_success: Optional callback called when a request succeeds.
        on_failure: Optional callback called when a request fails.

    Example:
        ```pycon
        >>> from schemafetch.core.config import ClientConfig
        >>> config = ClientConfig(retry=2)
        >>> config.timeout
        10.0
        >>> merged = config.merge(timeout=5.0, retry=None)
        >>> merged.timeout, merged.retry
        (5.0, 2)

        ```
    """

    timeout: float = DEFAULT_TIMEOUT
    retry: int | RetryPolicy | Mapping[str, Any] | None = None
    on_request: Callable[[RequestInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[ResponseInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None

    def __post_init__(self) -> None:
        validate_timeout(self.timeout)

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with the non-None overrides applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new ClientConfig instance.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to keyword arguments for ``fetch``."""
        return {
            "timeout": self.timeout,
            "retry": self.retry,
            "on_request": self.on_request,
            "on_retry": self.on_retry,
            "on_success": self.on_success,
            "on_failure": self.on_failure,
        }
