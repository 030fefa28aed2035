r"""Parameter validation utilities for the request executor.

This module provides validation functions to ensure the timeout and
retry parameters meet the required constraints before any network call
is made.
"""

from __future__ import annotations

__all__ = ["validate_retry_params", "validate_timeout"]


def validate_timeout(timeout: float) -> None:
    """Validate timeout parameter.

    Args:
        timeout: Deadline in seconds for one attempt. Must be > 0.

    Raises:
        ValueError: If timeout is <= 0.

    Example:
        ```pycon
        >>> from schemafetch.core.validation import validate_timeout
        >>> validate_timeout(10.0)
        >>> validate_timeout(0)
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got 0

        ```
    """
    if timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_retry_params(
    attempts: int,
    delay: float = 0.0,
    jitter_factor: float = 0.0,
    max_delay: float | None = None,
) -> None:
    """Validate retry parameters.

    Args:
        attempts: Number of additional attempts after the first one.
            Must be >= 0.
        delay: Delay unit in seconds between attempts. Must be >= 0.
        jitter_factor: Factor for adding random jitter to delays.
            Must be >= 0.
        max_delay: Maximum delay cap in seconds. Must be > 0 if provided.

    Raises:
        ValueError: If a parameter is out of range.

    Example:
        ```pycon
        >>> from schemafetch.core.validation import validate_retry_params
        >>> validate_retry_params(attempts=3)
        >>> validate_retry_params(attempts=3, delay=0.5, jitter_factor=0.1)
        >>> validate_retry_params(attempts=-1)
        Traceback (most recent call last):
        ...
        ValueError: attempts must be >= 0, got -1

        ```
    """
    if attempts < 0:
        msg = f"attempts must be >= 0, got {attempts}"
        raise ValueError(msg)
    if delay < 0:
        msg = f"delay must be >= 0, got {delay}"
        raise ValueError(msg)
    if jitter_factor < 0:
        msg = f"jitter_factor must be >= 0, got {jitter_factor}"
        raise ValueError(msg)
    if max_delay is not None and max_delay <= 0:
        msg = f"max_delay must be > 0, got {max_delay}"
        raise ValueError(msg)
