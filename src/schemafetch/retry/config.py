r"""Configuration dataclasses for retry behavior.

This module provides the normalized retry policy and the callback
configuration used by the request executor.
"""

from __future__ import annotations

__all__ = ["Backoff", "CallbackConfig", "RetryPolicy"]

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from schemafetch.backoff import BaseBackoffStrategy, ConstantBackoff, ExponentialBackoff
from schemafetch.core.config import DEFAULT_RETRY_DELAY
from schemafetch.core.validation import validate_retry_params
from schemafetch.utils.sleep import calculate_sleep_time

if TYPE_CHECKING:
    from collections.abc import Callable

    from schemafetch.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo


class Backoff(str, Enum):
    r"""Backoff modes.

    - ``LINEAR``: every retry waits ``delay``.
    - ``EXPONENTIAL``: the n-th retry waits ``delay * 2 ** (n - 1)``.
    """

    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    r"""Normalized retry configuration.

    Attributes:
        attempts: Number of additional attempts after the first one.
            ``attempts=2`` allows up to 3 network calls.
        delay: Delay unit in seconds between attempts.
        backoff: The backoff mode, or a custom ``BaseBackoffStrategy``
            (in which case ``delay`` and ``max_delay`` are ignored).
        jitter_factor: Factor for adding random jitter to delays. The
            jitter is ``uniform(0, jitter_factor) * delay`` and is added
            to the delay.
        max_delay: Optional cap in seconds applied before jitter.

    Example:
        ```pycon
        >>> from schemafetch.retry import RetryPolicy
        >>> RetryPolicy.from_value(3)
        RetryPolicy(attempts=3, delay=1.0, backoff=<Backoff.LINEAR: 'linear'>, jitter_factor=0.0, max_delay=None)
        >>> policy = RetryPolicy.from_value({"attempts": 2, "delay": 0.1, "backoff": "exponential"})
        >>> policy.compute_delay(1), policy.compute_delay(2)
        (0.1, 0.2)

        ```
    """

    attempts: int = 0
    delay: float = DEFAULT_RETRY_DELAY
    backoff: Backoff | BaseBackoffStrategy = Backoff.LINEAR
    jitter_factor: float = 0.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.backoff, BaseBackoffStrategy):
            object.__setattr__(self, "backoff", Backoff(self.backoff))
        validate_retry_params(
            attempts=self.attempts,
            delay=self.delay,
            jitter_factor=self.jitter_factor,
            max_delay=self.max_delay,
        )

    @classmethod
    def from_value(cls, value: int | RetryPolicy | Mapping[str, Any] | None) -> RetryPolicy:
        r"""Normalize the retry value accepted by ``fetch``.

        Args:
            value: ``None`` (no retry), a number of attempts, a mapping of
                ``RetryPolicy`` fields, or a ``RetryPolicy``.

        Returns:
            The retry policy.

        Raises:
            TypeError: If the value has an unsupported type.
            ValueError: If a field is out of range.
        """
        if value is None:
            return cls(attempts=0)
        if isinstance(value, RetryPolicy):
            return value
        if isinstance(value, Mapping):
            return cls(**value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(attempts=value, delay=DEFAULT_RETRY_DELAY, backoff=Backoff.LINEAR)
        msg = f"Unsupported retry value: {value!r}"
        raise TypeError(msg)

    @property
    def max_calls(self) -> int:
        r"""The maximum number of network calls."""
        return self.attempts + 1

    def backoff_strategy(self) -> BaseBackoffStrategy:
        r"""Return the backoff strategy implementing the policy."""
        if isinstance(self.backoff, BaseBackoffStrategy):
            return self.backoff
        if self.backoff is Backoff.EXPONENTIAL:
            return ExponentialBackoff(base_delay=self.delay, max_delay=self.max_delay)
        return ConstantBackoff(delay=self.delay, max_delay=self.max_delay)

    def compute_delay(self, attempt: int) -> float:
        r"""Compute the delay following the failed attempt ``attempt``.

        Args:
            attempt: The 1-indexed number of the attempt that failed.

        Returns:
            The delay in seconds.
        """
        return calculate_sleep_time(
            attempt - 1,
            jitter_factor=self.jitter_factor,
            backoff_strategy=self.backoff_strategy(),
        )


@dataclass
class CallbackConfig:
    """Configuration for callbacks.

    Attributes:
        on_request: Optional callback invoked before each attempt.
        on_retry: Optional callback invoked before each retry delay.
        on_success: Optional callback invoked when the request succeeds.
        on_failure: Optional callback invoked when the request fails.
    """

    on_request: Callable[[RequestInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[ResponseInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None
