r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

from schemafetch.backoff.base import BaseBackoffStrategy


class ExponentialBackoff(BaseBackoffStrategy):
    """Double the delay after every failed call.

    This is what the ``"exponential"`` backoff mode of ``RetryPolicy``
    resolves to: the n-th retry (0-indexed) waits
    ``base_delay * 2 ** n`` seconds, never more than ``max_delay``.

    Args:
        base_delay: The delay in seconds before the first retry.
        max_delay: Optional upper bound in seconds for any delay.

    Example:
        ```pycon
        >>> from schemafetch.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(base_delay=0.5, max_delay=3.0)
        >>> [backoff.calculate(attempt) for attempt in range(5)]
        [0.5, 1.0, 2.0, 3.0, 3.0]

        ```
    """

    def __init__(self, base_delay: float = 1.0, max_delay: float | None = None) -> None:
        self._check_delays("base_delay", base_delay, max_delay)
        self.base_delay = base_delay
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(base_delay={self.base_delay}, "
            f"max_delay={self.max_delay})"
        )

    def calculate(self, attempt: int) -> float:
        return self._cap(self.base_delay * 2**attempt, self.max_delay)
