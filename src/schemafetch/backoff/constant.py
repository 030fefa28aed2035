r"""Constant backoff strategy."""

from __future__ import annotations

__all__ = ["ConstantBackoff"]

from schemafetch.backoff.base import BaseBackoffStrategy


class ConstantBackoff(BaseBackoffStrategy):
    """Constant backoff strategy.

    Returns the same delay for every retry. This is what the
    ``"linear"`` backoff mode of ``RetryPolicy`` resolves to: the delay
    grows linearly with the number of retries in total, not per retry.

    Args:
        delay: The fixed delay in seconds (default: 1.0).
        max_delay: Optional maximum delay cap in seconds.

    Example:
        ```pycon
        >>> from schemafetch.backoff import ConstantBackoff
        >>> backoff = ConstantBackoff(delay=2.5)
        >>> backoff.calculate(0)
        2.5
        >>> backoff.calculate(10)
        2.5
        >>> ConstantBackoff(delay=2.5, max_delay=1.0).calculate(0)
        1.0

        ```
    """

    def __init__(self, delay: float = 1.0, max_delay: float | None = None) -> None:
        self._check_delays("delay", delay, max_delay)
        self.delay = delay
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(delay={self.delay}, max_delay={self.max_delay})"

    def calculate(self, attempt: int) -> float:  # noqa: ARG002
        return self._cap(self.delay, self.max_delay)
