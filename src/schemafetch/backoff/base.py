r"""Abstract base class for backoff strategies."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy"]

from abc import ABC, abstractmethod


class BaseBackoffStrategy(ABC):
    """Abstract base class for backoff strategies.

    A backoff strategy determines how long to wait before retrying a
    failed request based on the retry index.
    """

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Calculate the backoff delay for a given retry.

        Args:
            attempt: The retry index (0-indexed). ``attempt=0`` is the
                delay after the first failed call, ``attempt=1`` the delay
                after the second one, etc.

        Returns:
            The delay in seconds before the next call.
        """

    @staticmethod
    def _cap(delay: float, max_delay: float | None) -> float:
        return delay if max_delay is None else min(delay, max_delay)

    @staticmethod
    def _check_delays(name: str, delay: float, max_delay: float | None) -> None:
        if delay < 0:
            msg = f"{name} must be non-negative, got {delay}"
            raise ValueError(msg)
        if max_delay is not None and max_delay <= 0:
            msg = f"max_delay must be positive if specified, got {max_delay}"
            raise ValueError(msg)
