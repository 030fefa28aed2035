r"""Backoff and sleep time calculation utilities.

This module provides the function computing the delay between two
attempts from a backoff strategy and an optional jitter.
"""

from __future__ import annotations

__all__ = ["calculate_sleep_time"]

import logging
import random
from typing import TYPE_CHECKING

from schemafetch.backoff.constant import ConstantBackoff

if TYPE_CHECKING:
    from schemafetch.backoff.base import BaseBackoffStrategy

logger: logging.Logger = logging.getLogger(__name__)


def calculate_sleep_time(
    attempt: int,
    jitter_factor: float = 0.0,
    backoff_strategy: BaseBackoffStrategy | None = None,
) -> float:
    """Calculate sleep time for retry with backoff strategy and jitter.

    The sleep time is calculated as follows:
    1. base sleep time: ``backoff_strategy.calculate(attempt)``
    2. jitter (if jitter_factor > 0):
       ``uniform(0, jitter_factor) * base_sleep_time`` is ADDED to the
       base sleep time.

    Args:
        attempt: The retry index (0-indexed). attempt=0 is the delay after
            the first failed call.
        jitter_factor: Factor for adding random jitter to the delay. Set
            to 0 to disable jitter.
        backoff_strategy: BaseBackoffStrategy instance or None.
            Defaults to ConstantBackoff with delay=1.0.

    Returns:
        The calculated sleep time in seconds, including any jitter.

    Example:
        ```pycon
        >>> from schemafetch.backoff import ExponentialBackoff
        >>> from schemafetch.utils.sleep import calculate_sleep_time
        >>> calculate_sleep_time(attempt=0)
        1.0
        >>> calculate_sleep_time(attempt=2, backoff_strategy=ExponentialBackoff(base_delay=0.5))
        2.0

        ```
    """
    if backoff_strategy is None:
        backoff_strategy = ConstantBackoff()
    sleep_time = backoff_strategy.calculate(attempt)

    if jitter_factor > 0:
        jitter = random.uniform(0, jitter_factor) * sleep_time  # noqa: S311
        total_sleep_time = sleep_time + jitter
        logger.debug(
            f"Waiting {total_sleep_time:.2f}s before retry (base={sleep_time:.2f}s, jitter={jitter:.2f}s)"
        )
    else:
        total_sleep_time = sleep_time
        logger.debug(f"Waiting {total_sleep_time:.2f}s before retry")

    return total_sleep_time
