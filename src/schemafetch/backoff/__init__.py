r"""Backoff strategies for retry delays.

This package provides the two backoff modes understood by
``RetryPolicy``: a constant delay (``"linear"`` mode) and a doubling
delay (``"exponential"`` mode). Custom strategies can subclass
``BaseBackoffStrategy``.
"""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy", "ConstantBackoff", "ExponentialBackoff"]

from schemafetch.backoff.base import BaseBackoffStrategy
from schemafetch.backoff.constant import ConstantBackoff
from schemafetch.backoff.exponential import ExponentialBackoff
