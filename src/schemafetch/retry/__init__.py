r"""Retry package implementing the attempt loop of the request executor.

Public API:
    - Backoff: Backoff modes understood by RetryPolicy
    - RetryPolicy: Normalized retry configuration
    - CallbackConfig: Configuration for callbacks
    - RetryDecider: Logic for deciding whether to retry
    - CallbackManager: Manager for callback invocations
    - AsyncFetchExecutor: Asynchronous request executor
"""

from __future__ import annotations

__all__ = [
    "AsyncFetchExecutor",
    "Backoff",
    "CallbackConfig",
    "CallbackManager",
    "RetryDecider",
    "RetryPolicy",
]

from schemafetch.retry.config import Backoff, CallbackConfig, RetryPolicy
from schemafetch.retry.decider import RetryDecider
from schemafetch.retry.executor_async import AsyncFetchExecutor
from schemafetch.retry.manager import CallbackManager
