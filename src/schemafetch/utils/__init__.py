r"""Utility functions for the request executor.

This package provides the delay calculation used between retries and
the opt-in structured logging helpers.
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "calculate_sleep_time",
    "clear_correlation_id",
    "get_correlation_id",
    "log_structured",
    "set_correlation_id",
]

from schemafetch.utils.sleep import calculate_sleep_time
from schemafetch.utils.structured_logging import (
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    log_structured,
    set_correlation_id,
)
