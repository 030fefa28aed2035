r"""Unit tests for calculate_sleep_time."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from schemafetch.backoff import ConstantBackoff, ExponentialBackoff
from schemafetch.utils import calculate_sleep_time


def test_calculate_sleep_time_default_strategy() -> None:
    """Test that the default strategy waits 1 second for every retry."""
    assert calculate_sleep_time(0) == 1.0
    assert calculate_sleep_time(5) == 1.0


def test_calculate_sleep_time_exponential() -> None:
    strategy = ExponentialBackoff(base_delay=0.5)
    assert [calculate_sleep_time(attempt, backoff_strategy=strategy) for attempt in range(4)] == [
        0.5,
        1.0,
        2.0,
        4.0,
    ]


def test_calculate_sleep_time_constant() -> None:
    assert calculate_sleep_time(3, backoff_strategy=ConstantBackoff(delay=0.2)) == 0.2


def test_calculate_sleep_time_with_jitter() -> None:
    with patch("schemafetch.utils.sleep.random.uniform", return_value=0.1) as mock_uniform:
        assert calculate_sleep_time(
            1, jitter_factor=0.5, backoff_strategy=ExponentialBackoff(base_delay=1.0)
        ) == pytest.approx(2.2)
    mock_uniform.assert_called_once_with(0, 0.5)


@pytest.mark.parametrize("attempt", range(5))
def test_calculate_sleep_time_jitter_bounds(attempt: int) -> None:
    strategy = ExponentialBackoff(base_delay=0.1)
    base = strategy.calculate(attempt)
    sleep_time = calculate_sleep_time(attempt, jitter_factor=0.5, backoff_strategy=strategy)
    assert base <= sleep_time <= base * 1.5


def test_calculate_sleep_time_zero_jitter_is_deterministic() -> None:
    with patch("schemafetch.utils.sleep.random.uniform") as mock_uniform:
        assert calculate_sleep_time(0, jitter_factor=0.0) == 1.0
    mock_uniform.assert_not_called()
