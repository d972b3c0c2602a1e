"""Unit tests for the jittered exponential backoff calculator."""

import random

import pytest

from resilient_sse.shared.backoff import JITTER_RATIO, backoff_delay


def _low(a: float, b: float) -> float:
    return a


def _high(a: float, b: float) -> float:
    return b


def _mid(a: float, b: float) -> float:
    return 0.0


class TestBackoffDelay:
    def test_attempt_zero_starts_at_min(self) -> None:
        assert backoff_delay(0, 1000, 8000, uniform=_mid) == 1000

    def test_base_doubles_per_attempt(self) -> None:
        bases = [backoff_delay(n, 1000, 64000, uniform=_mid) for n in range(5)]
        assert bases == [1000, 2000, 4000, 8000, 16000]

    def test_base_is_capped_at_max(self) -> None:
        assert backoff_delay(10, 1000, 8000, uniform=_mid) == 8000

    def test_base_is_floored_at_min_when_min_exceeds_max(self) -> None:
        assert backoff_delay(3, 5000, 1000, uniform=_mid) == 5000

    def test_equal_min_and_max_gives_constant_base(self) -> None:
        assert {backoff_delay(n, 5000, 5000, uniform=_mid) for n in range(6)} == {5000}

    def test_jitter_bounds(self) -> None:
        assert backoff_delay(0, 1000, 8000, uniform=_low) == pytest.approx(1000 * (1 - JITTER_RATIO))
        assert backoff_delay(10, 1000, 8000, uniform=_high) == pytest.approx(8000 * (1 + JITTER_RATIO))

    def test_jitter_source_receives_symmetric_range(self) -> None:
        seen = []

        def record(a: float, b: float) -> float:
            seen.append((a, b))
            return 0.0

        backoff_delay(1, 1000, 8000, uniform=record)
        assert seen == [(pytest.approx(-520.0), pytest.approx(520.0))]

    def test_never_negative(self) -> None:
        assert backoff_delay(0, 100, 100, jitter_ratio=2.0, uniform=_low) == 0.0

    def test_huge_attempt_does_not_overflow(self) -> None:
        assert backoff_delay(5000, 1000.0, 30000.0, uniform=_mid) == 30000.0

    def test_random_delays_stay_within_bounds(self) -> None:
        rng = random.Random(42)
        low, high = 1000 * (1 - JITTER_RATIO), 8000 * (1 + JITTER_RATIO)
        for attempt in range(50):
            delay = backoff_delay(attempt, 1000, 8000, uniform=rng.uniform)
            assert low <= delay <= high

    def test_non_decreasing_in_expectation(self) -> None:
        expected = [backoff_delay(n, 500, 30000, uniform=_mid) for n in range(12)]
        assert expected == sorted(expected)
