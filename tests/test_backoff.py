"""Backoff strategy curves, factory selection and jitter bounds."""
import random
from unittest.mock import MagicMock

import pytest

from healing.backoff import (
    ImmediateBackoff, LinearBackoff, ExponentialBackoff, FibonacciBackoff,
    create_backoff_strategy, apply_jitter,
)
from healing.types import EngineConfig


class TestStrategies:

    def test_immediate_is_always_zero(self):
        s = ImmediateBackoff()
        assert [s.delay(a) for a in (1, 2, 10, 1000)] == [0, 0, 0, 0]

    def test_linear_grows_and_caps(self):
        s = LinearBackoff(1000, 3500)
        assert [s.delay(a) for a in (1, 2, 3, 4, 50)] == [1000, 2000, 3000, 3500, 3500]

    def test_exponential_sequence(self):
        s = ExponentialBackoff(1000, 30000, 2)
        assert [s.delay(a) for a in (1, 2, 3, 4, 5)] == [1000, 2000, 4000, 8000, 16000]
        assert s.delay(6) == 30000

    def test_exponential_monotonic_and_capped(self):
        s = ExponentialBackoff(250, 30000, 1.5)
        delays = [s.delay(a) for a in range(1, 60)]
        assert delays == sorted(delays)
        assert max(delays) <= 30000

    def test_exponential_huge_attempt_does_not_overflow(self):
        s = ExponentialBackoff(1000, 30000, 2)
        assert s.delay(100000) == 30000

    def test_fibonacci_sequence(self):
        s = FibonacciBackoff(1000, 30000)
        assert [s.delay(a) for a in range(1, 8)] == [1000, 1000, 2000, 3000, 5000, 8000, 13000]
        assert s.delay(200) == 30000

    def test_fibonacci_memo_reused(self):
        s = FibonacciBackoff(1, 10**9)
        assert s.delay(30) == 832040
        cached = len(s._fib_cache)
        assert s.delay(10) == 55
        assert len(s._fib_cache) == cached

    def test_non_positive_attempt_treated_as_first(self):
        assert ExponentialBackoff(1000, 30000, 2).delay(0) == 1000
        assert LinearBackoff(1000, 30000).delay(-3) == 1000


class TestFactory:

    @pytest.mark.parametrize("kind,name", [
        ("immediate", "immediate"),
        ("linear", "linear"),
        ("exponential", "exponential"),
        ("fibonacci", "fibonacci"),
        ("no-such-strategy", "exponential"),
    ])
    def test_kind_selects_strategy(self, kind, name):
        config = EngineConfig(backoff_strategy_kind=kind)
        assert create_backoff_strategy(config).name == name

    def test_factory_uses_config_values(self):
        config = EngineConfig(base_backoff_ms=500, max_backoff_ms=1200, backoff_multiplier=3)
        s = create_backoff_strategy(config)
        assert [s.delay(a) for a in (1, 2, 3)] == [500, 1200, 1200]


class TestJitter:

    def test_jitter_within_ten_percent(self):
        rng = random.Random(42)
        for base in (100, 1000, 4000, 12345):
            for _ in range(200):
                j = apply_jitter(base, 0.1, 30000, rng)
                assert abs(j - base) <= 0.1 * base + 0.5

    def test_jitter_clamped_to_max(self):
        rng = MagicMock()
        rng.uniform.return_value = 1.0
        assert apply_jitter(30000, 0.1, 30000, rng) == 30000

    def test_jitter_extremes(self):
        rng = MagicMock()
        rng.uniform.return_value = -1.0
        assert apply_jitter(1000, 0.1, 30000, rng) == 900
        rng.uniform.return_value = 1.0
        assert apply_jitter(1000, 0.1, 30000, rng) == 1100

    def test_zero_delay_stays_zero(self):
        assert apply_jitter(0, 0.1, 30000) == 0
