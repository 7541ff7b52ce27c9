"""
Backoff strategies for the Self-Healing Engine.
Pure `attempt -> delay_ms` functions selected from a closed set of kinds.
"""
import random
import threading
from abc import ABC, abstractmethod
from typing import List

from healing.types import BackoffStrategyKind, EngineConfig


class BackoffStrategy(ABC):
    """
    Pluggable delay curve.

    API STABILITY: STABLE (v1.x)
    """
    name: str = "base"

    @abstractmethod
    def delay(self, attempt: int) -> int:
        """Delay in milliseconds before the given (1-based) attempt."""
        pass


class ImmediateBackoff(BackoffStrategy):
    name = "immediate"

    def delay(self, attempt: int) -> int:
        return 0


class LinearBackoff(BackoffStrategy):
    """delay = base * attempt"""
    name = "linear"

    def __init__(self, base_ms: int, max_ms: int):
        self._base_ms = base_ms
        self._max_ms = max_ms

    def delay(self, attempt: int) -> int:
        attempt = max(1, attempt)
        return int(min(self._base_ms * attempt, self._max_ms))


class ExponentialBackoff(BackoffStrategy):
    """delay = base * multiplier ^ (attempt - 1)"""
    name = "exponential"

    def __init__(self, base_ms: int, max_ms: int, multiplier: float):
        self._base_ms = base_ms
        self._max_ms = max_ms
        self._multiplier = multiplier

    def delay(self, attempt: int) -> int:
        attempt = max(1, attempt)
        try:
            raw = self._base_ms * (self._multiplier ** (attempt - 1))
        except OverflowError:
            return int(self._max_ms)
        return int(round(min(raw, self._max_ms)))


class FibonacciBackoff(BackoffStrategy):
    """delay = base * fib(attempt), fib(1) = fib(2) = 1. Gentler than exponential."""
    name = "fibonacci"

    def __init__(self, base_ms: int, max_ms: int):
        self._base_ms = base_ms
        self._max_ms = max_ms
        self._fib_cache: List[int] = [0, 1]
        self._lock = threading.Lock()

    def delay(self, attempt: int) -> int:
        attempt = max(1, attempt)
        return int(min(self._base_ms * self._fibonacci(attempt), self._max_ms))

    def _fibonacci(self, n: int) -> int:
        cache = self._fib_cache
        if n < len(cache):
            return cache[n]
        with self._lock:
            while len(cache) <= n:
                cache.append(cache[-1] + cache[-2])
            return cache[n]


def create_backoff_strategy(config: EngineConfig) -> BackoffStrategy:
    """Factory: build the strategy named by config. Unknown kinds fall back to exponential."""
    kind = config.backoff_strategy_kind
    if kind == BackoffStrategyKind.IMMEDIATE:
        return ImmediateBackoff()
    if kind == BackoffStrategyKind.LINEAR:
        return LinearBackoff(config.base_backoff_ms, config.max_backoff_ms)
    if kind == BackoffStrategyKind.FIBONACCI:
        return FibonacciBackoff(config.base_backoff_ms, config.max_backoff_ms)
    return ExponentialBackoff(config.base_backoff_ms, config.max_backoff_ms, config.backoff_multiplier)


def apply_jitter(delay_ms: int, ratio: float, max_ms: int, rng: random.Random = None) -> int:
    """
    Perturb delay by up to +/- ratio, round to the millisecond, clamp to [0, max_ms].
    Desynchronizes retries of tasks that failed on the same dependency.
    """
    rng = rng or random
    jitter = delay_ms * ratio * rng.uniform(-1.0, 1.0)
    return int(max(0, min(round(delay_ms + jitter), max_ms)))
