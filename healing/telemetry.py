"""
Observability for the Self-Healing Engine.
Bounded recovery history, aggregate statistics, rolling metrics and tracing.
"""
import collections
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from opentelemetry import trace

from healing.types import AggregateStats, FailureKey, RecoveryOutcome, RollingMetrics, MAX_HISTORY_SIZE

_tracer = trace.get_tracer("healing")


class RecoveryHistory:
    """FIFO ring of RecoveryOutcome. Appending past capacity evicts the oldest entry."""

    def __init__(self, capacity: int = MAX_HISTORY_SIZE):
        self._entries: collections.deque[RecoveryOutcome] = collections.deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, outcome: RecoveryOutcome):
        with self._lock:
            self._entries.append(outcome)

    def resize(self, capacity: int):
        """Change capacity, keeping the newest entries."""
        with self._lock:
            if capacity != self._entries.maxlen:
                self._entries = collections.deque(self._entries, maxlen=capacity)

    def snapshot(self) -> List[RecoveryOutcome]:
        with self._lock:
            return list(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def compute_stats(history: Iterable[RecoveryOutcome]) -> AggregateStats:
    """Recompute aggregate statistics from the full history; no incremental state."""
    entries = list(history)
    total = len(entries)
    successful = sum(1 for r in entries if r.succeeded)
    total_duration = sum(r.duration_ms for r in entries)

    by_action: Dict[str, int] = {}
    by_category: Dict[str, int] = {}
    success_by_category: Dict[str, int] = {}
    for r in entries:
        kind = r.action.kind.value
        cat = r.category.value
        by_action[kind] = by_action.get(kind, 0) + 1
        by_category[cat] = by_category.get(cat, 0) + 1
        if r.succeeded:
            success_by_category[cat] = success_by_category.get(cat, 0) + 1

    recovery_rate = {
        cat: (success_by_category.get(cat, 0) / n) * 100 if n > 0 else 0.0
        for cat, n in by_category.items()
    }

    return AggregateStats(
        total_recoveries=total,
        successful_recoveries=successful,
        failed_recoveries=total - successful,
        success_rate=(successful / total) * 100 if total > 0 else 0.0,
        avg_duration_ms=total_duration / total if total > 0 else 0.0,
        by_action_kind=by_action,
        by_category=by_category,
        recovery_rate_by_category=recovery_rate,
    )


def compute_metrics(
    history: Iterable[RecoveryOutcome],
    active: Iterable[Tuple[FailureKey, int, Optional[float]]],
    window_s: float,
    now: float = None,
) -> RollingMetrics:
    """
    Rolling-window snapshot. `active` is the tracker snapshot of (key, count, last_seen).
    """
    now = time.time() if now is None else now
    cutoff = now - window_s

    recent = [r for r in history if r.completed_at > cutoff]
    recent_success = sum(1 for r in recent if r.succeeded)

    delays = [r.action.delay_ms for r in recent if r.action.delay_ms and r.action.delay_ms > 0]
    avg_backoff = sum(delays) / len(delays) if delays else 0.0

    active_counts: Dict[str, int] = {}
    for key, count, last_seen in active:
        if last_seen is not None and last_seen > cutoff:
            cat = key.category.value
            active_counts[cat] = active_counts.get(cat, 0) + count

    return RollingMetrics(
        timestamp=now,
        active_failure_counts=active_counts,
        recent_recovery_attempts=len(recent),
        recent_success_rate=(recent_success / len(recent)) * 100 if recent else 100.0,
        avg_backoff_delay_ms=avg_backoff,
    )


@contextmanager
def recovery_span(name: str, attributes: Dict[str, Any] = None):
    """Context manager for creating a span. No-op tracer unless an SDK is installed."""
    with _tracer.start_as_current_span(name, attributes=attributes or {}) as span:
        yield span
