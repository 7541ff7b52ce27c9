"""
FailureTracker: attempt counters and last-seen timestamps per FailureKey.
"""
import threading
from typing import Dict, Iterator, Optional, Tuple

from healing.types import FailureKey


class FailureTracker:
    """
    Composite-keyed counters. The read-increment-write is atomic per call
    so concurrent reports on the same key never lose an update.
    """
    def __init__(self):
        self._counts: Dict[FailureKey, int] = {}
        self._last_seen: Dict[FailureKey, float] = {}
        self._lock = threading.RLock()

    def increment(self, key: FailureKey, seen_at: float) -> int:
        with self._lock:
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count
            self._last_seen[key] = seen_at
            return count

    def count(self, key: FailureKey) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def last_seen(self, key: FailureKey) -> Optional[float]:
        with self._lock:
            return self._last_seen.get(key)

    def clear(self, key: FailureKey):
        with self._lock:
            self._counts.pop(key, None)
            self._last_seen.pop(key, None)

    def clear_all(self):
        with self._lock:
            self._counts.clear()
            self._last_seen.clear()

    def snapshot(self) -> Iterator[Tuple[FailureKey, int, Optional[float]]]:
        """(key, count, last_seen) for every active key, copied under the lock."""
        with self._lock:
            rows = [(k, c, self._last_seen.get(k)) for k, c in self._counts.items()]
        return iter(rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)
