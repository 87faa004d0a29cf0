"""
In-process fallback store used whenever Redis is not configured or unreachable.

Mirrors the subset of Redis semantics the service relies on: string values
with a TTL and a score-ordered window per key. All state is guarded by one
``threading.Lock`` so each operation is atomic across request threads of a
single worker process.
"""

import bisect
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class InMemoryStore:
    """
    Thread-safe TTL key-value store with sliding window support.

    Args:
        cleanup_threshold: Number of stored keys above which expired entries
            are purged on write
        clock: Millisecond clock, injectable for tests
    """

    def __init__(self, cleanup_threshold: int = 100, clock: Callable[[], float] = _monotonic_ms):
        self._lock = threading.Lock()
        self._values: Dict[str, Tuple[str, float]] = {}
        self._windows: Dict[str, Tuple[List[Tuple[float, str]], float]] = {}
        self._cleanup_threshold = cleanup_threshold
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._values.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._values[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._values[key] = (value, self._clock() + ttl_seconds * 1000)
            if len(self._values) > self._cleanup_threshold:
                self._purge_expired()

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def sliding_window(self, key: str, now_ms: float, window_ms: float, member: str,
                       expire_seconds: int) -> Tuple[int, Optional[float]]:
        """
        Record ``member`` at ``now_ms`` and drop entries older than the window.

        Returns:
            Tuple of (entries in window including this one, oldest score)
        """
        window_start = now_ms - window_ms
        with self._lock:
            entries, expires_at = self._windows.get(key, ([], 0.0))
            if expires_at <= self._clock():
                entries = []

            bisect.insort(entries, (now_ms, member))
            cutoff = bisect.bisect_left(entries, (window_start, ''))
            del entries[:cutoff]

            self._windows[key] = (entries, self._clock() + expire_seconds * 1000)
            if len(self._windows) > self._cleanup_threshold:
                self._purge_expired()

            oldest = entries[0][0] if entries else None
            return len(entries), oldest

    def _purge_expired(self) -> None:
        now = self._clock()
        expired_values = [key for key, (_, expires_at) in self._values.items() if expires_at <= now]
        for key in expired_values:
            del self._values[key]
        expired_windows = [key for key, (_, expires_at) in self._windows.items() if expires_at <= now]
        for key in expired_windows:
            del self._windows[key]
        if expired_values or expired_windows:
            logger.debug(
                "Purged expired fallback cache entries",
                values=len(expired_values),
                windows=len(expired_windows)
            )

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._windows.clear()


__all__ = ['InMemoryStore']
