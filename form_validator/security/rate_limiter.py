"""
Sliding-Window Rate Limiter

Counts admitted requests per client key inside a rolling window stored as a
score-sorted set (``rate_limit:{client_key}``). Recording the request,
trimming expired entries and counting happen in one atomic cache
transaction, so concurrent requests from the same client can never both
observe a stale count.

When the store fails for a reason other than lost connectivity the limiter
fails open: the request is admitted and the failure is logged.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from form_validator.cache.exceptions import CacheError
from form_validator.monitoring import RATE_LIMIT_DECISIONS

logger = structlog.get_logger("security.rate_limiter")

KEY_PREFIX = "rate_limit:"
DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 60


def _wall_clock_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission attempt."""

    allowed: bool
    retry_after_seconds: int
    count: int


class SlidingWindowRateLimiter:
    """
    Rolling-window request limiter backed by the shared cache.

    Args:
        cache: Cache exposing ``sliding_window``
        max_requests: Requests admitted per window
        window_seconds: Window length
        enabled: When False every request is admitted
        clock: Millisecond wall clock, injectable for tests
    """

    def __init__(self, cache, max_requests: int = DEFAULT_MAX_REQUESTS,
                 window_seconds: int = DEFAULT_WINDOW_SECONDS, enabled: bool = True,
                 clock: Callable[[], float] = _wall_clock_ms):
        self.cache = cache
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self._clock = clock

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000

    def admit(self, client_key: str, now_ms: Optional[float] = None) -> RateLimitDecision:
        """
        Record a request for ``client_key`` and decide whether to admit it.

        Args:
            client_key: Client identifier, usually the remote address
            now_ms: Request time in milliseconds, defaults to the clock

        Returns:
            RateLimitDecision; rejected decisions carry a positive retry delay
        """
        if not self.enabled:
            return RateLimitDecision(allowed=True, retry_after_seconds=0, count=0)

        now_ms = self._clock() if now_ms is None else now_ms
        key = f"{KEY_PREFIX}{client_key}"

        try:
            count, oldest = self.cache.sliding_window(
                key, now_ms, self.window_ms, self.window_seconds
            )
        except CacheError as e:
            RATE_LIMIT_DECISIONS.labels(decision='fail_open').inc()
            logger.error(
                "Rate limiting error, admitting request",
                client_key=client_key,
                error_code=e.error_code,
                error=e.message,
            )
            return RateLimitDecision(allowed=True, retry_after_seconds=0, count=0)

        if count > self.max_requests:
            RATE_LIMIT_DECISIONS.labels(decision='rejected').inc()
            retry_after = self._retry_after(now_ms, oldest)
            logger.info(
                "Rate limit exceeded",
                client_key=client_key,
                count=count,
                limit=self.max_requests,
                retry_after=retry_after,
            )
            return RateLimitDecision(allowed=False, retry_after_seconds=retry_after, count=count)

        RATE_LIMIT_DECISIONS.labels(decision='admitted').inc()
        return RateLimitDecision(allowed=True, retry_after_seconds=0, count=count)

    def _retry_after(self, now_ms: float, oldest: Optional[float]) -> int:
        if oldest is None:
            return self.window_seconds
        return max(1, math.ceil((oldest + self.window_ms - now_ms) / 1000))


__all__ = ['RateLimitDecision', 'SlidingWindowRateLimiter']
