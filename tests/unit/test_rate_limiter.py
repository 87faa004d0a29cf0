"""
Sliding-window rate limiter unit tests.
"""

import pytest

from form_validator.cache import CacheOperationError
from form_validator.security.exceptions import RateLimitExceeded
from form_validator.security.rate_limiter import SlidingWindowRateLimiter

START_MS = 1_700_000_000_000


class TestSlidingWindowRateLimiter:
    """Admission decisions over the in-memory fallback store."""

    def test_requests_within_limit_are_admitted(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=100, window_seconds=60)

        decisions = [limiter.admit('10.0.0.1', now_ms=START_MS + i) for i in range(100)]

        assert all(decision.allowed for decision in decisions)
        assert decisions[-1].count == 100

    def test_request_over_limit_is_rejected_with_retry_delay(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=100, window_seconds=60)
        for i in range(100):
            limiter.admit('10.0.0.1', now_ms=START_MS + i)

        decision = limiter.admit('10.0.0.1', now_ms=START_MS + 100)

        assert decision.allowed is False
        assert decision.retry_after_seconds == 60
        assert decision.count == 101

    def test_retry_delay_shrinks_as_the_window_slides(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=2, window_seconds=60)
        limiter.admit('10.0.0.1', now_ms=START_MS)
        limiter.admit('10.0.0.1', now_ms=START_MS + 1)

        decision = limiter.admit('10.0.0.1', now_ms=START_MS + 45_500)

        assert decision.allowed is False
        assert decision.retry_after_seconds == 15

    def test_window_resets_after_it_elapses(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=3, window_seconds=60)
        for i in range(4):
            limiter.admit('10.0.0.1', now_ms=START_MS + i)

        decision = limiter.admit('10.0.0.1', now_ms=START_MS + 60_010)

        assert decision.allowed is True
        assert decision.count == 1

    def test_rejected_requests_count_against_the_window(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=2, window_seconds=60)
        for i in range(5):
            limiter.admit('10.0.0.1', now_ms=START_MS + i)

        assert limiter.admit('10.0.0.1', now_ms=START_MS + 10).count == 6

    def test_requests_sharing_a_millisecond_are_all_counted(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=2, window_seconds=60)

        counts = [limiter.admit('10.0.0.1', now_ms=START_MS).count for _ in range(3)]

        assert counts == [1, 2, 3]

    def test_clients_are_counted_separately(self, cache):
        limiter = SlidingWindowRateLimiter(cache, max_requests=1, window_seconds=60)

        assert limiter.admit('10.0.0.1', now_ms=START_MS).allowed
        assert limiter.admit('10.0.0.2', now_ms=START_MS).allowed
        assert not limiter.admit('10.0.0.1', now_ms=START_MS + 1).allowed

    def test_disabled_limiter_admits_everything(self, cache, mocker):
        window = mocker.spy(cache, 'sliding_window')
        limiter = SlidingWindowRateLimiter(cache, max_requests=1, enabled=False)

        assert all(limiter.admit('10.0.0.1').allowed for _ in range(5))
        window.assert_not_called()

    def test_store_failure_fails_open(self, cache, mocker):
        mocker.patch.object(
            cache, 'sliding_window',
            side_effect=CacheOperationError("Redis sliding_window failed", operation='sliding_window'),
        )
        limiter = SlidingWindowRateLimiter(cache, max_requests=1)

        decision = limiter.admit('10.0.0.1')

        assert decision.allowed is True

    def test_injected_clock_is_used(self, cache):
        now = [START_MS]
        limiter = SlidingWindowRateLimiter(cache, max_requests=1, clock=lambda: now[0])

        assert limiter.admit('10.0.0.1').allowed
        now[0] += 61_000
        assert limiter.admit('10.0.0.1').allowed


class TestRateLimitExceeded:
    """429 rendering data."""

    def test_message_and_headers(self):
        error = RateLimitExceeded(retry_after=42, limit=100)

        assert error.http_status_code == 429
        assert error.message == (
            "You have exceeded the request limit of 100 requests per minute. "
            "Please try again after 42 seconds."
        )
        assert error.get_headers() == {'Retry-After': '42'}
        assert error.to_dict() == {
            'success': False,
            'errors': [{'path': ['TOO_MANY_REQUESTS'], 'message': error.message}],
        }

    @pytest.mark.parametrize('window_seconds, period', [(60, 'minute'), (30, '30 seconds')])
    def test_period_wording(self, window_seconds, period):
        error = RateLimitExceeded(retry_after=1, limit=5, window_seconds=window_seconds)
        assert f"5 requests per {period}." in error.message
