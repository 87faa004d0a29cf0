"""
Cache layer unit tests: the in-memory fallback store and the Redis facade.

Redis itself is replaced by a ``MagicMock`` client, so these tests cover the
command sequence and the fallback switching, not a live server.
"""

from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, ResponseError

from config import TestingConfig
from form_validator.cache import (
    CacheConnectionError,
    CacheOperationError,
    InMemoryStore,
    RedisCache,
    create_cache,
)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds * 1000


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.ping.return_value = True
    return client


class TestInMemoryStore:
    """TTL values and sliding windows without Redis."""

    def test_values_expire(self, clock):
        store = InMemoryStore(clock=clock)
        store.set('email_domain:acme.com', 'false', 10)

        assert store.get('email_domain:acme.com') == 'false'
        assert store.exists('email_domain:acme.com')

        clock.advance(10)
        assert store.get('email_domain:acme.com') is None
        assert not store.exists('email_domain:acme.com')

    def test_sliding_window_trims_old_entries(self):
        store = InMemoryStore()

        assert store.sliding_window('k', 1000, 500, 'a', 60) == (1, 1000)
        assert store.sliding_window('k', 1200, 500, 'b', 60) == (2, 1000)
        assert store.sliding_window('k', 1600, 500, 'c', 60) == (2, 1200)

    def test_idle_windows_expire(self, clock):
        store = InMemoryStore(clock=clock)
        store.sliding_window('k', 1000, 60_000, 'a', 60)

        clock.advance(61)

        assert store.sliding_window('k', 1001, 60_000, 'b', 60) == (1, 1001)

    def test_expired_entries_are_purged_past_threshold(self, clock):
        store = InMemoryStore(cleanup_threshold=2, clock=clock)
        store.set('a', '1', 1)
        store.set('b', '1', 1)
        clock.advance(2)
        store.set('c', '1', 100)

        assert list(store._values) == ['c']

    def test_clear(self):
        store = InMemoryStore()
        store.set('a', '1', 60)
        store.clear()
        assert store.get('a') is None


class TestRedisCacheFallback:
    """Behavior without a reachable Redis."""

    def test_no_url_uses_fallback(self, fallback_store):
        cache = RedisCache(fallback=fallback_store)

        assert cache.initialize() is False
        cache.set('key', 'value', 60)

        assert fallback_store.get('key') == 'value'
        assert cache.get('key') == 'value'
        assert cache.exists('key')
        assert cache.check_connection() is False

    def test_failed_ping_uses_fallback(self, redis_client, fallback_store):
        redis_client.ping.side_effect = RedisConnectionError("refused")
        cache = RedisCache(client=redis_client, fallback=fallback_store)

        assert cache.initialize() is False
        cache.set('key', 'value', 60)

        redis_client.setex.assert_not_called()
        assert fallback_store.get('key') == 'value'

    def test_invalid_url_is_a_connection_error(self):
        cache = RedisCache(redis_url='not-a-redis-url')

        with pytest.raises(CacheConnectionError) as exc_info:
            cache.initialize()
        assert exc_info.value.error_code == 'CACHE_CONNECTION_ERROR'

    def test_create_cache_from_testing_config(self):
        cache = create_cache(TestingConfig())
        assert cache.is_connected() is False


class TestRedisCacheCommands:
    """Commands sent to a connected Redis client."""

    def test_get_and_set(self, redis_client):
        redis_client.get.return_value = 'true'
        cache = RedisCache(client=redis_client)

        assert cache.initialize() is True
        cache.set('email_domain:spam.io', 'true', 86400)

        redis_client.setex.assert_called_once_with('email_domain:spam.io', 86400, 'true')
        assert cache.get('email_domain:spam.io') == 'true'

    def test_sliding_window_runs_one_transaction(self, redis_client):
        pipeline = redis_client.pipeline.return_value
        pipeline.execute.return_value = [1, 0, 3, [('m', 1000.0)], True]
        cache = RedisCache(client=redis_client)

        count, oldest = cache.sliding_window('rate_limit:10.0.0.1', 61000, 60000, 60)

        assert (count, oldest) == (3, 1000.0)
        redis_client.pipeline.assert_called_once_with(transaction=True)
        pipeline.zremrangebyscore.assert_called_once_with('rate_limit:10.0.0.1', '-inf', '(1000')
        pipeline.expire.assert_called_once_with('rate_limit:10.0.0.1', 60)
        member_scores = pipeline.zadd.call_args.args[1]
        assert list(member_scores.values()) == [61000]

    def test_connection_loss_switches_to_fallback(self, redis_client, fallback_store):
        redis_client.get.side_effect = RedisConnectionError("reset by peer")
        fallback_store.set('key', 'cached', 60)
        cache = RedisCache(client=redis_client, fallback=fallback_store)
        cache.initialize()

        assert cache.get('key') == 'cached'
        assert cache.is_connected() is False

    def test_commands_return_to_redis_after_reconnect_interval(self, redis_client, fallback_store):
        now = [100.0]
        redis_client.get.side_effect = [RedisConnectionError("reset by peer"), 'from-redis']
        cache = RedisCache(client=redis_client, fallback=fallback_store,
                           reconnect_interval=5.0, clock=lambda: now[0])
        cache.initialize()

        assert cache.get('k') is None
        assert cache.is_connected() is False

        now[0] += 4.0
        assert cache.get('k') is None
        assert redis_client.get.call_count == 1

        now[0] += 1.0
        assert cache.get('k') == 'from-redis'
        assert cache.is_connected() is True
        assert redis_client.get.call_count == 2

    def test_failed_reconnect_waits_another_interval(self, redis_client, fallback_store):
        now = [100.0]
        redis_client.ping.side_effect = [True, RedisConnectionError("refused"), True]
        redis_client.get.side_effect = [RedisConnectionError("reset by peer"), 'from-redis']
        cache = RedisCache(client=redis_client, fallback=fallback_store,
                           reconnect_interval=5.0, clock=lambda: now[0])
        cache.initialize()
        cache.get('k')

        now[0] += 5.0
        assert cache.get('k') is None
        now[0] += 4.0
        assert cache.get('k') is None
        assert redis_client.ping.call_count == 2

        now[0] += 1.0
        assert cache.get('k') == 'from-redis'
        assert redis_client.ping.call_count == 3

    def test_other_redis_errors_raise(self, redis_client):
        redis_client.get.side_effect = ResponseError("WRONGTYPE")
        cache = RedisCache(client=redis_client)
        cache.initialize()

        with pytest.raises(CacheOperationError) as exc_info:
            cache.get('key')
        assert exc_info.value.error_code == 'CACHE_OPERATION_ERROR'
        assert exc_info.value.operation == 'get'

    def test_health_check_restores_connection(self, redis_client):
        redis_client.get.side_effect = RedisConnectionError("reset by peer")
        cache = RedisCache(client=redis_client)
        cache.initialize()
        cache.get('key')

        assert cache.is_connected() is False
        assert cache.check_connection() is True
        assert cache.is_connected() is True

    def test_close(self, redis_client):
        cache = RedisCache(client=redis_client)
        cache.initialize()

        cache.close()

        redis_client.close.assert_called_once()
        assert cache.is_connected() is False
