"""
Redis Cache Client with In-Memory Fallback

Key-value cache shared by the rate limiter and the email domain reputation
checker. Commands go to Redis through redis-py when ``REDIS_URL`` is
configured and the server answers; otherwise, and whenever Redis drops the
connection, they are served by ``InMemoryStore`` so validation keeps working
on a single instance.

Key Features:
- redis-py 5.0+ client built from ``REDIS_URL`` with bounded socket timeouts
- Transparent fallback to a lock-guarded in-process store, with a PING
  re-probe once ``reconnect_interval`` has passed since Redis was lost
- Atomic sliding-window primitive (MULTI/EXEC pipeline) for rate limiting
- Connection state reporting for the ``/health`` endpoint

Dependencies:
- redis-py 5.0+ for Redis connectivity
- structlog 23.1+ for structured logging
- prometheus-client 0.17+ for fallback usage metrics
"""

import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

import redis
import structlog
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from form_validator.cache.exceptions import CacheConnectionError, CacheOperationError
from form_validator.cache.fallback import InMemoryStore
from form_validator.monitoring import CACHE_FALLBACKS

logger = structlog.get_logger(__name__)

T = TypeVar('T')

DEFAULT_TTL_SECONDS = 3600
DEFAULT_RECONNECT_INTERVAL_SECONDS = 5.0


class RedisCache:
    """
    Cache facade over Redis with an in-memory fallback.

    Args:
        redis_url: Redis connection URL; None selects the fallback store only
        connection_kwargs: Extra keyword arguments for ``redis.Redis.from_url``
        fallback: Fallback store, created when omitted
        client: Pre-built Redis client, mainly for tests
        reconnect_interval: Seconds between PING attempts while Redis is lost
        clock: Monotonic clock in seconds
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        connection_kwargs: Optional[Dict[str, Any]] = None,
        fallback: Optional[InMemoryStore] = None,
        client: Optional[redis.Redis] = None,
        reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._redis_url = redis_url
        self._connection_kwargs = dict(connection_kwargs or {})
        self._fallback = fallback or InMemoryStore()
        self._client: Optional[redis.Redis] = client
        self._connected = False
        self._lock = threading.RLock()
        self._initialized = False
        self._reconnect_interval = reconnect_interval
        self._clock = clock
        self._lost_at: Optional[float] = None

    def initialize(self) -> bool:
        """
        Connect to Redis and verify the connection with PING.

        Connection failures are logged and leave the cache in fallback mode.

        Returns:
            True when Redis is connected

        Raises:
            CacheConnectionError: When ``REDIS_URL`` cannot be parsed
        """
        with self._lock:
            if self._initialized:
                return self._connected
            self._initialized = True

            if self._client is None and not self._redis_url:
                logger.info("No REDIS_URL provided, using in-memory cache only")
                return False

            if self._client is None:
                try:
                    self._client = redis.Redis.from_url(
                        self._redis_url,
                        decode_responses=True,
                        **self._connection_kwargs
                    )
                except ValueError as e:
                    raise CacheConnectionError(f"Invalid REDIS_URL: {e}", redis_error=e) from e

            try:
                self._client.ping()
                self._connected = True
                logger.info("Redis connection verified", **self._connection_info())
            except RedisError as e:
                self._mark_lost()
                logger.warning(
                    "Redis connection failed, using in-memory cache as fallback",
                    error=str(e),
                    **self._connection_info()
                )

            return self._connected

    def _connection_info(self) -> Dict[str, Any]:
        return {
            'socket_timeout': self._connection_kwargs.get('socket_timeout'),
            'socket_connect_timeout': self._connection_kwargs.get('socket_connect_timeout'),
        }

    def is_connected(self) -> bool:
        """Whether commands are currently sent to Redis."""
        return self._connected

    def check_connection(self) -> bool:
        """
        Re-probe Redis with PING and update the connection state.

        Called by the health endpoint, and before a command once the reconnect
        interval has passed, so a recovered Redis is picked up again.
        """
        if self._client is None:
            return False
        try:
            self._client.ping()
        except RedisError as e:
            if self._connected:
                logger.warning("Redis health probe failed", error=str(e))
            self._mark_lost()
            return False

        if not self._connected:
            logger.info("Redis connection restored")
        self._connected = True
        self._lost_at = None
        return True

    def _mark_lost(self) -> None:
        self._connected = False
        self._lost_at = self._clock()

    def _reconnect_due(self) -> bool:
        return (
            not self._connected
            and self._client is not None
            and self._lost_at is not None
            and self._clock() - self._lost_at >= self._reconnect_interval
        )

    def _execute(self, operation: str, redis_call: Callable[[redis.Redis], T],
                 fallback_call: Callable[[InMemoryStore], T]) -> T:
        if not self._initialized:
            self.initialize()

        if self._reconnect_due():
            self.check_connection()

        if self._connected and self._client is not None:
            try:
                return redis_call(self._client)
            except (RedisConnectionError, RedisTimeoutError) as e:
                self._mark_lost()
                logger.warning(
                    "Redis command failed, switching to in-memory cache",
                    operation=operation,
                    error=str(e)
                )
            except RedisError as e:
                raise CacheOperationError(
                    f"Redis {operation} failed: {e}",
                    operation=operation,
                    redis_error=e
                ) from e

        CACHE_FALLBACKS.labels(operation=operation).inc()
        return fallback_call(self._fallback)

    def get(self, key: str) -> Optional[str]:
        """Return the cached string for ``key`` or None."""
        return self._execute(
            'get',
            lambda client: client.get(key),
            lambda store: store.get(key),
        )

    def set(self, key: str, value: str, ttl: int = DEFAULT_TTL_SECONDS) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        self._execute(
            'set',
            lambda client: client.setex(key, ttl, value),
            lambda store: store.set(key, value, ttl),
        )

    def exists(self, key: str) -> bool:
        return self._execute(
            'exists',
            lambda client: client.exists(key) == 1,
            lambda store: store.exists(key),
        )

    def sliding_window(self, key: str, now_ms: float, window_ms: float,
                       expire_seconds: int) -> Tuple[int, Optional[float]]:
        """
        Atomically record one event and count the events inside the window.

        Runs ZADD, ZREMRANGEBYSCORE, ZCARD, ZRANGE and EXPIRE in a single
        MULTI/EXEC transaction. Members are unique so events sharing a
        millisecond are all counted.

        Args:
            key: Sorted set key
            now_ms: Event time in milliseconds
            window_ms: Window length in milliseconds
            expire_seconds: Idle expiry applied to the key

        Returns:
            Tuple of (events in window including this one, oldest event score)
        """
        member = f"{now_ms}-{uuid.uuid4().hex}"
        window_start = now_ms - window_ms

        def redis_window(client: redis.Redis) -> Tuple[int, Optional[float]]:
            pipeline = client.pipeline(transaction=True)
            pipeline.zadd(key, {member: now_ms})
            pipeline.zremrangebyscore(key, '-inf', f"({window_start}")
            pipeline.zcard(key)
            pipeline.zrange(key, 0, 0, withscores=True)
            pipeline.expire(key, expire_seconds)
            _, _, count, oldest, _ = pipeline.execute()
            return int(count), (float(oldest[0][1]) if oldest else None)

        return self._execute(
            'sliding_window',
            redis_window,
            lambda store: store.sliding_window(key, now_ms, window_ms, member, expire_seconds),
        )

    def close(self) -> None:
        """Close the Redis connection pool, if any."""
        with self._lock:
            if self._client is not None:
                try:
                    self._client.close()
                    logger.info("Redis connection closed")
                except RedisError as e:
                    logger.warning("Error closing Redis client", error=str(e))
            self._client = None
            self._connected = False


def create_cache(config: Any) -> RedisCache:
    """
    Build and initialize the cache from application configuration.

    Args:
        config: Configuration exposing REDIS_URL, REDIS_CONNECTION_KWARGS,
            FALLBACK_CACHE_CLEANUP_THRESHOLD and REDIS_RECONNECT_INTERVAL

    Returns:
        Initialized RedisCache
    """
    cache = RedisCache(
        redis_url=getattr(config, 'REDIS_URL', None),
        connection_kwargs=getattr(config, 'REDIS_CONNECTION_KWARGS', None),
        fallback=InMemoryStore(
            cleanup_threshold=getattr(config, 'FALLBACK_CACHE_CLEANUP_THRESHOLD', 100)
        ),
        reconnect_interval=getattr(
            config, 'REDIS_RECONNECT_INTERVAL', DEFAULT_RECONNECT_INTERVAL_SECONDS
        ),
    )
    cache.initialize()
    return cache


__all__ = ['RedisCache', 'create_cache']
