"""
Cache-specific exception classes for Redis connection failures and store
operation errors.

Degradations never reach clients: the cache swaps in its in-memory store on
connection failures, and callers such as the rate limiter treat any other
``CacheError`` as a reason to fail open.
"""

from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class CacheError(Exception):
    """
    Base exception class for all cache-related errors.

    Attributes:
        message: Human-readable error description
        error_code: Standardized error code for monitoring and alerting
        details: Additional error context for debugging and observability
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CACHE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        logger.warning(
            "Cache error occurred",
            error_code=self.error_code,
            message=message,
            details=self.details,
        )


class CacheConnectionError(CacheError):
    """Redis is unreachable or dropped the connection."""

    def __init__(self, message: str, redis_error: Optional[Exception] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if redis_error is not None:
            details['redis_error'] = type(redis_error).__name__
        super().__init__(message, error_code="CACHE_CONNECTION_ERROR", details=details)
        self.redis_error = redis_error


class CacheOperationError(CacheError):
    """A Redis command failed for a reason other than connectivity."""

    def __init__(self, message: str, operation: str, redis_error: Optional[Exception] = None):
        super().__init__(
            message,
            error_code="CACHE_OPERATION_ERROR",
            details={'operation': operation,
                     'redis_error': type(redis_error).__name__ if redis_error else None},
        )
        self.operation = operation
        self.redis_error = redis_error


__all__ = ['CacheError', 'CacheConnectionError', 'CacheOperationError']
