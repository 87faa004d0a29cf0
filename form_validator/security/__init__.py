"""
Request protection: bearer token authentication and sliding-window rate limiting.
"""

from .decorators import extract_bearer_token, rate_limited, require_bearer_token
from .exceptions import AuthenticationError, RateLimitExceeded, SecurityException
from .rate_limiter import RateLimitDecision, SlidingWindowRateLimiter

__all__ = [
    'AuthenticationError',
    'RateLimitDecision',
    'RateLimitExceeded',
    'SecurityException',
    'SlidingWindowRateLimiter',
    'extract_bearer_token',
    'rate_limited',
    'require_bearer_token',
]
