"""
Route protection decorators: sliding-window rate limiting and shared-secret
bearer token authentication.

Usage:
    @validate_bp.route('/validate', methods=['POST'])
    @rate_limited
    @require_bearer_token
    def validate_form():
        ...

``rate_limited`` is applied outermost so throttled clients are rejected
before their token is examined.
"""

import secrets
from functools import wraps
from typing import Any, Callable, Optional, TypeVar, cast

import structlog
from flask import current_app, request

from .exceptions import AuthenticationError, RateLimitExceeded

logger = structlog.get_logger("security.decorators")

F = TypeVar('F', bound=Callable[..., Any])


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Return the credential from an ``Authorization`` header value.

    The credential is the second space-separated token; the scheme itself is
    not checked.
    """
    if not authorization:
        return None
    parts = authorization.split(' ')
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def require_bearer_token(func: F) -> F:
    """
    Reject requests whose bearer token does not match ``AUTH_TOKEN``.

    Raises:
        AuthenticationError: 401 when no token is sent, 403 when it is wrong
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        token = extract_bearer_token(request.headers.get('Authorization'))
        if token is None:
            logger.info("Request without authentication token")
            raise AuthenticationError.missing_token()

        expected = current_app.config.get('AUTH_TOKEN')
        if not expected or not secrets.compare_digest(token.encode(), str(expected).encode()):
            logger.warning("Invalid authentication token presented")
            raise AuthenticationError.invalid_token()

        return func(*args, **kwargs)

    return cast(F, wrapper)


def rate_limited(func: F) -> F:
    """
    Apply the application's sliding-window limiter to POST requests.

    Requests whose client address cannot be determined are admitted.

    Raises:
        RateLimitExceeded: When the client exhausted its window
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if request.method != 'POST':
            return func(*args, **kwargs)

        client_key = request.remote_addr
        if not client_key:
            logger.warning("Could not determine client address for rate limiting")
            return func(*args, **kwargs)

        limiter = current_app.extensions['form_validator'].rate_limiter
        decision = limiter.admit(client_key)
        if not decision.allowed:
            raise RateLimitExceeded(
                retry_after=decision.retry_after_seconds,
                limit=limiter.max_requests,
                window_seconds=limiter.window_seconds,
                client_key=client_key,
            )

        return func(*args, **kwargs)

    return cast(F, wrapper)


__all__ = ['extract_bearer_token', 'require_bearer_token', 'rate_limited']
