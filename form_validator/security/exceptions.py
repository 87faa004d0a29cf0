"""
Security exception classes for bearer-token authentication and rate limiting.

Both render through Flask error handlers registered by the validate blueprint.
"""

from typing import Any, Dict, Optional


class SecurityException(Exception):
    """
    Base exception for request-level security failures.

    Attributes:
        message (str): Client-facing error message
        error_code (str): Stable identifier for monitoring
        http_status_code (int): HTTP status code for the Flask response
    """

    def __init__(self, message: str, error_code: str, http_status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.http_status_code = http_status_code

    def to_dict(self) -> Dict[str, Any]:
        return {'success': False, 'error': self.message}

    def get_headers(self) -> Dict[str, str]:
        return {}


class AuthenticationError(SecurityException):
    """Missing (401) or wrong (403) bearer token."""

    @classmethod
    def missing_token(cls) -> 'AuthenticationError':
        return cls("Authentication token required.", "AUTH_TOKEN_MISSING", 401)

    @classmethod
    def invalid_token(cls) -> 'AuthenticationError':
        return cls("Invalid authentication token.", "AUTH_TOKEN_INVALID", 403)


class RateLimitExceeded(SecurityException):
    """
    The client exhausted its sliding window.

    Rendered as a validation-style error under the ``TOO_MANY_REQUESTS`` path
    with a ``Retry-After`` header.
    """

    def __init__(self, retry_after: int, limit: int, window_seconds: int = 60,
                 client_key: Optional[str] = None) -> None:
        period = "minute" if window_seconds == 60 else f"{window_seconds} seconds"
        super().__init__(
            f"You have exceeded the request limit of {limit} requests per {period}. "
            f"Please try again after {retry_after} seconds.",
            "TOO_MANY_REQUESTS",
            429,
        )
        self.retry_after = retry_after
        self.limit = limit
        self.client_key = client_key

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': False,
            'errors': [{'path': [self.error_code], 'message': self.message}],
        }

    def get_headers(self) -> Dict[str, str]:
        return {'Retry-After': str(self.retry_after)}


__all__ = ['SecurityException', 'AuthenticationError', 'RateLimitExceeded']
