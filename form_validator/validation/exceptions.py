"""
Validation Exception Classes

Exception hierarchy raised by the validation orchestrator and rendered by the
Flask error handlers registered in ``form_validator.blueprints.validate``.

Classes:
    BaseValidationException: Base class carrying HTTP status and ``to_dict()``
    BadRequestError: Malformed request shape (400)
    FormValidationError: Aggregated field violations (422)
"""

from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger("validation.exceptions")


class BaseValidationException(Exception):
    """
    Base exception for validation request failures.

    Attributes:
        message (str): Client-facing error message
        error_code (str): Stable identifier for monitoring and clients
        http_status_code (int): HTTP status code for the Flask response
    """

    http_status_code = 400

    def __init__(self, message: str, error_code: str = "VALIDATION_REQUEST_ERROR",
                 http_status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        if http_status_code is not None:
            self.http_status_code = http_status_code

    def to_dict(self) -> Dict[str, Any]:
        """Render the exception as the service's error envelope."""
        return {'success': False, 'error': self.message}

    def __str__(self) -> str:
        return self.message


class BadRequestError(BaseValidationException):
    """Request payload is structurally unusable (missing formData, unknown mode)."""

    http_status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="BAD_REQUEST")
        logger.info("Rejected malformed validation request", error=message)


class FormValidationError(BaseValidationException):
    """
    One or more fields failed validation.

    ``errors`` preserves check order; every entry is
    ``{'path': [field_name], 'message': text}``.
    """

    http_status_code = 422

    def __init__(self, errors: List[Dict[str, Any]]) -> None:
        super().__init__(
            f"Form validation failed with {len(errors)} error(s)",
            error_code="VALIDATION_FAILED",
        )
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        return {'success': False, 'errors': self.errors}


__all__ = [
    'BaseValidationException',
    'BadRequestError',
    'FormValidationError',
]
