"""
Form Validation API Blueprint

Exposes ``POST /api/validate``. Requests pass the sliding-window rate limiter
first, then the shared-secret bearer token check, and are finally handed to
``FormValidationService``.

Response envelopes (pydantic models, ``None`` members omitted):
- 200 ``{success: true, data, fieldAnalysis?}``
- 400 ``{success: false, error}``
- 401/403 ``{success: false, error}``
- 422 ``{success: false, errors: [{path, message}]}``
- 429 ``{success: false, errors: [{path: ["TOO_MANY_REQUESTS"], message}]}``
- 500 ``{success: false, error: "Internal server error"}``
"""

from typing import Any, Dict, List, Optional

import structlog
from flask import Blueprint, current_app, jsonify, request
from pydantic import BaseModel, Field

from form_validator.monitoring import monitor_endpoint_performance
from form_validator.security import rate_limited, require_bearer_token
from form_validator.security.exceptions import SecurityException
from form_validator.validation.exceptions import BaseValidationException

logger = structlog.get_logger(__name__)

validate_bp = Blueprint('validate', __name__, url_prefix='/api')


# ============================================================================
# PYDANTIC MODELS FOR RESPONSE FORMATTING
# ============================================================================

class FieldError(BaseModel):
    """One field violation."""
    path: List[str] = Field(description="Field path, a single field name")
    message: str = Field(description="Human-readable violation")


class SuccessResponse(BaseModel):
    """Successful validation response."""
    success: bool = True
    data: Dict[str, Any] = Field(description="Trimmed and loaded form data")
    fieldAnalysis: Optional[Dict[str, str]] = Field(
        default=None, description="Inferred field type per field (dynamic mode only)"
    )


class ErrorResponse(BaseModel):
    """Error response carrying a single message."""
    success: bool = False
    error: str = Field(description="Error message")


class ValidationFailureResponse(BaseModel):
    """Error response carrying field violations."""
    success: bool = False
    errors: List[FieldError] = Field(description="Violations in check order")


def _render(model: BaseModel, status_code: int, headers: Optional[Dict[str, str]] = None):
    response = jsonify(model.model_dump(exclude_none=True))
    response.status_code = status_code
    for name, value in (headers or {}).items():
        response.headers[name] = value
    return response


# ============================================================================
# ROUTES
# ============================================================================

@validate_bp.route('/validate', methods=['POST'])
@monitor_endpoint_performance
@rate_limited
@require_bearer_token
def validate_form():
    """
    Validate a form submission.

    Request body:
        formData: Mapping of field name to value (required)
        schemaType: Fixed schema name, e.g. ``signup``
        validationType: ``schema`` or ``dynamic``
        fieldRequirements: Per-field ``{required, type, customRule}`` (dynamic mode)
        customRules: Per-field custom rules (dynamic mode)
    """
    service = current_app.extensions['form_validator'].validation_service
    result = service.validate(request.get_json(silent=True))

    return _render(SuccessResponse(data=result.data, fieldAnalysis=result.field_analysis), 200)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@validate_bp.errorhandler(BaseValidationException)
def handle_validation_exception(error: BaseValidationException):
    """Render 400 and 422 validation outcomes."""
    payload = error.to_dict()
    if 'errors' in payload:
        return _render(ValidationFailureResponse(errors=payload['errors']), error.http_status_code)
    return _render(ErrorResponse(error=payload['error']), error.http_status_code)


@validate_bp.errorhandler(SecurityException)
def handle_security_exception(error: SecurityException):
    """Render authentication and rate limiting rejections."""
    payload = error.to_dict()
    if 'errors' in payload:
        model = ValidationFailureResponse(errors=payload['errors'])
    else:
        model = ErrorResponse(error=payload['error'])
    return _render(model, error.http_status_code, error.get_headers())


def internal_error_response():
    """Generic 500 envelope shared with the application-level handler."""
    return _render(ErrorResponse(error="Internal server error"), 500)


__all__ = ['validate_bp', 'internal_error_response']
