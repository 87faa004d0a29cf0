"""
Form Validation Orchestrator

Entry point for validating one ``POST /api/validate`` payload. The payload is
resolved once into a tagged ``ValidationRequest`` and then dispatched to the
fixed-schema or dynamic pipeline.

Schema mode (``schemaType`` alone, or ``validationType: "schema"``):
    structural load of the named schema; on success the ``signup`` schema
    also runs the password, email username and domain reputation checks.

Dynamic mode (``validationType: "dynamic"``):
    1. required-field pass
    2. structural pass over every submitted field (only if step 1 is clean)
    3. custom rules (only if ``customRules`` is non-empty)
    4. password complexity against first/last name siblings
    5. email username heuristics and domain reputation

Every failure is collected; the request fails with ``FormValidationError``
when any check reported an error.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import structlog
from marshmallow import ValidationError as MarshmallowValidationError

from form_validator.monitoring import VALIDATION_ERRORS, VALIDATIONS

from .domain_reputation import DomainReputationChecker
from .email_checks import is_suspicious_email_username, split_email
from .exceptions import BadRequestError, FormValidationError
from .field_types import FieldType, analyze_form_fields
from .password import validate_password
from .rule_engine import validate_required_fields, validate_with_custom_rules
from .rules import (
    CustomRule,
    FieldRequirement,
    merge_validation_rules,
    parse_custom_rules,
    parse_field_requirements,
)
from .schema_builder import flatten_errors, validate_dynamic_form
from .schemas import get_schema
from .utils import stringify, trim_form_data

logger = structlog.get_logger("validation.orchestrator")

FORM_DATA_REQUIRED = "formData is required"
INVALID_VALIDATION_TYPE = "Invalid validationType. Use 'schema' or 'dynamic'."
INVALID_SCHEMA_TYPE = "Invalid schema type. Use 'signup' or switch to dynamic validation."
SUSPICIOUS_USERNAME = "Email username looks suspicious."


class ValidationMode(str, Enum):
    """How a request is validated."""

    LEGACY = "legacy"
    SCHEMA = "schema"
    DYNAMIC = "dynamic"

    @property
    def uses_fixed_schema(self) -> bool:
        return self in (ValidationMode.LEGACY, ValidationMode.SCHEMA)


@dataclass
class ValidationRequest:
    """A request payload resolved into one validation mode."""

    mode: ValidationMode
    form_data: Dict[str, Any]
    schema_type: Optional[str] = None
    field_requirements: Dict[str, FieldRequirement] = field(default_factory=dict)
    custom_rules: Dict[str, CustomRule] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> 'ValidationRequest':
        """
        Resolve a raw JSON payload.

        Raises:
            BadRequestError: When formData is missing, the validation type is
                unknown or a rule entry is malformed
        """
        payload = payload if isinstance(payload, Mapping) else {}

        form_data = payload.get('formData')
        if not isinstance(form_data, Mapping):
            raise BadRequestError(FORM_DATA_REQUIRED)
        form_data = trim_form_data(form_data)

        schema_type = payload.get('schemaType')
        validation_type = payload.get('validationType')

        if schema_type and not validation_type:
            return cls(ValidationMode.LEGACY, form_data, schema_type=schema_type)
        if validation_type == ValidationMode.SCHEMA.value:
            return cls(ValidationMode.SCHEMA, form_data, schema_type=schema_type)
        if validation_type == ValidationMode.DYNAMIC.value:
            return cls(
                ValidationMode.DYNAMIC,
                form_data,
                field_requirements=parse_field_requirements(payload.get('fieldRequirements')),
                custom_rules=parse_custom_rules(payload.get('customRules')),
            )
        raise BadRequestError(INVALID_VALIDATION_TYPE)


@dataclass
class ValidationResult:
    """Successful validation outcome."""

    mode: ValidationMode
    data: Dict[str, Any]
    field_analysis: Optional[Dict[str, str]] = None


class FormValidationService:
    """
    Runs the validation pipelines.

    Args:
        domain_checker: Cache-backed domain reputation checker
    """

    def __init__(self, domain_checker: DomainReputationChecker):
        self.domain_checker = domain_checker

    def validate(self, payload: Any) -> ValidationResult:
        """
        Validate one request payload.

        Returns:
            ValidationResult with the loaded data (and field analysis in
            dynamic mode)

        Raises:
            BadRequestError: Malformed request (400)
            FormValidationError: One or more field errors (422)
        """
        request = ValidationRequest.from_payload(payload)

        if request.mode.uses_fixed_schema:
            result = self._validate_schema(request)
        else:
            result = self._validate_dynamic(request)

        VALIDATIONS.labels(mode=request.mode.value, outcome='success').inc()
        logger.info(
            "Form validated",
            mode=request.mode.value,
            field_count=len(request.form_data),
        )
        return result

    def _failure(self, request: ValidationRequest,
                 errors: List[Dict[str, Any]]) -> FormValidationError:
        VALIDATIONS.labels(mode=request.mode.value, outcome='failure').inc()
        logger.info(
            "Form validation failed",
            mode=request.mode.value,
            field_count=len(request.form_data),
            error_count=len(errors),
        )
        return FormValidationError(errors)

    @staticmethod
    def _record(category: str, errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if errors:
            VALIDATION_ERRORS.labels(category=category).inc(len(errors))
        return errors

    def _validate_schema(self, request: ValidationRequest) -> ValidationResult:
        schema = get_schema(request.schema_type)
        if schema is None:
            raise BadRequestError(INVALID_SCHEMA_TYPE)

        try:
            data = schema.load(request.form_data)
        except MarshmallowValidationError as e:
            structural_errors = flatten_errors(e.messages, list(schema.fields))
            raise self._failure(request, self._record('structural', structural_errors)) from e

        errors: List[Dict[str, Any]] = []
        if request.schema_type == 'signup':
            errors.extend(self._check_password(
                'password', data['password'], data.get('firstname'), data.get('lastname')
            ))
            errors.extend(self._check_email('email', data['email']))

        if errors:
            raise self._failure(request, errors)
        return ValidationResult(request.mode, data)

    def _validate_dynamic(self, request: ValidationRequest) -> ValidationResult:
        form_data = request.form_data
        merged_rules = merge_validation_rules(request.field_requirements, request.custom_rules)

        errors = self._record(
            'required', validate_required_fields(form_data, request.field_requirements)
        )

        data: Dict[str, Any] = dict(form_data)
        if not errors:
            loaded, structural_errors = validate_dynamic_form(
                form_data, request.field_requirements, merged_rules
            )
            if loaded is not None:
                data = loaded
            errors = errors + self._record('structural', structural_errors)

        if request.custom_rules:
            errors.extend(self._record('custom', validate_with_custom_rules(form_data, merged_rules)))

        field_types = analyze_form_fields(form_data)
        errors.extend(self._check_password_fields(form_data, field_types))
        errors.extend(self._check_email_fields(form_data, field_types))

        if errors:
            raise self._failure(request, errors)

        return ValidationResult(
            request.mode,
            data,
            field_analysis={name: field_type.value for name, field_type in field_types.items()},
        )

    def _check_password(self, field_name: str, password: Any, first_name: Any,
                        last_name: Any) -> List[Dict[str, Any]]:
        message = validate_password(stringify(password), first_name, last_name)
        if message is None:
            return []
        return self._record('password', [{'path': [field_name], 'message': message}])

    @staticmethod
    def _find_name_field(field_types: Mapping[str, FieldType], field_type: FieldType,
                         fragment: str) -> Optional[str]:
        """Field tagged with ``field_type``, else the first name containing ``fragment``."""
        tagged = next((name for name, tag in field_types.items() if tag == field_type), None)
        if tagged is not None:
            return tagged
        return next((name for name in field_types if fragment in name.lower()), None)

    def _check_password_fields(self, form_data: Mapping[str, Any],
                               field_types: Mapping[str, FieldType]) -> List[Dict[str, Any]]:
        first_name_field = self._find_name_field(field_types, FieldType.FIRST_NAME, 'first')
        last_name_field = self._find_name_field(field_types, FieldType.LAST_NAME, 'last')
        if first_name_field is None or last_name_field is None:
            return []

        errors = []
        for field_name, field_type in field_types.items():
            if field_type != FieldType.PASSWORD or not form_data.get(field_name):
                continue
            errors.extend(self._check_password(
                field_name,
                form_data[field_name],
                form_data.get(first_name_field),
                form_data.get(last_name_field),
            ))
        return errors

    def _check_email(self, field_name: str, email: str) -> List[Dict[str, Any]]:
        errors = []
        username, domain = split_email(email)

        if username and is_suspicious_email_username(username):
            errors.extend(self._record(
                'email_username', [{'path': [field_name], 'message': SUSPICIOUS_USERNAME}]
            ))

        if domain:
            message = self.domain_checker.check(domain)
            if message:
                errors.extend(self._record('domain', [{'path': [field_name], 'message': message}]))
        return errors

    def _check_email_fields(self, form_data: Mapping[str, Any],
                            field_types: Mapping[str, FieldType]) -> List[Dict[str, Any]]:
        errors = []
        for field_name, field_type in field_types.items():
            value = form_data.get(field_name)
            if field_type == FieldType.EMAIL and value and isinstance(value, str):
                errors.extend(self._check_email(field_name, value))
        return errors


__all__ = [
    'ValidationMode',
    'ValidationRequest',
    'ValidationResult',
    'FormValidationService',
]
