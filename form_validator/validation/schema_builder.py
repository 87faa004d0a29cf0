"""
Dynamic Marshmallow Schema Builder

Builds a marshmallow schema per request from the submitted field names. Each
field gets the default structural constraints of its (declared or inferred)
``FieldType``; caller-supplied ``minLength``, ``maxLength`` and ``pattern``
rules are composed on top.

Key Features:
- ``FormValue`` field accepting strings and multi-value string lists
- Per-type default validators with human-readable messages
- Optional fields skip every check when empty
- Flattening of marshmallow error dictionaries into ``{path, message}`` entries

Dependencies:
- marshmallow 3.20+ for schema construction and field validation
- email-validator 2.0+ for email syntax checks (no DNS lookups)
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Type

import structlog
from email_validator import EmailNotValidError, validate_email
from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate

from .field_types import FieldType, detect_field_type
from .rules import FieldRequirement, UnifiedRule
from .utils import display_name, is_empty, stringify

logger = structlog.get_logger("validation.schema_builder")

# Latin letters including the Latin-1 Supplement and Latin Extended blocks
PERSON_NAME_PATTERN = r"^[a-zA-Z\u00C0-\u00FF\u0100-\u017F\u0180-\u024F\u1E00-\u1EFF\s'.-]+$"
PLACE_NAME_PATTERN = r"^[a-zA-Z\s'.-]+$"
PHONE_PATTERN = r'^[+]?[1-9]\d{0,15}$'
USERNAME_PATTERN = r'^[a-zA-Z0-9_]+$'
ZIP_CODE_PATTERN = r'^[a-zA-Z0-9\s-]+$'
DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'

AGE_MIN = 13
AGE_MAX = 120

Validator = Callable[[Any], Any]


def _literal(message: str) -> str:
    """Escape braces so marshmallow's message formatting leaves the text alone."""
    return message.replace('{', '{{').replace('}', '}}')


class SearchRegexp(validate.Regexp):
    """Regexp validator that matches anywhere in the value, not only at the start."""

    def __call__(self, value: str) -> str:
        if self.regex.search(value) is None:
            raise ValidationError(self._format_error(value))
        return value


class FormValue(fields.Field):
    """
    Trimmed text value, or a list of trimmed text values for multi-value fields.

    Numbers and booleans are rendered as text. Validators run on every list
    item. When ``skip_empty`` is set, empty values bypass all validators.
    """

    default_error_messages = {
        'invalid': 'Not a valid text value.',
    }

    def __init__(self, *args, skip_empty: bool = False, **kwargs):
        kwargs.setdefault('allow_none', True)
        super().__init__(*args, **kwargs)
        self.skip_empty = skip_empty

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, list):
            return [self._deserialize_item(item) for item in value]
        return self._deserialize_item(value)

    def _deserialize_item(self, value: Any) -> str:
        if isinstance(value, (dict, list)):
            raise self.make_error('invalid')
        return stringify(value).strip()

    def _validate(self, value):
        if self.skip_empty and is_empty(value):
            return
        if isinstance(value, list):
            for item in value:
                super()._validate(item)
        else:
            super()._validate(value)


def _length(name: str, minimum: Optional[int] = None, maximum: Optional[int] = None,
            unit: str = 'characters') -> List[Validator]:
    validators = []
    if minimum is not None:
        validators.append(validate.Length(
            min=minimum, error=_literal(f"{name} must be at least {minimum} {unit}")
        ))
    if maximum is not None:
        validators.append(validate.Length(
            max=maximum, error=_literal(f"{name} must not exceed {maximum} {unit}")
        ))
    return validators


def _letters_only(name: str, pattern: str) -> Validator:
    return validate.Regexp(
        pattern,
        error=_literal(
            f"{name} can only contain letters, spaces, hyphens, apostrophes, and periods"
        ),
    )


def _email(name: str) -> Validator:
    message = f"Please enter a valid email address for {name}"

    def validator(value: str) -> str:
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(message) from e
        return value

    return validator


def _age(name: str) -> Validator:
    def validator(value: str) -> str:
        if not value.isdigit() or not value.isascii():
            raise ValidationError(f"{name} must be a valid number")
        significant = value.lstrip('0')
        if len(significant) > len(str(AGE_MAX)) or not AGE_MIN <= int(significant or '0') <= AGE_MAX:
            raise ValidationError(f"{name} must be between {AGE_MIN} and {AGE_MAX}")
        return value

    return validator


def default_validators(field_type: FieldType, field_name: str) -> List[Validator]:
    """
    Default structural validators for a field type.

    Args:
        field_type: Declared or inferred field type
        field_name: Submitted field name, used for messages

    Returns:
        Ordered list of marshmallow validators
    """
    name = display_name(field_name)

    if field_type == FieldType.EMAIL:
        return [_email(name)]
    if field_type == FieldType.PASSWORD:
        return [validate.Length(min=1, error=_literal(f"{name} is required"))]
    if field_type in (FieldType.FIRST_NAME, FieldType.LAST_NAME):
        return _length(name, 2, 50) + [_letters_only(name, PERSON_NAME_PATTERN)]
    if field_type == FieldType.FULL_NAME:
        return _length(name, 2, 100) + [_letters_only(name, PERSON_NAME_PATTERN)]
    if field_type == FieldType.PHONE:
        return _length(name, 10, 15, unit='digits') + [
            validate.Regexp(PHONE_PATTERN, error=_literal(f"{name} must be a valid phone number"))
        ]
    if field_type == FieldType.AGE:
        return [_age(name)]
    if field_type == FieldType.URL:
        return [validate.URL(error=_literal(f"{name} must be a valid URL"))]
    if field_type == FieldType.USERNAME:
        return _length(name, 3, 30) + [
            validate.Regexp(
                USERNAME_PATTERN,
                error=_literal(f"{name} can only contain letters, numbers, and underscores"),
            )
        ]
    if field_type == FieldType.ZIP_CODE:
        return _length(name, 3, 10) + [
            validate.Regexp(ZIP_CODE_PATTERN, error=_literal(f"{name} must be a valid postal code"))
        ]
    if field_type in (FieldType.COUNTRY, FieldType.STATE, FieldType.CITY):
        return _length(name, 2, 50) + [_letters_only(name, PLACE_NAME_PATTERN)]
    if field_type == FieldType.ADDRESS:
        return _length(name, 5, 200)
    if field_type in (FieldType.COMPANY, FieldType.TITLE):
        return _length(name, 2, 100)
    if field_type == FieldType.DATE:
        return [
            validate.Regexp(DATE_PATTERN, error=_literal(f"{name} must be in YYYY-MM-DD format"))
        ]
    return _length(name, maximum=500)


def apply_custom_rules(validators: List[Validator], rule: UnifiedRule, field_name: str,
                       field_type: FieldType = FieldType.GENERIC) -> List[Validator]:
    """
    Compose ``minLength``, ``maxLength`` and ``pattern`` onto structural validators.

    Age fields are validated as a numeric range, so text rules are not
    composed onto them. An invalid ``pattern`` is logged and skipped.

    Returns:
        A new validator list; the input list is not modified
    """
    if field_type == FieldType.AGE:
        logger.debug("Custom text rules skipped for numeric field", field=field_name)
        return list(validators)

    name = display_name(field_name)
    composed = list(validators)

    if rule.min_length is not None:
        composed.append(validate.Length(
            min=rule.min_length,
            error=_literal(rule.message or f"{name} must be at least {rule.min_length} characters"),
        ))

    if rule.max_length is not None:
        composed.append(validate.Length(
            max=rule.max_length,
            error=_literal(rule.message or f"{name} must not exceed {rule.max_length} characters"),
        ))

    if rule.pattern:
        try:
            re.compile(rule.pattern)
        except re.error:
            logger.warning("Invalid regex pattern in custom rule", field=field_name, pattern=rule.pattern)
        else:
            composed.append(SearchRegexp(
                rule.pattern,
                error=_literal(rule.message or f"{name} format is invalid"),
            ))

    return composed


def build_field_schema(field_type: FieldType, field_name: str,
                       rule: Optional[UnifiedRule] = None, required: bool = False) -> FormValue:
    """
    Build the marshmallow field for one submitted value.

    Args:
        field_type: Declared or inferred field type
        field_name: Submitted field name
        rule: Optional merged custom rule to compose
        required: Whether the field must be validated even when empty

    Returns:
        Configured FormValue field
    """
    validators = default_validators(field_type, field_name)
    if rule is not None:
        validators = apply_custom_rules(validators, rule, field_name, field_type)
    return FormValue(validate=validators, skip_empty=not required)


class DynamicFormSchema(Schema):
    """Base class for per-request form schemas."""

    class Meta:
        unknown = EXCLUDE


def build_dynamic_schema(form_data: Mapping[str, Any],
                         field_requirements: Optional[Mapping[str, FieldRequirement]] = None,
                         merged_rules: Optional[Mapping[str, UnifiedRule]] = None
                         ) -> Type[Schema]:
    """
    Build a marshmallow schema class covering every submitted field.

    The declared requirement type wins over the inferred type. A field is
    validated when empty only if its requirement or its merged rule marks it
    required.

    Returns:
        Schema class generated with ``Schema.from_dict``
    """
    field_requirements = field_requirements or {}
    merged_rules = merged_rules or {}
    schema_fields: Dict[str, fields.Field] = {}

    for field_name in form_data:
        requirement = field_requirements.get(field_name)
        rule = merged_rules.get(field_name)
        field_type = requirement.type if requirement and requirement.type else None
        field_type = field_type or detect_field_type(field_name)
        required = bool(requirement and requirement.required) or bool(rule and rule.is_required)
        schema_fields[field_name] = build_field_schema(field_type, field_name, rule, required)

    return DynamicFormSchema.from_dict(schema_fields, name="DynamicFormSchema")


def flatten_errors(messages: Mapping[str, Any], field_order: Optional[List[str]] = None
                   ) -> List[Dict[str, Any]]:
    """
    Convert marshmallow's error dictionary into ordered ``{path, message}`` entries.

    Args:
        messages: ``ValidationError.messages`` from a schema load
        field_order: Field names in submission order; defaults to error order
    """
    order = list(field_order) if field_order is not None else list(messages)
    order += [name for name in messages if name not in order]

    errors = []
    for field_name in order:
        field_messages = messages.get(field_name)
        if field_messages is None:
            continue
        if isinstance(field_messages, str):
            field_messages = [field_messages]
        elif isinstance(field_messages, dict):
            field_messages = [
                message
                for nested in field_messages.values()
                for message in (nested if isinstance(nested, list) else [nested])
            ]
        for message in field_messages:
            errors.append({'path': [field_name], 'message': message})
    return errors


def validate_dynamic_form(form_data: Mapping[str, Any],
                          field_requirements: Optional[Mapping[str, FieldRequirement]] = None,
                          merged_rules: Optional[Mapping[str, UnifiedRule]] = None):
    """
    Run the structural pass over the whole submission.

    Returns:
        Tuple of (loaded data or None, list of errors)
    """
    schema = build_dynamic_schema(form_data, field_requirements, merged_rules)()
    try:
        return schema.load(dict(form_data)), []
    except ValidationError as e:
        return None, flatten_errors(e.messages, list(form_data))


__all__ = [
    'FormValue',
    'SearchRegexp',
    'default_validators',
    'apply_custom_rules',
    'build_field_schema',
    'build_dynamic_schema',
    'flatten_errors',
    'validate_dynamic_form',
]
