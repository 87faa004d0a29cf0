"""
Fixed validation schemas selectable with ``schemaType``.

Only ``signup`` is defined. Unknown keys are dropped from the loaded data.
"""

from typing import Dict, Optional, Type

from email_validator import EmailNotValidError, validate_email
from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate, validates

from .schema_builder import PERSON_NAME_PATTERN


def _person_name(label: str) -> fields.String:
    return fields.String(
        required=True,
        error_messages={'required': f"{label} is required", 'null': f"{label} is required"},
        validate=[
            validate.Length(min=2, error=f"{label} must be at least 2 characters"),
            validate.Length(max=50, error=f"{label} must not exceed 50 characters"),
            validate.Regexp(
                PERSON_NAME_PATTERN,
                error=f"{label} can only contain letters, spaces, hyphens, apostrophes, and periods",
            ),
        ],
    )


class SignupSchema(Schema):
    """Account signup form: first and last name, email address and password."""

    class Meta:
        unknown = EXCLUDE

    firstname = _person_name("First name")
    lastname = _person_name("Last name")
    email = fields.String(
        required=True,
        error_messages={'required': "Email is required", 'null': "Email is required"},
    )
    password = fields.String(
        required=True,
        error_messages={'required': "Password is required", 'null': "Password is required"},
        validate=validate.Length(min=1, error="Password is required"),
    )

    @pre_load
    def strip_whitespace(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {
            key: value.strip() if isinstance(value, str) else value
            for key, value in data.items()
        }

    @validates('email')
    def validate_email_address(self, value, **kwargs):
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError("Please enter a valid email address") from e


SCHEMAS: Dict[str, Type[Schema]] = {
    'signup': SignupSchema,
}


def get_schema(schema_type: Optional[str]) -> Optional[Schema]:
    """Instantiate the named fixed schema, or return None when it does not exist."""
    schema_class = SCHEMAS.get(schema_type) if isinstance(schema_type, str) else None
    return schema_class() if schema_class else None


__all__ = ['SignupSchema', 'SCHEMAS', 'get_schema']
