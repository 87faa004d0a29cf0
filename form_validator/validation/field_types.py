"""
Field Type Detection

Infers the semantic type of a form field from its name so that dynamic
validation can apply sensible defaults without the caller declaring anything.

Detection is a two stage lookup over the lower-cased, stripped field name:

1. An exact pass over ``FIELD_TYPE_PATTERNS`` (anchored alternations of the
   aliases seen in real forms, checked in ``FieldType`` declaration order).
2. A fuzzy substring pass for names such as ``billing_email`` or
   ``home_phone_2`` that no exact alias covers.

Anything else is ``FieldType.GENERIC``. Detection never raises.
"""

import re
from enum import Enum
from typing import Any, Dict, Mapping, Pattern, Tuple


class FieldType(str, Enum):
    """Semantic field types; values are the wire names used in requests."""

    EMAIL = "email"
    PASSWORD = "password"
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    FULL_NAME = "fullName"
    PHONE = "phone"
    AGE = "age"
    URL = "url"
    USERNAME = "username"
    ZIP_CODE = "zipCode"
    COUNTRY = "country"
    STATE = "state"
    CITY = "city"
    ADDRESS = "address"
    COMPANY = "company"
    TITLE = "title"
    DATE = "date"
    GENERIC = "generic"


FIELD_TYPE_PATTERNS: Tuple[Tuple[FieldType, Pattern[str]], ...] = tuple(
    (field_type, re.compile(pattern))
    for field_type, pattern in (
        (FieldType.EMAIL, r'^(email|e_mail|user_email|contact_email|email_address)$'),
        (FieldType.PASSWORD,
         r'^(password|pass|pwd|passwd|user_password|confirm_password|password_confirmation)$'),
        (FieldType.FIRST_NAME, r'^(first_?name|fname|given_name|forename)$'),
        (FieldType.LAST_NAME, r'^(last_?name|lname|family_name|surname)$'),
        (FieldType.FULL_NAME, r'^(full_?name|name|display_name|your_name)$'),
        (FieldType.PHONE,
         r'^(phone|telephone|tel|mobile|cell|phone_number|mobile_number|contact_number|cell_phone)$'),
        (FieldType.AGE, r'^(age|years_old|user_age)$'),
        (FieldType.URL, r'^(url|website|homepage|link|web_site|site)$'),
        (FieldType.USERNAME, r'^(username|user_name|login|handle|screen_name|nickname)$'),
        (FieldType.ZIP_CODE, r'^(zip|zipcode|zip_code|postal_code|postcode|postal)$'),
        (FieldType.COUNTRY, r'^(country|country_code|nation)$'),
        (FieldType.STATE, r'^(state|province|region)$'),
        (FieldType.CITY, r'^(city|town|locality)$'),
        (FieldType.ADDRESS, r'^(address|street|street_address|address_line_?[12]|addr)$'),
        (FieldType.COMPANY,
         r'^(company|organization|organisation|employer|company_name|business)$'),
        (FieldType.TITLE, r'^(title|job_title|position|role)$'),
        (FieldType.DATE, r'^(date|dob|birth_?date|date_of_birth|birthday)$'),
    )
)

FIELD_TYPE_DESCRIPTIONS: Dict[FieldType, str] = {
    FieldType.EMAIL: 'Valid email address format',
    FieldType.PASSWORD: 'Secure password with complexity requirements',
    FieldType.FIRST_NAME: 'First name with proper character validation',
    FieldType.LAST_NAME: 'Last name with proper character validation',
    FieldType.FULL_NAME: 'Full name with proper character validation',
    FieldType.PHONE: 'Valid phone number format',
    FieldType.AGE: 'Valid age (numeric value)',
    FieldType.URL: 'Valid URL format',
    FieldType.USERNAME: 'Username with alphanumeric and underscore characters',
    FieldType.ZIP_CODE: 'Valid postal/zip code format',
    FieldType.COUNTRY: 'Country name validation',
    FieldType.STATE: 'State/province name validation',
    FieldType.CITY: 'City name validation',
    FieldType.ADDRESS: 'Street address validation',
    FieldType.COMPANY: 'Company/organization name validation',
    FieldType.TITLE: 'Job title/position validation',
    FieldType.DATE: 'Valid date format',
    FieldType.GENERIC: 'Basic string validation',
}


def _fuzzy_match(name: str) -> FieldType:
    if 'email' in name:
        return FieldType.EMAIL
    if 'password' in name or 'pass' in name:
        return FieldType.PASSWORD
    if 'phone' in name or 'mobile' in name:
        return FieldType.PHONE
    if 'username' in name or 'user_name' in name:
        return FieldType.USERNAME
    if 'name' in name:
        if 'first' in name:
            return FieldType.FIRST_NAME
        if 'last' in name:
            return FieldType.LAST_NAME
        if 'user' not in name:
            return FieldType.FULL_NAME
    if 'age' in name:
        return FieldType.AGE
    if 'url' in name or 'website' in name:
        return FieldType.URL
    if 'zip' in name or 'postal' in name:
        return FieldType.ZIP_CODE
    if 'country' in name:
        return FieldType.COUNTRY
    if 'state' in name or 'province' in name:
        return FieldType.STATE
    if 'city' in name or 'town' in name:
        return FieldType.CITY
    if 'address' in name or 'street' in name:
        return FieldType.ADDRESS
    if 'company' in name or 'organization' in name:
        return FieldType.COMPANY
    if 'title' in name or 'position' in name:
        return FieldType.TITLE
    if 'date' in name or 'birth' in name:
        return FieldType.DATE
    return FieldType.GENERIC


def detect_field_type(field_name: Any) -> FieldType:
    """
    Infer the semantic type of a field from its name.

    Args:
        field_name: Raw field name as submitted; non-strings yield GENERIC

    Returns:
        The inferred FieldType, GENERIC when nothing matches

    Example:
        >>> detect_field_type('Email_Address')
        <FieldType.EMAIL: 'email'>
        >>> detect_field_type('billing_phone')
        <FieldType.PHONE: 'phone'>
    """
    if not isinstance(field_name, str):
        return FieldType.GENERIC

    normalized = field_name.strip().lower()
    if not normalized:
        return FieldType.GENERIC

    for field_type, pattern in FIELD_TYPE_PATTERNS:
        if pattern.match(normalized):
            return field_type

    return _fuzzy_match(normalized)


def analyze_form_fields(form_data: Mapping[str, Any]) -> Dict[str, FieldType]:
    """Map every submitted field name to its inferred type."""
    return {field_name: detect_field_type(field_name) for field_name in form_data}


def get_field_type_description(field_type: FieldType) -> str:
    """Human-readable description of the default checks for a field type."""
    return FIELD_TYPE_DESCRIPTIONS.get(field_type, FIELD_TYPE_DESCRIPTIONS[FieldType.GENERIC])


__all__ = [
    'FieldType',
    'FIELD_TYPE_PATTERNS',
    'detect_field_type',
    'analyze_form_fields',
    'get_field_type_description',
]
