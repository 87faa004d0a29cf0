"""
Password complexity and personal-name exclusion check.
"""

import re
from typing import Optional

MIN_LENGTH = 10
MAX_LENGTH = 20

# Names this short are too common as substrings to reject on
NAME_EXCLUSION_MIN_LENGTH = 4

_UPPERCASE = re.compile(r'[A-Z]')
_LOWERCASE = re.compile(r'[a-z]')
_SPECIAL = re.compile(r'[^a-zA-Z0-9]')
_DIGIT = re.compile(r'[0-9]')


def _contains_name(password: str, name: Optional[str]) -> bool:
    if not isinstance(name, str):
        return False
    name = name.strip().lower()
    return len(name) >= NAME_EXCLUSION_MIN_LENGTH and name in password.lower()


def validate_password(password: str, first_name: Optional[str] = None,
                      last_name: Optional[str] = None) -> Optional[str]:
    """
    Check a password against the complexity policy.

    Only the first failing check is reported, in this order: length,
    uppercase, lowercase, special character, digit, name exclusion.

    Args:
        password: Candidate password
        first_name: Submitted first name, if any
        last_name: Submitted last name, if any

    Returns:
        Failure message, or None when the password is acceptable
    """
    password = password if isinstance(password, str) else ''

    if not MIN_LENGTH <= len(password) <= MAX_LENGTH:
        return f"Password must be {MIN_LENGTH}\u2013{MAX_LENGTH} characters."
    if not _UPPERCASE.search(password):
        return "Password must contain at least one uppercase."
    if not _LOWERCASE.search(password):
        return "Password must contain at least one lowercase."
    if not _SPECIAL.search(password):
        return "Password must contain at least one special character."
    if not _DIGIT.search(password):
        return "Password must contain at least one number."
    if _contains_name(password, first_name) or _contains_name(password, last_name):
        return "Password must not contain your first or last name."
    return None


__all__ = ['validate_password']
