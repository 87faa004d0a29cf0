"""
Shared helpers for field naming, emptiness and value normalization.
"""

import math
import re
from typing import Any, Mapping

_WORD_START = re.compile(r'\b\w', re.ASCII)
_NAME_SEPARATORS = re.compile(r'[_-]')


def display_name(field_name: str) -> str:
    """
    Human-readable field label used in error messages.

    Underscores and hyphens become spaces and the first letter of every word
    is upper-cased; the rest of each word is left untouched.

    Example:
        >>> display_name('date_of-birth')
        'Date Of Birth'
        >>> display_name('firstName')
        'FirstName'
    """
    spaced = _NAME_SEPARATORS.sub(' ', field_name)
    return _WORD_START.sub(lambda match: match.group(0).upper(), spaced)


def stringify(value: Any) -> str:
    """Render a submitted value as text: lists comma-joined, booleans lower-case."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join(stringify(item) for item in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_empty(value: Any) -> bool:
    """None, a blank string and an empty list are all empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def format_number(value: float) -> str:
    """Format a rule bound without a trailing ``.0`` for whole numbers."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def trim_form_data(form_data: Mapping[str, Any]) -> dict:
    """Strip surrounding whitespace from string values and string list items."""
    trimmed = {}
    for field_name, value in form_data.items():
        if isinstance(value, str):
            trimmed[field_name] = value.strip()
        elif isinstance(value, list):
            trimmed[field_name] = [
                item.strip() if isinstance(item, str) else item for item in value
            ]
        else:
            trimmed[field_name] = value
    return trimmed


__all__ = [
    'display_name',
    'stringify',
    'is_empty',
    'format_number',
    'trim_form_data',
]
