"""
Heuristics flagging machine-generated or throwaway email usernames.
"""

import re
from typing import Optional, Tuple

_CLUSTERED_DIGITS = re.compile(r'\.\d\.\d')
_SEPARATOR_RUN = re.compile(r'[.\-_]{3,}')
_RANDOM_LOOKING = re.compile(r'[a-z0-9]{12,}')
_VOWEL_PAIR = re.compile(r'[aeiou]{2,}')
_ALTERNATING = re.compile(r'[a-z]+\d+[a-z]+\d+', re.IGNORECASE)

MAX_DOTS = 3
ALTERNATING_MIN_LENGTH = 13
SUSPICIOUS_CHARACTERS = ('+',)


def split_email(email: str) -> Tuple[str, Optional[str]]:
    """Split an address at the first ``@``; the domain is None when absent."""
    username, separator, remainder = email.partition('@')
    if not separator:
        return username, None
    return username, remainder.split('@', 1)[0] or None


def is_suspicious_email_username(username: str) -> bool:
    """
    Return True when an email local part looks generated or disposable.

    Flags any of: four or more dots, a ``.digit.digit`` cluster, a run of three
    separators, a long lower-case alphanumeric string without a vowel pair,
    an alternating letters/digits structure longer than twelve characters, or
    a plus sign.
    """
    if username.count('.') > MAX_DOTS:
        return True
    if _CLUSTERED_DIGITS.search(username) or _SEPARATOR_RUN.search(username):
        return True
    if _RANDOM_LOOKING.fullmatch(username) and not _VOWEL_PAIR.search(username):
        return True
    if _ALTERNATING.fullmatch(username) and len(username) >= ALTERNATING_MIN_LENGTH:
        return True
    return any(character in username.lower() for character in SUSPICIOUS_CHARACTERS)


__all__ = ['is_suspicious_email_username', 'split_email']
