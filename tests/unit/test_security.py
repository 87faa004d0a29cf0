"""
Bearer token parsing and security exception rendering.
"""

import pytest

from form_validator.security.decorators import extract_bearer_token
from form_validator.security.exceptions import AuthenticationError


@pytest.mark.parametrize('header, expected', [
    ('Bearer secret', 'secret'),
    ('Token secret', 'secret'),
    ('Bearer secret trailing', 'secret'),
    ('Bearer', None),
    ('Bearer ', None),
    ('', None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


def test_authentication_errors():
    missing = AuthenticationError.missing_token()
    invalid = AuthenticationError.invalid_token()

    assert (missing.http_status_code, missing.error_code) == (401, 'AUTH_TOKEN_MISSING')
    assert (invalid.http_status_code, invalid.error_code) == (403, 'AUTH_TOKEN_INVALID')
    assert invalid.to_dict() == {'success': False, 'error': "Invalid authentication token."}
    assert missing.get_headers() == {}
