"""
Validation orchestrator unit tests.

Drives ``FormValidationService`` directly with request payloads, using the
in-memory cache and the stub domain oracle from ``tests/conftest.py``.
"""

import copy

import pytest

from form_validator.validation import (
    BadRequestError,
    DomainReputationChecker,
    FormValidationError,
    FormValidationService,
    ValidationMode,
    ValidationRequest,
)
from form_validator.validation.domain_reputation import SPAMMY_CONTENT
from form_validator.validation.orchestrator import SUSPICIOUS_USERNAME

VALID_SIGNUP = {
    'firstname': 'Jane',
    'lastname': 'Smith',
    'email': 'jane.smith@example.com',
    'password': 'Str0ng!Pass',
}


@pytest.fixture
def service(cache, domain_oracle):
    return FormValidationService(DomainReputationChecker(domain_oracle, cache))


def _errors(service, payload):
    with pytest.raises(FormValidationError) as exc_info:
        service.validate(payload)
    return exc_info.value.errors


class TestRequestResolution:
    """Mode selection and request-shape errors."""

    @pytest.mark.parametrize('payload', [None, [], {}, {'formData': 'x'}, {'formData': None}])
    def test_form_data_is_required(self, payload):
        with pytest.raises(BadRequestError) as exc_info:
            ValidationRequest.from_payload(payload)
        assert exc_info.value.message == "formData is required"

    def test_schema_type_alone_selects_legacy_mode(self):
        request = ValidationRequest.from_payload({'schemaType': 'signup', 'formData': {}})
        assert request.mode == ValidationMode.LEGACY
        assert request.mode.uses_fixed_schema

    def test_explicit_modes(self):
        assert ValidationRequest.from_payload(
            {'validationType': 'schema', 'schemaType': 'signup', 'formData': {}}
        ).mode == ValidationMode.SCHEMA
        assert ValidationRequest.from_payload(
            {'validationType': 'dynamic', 'formData': {}}
        ).mode == ValidationMode.DYNAMIC

    @pytest.mark.parametrize('payload', [
        {'formData': {}},
        {'validationType': 'fuzzy', 'formData': {}},
        {'validationType': 'fuzzy', 'schemaType': 'signup', 'formData': {}},
    ])
    def test_unknown_validation_type(self, payload):
        with pytest.raises(BadRequestError) as exc_info:
            ValidationRequest.from_payload(payload)
        assert exc_info.value.message == "Invalid validationType. Use 'schema' or 'dynamic'."

    def test_form_data_is_trimmed(self):
        request = ValidationRequest.from_payload({
            'validationType': 'dynamic',
            'formData': {'name': '  Jane  ', 'tags': [' a ', 'b '], 'count': 3},
        })
        assert request.form_data == {'name': 'Jane', 'tags': ['a', 'b'], 'count': 3}

    @pytest.mark.parametrize('schema_type', ['login', None, ''])
    def test_unknown_schema_type(self, service, schema_type):
        with pytest.raises(BadRequestError) as exc_info:
            service.validate({
                'validationType': 'schema', 'schemaType': schema_type, 'formData': VALID_SIGNUP,
            })
        assert exc_info.value.message == (
            "Invalid schema type. Use 'signup' or switch to dynamic validation."
        )


class TestSignupSchema:
    """Fixed signup schema with its follow-up checks."""

    def test_valid_signup(self, service, domain_oracle):
        result = service.validate({'schemaType': 'signup', 'formData': dict(VALID_SIGNUP, extra='x')})

        assert result.mode == ValidationMode.LEGACY
        assert result.data == VALID_SIGNUP
        assert result.field_analysis is None
        assert domain_oracle.calls == ['example.com']

    def test_structural_errors_follow_schema_order(self, service):
        errors = _errors(service, {'schemaType': 'signup', 'formData': {
            'firstname': 'J', 'email': 'broken', 'password': '',
        }})

        assert errors == [
            {'path': ['firstname'], 'message': "First name must be at least 2 characters"},
            {'path': ['lastname'], 'message': "Last name is required"},
            {'path': ['email'], 'message': "Please enter a valid email address"},
            {'path': ['password'], 'message': "Password is required"},
        ]

    def test_structural_failure_skips_follow_up_checks(self, service, domain_oracle):
        _errors(service, {'schemaType': 'signup', 'formData': dict(VALID_SIGNUP, firstname='')})
        assert domain_oracle.calls == []

    def test_password_containing_name(self, service):
        errors = _errors(service, {'schemaType': 'signup', 'formData': {
            'firstname': 'John', 'lastname': 'Doe',
            'email': 'john@example.com', 'password': 'MyJohnPassword1!',
        }})

        assert errors == [
            {'path': ['password'], 'message': "Password must not contain your first or last name."}
        ]

    def test_password_and_email_errors_are_collected(self, service, domain_oracle):
        domain_oracle.verdicts['spam.io'] = SPAMMY_CONTENT

        errors = _errors(service, {'validationType': 'schema', 'schemaType': 'signup', 'formData': dict(
            VALID_SIGNUP, email='jane+promo@spam.io', password='weakpassword',
        )})

        assert errors == [
            {'path': ['password'], 'message': "Password must contain at least one uppercase."},
            {'path': ['email'], 'message': SUSPICIOUS_USERNAME},
            {'path': ['email'], 'message': SPAMMY_CONTENT},
        ]


class TestDynamicValidation:
    """Inferred and caller-supplied rules."""

    def test_field_analysis(self, service):
        result = service.validate({'validationType': 'dynamic', 'formData': {
            'email': 'user@example.com', 'first_name': 'John', 'phone': '1234567890',
        }})

        assert result.field_analysis == {
            'email': 'email', 'first_name': 'firstName', 'phone': 'phone',
        }
        assert result.data['first_name'] == 'John'

    def test_required_failures_skip_structural_pass(self, service):
        errors = _errors(service, {
            'validationType': 'dynamic',
            'formData': {'email': '', 'phone': 'abc'},
            'fieldRequirements': {'email': {'required': True}},
        })

        assert errors == [{'path': ['email'], 'message': "Email is required"}]

    def test_custom_rules_run_after_structural_pass(self, service):
        errors = _errors(service, {
            'validationType': 'dynamic',
            'formData': {'username': 'ab'},
            'customRules': {'username': {'minLength': 3, 'message': 'Username too short'}},
        })

        assert errors[-1] == {'path': ['username'], 'message': 'Username too short'}
        assert {'path': ['username'], 'message': "Username must be at least 3 characters"} in errors

    def test_password_checked_against_name_siblings(self, service):
        errors = _errors(service, {'validationType': 'dynamic', 'formData': {
            'first_name': 'Maria', 'last_name': 'Lopez', 'password': 'MariaRocks!2024',
        }})

        assert errors == [
            {'path': ['password'], 'message': "Password must not contain your first or last name."}
        ]

    def test_password_without_name_siblings_is_not_checked(self, service):
        result = service.validate({'validationType': 'dynamic', 'formData': {'password': 'weak'}})
        assert result.data == {'password': 'weak'}

    def test_every_email_field_is_checked(self, service, domain_oracle):
        domain_oracle.verdicts['junk.io'] = SPAMMY_CONTENT

        errors = _errors(service, {'validationType': 'dynamic', 'formData': {
            'email': 'jane@example.com', 'backup_email': 'jane@junk.io',
        }})

        assert errors == [{'path': ['backup_email'], 'message': SPAMMY_CONTENT}]
        assert domain_oracle.calls == ['example.com', 'junk.io']

    def test_domain_verdicts_are_cached_across_requests(self, service, domain_oracle):
        payload = {'validationType': 'dynamic', 'formData': {'email': 'jane@example.com'}}

        service.validate(payload)
        service.validate(payload)

        assert domain_oracle.calls == ['example.com']

    def test_malformed_rules_are_bad_requests(self, service):
        with pytest.raises(BadRequestError):
            service.validate({
                'validationType': 'dynamic',
                'formData': {'age': '30'},
                'customRules': {'age': {'min': 'eighteen'}},
            })

    def test_conditional_rule(self, service):
        payload = {
            'validationType': 'dynamic',
            'formData': {'country': 'US', 'state': 'Texas', 'zip': '123'},
            'customRules': {'zip': {'dependsOn': 'country', 'dependsOnValue': 'US', 'pattern': '^\\d{5}$'}},
        }

        errors = _errors(service, payload)
        assert {'path': ['zip'], 'message': "Zip format is invalid"} in errors

        payload['formData']['country'] = 'Canada'
        payload['formData']['zip'] = 'K1A0B1'
        payload['customRules']['zip'].pop('pattern')
        assert service.validate(payload).data['zip'] == 'K1A0B1'

    def test_name_siblings_prefer_type_tags_over_substrings(self, service):
        errors = _errors(service, {'validationType': 'dynamic', 'formData': {
            'last_login': '2024-01-01',
            'first_name': 'John',
            'last_name': 'Smithers',
            'password': 'Smithers!23a',
        }})

        assert errors == [
            {'path': ['password'], 'message': "Password must not contain your first or last name."}
        ]

    def test_name_siblings_fall_back_to_substring_match(self, service):
        errors = _errors(service, {'validationType': 'dynamic', 'formData': {
            'first': 'Maria',
            'last': 'Lopez',
            'password': 'LopezRocks!2024',
        }})

        assert errors == [
            {'path': ['password'], 'message': "Password must not contain your first or last name."}
        ]


class TestRevalidation:
    """Validating an accepted submission again gives the same result."""

    @pytest.mark.parametrize('payload', [
        {
            'validationType': 'dynamic',
            'formData': {'email': ' jane@example.com ', 'first_name': 'Jane', 'age': 30},
            'customRules': {'first_name': {'minLength': 2}},
        },
        {'schemaType': 'signup', 'formData': dict(VALID_SIGNUP, firstname='  Jane ')},
    ])
    def test_same_payload_same_result(self, service, payload):
        original = copy.deepcopy(payload)

        first = service.validate(payload)
        second = service.validate(payload)

        assert first.data == second.data
        assert first.field_analysis == second.field_analysis
        assert first.mode == second.mode
        assert payload == original

    def test_validated_data_validates_again(self, service):
        first = service.validate({'schemaType': 'signup', 'formData': VALID_SIGNUP})
        second = service.validate({'schemaType': 'signup', 'formData': first.data})

        assert second.data == first.data
