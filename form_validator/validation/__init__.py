"""
Form validation package.

Field type inference, rule merging, dynamic marshmallow schemas, custom rule
evaluation and cross-field checks, tied together by ``FormValidationService``.
"""

from .domain_reputation import (
    DomainReputationChecker,
    DomainReputationOracle,
    HttpDomainReputationOracle,
)
from .exceptions import BadRequestError, BaseValidationException, FormValidationError
from .field_types import (
    FieldType,
    analyze_form_fields,
    detect_field_type,
)
from .orchestrator import (
    FormValidationService,
    ValidationMode,
    ValidationRequest,
    ValidationResult,
)
from .rules import CustomRule, FieldRequirement, UnifiedRule, merge_validation_rules

__all__ = [
    'BadRequestError',
    'BaseValidationException',
    'CustomRule',
    'DomainReputationChecker',
    'DomainReputationOracle',
    'FieldRequirement',
    'FieldType',
    'FormValidationError',
    'FormValidationService',
    'HttpDomainReputationOracle',
    'UnifiedRule',
    'ValidationMode',
    'ValidationRequest',
    'ValidationResult',
    'analyze_form_fields',
    'detect_field_type',
    'merge_validation_rules',
]
