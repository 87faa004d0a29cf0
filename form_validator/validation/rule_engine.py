"""
Custom Rule Evaluation Engine

Evaluates a merged ``UnifiedRule`` against one field value. Checks run in a
fixed order and stop at the first failure:

1. Skip gate: optional and empty fields pass
2. Conditional gate: ``dependsOn`` / ``dependsOnValue``
3. ``minLength`` / ``maxLength``
4. ``pattern`` (an invalid expression is logged and ignored)
5. ``contains`` / ``startsWith`` / ``endsWith`` (case-insensitive)
6. ``min`` / ``max`` (numeric)
7. ``minItems`` / ``maxItems``
8. ``customValidator`` predicate

A rule's ``message`` replaces every default message.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import structlog

from .field_types import FieldType, detect_field_type
from .predicates import PredicateError, evaluate_predicate
from .rules import FieldRequirement, UnifiedRule
from .utils import display_name, format_number, is_empty, stringify

logger = structlog.get_logger("validation.rule_engine")


@dataclass
class ValidationContext:
    """Everything a rule may look at while validating one field."""

    field_name: str
    field_value: Any
    all_form_data: Mapping[str, Any]
    field_type: FieldType = FieldType.GENERIC


def _as_items(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    if value is None:
        return []
    return [value]


def _as_number(text: str) -> Optional[float]:
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def validate_advanced_rule(context: ValidationContext, rule: UnifiedRule) -> Optional[str]:
    """
    Validate a single field against a merged rule.

    Args:
        context: Field name, value, full form data and field type
        rule: Merged rule for the field

    Returns:
        The first failure message, or None when the value passes
    """
    name = display_name(context.field_name)
    value = context.field_value

    def fail(default: str) -> str:
        return rule.message or default

    if not rule.is_required and is_empty(value):
        return None

    if rule.has_condition:
        if context.all_form_data.get(rule.depends_on) != rule.depends_on_value:
            return None

    text = stringify(value)

    if rule.min_length is not None and len(text) < rule.min_length:
        return fail(f"{name} must be at least {rule.min_length} characters")

    if rule.max_length is not None and len(text) > rule.max_length:
        return fail(f"{name} must not exceed {rule.max_length} characters")

    if rule.pattern:
        try:
            if re.search(rule.pattern, text) is None:
                return fail(f"{name} format is invalid")
        except re.error:
            logger.warning(
                "Invalid regex pattern in custom rule",
                field=context.field_name,
                pattern=rule.pattern,
            )

    lowered = text.lower()
    if rule.contains and rule.contains.lower() not in lowered:
        return fail(f'{name} must contain "{rule.contains}"')

    if rule.starts_with and not lowered.startswith(rule.starts_with.lower()):
        return fail(f'{name} must start with "{rule.starts_with}"')

    if rule.ends_with and not lowered.endswith(rule.ends_with.lower()):
        return fail(f'{name} must end with "{rule.ends_with}"')

    if rule.min is not None or rule.max is not None:
        number = _as_number(text)
        if number is None:
            return fail(f"{name} must be a valid number")
        if rule.min is not None and number < rule.min:
            return fail(f"{name} must be at least {format_number(rule.min)}")
        if rule.max is not None and number > rule.max:
            return fail(f"{name} must not exceed {format_number(rule.max)}")

    if rule.min_items is not None or rule.max_items is not None:
        items = _as_items(value)
        if rule.min_items is not None and len(items) < rule.min_items:
            return fail(f"{name} must have at least {rule.min_items} items")
        if rule.max_items is not None and len(items) > rule.max_items:
            return fail(f"{name} must not have more than {rule.max_items} items")

    if rule.custom_validator is not None:
        try:
            passed = evaluate_predicate(
                rule.custom_validator, value, context.all_form_data, context.field_name
            )
        except PredicateError as e:
            logger.warning(
                "Custom validator rejected",
                field=context.field_name,
                reason=str(e),
            )
            passed = False
        if not passed:
            return fail(f"{name} validation failed")

    return None


def validate_with_custom_rules(form_data: Mapping[str, Any],
                               rules: Mapping[str, UnifiedRule]) -> List[Dict[str, Any]]:
    """
    Evaluate every merged rule against the form data.

    Returns:
        At most one error per field, in rule order
    """
    errors = []
    for field_name, rule in rules.items():
        context = ValidationContext(
            field_name=field_name,
            field_value=form_data.get(field_name),
            all_form_data=form_data,
            field_type=detect_field_type(field_name),
        )
        message = validate_advanced_rule(context, rule)
        if message:
            errors.append({'path': [field_name], 'message': message})
    return errors


def validate_required_fields(form_data: Mapping[str, Any],
                             field_requirements: Optional[Mapping[str, FieldRequirement]]
                             ) -> List[Dict[str, Any]]:
    """Report every required field that is missing or empty."""
    errors = []
    for field_name, requirement in (field_requirements or {}).items():
        if requirement.required and is_empty(form_data.get(field_name)):
            errors.append({
                'path': [field_name],
                'message': f"{display_name(field_name)} is required",
            })
    return errors


__all__ = [
    'ValidationContext',
    'validate_advanced_rule',
    'validate_with_custom_rules',
    'validate_required_fields',
]
