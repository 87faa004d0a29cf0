"""
Validation Rule Models and Merging

Pydantic v2 models describing caller-supplied rules (``fieldRequirements`` and
``customRules`` in the request body) and the merge that folds both sources
into a single ``UnifiedRule`` per field.

Wire names are camelCase; models also accept the snake_case attribute names
and silently ignore unknown keys.
"""

from typing import Any, Dict, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from .exceptions import BadRequestError
from .field_types import FieldType

logger = structlog.get_logger("validation.rules")

Number = Union[int, float]


class CustomRule(BaseModel):
    """
    Caller-supplied validation rule for one field.

    ``custom_validator`` holds a declarative predicate tree evaluated by
    ``form_validator.validation.predicates``; it is never executed as code.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    min_length: Optional[int] = Field(default=None, alias='minLength', ge=0)
    max_length: Optional[int] = Field(default=None, alias='maxLength', ge=0)
    pattern: Optional[str] = None
    contains: Optional[str] = None
    starts_with: Optional[str] = Field(default=None, alias='startsWith')
    ends_with: Optional[str] = Field(default=None, alias='endsWith')
    min: Optional[Number] = None
    max: Optional[Number] = None
    min_items: Optional[int] = Field(default=None, alias='minItems', ge=0)
    max_items: Optional[int] = Field(default=None, alias='maxItems', ge=0)
    depends_on: Optional[str] = Field(default=None, alias='dependsOn')
    depends_on_value: Any = Field(default=None, alias='dependsOnValue')
    required: Optional[bool] = None
    message: Optional[str] = None
    custom_validator: Any = Field(default=None, alias='customValidator')


class UnifiedRule(CustomRule):
    """
    Merged rule for one field.

    ``model_fields_set`` records which keys were explicitly supplied by either
    source, which the conditional gate relies on: ``dependsOnValue: null`` is
    a real condition, an absent ``dependsOnValue`` is not.
    """

    @property
    def has_condition(self) -> bool:
        return bool(self.depends_on) and 'depends_on_value' in self.model_fields_set

    @property
    def is_required(self) -> bool:
        return self.required is True


class FieldRequirement(BaseModel):
    """Per-field requirement: required flag, declared type and embedded rule."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    required: bool = False
    type: Optional[FieldType] = None
    custom_rule: Optional[CustomRule] = Field(default=None, alias='customRule')


def _explicit_keys(rule: CustomRule) -> Dict[str, Any]:
    return rule.model_dump(exclude_unset=True)


def merge_validation_rules(
    field_requirements: Optional[Mapping[str, FieldRequirement]] = None,
    custom_rules: Optional[Mapping[str, CustomRule]] = None,
) -> Dict[str, UnifiedRule]:
    """
    Fold field requirements and custom rules into one rule per field.

    Each requirement contributes ``{required}`` overlaid with its embedded
    ``customRule``. Each custom rule is then shallow-merged on top, so keys it
    supplies win and keys it omits are preserved. Fields present only in
    ``custom_rules`` are added.

    Args:
        field_requirements: Parsed ``fieldRequirements`` mapping
        custom_rules: Parsed ``customRules`` mapping

    Returns:
        Mapping of field name to UnifiedRule, empty when both inputs are absent
    """
    merged: Dict[str, Dict[str, Any]] = {}

    for field_name, requirement in (field_requirements or {}).items():
        base: Dict[str, Any] = {'required': requirement.required}
        if requirement.custom_rule is not None:
            base.update(_explicit_keys(requirement.custom_rule))
        merged[field_name] = base

    for field_name, rule in (custom_rules or {}).items():
        overlay = merged.get(field_name, {})
        overlay.update(_explicit_keys(rule))
        merged[field_name] = overlay

    return {
        field_name: UnifiedRule.model_validate(values)
        for field_name, values in merged.items()
    }


def _parse_mapping(raw: Any, model: type, label: str) -> Dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise BadRequestError(f"{label} must be an object")

    parsed = {}
    for field_name, value in raw.items():
        try:
            parsed[field_name] = model.model_validate(value)
        except PydanticValidationError as e:
            logger.info(
                "Malformed rule payload",
                source=label,
                field=field_name,
                error_count=e.error_count(),
            )
            raise BadRequestError(f"Invalid {label} entry for '{field_name}'") from e
    return parsed


def parse_field_requirements(raw: Any) -> Dict[str, FieldRequirement]:
    """
    Parse the ``fieldRequirements`` request member.

    Raises:
        BadRequestError: When the member or one of its entries is malformed
    """
    return _parse_mapping(raw, FieldRequirement, 'fieldRequirements')


def parse_custom_rules(raw: Any) -> Dict[str, CustomRule]:
    """
    Parse the ``customRules`` request member.

    Raises:
        BadRequestError: When the member or one of its entries is malformed
    """
    return _parse_mapping(raw, CustomRule, 'customRules')


__all__ = [
    'CustomRule',
    'UnifiedRule',
    'FieldRequirement',
    'merge_validation_rules',
    'parse_field_requirements',
    'parse_custom_rules',
]
