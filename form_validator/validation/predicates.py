"""
Declarative predicate language for ``customValidator`` rules.

A predicate is a JSON object with exactly one operator key::

    {"includes": "@corp.com"}
    {"matches": "^[A-Z]{3}-\\d{4}$"}
    {"equals": "yes"}
    {"equalsField": "password"}
    {"notEqualsField": "username"}
    {"oneOf": ["basic", "pro", "enterprise"]}
    {"all": [<predicate>, ...]}
    {"any": [<predicate>, ...]}
    {"not": <predicate>}

Predicates are evaluated against ``{value, allData, fieldName}``. Nothing is
ever executed as code; anything that is not a well-formed predicate raises
``PredicateError``.
"""

import re
from typing import Any, Callable, Dict, Mapping

import structlog

logger = structlog.get_logger("validation.predicates")

MAX_PREDICATE_DEPTH = 16


class PredicateError(ValueError):
    """Raised for malformed predicates or predicates that cannot be evaluated."""


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join(_as_text(item) for item in value)
    return str(value)


def _require_string(operand: Any, operator: str) -> str:
    if not isinstance(operand, str):
        raise PredicateError(f"'{operator}' expects a string operand")
    return operand


def _require_list(operand: Any, operator: str) -> list:
    if not isinstance(operand, list):
        raise PredicateError(f"'{operator}' expects a list operand")
    return operand


class PredicateEvaluator:
    """
    Evaluates predicate trees for one field.

    Args:
        value: Value of the field under validation
        all_data: Complete (trimmed) form data
        field_name: Name of the field under validation
    """

    def __init__(self, value: Any, all_data: Mapping[str, Any], field_name: str):
        self.value = value
        self.all_data = all_data
        self.field_name = field_name
        self._operators: Dict[str, Callable[[Any, int], bool]] = {
            'includes': self._includes,
            'matches': self._matches,
            'equals': self._equals,
            'equalsField': self._equals_field,
            'notEqualsField': self._not_equals_field,
            'oneOf': self._one_of,
            'all': self._all,
            'any': self._any,
            'not': self._not,
        }

    def evaluate(self, predicate: Any, depth: int = 0) -> bool:
        if depth > MAX_PREDICATE_DEPTH:
            raise PredicateError("Predicate nesting is too deep")
        if not isinstance(predicate, Mapping) or len(predicate) != 1:
            raise PredicateError("Predicate must be an object with exactly one operator")

        operator, operand = next(iter(predicate.items()))
        handler = self._operators.get(operator)
        if handler is None:
            raise PredicateError(f"Unknown predicate operator '{operator}'")
        return handler(operand, depth)

    def _includes(self, operand: Any, depth: int) -> bool:
        return _require_string(operand, 'includes') in _as_text(self.value)

    def _matches(self, operand: Any, depth: int) -> bool:
        pattern = _require_string(operand, 'matches')
        try:
            return re.search(pattern, _as_text(self.value)) is not None
        except re.error as e:
            raise PredicateError(f"Invalid pattern in 'matches': {e}") from e

    def _equals(self, operand: Any, depth: int) -> bool:
        return self.value == operand

    def _equals_field(self, operand: Any, depth: int) -> bool:
        other_field = _require_string(operand, 'equalsField')
        return self.value == self.all_data.get(other_field)

    def _not_equals_field(self, operand: Any, depth: int) -> bool:
        other_field = _require_string(operand, 'notEqualsField')
        return self.value != self.all_data.get(other_field)

    def _one_of(self, operand: Any, depth: int) -> bool:
        return self.value in _require_list(operand, 'oneOf')

    def _all(self, operand: Any, depth: int) -> bool:
        return all(self.evaluate(item, depth + 1) for item in _require_list(operand, 'all'))

    def _any(self, operand: Any, depth: int) -> bool:
        return any(self.evaluate(item, depth + 1) for item in _require_list(operand, 'any'))

    def _not(self, operand: Any, depth: int) -> bool:
        return not self.evaluate(operand, depth + 1)


def evaluate_predicate(predicate: Any, value: Any, all_data: Mapping[str, Any],
                       field_name: str) -> bool:
    """
    Evaluate a ``customValidator`` predicate for one field.

    Returns:
        True when the value satisfies the predicate

    Raises:
        PredicateError: When the predicate is malformed
    """
    return PredicateEvaluator(value, all_data, field_name).evaluate(predicate)


__all__ = [
    'PredicateError',
    'PredicateEvaluator',
    'evaluate_predicate',
]
