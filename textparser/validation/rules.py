"""Field validation rules and their configuration.

Rules are plain data held by a ValidationConfiguration owned by whoever builds
the ValidationEngine. The built-in rule set is seeded from DEFAULT_FIELD_RULES;
callers may add or remove rules at runtime.

Example:
    >>> config = ValidationConfiguration()
    >>> config.add_rule(FieldValidationRule("currency", default_value="NZD"))
    >>> config.add_rule(
    ...     FieldValidationRule(
    ...         "approval_required",
    ...         required=True,
    ...         validator=lambda value: value.lower() in {"true", "false"},
    ...     )
    ... )
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldValidationRule:
    """Constraint applied to one field of the merged field set.

    Attributes:
        field_name: Field the rule applies to
        required: Reject the message when the field is absent or blank
        default_value: Value inserted when the field is absent
        validator: Predicate a present required value must satisfy
        error_message: Replaces the generic missing/invalid message
    """

    field_name: str
    required: bool = False
    default_value: str | None = None
    validator: Callable[[str], bool] | None = None
    error_message: str | None = None

    @property
    def key(self) -> str:
        return self.field_name.lower()


class ValidationMessages(BaseModel):
    """Error message templates used across parsing and validation."""

    empty_content: str = "Content cannot be empty"
    unclosed_tag: str = "Unclosed tag detected"
    malformed_xml: str = "Malformed XML structure"
    missing_required_field: str = "Missing required field: {field_name}"
    invalid_field_value: str = "Invalid value for field: {field_name}"
    invalid_total_format: str = "Invalid total amount format"
    processing_error: str = "An unexpected error occurred while parsing the content"


DEFAULT_FIELD_RULES: tuple[FieldValidationRule, ...] = (
    FieldValidationRule(
        field_name="total",
        required=True,
        error_message="Missing required <total> tag",
    ),
    FieldValidationRule(
        field_name="cost_centre",
        default_value="UNKNOWN",
    ),
)


class ValidationConfiguration:
    """Ordered, mutable set of field rules plus the error messages.

    At most one rule exists per field name (compared case-insensitively).
    Adding a rule for a name that already has one replaces it and moves it to
    the end of the evaluation order.

    Mutation is not synchronised. Share one instance across concurrent
    requests only if it is no longer being modified.
    """

    def __init__(
        self,
        rules: Iterable[FieldValidationRule] | None = None,
        messages: ValidationMessages | None = None,
    ) -> None:
        """Initialize configuration.

        Args:
            rules: Initial rules, DEFAULT_FIELD_RULES when omitted
            messages: Error message templates
        """
        self.messages = messages or ValidationMessages()
        self._rules: list[FieldValidationRule] = []
        for rule in DEFAULT_FIELD_RULES if rules is None else rules:
            self.add_rule(rule)

    @property
    def rules(self) -> tuple[FieldValidationRule, ...]:
        return tuple(self._rules)

    def add_rule(self, rule: FieldValidationRule) -> None:
        """Add a rule, replacing any existing rule for the same field."""
        if self.get_rule(rule.field_name) is not None:
            self._remove(rule.key)
            logger.debug(f"Replacing validation rule for field: {rule.field_name}")
        self._rules.append(rule)
        logger.debug(f"Registered validation rule for field: {rule.field_name}")

    def remove_rule(self, field_name: str) -> bool:
        """Remove the rule for a field.

        Returns:
            True if a rule was removed
        """
        removed = self._remove(field_name.lower())
        if removed:
            logger.debug(f"Removed validation rule for field: {field_name}")
        return removed

    def get_rule(self, field_name: str) -> FieldValidationRule | None:
        key = field_name.lower()
        return next((rule for rule in self._rules if rule.key == key), None)

    def required_rules(self) -> list[FieldValidationRule]:
        return [rule for rule in self._rules if rule.required]

    def default_values(self) -> dict[str, str]:
        """Map field name to default value for every rule that has one."""
        return {
            rule.field_name: rule.default_value
            for rule in self._rules
            if rule.default_value is not None
        }

    def _remove(self, key: str) -> bool:
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.key != key]
        return len(self._rules) != before
