"""Validation engine for parsed messages.

Checks run in a fixed order:

1. Empty content, which stops validation
2. Unclosed tags and malformed XML blocks, reported together
3. Required fields: every missing or invalid field is reported together

Field rules are only evaluated for structurally sound content.

Defaults for absent optional fields are applied only to accepted messages.
"""

import logging
from collections.abc import Mapping

from textparser.markup.blocks import BlockScan, scan_blocks
from textparser.markup.fields import merge_fields
from textparser.markup.scanner import find_unclosed_tags
from textparser.parsing.schema import ValidationOutcome
from textparser.validation.rules import ValidationConfiguration, ValidationMessages

logger = logging.getLogger(__name__)


class ValidationEngine:
    """Applies structural checks and field rules to a message.

    Attributes:
        config: Rule set and messages; owned by the caller and shared by
            every validation run
    """

    def __init__(self, config: ValidationConfiguration | None = None) -> None:
        """Initialize engine.

        Args:
            config: Validation configuration, built-in rules when omitted
        """
        self.config = config or ValidationConfiguration()

    @property
    def messages(self) -> ValidationMessages:
        return self.config.messages

    def check_structure(self, content: str, scan: BlockScan | None = None) -> ValidationOutcome:
        """Check that content is non-empty and its markup is well-formed.

        Unclosed tags are reported first, as one error, followed by one error
        per malformed top-level block.

        Args:
            content: Full message text
            scan: Block scan of the content, computed here when omitted

        Returns:
            ValidationOutcome listing every structural error found
        """
        if not content or not content.strip():
            return ValidationOutcome(is_valid=False, errors=[self.messages.empty_content])

        errors: list[str] = []

        unclosed = find_unclosed_tags(content)
        if unclosed:
            logger.info(f"Unclosed tags detected: {unclosed}")
            errors.append(f"{self.messages.unclosed_tag}: {', '.join(unclosed)}")

        if scan is None:
            scan = scan_blocks(content)
        if scan.malformed:
            logger.info(f"Malformed XML blocks detected: {scan.malformed}")
        errors.extend(f"{self.messages.malformed_xml}: {tag_name}" for tag_name in scan.malformed)

        return ValidationOutcome(is_valid=not errors, errors=errors)

    def check_fields(self, fields: Mapping[str, str]) -> ValidationOutcome:
        """Apply required-field rules to a merged field set.

        Field names are looked up case-insensitively.

        Args:
            fields: Merged field set

        Returns:
            ValidationOutcome listing every missing or invalid required field
        """
        lookup = _case_insensitive(fields)
        errors: list[str] = []

        for rule in self.config.required_rules():
            value = lookup.get(rule.key)
            if value is None or not value.strip():
                errors.append(
                    rule.error_message
                    or self.messages.missing_required_field.format(field_name=rule.field_name)
                )
            elif rule.validator is not None and not rule.validator(value):
                errors.append(
                    rule.error_message
                    or self.messages.invalid_field_value.format(field_name=rule.field_name)
                )

        if errors:
            logger.info(f"Field validation failed: {errors}")
        return ValidationOutcome(is_valid=not errors, errors=errors)

    def apply_defaults(self, fields: Mapping[str, str]) -> dict[str, str]:
        """Return a copy of the field set with defaults for absent fields."""
        result = dict(fields)
        present = {name.lower() for name in fields}
        for field_name, default in self.config.default_values().items():
            if field_name.lower() not in present:
                result[field_name] = default
                logger.debug(f"Applied default value for field: {field_name}")
        return result

    def validate(
        self,
        content: str,
        scan: BlockScan,
        loose_fields: Mapping[str, str],
    ) -> ValidationOutcome:
        """Run the structural and field checks for extracted data.

        Args:
            content: Full message text the data was extracted from
            scan: Block scan of the content
            loose_fields: Loose fields found outside the accepted blocks

        Returns:
            ValidationOutcome of the first failing check, or a valid outcome
        """
        structure = self.check_structure(content, scan)
        if not structure.is_valid:
            return structure
        return self.check_fields(merge_fields(scan.blocks, loose_fields))


def _case_insensitive(fields: Mapping[str, str]) -> dict[str, str]:
    # first spelling of a name wins, as in the merged field set
    lookup: dict[str, str] = {}
    for name, value in fields.items():
        lookup.setdefault(name.lower(), value)
    return lookup
