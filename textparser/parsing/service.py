"""Text parsing service.

Coordinates the parsing pipeline for one message:

    scan blocks and loose fields -> structural check -> validate fields
    -> apply defaults -> compute tax

The block scan is shared by extraction and the structural check, so each
candidate block is parsed as XML once per message.

Every stage either hands its output to the next one or rejects the whole
message. Rejections never carry partial results, and unexpected faults are
reported as a single generic error instead of propagating to the caller.
This includes faults raised by custom field rule predicates.
"""

import logging

from textparser.markup.blocks import scan_blocks
from textparser.markup.fields import extract_loose_fields, merge_fields, strip_blocks
from textparser.parsing.schema import ParseResult, ValidationOutcome
from textparser.tax.calculator import TOTAL_FIELD, TaxCalculator
from textparser.validation.engine import ValidationEngine
from textparser.validation.rules import ValidationMessages

logger = logging.getLogger(__name__)


class TextParsingService:
    """Parses semi-structured text into blocks, fields and a tax breakdown.

    The service holds no per-request state; one instance can serve every
    request as long as its validation configuration is not being modified.
    """

    def __init__(
        self,
        engine: ValidationEngine | None = None,
        calculator: TaxCalculator | None = None,
    ) -> None:
        """Initialize parsing service.

        Args:
            engine: Validation engine, built-in rules when omitted
            calculator: Tax calculator
        """
        self.engine = engine or ValidationEngine()
        self.calculator = calculator or TaxCalculator()

    @property
    def messages(self) -> ValidationMessages:
        return self.engine.messages

    def validate_content(self, content: str) -> ValidationOutcome:
        """Check content structure without extracting anything.

        Args:
            content: Message text

        Returns:
            ValidationOutcome of the structural check
        """
        return self.engine.check_structure(content)

    def parse(self, content: str) -> ParseResult:
        """Parse a message.

        Args:
            content: Message text

        Returns:
            ParseResult with blocks, merged fields and calculations when the
            message is accepted, or only the errors when it is rejected
        """
        try:
            scan = scan_blocks(content)
            loose_fields = extract_loose_fields(strip_blocks(content, scan.blocks))

            outcome = self.engine.validate(content, scan, loose_fields)
            if not outcome.is_valid:
                return ParseResult.rejected(outcome.errors)

            logger.debug(
                f"Extracted {len(scan.blocks)} block(s) and {len(loose_fields)} loose field(s)"
            )
            fields = self.engine.apply_defaults(merge_fields(scan.blocks, loose_fields))
        except Exception:
            logger.exception("Unexpected error while extracting or validating fields")
            return ParseResult.rejected([self.messages.processing_error])

        try:
            raw_total = self.calculator.extract_total(fields)
            if raw_total is None:
                return ParseResult.rejected(
                    [self.messages.missing_required_field.format(field_name=TOTAL_FIELD)]
                )

            amount = self.calculator.parse_amount(raw_total)
            if amount is None:
                return ParseResult.rejected([self.messages.invalid_total_format])

            calculations = self.calculator.calculate(amount)
        except Exception:
            logger.exception("Unexpected error while calculating tax")
            return ParseResult.rejected([self.messages.processing_error])

        return ParseResult(
            xml_blocks=scan.blocks,
            tagged_fields=fields,
            calculations=calculations,
            is_valid=True,
        )
