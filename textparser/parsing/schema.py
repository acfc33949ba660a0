"""Data models for parsed messages.

Wire format uses camelCase keys so the API payload matches what the web UI
consumes; Python code uses the snake_case attribute names.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Monetary values are Decimal in Python and plain numbers on the wire. JSON
# numbers go through float, so amounts beyond 15 significant digits are
# rounded in the payload; model_dump() in python mode keeps them exact.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class XmlBlock(CamelModel):
    """A top-level XML island found in the message.

    Attributes:
        tag_name: Root element name as written in the source
        fields: Direct leaf children of the root mapped to their trimmed text
        raw_xml: Exact source substring the block was parsed from
        span: Start/end offsets of raw_xml in the source (not serialized)
    """

    tag_name: str
    fields: dict[str, str] = Field(default_factory=dict)
    raw_xml: str
    span: tuple[int, int] = Field(exclude=True, repr=False)


class TaxCalculation(CamelModel):
    """Inclusive-tax breakdown of a total amount."""

    total_including_tax: Money
    tax_amount: Money
    total_excluding_tax: Money
    tax_rate: Money


class ValidationOutcome(CamelModel):
    """Result of a validation step.

    Attributes:
        is_valid: Whether the checked input passed
        errors: Human-readable error messages, in the order they were found
    """

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class ParseResult(CamelModel):
    """Result of parsing one message.

    Attributes:
        xml_blocks: Accepted top-level XML blocks
        tagged_fields: Merged field set (block fields, loose fields, defaults)
        calculations: Tax breakdown, None when the message was rejected
        is_valid: Whether the message was accepted
        errors: Rejection reasons, empty on success
    """

    xml_blocks: list[XmlBlock] = Field(default_factory=list)
    tagged_fields: dict[str, str] = Field(default_factory=dict)
    calculations: TaxCalculation | None = None
    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def rejected(cls, errors: list[str]) -> "ParseResult":
        """Build a rejection result carrying no partial output."""
        return cls(is_valid=False, errors=list(errors))
