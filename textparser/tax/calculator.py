"""Inclusive tax calculation.

Totals found in messages already include tax (GST at a fixed 15%). The tax
component of an inclusive total is ``total * 15 / 115``.

Example:
    >>> calculator = TaxCalculator()
    >>> amount = calculator.parse_amount("$35,000")
    >>> calculator.calculate(amount).tax_amount
    Decimal('4565.22')
"""

import logging
import re
import unicodedata
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, localcontext

from textparser.parsing.schema import TaxCalculation

logger = logging.getLogger(__name__)

TAX_RATE = Decimal("15")
TAX_DIVISOR = Decimal("115")  # 100 + TAX_RATE
TOTAL_FIELD = "total"

CENTS = Decimal("0.01")
AMOUNT_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
GROUPING_PATTERN = re.compile(r"[,\s]")


def round_money(value: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class TaxCalculator:
    """Locates the total of a field set and computes its tax breakdown."""

    def extract_total(self, fields: Mapping[str, str]) -> str | None:
        """Return the raw value of the ``total`` field (exact name match)."""
        value = fields.get(TOTAL_FIELD)
        if value is None or not value.strip():
            return None
        return value

    def parse_amount(self, raw: str) -> Decimal | None:
        """Parse a monetary amount such as ``$35,000`` or ``1 234.50``.

        Leading currency symbols and comma/space grouping are tolerated; the
        decimal separator must be a period.

        Args:
            raw: Amount as written in the message

        Returns:
            Parsed amount, or None if the text is not a number
        """
        value = raw.strip()
        if value and unicodedata.category(value[0]) == "Sc":
            value = value[1:]
        value = GROUPING_PATTERN.sub("", value)

        if not AMOUNT_PATTERN.fullmatch(value):
            logger.debug(f"Unparseable amount: {raw!r}")
            return None
        return Decimal(value)

    def calculate(self, total_including_tax: Decimal) -> TaxCalculation:
        """Split a tax-inclusive total into tax and tax-exclusive amounts.

        Both amounts are rounded independently from the exact value, so they
        may not add back up to the total to the cent.

        Args:
            total_including_tax: Total that already includes tax

        Returns:
            TaxCalculation with the unrounded input total
        """
        with localcontext() as ctx:
            ctx.prec = 60
            tax_amount = total_including_tax * TAX_RATE / TAX_DIVISOR
            total_excluding_tax = total_including_tax - tax_amount

            return TaxCalculation(
                total_including_tax=total_including_tax,
                tax_amount=round_money(tax_amount),
                total_excluding_tax=round_money(total_excluding_tax),
                tax_rate=TAX_RATE,
            )
