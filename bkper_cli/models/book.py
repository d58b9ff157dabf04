"""
Book Model

A Book is the ledger that owns accounts and transactions. For the CLI
it matters mostly for its formatting rules: every amount or date shown
to a human (error messages, audit notes) goes through the book so it
reads the same way it does in the Bkper web app.

DESIGN DECISION: Formatting lives on the model rather than in a helper
module. The rules are book data (separator, precision, date pattern),
so callers never need to thread three separate settings around.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DecimalSeparator(str, Enum):
    """Decimal separator of numbers on a book."""
    DOT = "DOT"
    COMMA = "COMMA"


# Java-style pattern tokens used by Bkper books -> strftime directives
_DATE_TOKENS = {
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
}
_DATE_TOKEN_PATTERN = re.compile(r"yyyy|yy|MM|dd")


class Book(BaseModel):
    """
    A Bkper book, as returned by the ledger backend.

    Only the fields the CLI actually uses are modelled; anything else in
    the payload is ignored.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Book identifier"
    )
    name: Optional[str] = Field(
        default=None,
        description="Book name"
    )
    fraction_digits: int = Field(
        default=2,
        ge=0,
        le=8,
        alias="fractionDigits",
        description="Number of decimal places supported by the book"
    )
    decimal_separator: DecimalSeparator = Field(
        default=DecimalSeparator.DOT,
        alias="decimalSeparator",
        description="Separator used when formatting amounts"
    )
    date_pattern: str = Field(
        default="dd/MM/yyyy",
        alias="datePattern",
        description="Date pattern, e.g. dd/MM/yyyy or MM/dd/yyyy"
    )
    time_zone: Optional[str] = Field(
        default=None,
        alias="timeZone",
    )

    def round(self, value: Decimal) -> Decimal:
        """Round a value to the book's fraction digits (half up)."""
        exponent = Decimal(1).scaleb(-self.fraction_digits)
        # Enough precision for every integer digit plus the fraction digits
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, value.adjusted() + self.fraction_digits + 2)
            return value.quantize(exponent, rounding=ROUND_HALF_UP)

    def format_value(self, value: Decimal) -> str:
        """
        Format a value with the book's precision and decimal separator.

        No thousands grouping is applied, matching how amounts are typed
        into Bkper.
        """
        text = f"{self.round(value):f}"
        if self.decimal_separator == DecimalSeparator.COMMA:
            text = text.replace(".", ",")
        return text

    def format_date(self, value: date) -> str:
        """Format a date using the book's date pattern."""
        strftime_pattern = _DATE_TOKEN_PATTERN.sub(
            lambda match: _DATE_TOKENS[match.group(0)],
            self.date_pattern,
        )
        return value.strftime(strftime_pattern)
