"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
from typing import Optional
import re

_CURRENCY = re.compile(r"(?i)(inr|rs\.?|[$€£¥₹])")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "₹123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.replace('"', "").replace("'", "").strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = _CURRENCY.sub("", amount_str)
    amount_str = amount_str.replace(",", "").replace(" ", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_statement_amount(value: Optional[str]) -> Optional[Decimal]:
    """Parse a statement debit or credit cell.

    Statement amounts are magnitudes: the column says which side applies.
    Empty, unparseable and zero cells mean the side does not apply, so they
    come back as None rather than zero.

    Args:
        value: Raw cell text

    Returns:
        Non-negative Decimal with two decimal places, or None
    """
    if value is None or not value.strip():
        return None
    try:
        amount = parse_amount(value)
    except ValueError:
        return None
    if amount == 0:
        return None
    return abs(amount).quantize(Decimal("0.01"))


def parse_signed_amount(value: Optional[str]) -> Optional[Decimal]:
    """Parse a statement cell whose sign and zero carry meaning.

    Used for running balances and single signed amount columns, where
    "0.00" is a real value and a negative amount is money leaving the bank.

    Returns:
        Decimal with two decimal places, or None when empty or unparseable
    """
    if value is None or not value.strip():
        return None
    try:
        return parse_amount(value).quantize(Decimal("0.01"))
    except ValueError:
        return None
