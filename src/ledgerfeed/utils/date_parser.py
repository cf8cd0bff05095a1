"""Date parsing utilities."""

import re
from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser

# Numeric dates are read day-first whenever that is a real calendar date, so
# "03/04/2024" is 3 April. The same match is read month-first only when the
# day-first reading is invalid (e.g. "04/25/2024").
_NUMERIC = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{4})")
_ISO = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_DAY_MONTH_NAME = re.compile(r"(\d{1,2})[\s-]([A-Za-z]{3})[A-Za-z]*[\s-](\d{4})")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_statement_date(value: Optional[str]) -> Optional[date]:
    """Parse a bank statement date cell.

    Supports, in order of precedence:
    - "DD/MM/YYYY" and "DD-MM-YYYY"
    - "YYYY-MM-DD"
    - "MM/DD/YYYY" (only when the day-first reading is not a valid date)
    - "DD Mon YYYY" and "DD-Mon-YYYY"
    - anything else dateutil understands, read day-first

    Args:
        value: Raw cell text, possibly quoted

    Returns:
        Date object, or None when the value is empty or unparseable
    """
    if value is None:
        return None
    cleaned = value.replace('"', "").strip()
    if not cleaned:
        return None

    numeric = _NUMERIC.search(cleaned)
    if numeric:
        day, month, year = (int(part) for part in numeric.groups())
        parsed = _build_date(year, month, day)
        if parsed is not None:
            return parsed

    match = _ISO.search(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        parsed = _build_date(year, month, day)
        if parsed is not None:
            return parsed

    if numeric:
        month, day, year = (int(part) for part in numeric.groups())
        parsed = _build_date(year, month, day)
        if parsed is not None:
            return parsed

    match = _DAY_MONTH_NAME.search(cleaned)
    if match:
        month = _MONTHS.get(match.group(2).lower())
        if month is not None:
            parsed = _build_date(int(match.group(3)), month, int(match.group(1)))
            if parsed is not None:
                return parsed

    try:
        return date_parser.parse(cleaned, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def parse_date(date_str: str) -> date:
    """Parse a user-supplied date string into a date object.

    Accepts "today", "yesterday" and any absolute date dateutil understands.

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
