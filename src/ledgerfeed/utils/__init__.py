"""Utility functions for ledgerfeed."""

from ledgerfeed.utils.date_parser import parse_date, parse_statement_date
from ledgerfeed.utils.amount_parser import parse_amount, parse_statement_amount
from ledgerfeed.utils.columns import ColumnMap, detect_columns

__all__ = [
    "parse_date",
    "parse_statement_date",
    "parse_amount",
    "parse_statement_amount",
    "ColumnMap",
    "detect_columns",
]
