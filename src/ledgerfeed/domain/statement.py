"""Bank statement parsing.

Turns a delimited bank export into normalized RawTransaction records. The
parser is a pure function: it never touches the database and never raises
for a single malformed row, it degrades the row's fields to absent instead.
"""

import csv
import hashlib
import io
import logging
from collections import Counter
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledgerfeed.domain.entities import RawTransaction
from ledgerfeed.domain.errors import UnsupportedFormatError, unsupported_format
from ledgerfeed.utils.amount_parser import parse_signed_amount, parse_statement_amount
from ledgerfeed.utils.columns import ColumnMap, detect_columns
from ledgerfeed.utils.date_parser import parse_statement_date

log = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("csv",)


def _cell(values: Sequence[str], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(values):
        return None
    value = values[index].replace('"', "").strip()
    return value or None


def _split_sides(
    debit: Optional[Decimal], credit: Optional[Decimal]
) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Collapse a row that fills both amount columns into one side."""
    if debit is None or credit is None:
        return debit, credit
    net = credit - debit
    if net > 0:
        return None, net
    if net < 0:
        return -net, None
    return None, None


def _signed_sides(amount: Optional[Decimal]) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Split a signed amount: negative is money out, positive money in."""
    if amount is None or amount == 0:
        return None, None
    if amount < 0:
        return -amount, None
    return None, amount


def _parse_row(values: Sequence[str], columns: ColumnMap, row_number: int) -> Optional[RawTransaction]:
    txn_date = parse_statement_date(_cell(values, columns.date))
    description = _cell(values, columns.description) or ""

    if txn_date is None and not description:
        return None

    if columns.amount is not None:
        debit, credit = _signed_sides(parse_signed_amount(_cell(values, columns.amount)))
    else:
        debit, credit = _split_sides(
            parse_statement_amount(_cell(values, columns.debit)),
            parse_statement_amount(_cell(values, columns.credit)),
        )
    if debit is None and credit is None:
        return None

    return RawTransaction(
        date=txn_date,
        description=description,
        debit_amount=debit,
        credit_amount=credit,
        running_balance=parse_signed_amount(_cell(values, columns.balance)),
        reference_number=_cell(values, columns.reference),
        row_number=row_number,
    )


def parse_csv(content: str) -> list[RawTransaction]:
    """Parse comma-delimited statement text.

    The first non-blank row is the header. Rows without a date and a
    description, and rows with neither a debit nor a credit amount, are
    dropped. A single signed amount column is used when the header has no
    debit or credit column.

    Args:
        content: Statement text

    Returns:
        RawTransaction records in input order
    """
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff").strip()))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        return []

    columns = detect_columns(rows[0])
    log.debug("Detected statement columns: %s", columns)

    transactions = []
    for row_number, values in enumerate(rows[1:], start=2):
        txn = _parse_row(values, columns, row_number)
        if txn is None:
            log.debug("Dropped statement row %d", row_number)
            continue
        transactions.append(txn)

    return transactions


def parse_statement(content: str, fmt: str = "csv") -> list[RawTransaction]:
    """Parse a bank statement of the given format.

    Args:
        content: Raw statement text
        fmt: Format tag, only "csv" is supported

    Returns:
        RawTransaction records in input order (possibly empty)

    Raises:
        UnsupportedFormatError: If the format tag is not supported
    """
    if (fmt or "").strip().lower() not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(unsupported_format(fmt))
    return parse_csv(content or "")


def source_key(bank_account_id: int, txn: RawTransaction) -> str:
    """Stable fingerprint of a statement line for duplicate detection."""
    parts = [
        str(bank_account_id),
        txn.date.isoformat() if txn.date else "",
        " ".join(txn.description.lower().split()),
        f"{txn.debit_amount:.2f}" if txn.debit_amount is not None else "",
        f"{txn.credit_amount:.2f}" if txn.credit_amount is not None else "",
        (txn.reference_number or "").lower(),
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def keyed_occurrences(
    bank_account_id: int, transactions: Iterable[RawTransaction]
) -> list[tuple[RawTransaction, str, int]]:
    """Pair each line with its source key and occurrence number.

    Identical lines inside one statement (two equal card payments on the same
    day) get occurrences 1, 2, ... so they stay distinct while a re-submitted
    statement maps back onto the same keys.
    """
    seen: Counter[str] = Counter()
    keyed = []
    for txn in transactions:
        key = source_key(bank_account_id, txn)
        seen[key] += 1
        keyed.append((txn, key, seen[key]))
    return keyed
