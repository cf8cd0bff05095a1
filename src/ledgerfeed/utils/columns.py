"""Statement header detection."""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

# Roles are claimed in this order and each column can hold one role, so a
# "Description" column is never mistaken for a credit column via "cr".
# Keywords of three letters or fewer must equal a whole word of the header.
# A signed amount column only counts when there is no debit or credit column.
ROLE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("date", ("date", "txn")),
    ("description", ("description", "narration", "particular", "details")),
    ("balance", ("balance",)),
    ("debit", ("debit", "withdrawal", "dr")),
    ("credit", ("credit", "deposit", "cr")),
    ("reference", ("reference", "ref", "chq", "cheque")),
    ("amount", ("amount", "amt")),
)

_WORD = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class ColumnMap:
    """Column index for each statement role, or None if the header lacks it."""

    date: Optional[int] = None
    description: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    balance: Optional[int] = None
    reference: Optional[int] = None
    amount: Optional[int] = None


def _keyword_matches(keyword: str, column: str) -> bool:
    if len(keyword) <= 3:
        return keyword in _WORD.findall(column)
    return keyword in column


def detect_columns(header: Sequence[str]) -> ColumnMap:
    """Identify statement roles from a header row.

    Args:
        header: Header cells as read from the file

    Returns:
        ColumnMap with the index of each detected role
    """
    columns = [cell.replace('"', "").strip().lower() for cell in header]
    claimed: set[int] = set()
    found: dict[str, int] = {}

    for role, keywords in ROLE_KEYWORDS:
        for keyword in keywords:
            index = next(
                (
                    i
                    for i, column in enumerate(columns)
                    if i not in claimed and _keyword_matches(keyword, column)
                ),
                None,
            )
            if index is not None:
                found[role] = index
                claimed.add(index)
                break

    if "debit" in found or "credit" in found:
        found.pop("amount", None)
    return ColumnMap(**found)
