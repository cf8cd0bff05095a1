"""Journal entry import from bank transactions.

Turns approved statement lines into balanced two-line draft journal entries.
Each source line produces at most one entry: lines are tracked through bank
feed transactions, whose created-entry link is set in the same commit as the
entry itself.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence, Union

from ledgerfeed.database.base import Database
from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.categorizer import MANUAL_CONFIDENCE
from ledgerfeed.domain.entities import (
    BankFeedTransaction,
    CategorizationSource,
    FiscalYear,
    JournalEntry,
    RawTransaction,
    ReconciliationStatus,
)
from ledgerfeed.domain.errors import AlreadyImportedError, NotFoundError, feed_transaction_not_found
from ledgerfeed.domain.fiscal_year import FiscalYearService
from ledgerfeed.domain.statement import source_key
from ledgerfeed.utils.amount_parser import parse_amount
from ledgerfeed.utils.date_parser import parse_statement_date

log = logging.getLogger(__name__)

ENTRY_PREFIX = "BK"
ENTRY_TYPE = "bank_import"
SOURCE_TYPE = "bank_feed"


def entry_prefix(fiscal_year: FiscalYear) -> str:
    """Entry number prefix for bank imports, e.g. "BK/FY2024-25/"."""
    return f"{ENTRY_PREFIX}/{fiscal_year.name}/"


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return parse_amount(str(value))


@dataclass(frozen=True)
class ImportRow:
    """One transaction to import.

    ``debit`` is money leaving the bank, ``credit`` money entering it.
    Rows that reference a feed transaction inherit its date, description,
    reference and amounts when they leave them out.
    """

    account_id: Optional[int]
    debit: Optional[Decimal] = None
    credit: Optional[Decimal] = None
    party_id: Optional[int] = None
    date: Optional[date] = None
    description: str = ""
    reference_number: Optional[str] = None
    transaction_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImportRow":
        """Build a row from loosely typed input (e.g. decoded JSON).

        Raises:
            ValueError: If an amount, date or ID cannot be parsed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Expected an object, got {type(data).__name__}")

        raw_date = data.get("date")
        if isinstance(raw_date, date) or raw_date is None:
            txn_date = raw_date
        else:
            txn_date = parse_statement_date(str(raw_date))
            if txn_date is None:
                raise ValueError(f"Could not parse date '{raw_date}'")

        def _int(key: str) -> Optional[int]:
            value = data.get(key)
            if value is None or value == "":
                return None
            try:
                return int(value)
            except TypeError as e:
                raise ValueError(f"Invalid {key} '{value}'") from e

        try:
            debit = _optional_decimal(data.get("debit", data.get("debit_amount")))
            credit = _optional_decimal(data.get("credit", data.get("credit_amount")))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {e}") from e

        return cls(
            account_id=_int("account_id"),
            debit=debit,
            credit=credit,
            party_id=_int("party_id"),
            date=txn_date,
            description=str(data.get("description") or ""),
            reference_number=data.get("reference_number") or None,
            transaction_id=_int("transaction_id"),
        )


@dataclass(frozen=True)
class RowError:
    """Failure of a single import row, keyed by its position in the batch."""

    index: int
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "error": self.error}


@dataclass
class ImportResult:
    """Outcome of an import batch. Partial success is the normal case."""

    success: bool = True
    created: int = 0
    entry_ids: list[int] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "created": self.created,
            "entry_ids": list(self.entry_ids),
            "errors": [e.to_dict() for e in self.errors],
            "skipped": list(self.skipped),
        }


class ImportService:
    """Service for creating journal entries from bank transactions."""

    def __init__(self, db: Database):
        """Initialize import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.fiscal_year_service = FiscalYearService(db)

    def import_transactions(
        self,
        company_id: int,
        bank_account_id: int,
        rows: Sequence[Union[ImportRow, Mapping[str, Any]]],
        mark_matched: bool = False,
    ) -> ImportResult:
        """Create one balanced draft journal entry per row.

        Bank and fiscal year are checked before anything is written. After
        that every row stands alone: invalid rows are reported in
        ``errors`` by index and rows whose source line was already imported
        are listed in ``skipped``. Rows may be given as mappings (e.g. decoded
        JSON); one that cannot be read is reported like any other invalid row.

        Imported feed transactions keep their reconciliation status so the
        reconciler can still link them to invoices and bills. With
        ``mark_matched`` a pending transaction is matched to its new entry
        instead.

        For money leaving the bank the row's account is debited and the bank
        credited; for money entering the bank it is the other way round.

        Args:
            company_id: Owning company
            bank_account_id: Bank ledger account
            rows: Rows to import
            mark_matched: Match pending feed transactions to their new entries

        Returns:
            ImportResult with created entry IDs, row errors and skipped rows

        Raises:
            AccountNotFoundError: If the bank account cannot take postings
            NoActiveFiscalYearError: If the company has no current fiscal year
        """
        self.account_service.get_postable_account(company_id, bank_account_id)
        fiscal_year = self.fiscal_year_service.require_current(company_id)
        prefix = entry_prefix(fiscal_year)

        postable = {
            acc.id for acc in self.account_service.list_accounts(company_id, leaf_only=True, active_only=True)
        }
        parties = {p.id for p in self.db.list_parties(company_id, active_only=False)}

        result = ImportResult()
        occurrences: Counter[str] = Counter()

        for index, row in enumerate(rows):
            try:
                if not isinstance(row, ImportRow):
                    row = ImportRow.from_dict(row)
                feed_txn = None
                if row.transaction_id is not None:
                    feed_txn = self._load_feed_transaction(company_id, bank_account_id, row.transaction_id)
                    if feed_txn.created_entry_id is not None:
                        result.skipped.append(index)
                        continue
                    row = self._merge_feed_fields(row, feed_txn)

                error = self._validate_row(row, bank_account_id, postable, parties)
                if error:
                    result.errors.append(RowError(index, error))
                    continue

                if feed_txn is None:
                    feed_txn = self._feed_transaction_for_row(company_id, bank_account_id, row, occurrences)
                    if feed_txn.created_entry_id is not None:
                        log.debug("Row %d already imported as entry %d", index, feed_txn.created_entry_id)
                        result.skipped.append(index)
                        continue

                entry_id = self.db.create_journal_entry(
                    company_id=company_id,
                    fiscal_year_id=fiscal_year.id,
                    prefix=prefix,
                    entry_date=row.date,
                    lines=self._build_lines(row, bank_account_id),
                    narration=row.description,
                    entry_type=ENTRY_TYPE,
                    source_type=SOURCE_TYPE,
                    source_id=feed_txn.id,
                    status="draft",
                    feed_transaction_id=feed_txn.id,
                    mark_matched=mark_matched,
                )
            except AlreadyImportedError:
                result.skipped.append(index)
                continue
            except ValueError as e:
                result.errors.append(RowError(index, str(e)))
                continue

            result.created += 1
            result.entry_ids.append(entry_id)

        log.info(
            "Imported %d entries, %d skipped, %d errors", result.created, len(result.skipped), len(result.errors)
        )
        return result

    def import_feed_transactions(
        self,
        company_id: int,
        bank_account_id: int,
        transaction_ids: Optional[Sequence[int]] = None,
    ) -> ImportResult:
        """Import feed transactions using their suggested account and party.

        Without ``transaction_ids`` every pending or matched transaction of
        the bank account that has a suggested account and no entry yet is
        imported.
        """
        if transaction_ids is None:
            candidates = [
                txn
                for txn in self.db.list_feed_transactions(company_id, bank_account_id=bank_account_id)
                if txn.reconciliation_status in (ReconciliationStatus.PENDING, ReconciliationStatus.MATCHED)
                and txn.created_entry_id is None
                and txn.suggested_account_id is not None
            ]
            # Oldest first so entry numbers follow the statement
            candidates.sort(key=lambda txn: (txn.transaction_date, txn.id))
            rows = [self._row_from_feed(txn) for txn in candidates]
        else:
            rows = [ImportRow(account_id=None, transaction_id=txn_id) for txn_id in transaction_ids]
        return self.import_transactions(company_id, bank_account_id, rows)

    def get_entry(self, company_id: int, entry_id: int) -> JournalEntry:
        """Get a company's journal entry with its lines.

        Raises:
            NotFoundError: If it does not exist or belongs to another company
        """
        entry = self.db.get_journal_entry(entry_id)
        if entry is None or entry.company_id != company_id:
            raise NotFoundError(f"Journal entry {entry_id} not found")
        return entry

    def list_entries(self, company_id: int, fiscal_year_id: Optional[int] = None) -> list[JournalEntry]:
        """List journal entries in creation order."""
        return self.db.list_journal_entries(company_id, fiscal_year_id=fiscal_year_id)

    @staticmethod
    def _row_from_feed(txn: BankFeedTransaction) -> ImportRow:
        return ImportRow(
            account_id=txn.suggested_account_id,
            debit=txn.debit_amount,
            credit=txn.credit_amount,
            party_id=txn.suggested_party_id,
            date=txn.transaction_date,
            description=txn.description,
            reference_number=txn.reference_number,
            transaction_id=txn.id,
        )

    def _load_feed_transaction(
        self, company_id: int, bank_account_id: int, transaction_id: int
    ) -> BankFeedTransaction:
        txn = self.db.get_feed_transaction(transaction_id)
        if txn is None or txn.company_id != company_id:
            raise ValueError(feed_transaction_not_found(transaction_id))
        if txn.bank_account_id != bank_account_id:
            raise ValueError(f"Bank feed transaction {transaction_id} belongs to another bank account")
        if txn.reconciliation_status == ReconciliationStatus.EXCLUDED:
            raise ValueError(f"Bank feed transaction {transaction_id} is excluded")
        return txn

    @staticmethod
    def _merge_feed_fields(row: ImportRow, txn: BankFeedTransaction) -> ImportRow:
        changes: dict[str, Any] = {}
        if row.account_id is None:
            changes["account_id"] = txn.suggested_account_id
        if row.party_id is None and txn.suggested_party_id is not None:
            changes["party_id"] = txn.suggested_party_id
        if row.date is None:
            changes["date"] = txn.transaction_date
        if not row.description:
            changes["description"] = txn.description
        if row.reference_number is None:
            changes["reference_number"] = txn.reference_number
        if row.debit is None and row.credit is None:
            changes["debit"] = txn.debit_amount
            changes["credit"] = txn.credit_amount
        return replace(row, **changes) if changes else row

    @staticmethod
    def _validate_row(
        row: ImportRow, bank_account_id: int, postable: set[int], parties: set[int]
    ) -> Optional[str]:
        """Return an error message for an unusable row, or None."""
        if row.account_id is None:
            return "Account is required"
        if row.account_id not in postable:
            return f"Account {row.account_id} not found"
        if row.account_id == bank_account_id:
            return "Account cannot be the bank account itself"

        has_debit = row.debit is not None
        has_credit = row.credit is not None
        if has_debit and has_credit:
            return "Provide either a debit or a credit amount, not both"
        if not has_debit and not has_credit:
            return "Debit or credit amount is required"
        amount = row.debit if has_debit else row.credit
        if amount <= 0:
            return "Amount must be positive"

        if row.date is None:
            return "Transaction date is required"
        if row.party_id is not None and row.party_id not in parties:
            return f"Party {row.party_id} not found"
        return None

    def _feed_transaction_for_row(
        self, company_id: int, bank_account_id: int, row: ImportRow, occurrences: Counter[str]
    ) -> BankFeedTransaction:
        """Find or record the feed transaction that tracks a free-standing row.

        Rows are identified by their statement content plus their position
        among identical rows of the batch, so a resubmitted batch maps back
        onto the same feed transactions.
        """
        raw = RawTransaction(
            date=row.date,
            description=row.description,
            debit_amount=row.debit,
            credit_amount=row.credit,
            reference_number=row.reference_number,
        )
        key = source_key(bank_account_id, raw)
        occurrences[key] += 1
        occurrence = occurrences[key]

        existing = self.db.get_feed_transaction_by_source(company_id, bank_account_id, key, occurrence)
        if existing is not None:
            return existing

        transaction_id = self.db.create_feed_transaction(
            company_id=company_id,
            bank_account_id=bank_account_id,
            transaction_date=row.date,
            description=row.description,
            source_key=key,
            occurrence=occurrence,
            debit_amount=row.debit,
            credit_amount=row.credit,
            reference_number=row.reference_number,
            suggested_account_id=row.account_id,
            suggested_party_id=row.party_id,
            confidence_score=MANUAL_CONFIDENCE,
            categorization_source=CategorizationSource.MANUAL,
        )
        return self.db.get_feed_transaction(transaction_id)

    @staticmethod
    def _build_lines(row: ImportRow, bank_account_id: int) -> list[dict[str, Any]]:
        """Two balanced lines, debit side first."""
        zero = Decimal("0")
        if row.credit is not None:
            amount = row.credit
            debit_account, credit_account = bank_account_id, row.account_id
            debit_party, credit_party = None, row.party_id
        else:
            amount = row.debit
            debit_account, credit_account = row.account_id, bank_account_id
            debit_party, credit_party = row.party_id, None

        return [
            {
                "account_id": debit_account,
                "debit_amount": amount,
                "credit_amount": zero,
                "party_id": debit_party,
                "description": row.description,
            },
            {
                "account_id": credit_account,
                "debit_amount": zero,
                "credit_amount": amount,
                "party_id": credit_party,
                "description": row.description,
            },
        ]
