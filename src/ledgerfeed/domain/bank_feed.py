"""Bank feed domain service.

Previews statements, stores statement lines as bank feed transactions and
runs the auto-categorize sweep over pending ones.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ledgerfeed.database.base import Database
from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.categorizer import CategorizationSnapshot, Suggestion, categorize
from ledgerfeed.domain.entities import (
    BankFeedTransaction,
    CategorizationSource,
    RawTransaction,
    ReconciliationStatus,
)
from ledgerfeed.domain.errors import (
    ConflictError,
    NoTransactionsParsedError,
    NotFoundError,
    feed_transaction_not_found,
)
from ledgerfeed.domain.statement import keyed_occurrences, parse_statement

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewRow:
    """A parsed statement line with its categorization suggestion."""

    transaction: RawTransaction
    suggestion: Suggestion

    def to_dict(self) -> dict[str, Any]:
        txn = self.transaction
        return {
            "row_number": txn.row_number,
            "date": txn.date.isoformat() if txn.date else None,
            "description": txn.description,
            "debit_amount": txn.debit_amount,
            "credit_amount": txn.credit_amount,
            "running_balance": txn.running_balance,
            "reference_number": txn.reference_number,
            "suggested_account_id": self.suggestion.account_id,
            "suggested_account_name": self.suggestion.account_name,
            "suggested_party_id": self.suggestion.party_id,
            "suggested_party_name": self.suggestion.party_name,
            "categorization_source": self.suggestion.source.value,
            "confidence_score": self.suggestion.confidence_score,
            "matched": self.suggestion.is_matched,
        }


@dataclass(frozen=True)
class StatementPreview:
    """Result of parsing and categorizing a statement without storing it."""

    rows: list[PreviewRow]

    @property
    def summary(self) -> dict[str, Any]:
        matched = sum(1 for row in self.rows if row.suggestion.is_matched)
        return {
            "total": len(self.rows),
            "matched": matched,
            "unmatched": len(self.rows) - matched,
            "total_debit": sum((row.transaction.debit_amount or Decimal("0") for row in self.rows), Decimal("0")),
            "total_credit": sum(
                (row.transaction.credit_amount or Decimal("0") for row in self.rows), Decimal("0")
            ),
        }


class BankFeedService:
    """Service for bank statement intake and the bank feed."""

    def __init__(self, db: Database):
        """Initialize bank feed service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)

    def load_snapshot(self, company_id: int) -> CategorizationSnapshot:
        """Fetch the company's accounts, parties and active rules once."""
        return CategorizationSnapshot.build(
            accounts=self.db.list_accounts(company_id),
            parties=self.db.list_parties(company_id),
            rules=self.db.list_rules(company_id, active_only=True),
        )

    def _parse(self, content: str, fmt: str) -> list[RawTransaction]:
        transactions = parse_statement(content, fmt)
        if not transactions:
            raise NoTransactionsParsedError("No transactions found in statement")
        log.info("Parsed %d statement rows", len(transactions))
        return transactions

    def preview_statement(self, company_id: int, content: str, fmt: str = "csv") -> StatementPreview:
        """Parse a statement and suggest an account and party for each line.

        Nothing is stored apart from usage counts of the rules that matched.

        Args:
            company_id: Company whose rules, accounts and parties apply
            content: Statement text
            fmt: Format tag ("csv")

        Returns:
            StatementPreview with per-row suggestions and a summary

        Raises:
            UnsupportedFormatError: If the format is not supported
            NoTransactionsParsedError: If no usable rows were found
        """
        transactions = self._parse(content, fmt)
        snapshot = self.load_snapshot(company_id)

        rows = []
        usage: Counter[int] = Counter()
        for txn in transactions:
            suggestion = categorize(txn, snapshot)
            if suggestion.rule_id is not None:
                usage[suggestion.rule_id] += 1
            rows.append(PreviewRow(transaction=txn, suggestion=suggestion))

        self.db.record_rule_usage(dict(usage))
        return StatementPreview(rows=rows)

    def ingest_statement(
        self, company_id: int, bank_account_id: int, content: str, fmt: str = "csv"
    ) -> dict[str, Any]:
        """Store statement lines as pending bank feed transactions.

        Each line is categorized on the way in. A line already stored for the
        same bank account (same date, description, amounts and reference, and
        the same position among identical lines) counts as a duplicate.

        Args:
            company_id: Owning company
            bank_account_id: Bank ledger account the statement belongs to
            content: Statement text
            fmt: Format tag ("csv")

        Returns:
            Dict with ingest statistics:
            - imported: number of lines stored
            - duplicates: number of lines already present
            - errors: list of error messages

        Raises:
            AccountNotFoundError: If the bank account cannot take postings
            UnsupportedFormatError: If the format is not supported
            NoTransactionsParsedError: If no usable rows were found
        """
        self.account_service.get_postable_account(company_id, bank_account_id)
        transactions = self._parse(content, fmt)
        snapshot = self.load_snapshot(company_id)

        imported = 0
        duplicates = 0
        errors = []
        usage: Counter[int] = Counter()

        for txn, key, occurrence in keyed_occurrences(bank_account_id, transactions):
            row_label = f"Row {txn.row_number}"
            if txn.date is None:
                errors.append(f"{row_label}: Missing or unparseable date")
                continue

            if self.db.get_feed_transaction_by_source(company_id, bank_account_id, key, occurrence):
                duplicates += 1
                continue

            suggestion = categorize(txn, snapshot)
            try:
                self.db.create_feed_transaction(
                    company_id=company_id,
                    bank_account_id=bank_account_id,
                    transaction_date=txn.date,
                    description=txn.description,
                    source_key=key,
                    occurrence=occurrence,
                    debit_amount=txn.debit_amount,
                    credit_amount=txn.credit_amount,
                    running_balance=txn.running_balance,
                    reference_number=txn.reference_number,
                    suggested_account_id=suggestion.account_id,
                    suggested_party_id=suggestion.party_id,
                    confidence_score=suggestion.confidence_score,
                    categorization_source=suggestion.source,
                )
            except ConflictError:
                duplicates += 1
                continue

            imported += 1
            if suggestion.rule_id is not None:
                usage[suggestion.rule_id] += 1

        self.db.record_rule_usage(dict(usage))
        log.info("Stored %d feed transactions, %d duplicates, %d errors", imported, duplicates, len(errors))
        return {
            "imported": imported,
            "duplicates": duplicates,
            "errors": errors,
        }

    def get_transaction(self, company_id: int, transaction_id: int) -> BankFeedTransaction:
        """Get a company's feed transaction.

        Raises:
            NotFoundError: If it does not exist or belongs to another company
        """
        txn = self.db.get_feed_transaction(transaction_id)
        if txn is None or txn.company_id != company_id:
            raise NotFoundError(feed_transaction_not_found(transaction_id))
        return txn

    def list_transactions(
        self,
        company_id: int,
        status: Optional[ReconciliationStatus] = None,
        bank_account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[BankFeedTransaction]:
        """List feed transactions, newest first.

        Args:
            status: Only this reconciliation status
            bank_account_id: Only this bank account
            start_date: Earliest transaction date (inclusive)
            end_date: Latest transaction date (inclusive)
            search: Case-insensitive text in description or reference
            limit: Maximum number of rows
        """
        return self.db.list_feed_transactions(
            company_id,
            status=status,
            bank_account_id=bank_account_id,
            start_date=start_date,
            end_date=end_date,
            search=search,
            limit=limit,
        )

    def get_summary(self, company_id: int) -> dict[str, Any]:
        """Counts per reconciliation status plus debit and credit totals."""
        transactions = self.db.list_feed_transactions(company_id)
        counts = Counter(txn.reconciliation_status for txn in transactions)
        summary: dict[str, Any] = {"total": len(transactions)}
        for status in ReconciliationStatus:
            summary[status.value] = counts.get(status, 0)
        summary["total_debit"] = sum((txn.debit_amount or Decimal("0") for txn in transactions), Decimal("0"))
        summary["total_credit"] = sum((txn.credit_amount or Decimal("0") for txn in transactions), Decimal("0"))
        return summary

    def auto_categorize(self, company_id: int) -> dict[str, int]:
        """Re-run categorization over pending transactions.

        Manually categorized transactions are left alone. A transaction that
        gets an account suggestion is updated in place; its reconciliation
        status does not change. A failure on one transaction is logged and
        the sweep moves on.

        Returns:
            Dict with processed and categorized counts
        """
        snapshot = self.load_snapshot(company_id)
        pending = self.db.list_feed_transactions(company_id, status=ReconciliationStatus.PENDING)

        processed = 0
        categorized = 0
        usage: Counter[int] = Counter()

        for txn in pending:
            if txn.categorization_source == CategorizationSource.MANUAL:
                continue
            processed += 1
            try:
                suggestion = categorize(txn, snapshot)
                if not suggestion.is_matched:
                    continue
                self.db.update_feed_suggestion(
                    txn.id,
                    suggested_account_id=suggestion.account_id,
                    suggested_party_id=suggestion.party_id,
                    confidence_score=suggestion.confidence_score,
                    categorization_source=suggestion.source,
                )
            except Exception:
                log.exception("Failed to categorize feed transaction %d", txn.id)
                continue

            categorized += 1
            if suggestion.rule_id is not None:
                usage[suggestion.rule_id] += 1

        self.db.record_rule_usage(dict(usage))
        log.info("Auto-categorize: %d processed, %d categorized", processed, categorized)
        return {"processed": processed, "categorized": categorized}
