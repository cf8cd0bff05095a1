"""Bank feed reconciliation.

Links feed transactions to the invoices, bills, payments, expenses and
journal entries they settle, and drives the reconciliation state machine:

    pending -> matched -> reconciled
    pending -> excluded

Candidate search is pure (``find_candidates`` / ``select_candidate``) and
works on a CandidatePool fetched once per sweep.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Sequence

from ledgerfeed.database.base import Database
from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.bank_feed import BankFeedService
from ledgerfeed.domain.categorizer import MANUAL_CONFIDENCE
from ledgerfeed.domain.documents import OPEN_BILL_STATUSES, OPEN_INVOICE_STATUSES, DocumentService
from ledgerfeed.domain.entities import (
    BankFeedTransaction,
    Bill,
    CategorizationSource,
    Expense,
    Invoice,
    MatchType,
    Payment,
    ReconciliationStatus,
)
from ledgerfeed.domain.errors import (
    AlreadyImportedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    already_imported,
    invalid_transition,
    party_not_found,
)
from ledgerfeed.domain.importer import ImportRow, ImportService
from ledgerfeed.domain.rules import RuleService

log = logging.getLogger(__name__)

REFERENCE_CONFIDENCE = 95
BALANCE_DUE_CONFIDENCE = 90
PAYMENT_CONFIDENCE = 88
TOTAL_AMOUNT_CONFIDENCE = 85
EXPENSE_CONFIDENCE = 85
MIN_REFERENCE_LENGTH = 3

# Allowed status changes; excluded and reconciled are terminal
TRANSITIONS = {
    ReconciliationStatus.PENDING: (ReconciliationStatus.MATCHED, ReconciliationStatus.EXCLUDED),
    ReconciliationStatus.MATCHED: (ReconciliationStatus.RECONCILED,),
    ReconciliationStatus.RECONCILED: (),
    ReconciliationStatus.EXCLUDED: (),
}


@dataclass(frozen=True)
class MatchSettings:
    """Matching tunables.

    Attributes:
        amount_tolerance: Amounts closer than this are equal
        date_window_days: Slack around document dates, in days
        min_confidence: Lowest score the sweep will act on
    """

    amount_tolerance: Decimal = Decimal("0.01")
    date_window_days: int = 5
    min_confidence: int = 85

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MatchSettings":
        """Read overrides from LEDGERFEED_MATCH_* environment variables.

        Raises:
            ValidationError: If a variable is set to an unparseable value
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        try:
            return cls(
                amount_tolerance=Decimal(environ.get("LEDGERFEED_MATCH_TOLERANCE", str(defaults.amount_tolerance))),
                date_window_days=int(environ.get("LEDGERFEED_MATCH_WINDOW_DAYS", defaults.date_window_days)),
                min_confidence=int(environ.get("LEDGERFEED_MATCH_MIN_CONFIDENCE", defaults.min_confidence)),
            )
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(f"Invalid match setting in environment: {e}") from e


@dataclass(frozen=True)
class MatchCandidate:
    """A record that could settle a feed transaction."""

    match_type: MatchType
    entity_id: int
    number: str
    confidence_score: int
    reason: str
    party_id: Optional[int] = None

    @property
    def key(self) -> tuple[MatchType, int]:
        return (self.match_type, self.entity_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_type": self.match_type.value,
            "entity_id": self.entity_id,
            "number": self.number,
            "confidence_score": self.confidence_score,
            "reason": self.reason,
            "party_id": self.party_id,
        }


@dataclass(frozen=True)
class MatchResult:
    """Candidates for one transaction and the one chosen, if any."""

    transaction_id: int
    candidates: list[MatchCandidate]
    selected: Optional[MatchCandidate] = None
    ambiguous: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "candidates": [c.to_dict() for c in self.candidates],
            "selected": self.selected.to_dict() if self.selected else None,
            "ambiguous": self.ambiguous,
        }


@dataclass(frozen=True)
class CandidatePool:
    """Open receivables/payables and recorded payments of a company."""

    invoices: tuple[Invoice, ...] = ()
    bills: tuple[Bill, ...] = ()
    payments_received: tuple[Payment, ...] = ()
    payments_made: tuple[Payment, ...] = ()
    expenses: tuple[Expense, ...] = ()
    claimed: frozenset[tuple[MatchType, int]] = field(default_factory=frozenset)


def _amount_equal(a: Decimal, b: Decimal, settings: MatchSettings) -> bool:
    return abs(a - b) < settings.amount_tolerance


def _within_document_window(txn_date: date, start: date, end: date, settings: MatchSettings) -> bool:
    window = timedelta(days=settings.date_window_days)
    return start - window <= txn_date <= end + window


def _within_days(txn_date: date, other: date, settings: MatchSettings) -> bool:
    return abs((txn_date - other).days) <= settings.date_window_days


def _reference_candidates(txn: BankFeedTransaction, pool: CandidatePool) -> list[MatchCandidate]:
    reference = (txn.reference_number or "").strip().lower()
    if len(reference) < MIN_REFERENCE_LENGTH:
        return []

    found = []
    if txn.is_credit:
        for invoice in pool.invoices:
            if reference in invoice.invoice_number.lower():
                found.append(
                    MatchCandidate(
                        MatchType.INVOICE,
                        invoice.id,
                        invoice.invoice_number,
                        REFERENCE_CONFIDENCE,
                        "Reference number matches invoice number",
                        invoice.customer_id,
                    )
                )
    else:
        for bill in pool.bills:
            numbers = (bill.bill_number, bill.vendor_bill_number or "")
            if any(reference in number.lower() for number in numbers):
                found.append(
                    MatchCandidate(
                        MatchType.BILL,
                        bill.id,
                        bill.bill_number,
                        REFERENCE_CONFIDENCE,
                        "Reference number matches bill number",
                        bill.vendor_id,
                    )
                )
    return found


def _money_in_candidates(
    txn: BankFeedTransaction, pool: CandidatePool, settings: MatchSettings
) -> list[MatchCandidate]:
    amount = txn.amount
    txn_date = txn.transaction_date
    found = []

    for invoice in pool.invoices:
        if not _within_document_window(txn_date, invoice.invoice_date, invoice.due_date, settings):
            continue
        if _amount_equal(invoice.balance_due, amount, settings):
            found.append(
                MatchCandidate(
                    MatchType.INVOICE,
                    invoice.id,
                    invoice.invoice_number,
                    BALANCE_DUE_CONFIDENCE,
                    "Amount matches invoice balance due",
                    invoice.customer_id,
                )
            )
        elif _amount_equal(invoice.total_amount, amount, settings):
            found.append(
                MatchCandidate(
                    MatchType.INVOICE,
                    invoice.id,
                    invoice.invoice_number,
                    TOTAL_AMOUNT_CONFIDENCE,
                    "Amount matches invoice total",
                    invoice.customer_id,
                )
            )

    for payment in pool.payments_received:
        if _within_days(txn_date, payment.payment_date, settings) and _amount_equal(payment.amount, amount, settings):
            found.append(
                MatchCandidate(
                    MatchType.PAYMENT_RECEIVED,
                    payment.id,
                    payment.payment_number,
                    PAYMENT_CONFIDENCE,
                    "Amount matches payment received",
                    payment.party_id,
                )
            )
    return found


def _money_out_candidates(
    txn: BankFeedTransaction, pool: CandidatePool, settings: MatchSettings
) -> list[MatchCandidate]:
    amount = txn.amount
    txn_date = txn.transaction_date
    found = []

    for bill in pool.bills:
        if not _within_document_window(txn_date, bill.bill_date, bill.due_date, settings):
            continue
        if _amount_equal(bill.balance_due, amount, settings):
            found.append(
                MatchCandidate(
                    MatchType.BILL,
                    bill.id,
                    bill.bill_number,
                    BALANCE_DUE_CONFIDENCE,
                    "Amount matches bill balance due",
                    bill.vendor_id,
                )
            )
        elif _amount_equal(bill.total_amount, amount, settings):
            found.append(
                MatchCandidate(
                    MatchType.BILL,
                    bill.id,
                    bill.bill_number,
                    TOTAL_AMOUNT_CONFIDENCE,
                    "Amount matches bill total",
                    bill.vendor_id,
                )
            )

    for payment in pool.payments_made:
        if _within_days(txn_date, payment.payment_date, settings) and _amount_equal(payment.amount, amount, settings):
            found.append(
                MatchCandidate(
                    MatchType.PAYMENT_MADE,
                    payment.id,
                    payment.payment_number,
                    PAYMENT_CONFIDENCE,
                    "Amount matches payment made",
                    payment.party_id,
                )
            )

    for expense in pool.expenses:
        if _within_days(txn_date, expense.expense_date, settings) and _amount_equal(
            expense.total_amount, amount, settings
        ):
            found.append(
                MatchCandidate(
                    MatchType.EXPENSE,
                    expense.id,
                    expense.expense_number,
                    EXPENSE_CONFIDENCE,
                    "Amount matches expense",
                    expense.party_id,
                )
            )
    return found


def find_candidates(
    txn: BankFeedTransaction, pool: CandidatePool, settings: MatchSettings
) -> list[MatchCandidate]:
    """All records that could settle the transaction, best first.

    Money in is matched against invoices and payments received, money out
    against bills, payments made and expenses. Each record appears once,
    with its best score; records already linked to another transaction are
    left out.
    """
    raw = _reference_candidates(txn, pool)
    if txn.is_credit:
        raw += _money_in_candidates(txn, pool, settings)
    else:
        raw += _money_out_candidates(txn, pool, settings)

    best: dict[tuple[MatchType, int], MatchCandidate] = {}
    for candidate in raw:
        if candidate.key in pool.claimed:
            continue
        current = best.get(candidate.key)
        if current is None or candidate.confidence_score > current.confidence_score:
            best[candidate.key] = candidate

    return sorted(best.values(), key=lambda c: -c.confidence_score)


def select_candidate(
    candidates: Sequence[MatchCandidate],
    settings: MatchSettings,
    party_id: Optional[int] = None,
) -> tuple[Optional[MatchCandidate], bool]:
    """Pick the single best candidate.

    Only candidates at or above the minimum confidence count. A unique top
    score wins; a tie is broken by the counterparty when exactly one tied
    candidate belongs to ``party_id``. Anything else is ambiguous.

    Returns:
        (selected candidate or None, ambiguous flag)
    """
    eligible = [c for c in candidates if c.confidence_score >= settings.min_confidence]
    if not eligible:
        return None, False

    top = max(c.confidence_score for c in eligible)
    best = [c for c in eligible if c.confidence_score == top]
    if len(best) == 1:
        return best[0], False

    if party_id is not None:
        same_party = [c for c in best if c.party_id == party_id]
        if len(same_party) == 1:
            return same_party[0], False

    return None, True


class ReconciliationService:
    """Service for matching feed transactions to bookkeeping records."""

    def __init__(self, db: Database, settings: Optional[MatchSettings] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            settings: Matching tunables (defaults read from the environment)
        """
        self.db = db
        self.settings = settings or MatchSettings.from_env()
        self.account_service = AccountService(db)
        self.feed_service = BankFeedService(db)
        self.document_service = DocumentService(db)
        self.import_service = ImportService(db)
        self.rule_service = RuleService(db)

    def load_pool(self, company_id: int, exclude_transaction_id: Optional[int] = None) -> CandidatePool:
        """Fetch open invoices and bills, payments, expenses and claimed links once."""
        return CandidatePool(
            invoices=tuple(self.db.list_invoices(company_id, statuses=OPEN_INVOICE_STATUSES)),
            bills=tuple(self.db.list_bills(company_id, statuses=OPEN_BILL_STATUSES)),
            payments_received=tuple(self.db.list_payments(company_id, direction="received")),
            payments_made=tuple(self.db.list_payments(company_id, direction="made")),
            expenses=tuple(self.db.list_expenses(company_id)),
            claimed=frozenset(self.db.get_claimed_entities(company_id, exclude_transaction_id)),
        )

    def _evaluate(self, txn: BankFeedTransaction, pool: CandidatePool) -> MatchResult:
        candidates = find_candidates(txn, pool, self.settings)
        selected, ambiguous = select_candidate(candidates, self.settings, txn.suggested_party_id)
        return MatchResult(
            transaction_id=txn.id,
            candidates=candidates,
            selected=selected,
            ambiguous=ambiguous,
        )

    def find_match(self, company_id: int, transaction_id: int) -> MatchResult:
        """Report candidates for one transaction without changing it.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        txn = self.feed_service.get_transaction(company_id, transaction_id)
        pool = self.load_pool(company_id, exclude_transaction_id=txn.id)
        return self._evaluate(txn, pool)

    def auto_reconcile(
        self, company_id: int, transaction_ids: Optional[Iterable[int]] = None
    ) -> dict[str, int]:
        """Match every pending transaction that has exactly one best candidate.

        Ambiguous transactions stay pending. A failure on one transaction is
        logged and counted, and the sweep moves on.

        Args:
            company_id: Company to sweep
            transaction_ids: Restrict the sweep to these transactions

        Returns:
            Dict with processed, matched, ambiguous and failed counts
        """
        wanted = set(transaction_ids) if transaction_ids is not None else None
        pending = self.db.list_feed_transactions(company_id, status=ReconciliationStatus.PENDING)
        pool = self.load_pool(company_id)
        claimed = set(pool.claimed)

        processed = 0
        matched = 0
        ambiguous = 0
        failed = 0

        # Oldest first so earlier lines get first pick of shared candidates
        for txn in sorted(pending, key=lambda t: (t.transaction_date, t.id)):
            if wanted is not None and txn.id not in wanted:
                continue
            processed += 1
            try:
                result = self._evaluate(txn, replace(pool, claimed=frozenset(claimed)))
                if result.ambiguous:
                    ambiguous += 1
                    log.debug(
                        "Transaction %d is ambiguous between %s",
                        txn.id,
                        ", ".join(c.number for c in result.candidates),
                    )
                    continue
                if result.selected is None:
                    continue
                selected = result.selected
                self.db.update_feed_status(
                    txn.id, ReconciliationStatus.MATCHED, selected.match_type, selected.entity_id
                )
            except Exception:
                failed += 1
                log.exception("Failed to reconcile feed transaction %d", txn.id)
                continue

            claimed.add(selected.key)
            matched += 1
            log.debug("Matched transaction %d to %s %s", txn.id, selected.match_type.value, selected.number)

        log.info(
            "Auto-reconcile: %d processed, %d matched, %d ambiguous, %d failed",
            processed,
            matched,
            ambiguous,
            failed,
        )
        return {"processed": processed, "matched": matched, "ambiguous": ambiguous, "failed": failed}

    def _transition(self, txn: BankFeedTransaction, target: ReconciliationStatus) -> None:
        if target not in TRANSITIONS[txn.reconciliation_status]:
            raise InvalidTransitionError(
                invalid_transition(txn.id, txn.reconciliation_status.value, target.value)
            )

    def match_transaction(
        self, company_id: int, transaction_id: int, match_type: MatchType | str, entity_id: int
    ) -> BankFeedTransaction:
        """Link a pending transaction to a record chosen by the user.

        Raises:
            NotFoundError: If the transaction or record does not exist
            InvalidTransitionError: If the transaction is not pending
            ConflictError: If the record is already linked to another transaction
        """
        try:
            match_type = MatchType(match_type)
        except ValueError as e:
            valid = ", ".join(t.value for t in MatchType)
            raise ValidationError(f"Invalid match type '{match_type}'. Must be one of: {valid}") from e

        txn = self.feed_service.get_transaction(company_id, transaction_id)
        self._transition(txn, ReconciliationStatus.MATCHED)

        if self.document_service.get_document(company_id, match_type, entity_id) is None:
            raise NotFoundError(f"{match_type.value.replace('_', ' ').capitalize()} {entity_id} not found")
        if (match_type, entity_id) in self.db.get_claimed_entities(company_id, exclude_transaction_id=txn.id):
            raise ConflictError(f"{match_type.value} {entity_id} is already matched to another transaction")

        self.db.update_feed_status(txn.id, ReconciliationStatus.MATCHED, match_type, entity_id)
        return self.db.get_feed_transaction(txn.id)

    def reconcile_transaction(self, company_id: int, transaction_id: int) -> BankFeedTransaction:
        """Confirm a matched transaction.

        Raises:
            InvalidTransitionError: If the transaction is not matched
            ConflictError: If it does not reference exactly one record
        """
        txn = self.feed_service.get_transaction(company_id, transaction_id)
        self._transition(txn, ReconciliationStatus.RECONCILED)

        links = txn.matched_entities
        if len(links) != 1:
            raise ConflictError(
                f"Transaction {txn.id} must reference exactly one matched record to reconcile, found {len(links)}"
            )

        self.db.update_feed_status(txn.id, ReconciliationStatus.RECONCILED)
        return self.db.get_feed_transaction(txn.id)

    def exclude_transaction(self, company_id: int, transaction_id: int) -> BankFeedTransaction:
        """Opt a pending transaction out of bookkeeping (e.g. an internal transfer)."""
        txn = self.feed_service.get_transaction(company_id, transaction_id)
        self._transition(txn, ReconciliationStatus.EXCLUDED)
        self.db.update_feed_status(txn.id, ReconciliationStatus.EXCLUDED)
        return self.db.get_feed_transaction(txn.id)

    def categorize_transaction(
        self,
        company_id: int,
        transaction_id: int,
        account_id: int,
        party_id: Optional[int] = None,
        create_rule: bool = False,
    ) -> Optional[int]:
        """Override a transaction's suggestion with the user's choice.

        Args:
            company_id: Owning company
            transaction_id: Feed transaction
            account_id: Account chosen by the user
            party_id: Party chosen by the user
            create_rule: Also add a rule keyed on the description

        Returns:
            ID of the created rule, or None

        Raises:
            NotFoundError: If the transaction or party does not exist
            AccountNotFoundError: If the account cannot take postings
            InvalidTransitionError: If the transaction is excluded or reconciled
        """
        txn = self.feed_service.get_transaction(company_id, transaction_id)
        if txn.reconciliation_status in (ReconciliationStatus.EXCLUDED, ReconciliationStatus.RECONCILED):
            raise InvalidTransitionError(
                f"Cannot categorize transaction {txn.id} in status '{txn.reconciliation_status.value}'"
            )

        self.account_service.get_postable_account(company_id, account_id)
        if party_id is not None:
            party = self.db.get_party(party_id)
            if party is None or party.company_id != company_id:
                raise NotFoundError(party_not_found(party_id))

        self.db.update_feed_suggestion(
            txn.id,
            suggested_account_id=account_id,
            suggested_party_id=party_id,
            confidence_score=MANUAL_CONFIDENCE,
            categorization_source=CategorizationSource.MANUAL,
        )

        if not create_rule:
            return None
        return self.rule_service.create_rule_from_transaction(
            company_id, txn.description, target_account_id=account_id, target_party_id=party_id
        )

    def create_entry_from_transaction(
        self,
        company_id: int,
        transaction_id: int,
        account_id: int,
        party_id: Optional[int] = None,
    ) -> int:
        """Book a feed transaction as a draft journal entry against an account.

        The transaction is categorized manually, linked to the new entry and,
        if pending, moved to matched.

        Returns:
            Journal entry ID

        Raises:
            AlreadyImportedError: If the transaction already produced an entry
            InvalidTransitionError: If the transaction is excluded or reconciled
            ValidationError: If the entry cannot be built
        """
        txn = self.feed_service.get_transaction(company_id, transaction_id)
        if txn.created_entry_id is not None:
            raise AlreadyImportedError(already_imported(txn.id, txn.created_entry_id))

        self.categorize_transaction(company_id, transaction_id, account_id, party_id)
        result = self.import_service.import_transactions(
            company_id,
            txn.bank_account_id,
            [ImportRow(account_id=account_id, party_id=party_id, transaction_id=txn.id)],
            mark_matched=True,
        )
        if result.skipped:
            current = self.db.get_feed_transaction(txn.id)
            raise AlreadyImportedError(already_imported(txn.id, current.created_entry_id))
        if result.errors:
            raise ValidationError(result.errors[0].error)
        return result.entry_ids[0]
