"""Domain model entities for ledgerfeed.

These are pure data classes representing business concepts, independent of
database schema. The database layer maps its rows onto them so services and
the matcher never touch ORM objects.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class CategorizationSource(str, Enum):
    """Where a transaction's account suggestion came from."""

    RULE = "rule"
    HEURISTIC = "heuristic"
    MANUAL = "manual"
    NONE = "none"


class ReconciliationStatus(str, Enum):
    """Lifecycle state of a bank feed transaction."""

    PENDING = "pending"
    MATCHED = "matched"
    RECONCILED = "reconciled"
    EXCLUDED = "excluded"


class MatchType(str, Enum):
    """Kind of bookkeeping record a feed transaction can be matched to."""

    INVOICE = "invoice"
    BILL = "bill"
    EXPENSE = "expense"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_MADE = "payment_made"
    JOURNAL_ENTRY = "journal_entry"


@dataclass(frozen=True)
class Company:
    """Tenant company entity."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class LedgerAccount:
    """Chart-of-accounts entry."""

    id: int
    company_id: int
    code: str
    name: str
    account_type: str
    is_group: bool
    is_active: bool
    parent_id: Optional[int]
    created_at: datetime

    @property
    def is_leaf(self) -> bool:
        return not self.is_group


@dataclass(frozen=True)
class Party:
    """Customer or vendor entity."""

    id: int
    company_id: int
    name: str
    party_type: str
    default_account_id: Optional[int]
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class FiscalYear:
    """Accounting period used to scope entry numbering."""

    id: int
    company_id: int
    name: str
    start_date: date
    end_date: date
    is_current: bool


@dataclass(frozen=True)
class RuleCondition:
    """Single predicate of a categorization rule.

    ``value`` is text for description/reference conditions and a Decimal
    for amount conditions.
    """

    field: str
    operator: str
    value: str | Decimal
    case_sensitive: bool = False

    def to_dict(self) -> dict:
        value = str(self.value) if isinstance(self.value, Decimal) else self.value
        return {
            "field": self.field,
            "operator": self.operator,
            "value": value,
            "case_sensitive": self.case_sensitive,
        }


@dataclass(frozen=True)
class CategorizationRule:
    """User-authored rule mapping a transaction pattern to an account/party."""

    id: int
    company_id: int
    rule_name: str
    priority: int
    conditions: tuple[RuleCondition, ...]
    target_account_id: Optional[int]
    target_party_id: Optional[int]
    is_active: bool
    usage_count: int
    last_used_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class RawTransaction:
    """One normalized statement line, before it is persisted.

    At most one of ``debit_amount`` (money out) and ``credit_amount``
    (money in) is set.
    """

    date: Optional[date]
    description: str
    debit_amount: Optional[Decimal] = None
    credit_amount: Optional[Decimal] = None
    running_balance: Optional[Decimal] = None
    reference_number: Optional[str] = None
    row_number: Optional[int] = None

    @property
    def amount(self) -> Optional[Decimal]:
        if self.debit_amount is not None:
            return self.debit_amount
        return self.credit_amount

    @property
    def is_credit(self) -> bool:
        return self.credit_amount is not None and self.debit_amount is None


@dataclass(frozen=True)
class BankFeedTransaction:
    """Persisted bank statement line with suggestion and reconciliation state."""

    id: int
    company_id: int
    bank_account_id: int
    transaction_date: date
    description: str
    debit_amount: Optional[Decimal]
    credit_amount: Optional[Decimal]
    running_balance: Optional[Decimal]
    reference_number: Optional[str]
    source_key: str
    occurrence: int
    suggested_account_id: Optional[int]
    suggested_party_id: Optional[int]
    confidence_score: int
    categorization_source: CategorizationSource
    reconciliation_status: ReconciliationStatus
    created_entry_id: Optional[int]
    matched_journal_entry_id: Optional[int]
    matched_invoice_id: Optional[int]
    matched_bill_id: Optional[int]
    matched_expense_id: Optional[int]
    matched_payment_received_id: Optional[int]
    matched_payment_made_id: Optional[int]
    imported_at: datetime

    @property
    def amount(self) -> Decimal:
        if self.debit_amount is not None:
            return self.debit_amount
        return self.credit_amount or Decimal("0")

    @property
    def is_credit(self) -> bool:
        return self.credit_amount is not None and self.debit_amount is None

    @property
    def matched_entities(self) -> list[tuple[MatchType, int]]:
        """All (type, id) links currently recorded on the transaction."""
        links = [
            (MatchType.JOURNAL_ENTRY, self.matched_journal_entry_id),
            (MatchType.INVOICE, self.matched_invoice_id),
            (MatchType.BILL, self.matched_bill_id),
            (MatchType.EXPENSE, self.matched_expense_id),
            (MatchType.PAYMENT_RECEIVED, self.matched_payment_received_id),
            (MatchType.PAYMENT_MADE, self.matched_payment_made_id),
        ]
        return [(match_type, entity_id) for match_type, entity_id in links if entity_id is not None]


@dataclass(frozen=True)
class JournalEntryLine:
    """One side of a journal entry."""

    id: int
    journal_entry_id: int
    account_id: int
    debit_amount: Decimal
    credit_amount: Decimal
    party_id: Optional[int]
    description: Optional[str]


@dataclass(frozen=True)
class JournalEntry:
    """Balanced bookkeeping record."""

    id: int
    company_id: int
    fiscal_year_id: int
    entry_number: str
    entry_date: date
    entry_type: str
    narration: Optional[str]
    total_debit: Decimal
    total_credit: Decimal
    source_type: Optional[str]
    source_id: Optional[int]
    status: str
    created_at: datetime
    lines: tuple[JournalEntryLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Invoice:
    """Sales invoice (receivable) used as a reconciliation candidate."""

    id: int
    company_id: int
    invoice_number: str
    invoice_date: date
    due_date: date
    customer_id: Optional[int]
    total_amount: Decimal
    balance_due: Decimal
    status: str


@dataclass(frozen=True)
class Bill:
    """Vendor bill (payable) used as a reconciliation candidate."""

    id: int
    company_id: int
    bill_number: str
    vendor_bill_number: Optional[str]
    bill_date: date
    due_date: date
    vendor_id: Optional[int]
    total_amount: Decimal
    balance_due: Decimal
    status: str


@dataclass(frozen=True)
class Payment:
    """Recorded payment, either received from a customer or made to a vendor."""

    id: int
    company_id: int
    direction: str
    payment_number: str
    payment_date: date
    party_id: Optional[int]
    amount: Decimal


@dataclass(frozen=True)
class Expense:
    """Recorded expense voucher."""

    id: int
    company_id: int
    expense_number: str
    expense_date: date
    party_id: Optional[int]
    total_amount: Decimal
