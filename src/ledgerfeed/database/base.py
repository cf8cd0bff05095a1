"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerfeed.domain.entities import (
    Company,
    LedgerAccount,
    Party,
    FiscalYear,
    CategorizationRule,
    BankFeedTransaction,
    JournalEntry,
    Invoice,
    Bill,
    Payment,
    Expense,
    MatchType,
    ReconciliationStatus,
    CategorizationSource,
)


class Database(ABC):
    """Abstract database interface for ledgerfeed."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Company operations
    @abstractmethod
    def create_company(self, name: str) -> int:
        """Create a company. Returns company ID."""
        pass

    @abstractmethod
    def get_company(self, company_id: int) -> Optional[Company]:
        """Get company by ID."""
        pass

    @abstractmethod
    def get_company_by_name(self, name: str) -> Optional[Company]:
        """Get company by exact name."""
        pass

    @abstractmethod
    def list_companies(self) -> list[Company]:
        """List all companies."""
        pass

    # Chart of accounts operations
    @abstractmethod
    def create_account(
        self,
        company_id: int,
        code: str,
        name: str,
        account_type: str,
        is_group: bool = False,
        parent_id: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        """Create a ledger account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[LedgerAccount]:
        """Get ledger account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, company_id: int) -> list[LedgerAccount]:
        """List a company's ledger accounts ordered by code."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate a ledger account."""
        pass

    # Party operations
    @abstractmethod
    def create_party(
        self,
        company_id: int,
        name: str,
        party_type: str,
        default_account_id: Optional[int] = None,
    ) -> int:
        """Create a party. Returns party ID."""
        pass

    @abstractmethod
    def get_party(self, party_id: int) -> Optional[Party]:
        """Get party by ID."""
        pass

    @abstractmethod
    def list_parties(self, company_id: int, active_only: bool = True) -> list[Party]:
        """List a company's parties in creation order."""
        pass

    # Fiscal year operations
    @abstractmethod
    def create_fiscal_year(
        self,
        company_id: int,
        name: str,
        start_date: date,
        end_date: date,
        is_current: bool = False,
    ) -> int:
        """Create a fiscal year. Returns fiscal year ID."""
        pass

    @abstractmethod
    def get_fiscal_year(self, fiscal_year_id: int) -> Optional[FiscalYear]:
        """Get fiscal year by ID."""
        pass

    @abstractmethod
    def get_current_fiscal_year(self, company_id: int) -> Optional[FiscalYear]:
        """Get the company's current fiscal year."""
        pass

    @abstractmethod
    def list_fiscal_years(self, company_id: int) -> list[FiscalYear]:
        """List a company's fiscal years ordered by start date."""
        pass

    @abstractmethod
    def set_current_fiscal_year(self, company_id: int, fiscal_year_id: int) -> None:
        """Mark one fiscal year current and clear the flag on the others."""
        pass

    # Categorization rule operations
    @abstractmethod
    def create_rule(
        self,
        company_id: int,
        rule_name: str,
        priority: int,
        conditions: list[dict[str, Any]],
        target_account_id: Optional[int] = None,
        target_party_id: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        """Create a categorization rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[CategorizationRule]:
        """Get categorization rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, company_id: int, active_only: bool = False) -> list[CategorizationRule]:
        """List rules in evaluation order (priority descending, then ID)."""
        pass

    @abstractmethod
    def update_rule(
        self,
        rule_id: int,
        rule_name: Optional[str] = None,
        priority: Optional[int] = None,
        conditions: Optional[list[dict[str, Any]]] = None,
        target_account_id: Optional[int] = None,
        target_party_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        update_party: bool = False,
    ) -> None:
        """Update rule fields. None leaves a field unchanged.

        Args:
            update_party: If True, set target_party_id even if it's None (to clear it)
        """
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a categorization rule."""
        pass

    @abstractmethod
    def record_rule_usage(self, usage: dict[int, int]) -> None:
        """Add the given hit counts to each rule's usage counter."""
        pass

    # Bank feed operations
    @abstractmethod
    def create_feed_transaction(
        self,
        company_id: int,
        bank_account_id: int,
        transaction_date: date,
        description: str,
        source_key: str,
        occurrence: int = 1,
        debit_amount: Optional[Decimal] = None,
        credit_amount: Optional[Decimal] = None,
        running_balance: Optional[Decimal] = None,
        reference_number: Optional[str] = None,
        suggested_account_id: Optional[int] = None,
        suggested_party_id: Optional[int] = None,
        confidence_score: int = 0,
        categorization_source: CategorizationSource = CategorizationSource.NONE,
    ) -> int:
        """Create a pending bank feed transaction. Returns transaction ID.

        Raises:
            ConflictError: If the same source line is already stored
        """
        pass

    @abstractmethod
    def get_feed_transaction(self, transaction_id: int) -> Optional[BankFeedTransaction]:
        """Get bank feed transaction by ID."""
        pass

    @abstractmethod
    def get_feed_transaction_by_source(
        self, company_id: int, bank_account_id: int, source_key: str, occurrence: int
    ) -> Optional[BankFeedTransaction]:
        """Look up a stored statement line by its fingerprint."""
        pass

    @abstractmethod
    def list_feed_transactions(
        self,
        company_id: int,
        status: Optional[ReconciliationStatus] = None,
        bank_account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[BankFeedTransaction]:
        """List feed transactions, newest first."""
        pass

    @abstractmethod
    def update_feed_suggestion(
        self,
        transaction_id: int,
        suggested_account_id: Optional[int],
        suggested_party_id: Optional[int],
        confidence_score: int,
        categorization_source: CategorizationSource,
    ) -> None:
        """Overwrite the suggestion fields of a feed transaction."""
        pass

    @abstractmethod
    def update_feed_status(
        self,
        transaction_id: int,
        status: ReconciliationStatus,
        match_type: Optional[MatchType] = None,
        entity_id: Optional[int] = None,
    ) -> None:
        """Set reconciliation status and, optionally, one matched-entity link."""
        pass

    @abstractmethod
    def get_claimed_entities(
        self, company_id: int, exclude_transaction_id: Optional[int] = None
    ) -> set[tuple[MatchType, int]]:
        """Entities already linked to a non-excluded feed transaction."""
        pass

    # Journal entry operations
    @abstractmethod
    def create_journal_entry(
        self,
        company_id: int,
        fiscal_year_id: int,
        prefix: str,
        entry_date: date,
        lines: list[dict[str, Any]],
        narration: Optional[str] = None,
        entry_type: str = "manual",
        source_type: Optional[str] = None,
        source_id: Optional[int] = None,
        status: str = "draft",
        feed_transaction_id: Optional[int] = None,
        mark_matched: bool = False,
    ) -> int:
        """Create a numbered journal entry with its lines. Returns entry ID.

        The entry number is allocated atomically as ``<prefix>NNNN`` for the
        company and fiscal year. When ``feed_transaction_id`` is given the
        entry is recorded as that transaction's created entry in the same
        commit. Its reconciliation status is left alone unless
        ``mark_matched`` is set, in which case a pending transaction becomes
        matched to the new entry.

        Raises:
            ConflictError: If the feed transaction already produced an entry
        """
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry (with lines) by ID."""
        pass

    @abstractmethod
    def list_journal_entries(
        self, company_id: int, fiscal_year_id: Optional[int] = None
    ) -> list[JournalEntry]:
        """List journal entries in creation order."""
        pass

    @abstractmethod
    def get_last_entry_number(self, company_id: int, fiscal_year_id: int, prefix: str) -> int:
        """Highest trailing number issued under a prefix, 0 when none."""
        pass

    # Receivable/payable document operations
    @abstractmethod
    def create_invoice(
        self,
        company_id: int,
        invoice_number: str,
        invoice_date: date,
        due_date: date,
        total_amount: Decimal,
        balance_due: Decimal,
        customer_id: Optional[int] = None,
        status: str = "sent",
    ) -> int:
        """Create an invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def list_invoices(self, company_id: int, statuses: Optional[list[str]] = None) -> list[Invoice]:
        """List invoices, optionally restricted to the given statuses."""
        pass

    @abstractmethod
    def create_bill(
        self,
        company_id: int,
        bill_number: str,
        bill_date: date,
        due_date: date,
        total_amount: Decimal,
        balance_due: Decimal,
        vendor_id: Optional[int] = None,
        vendor_bill_number: Optional[str] = None,
        status: str = "pending",
    ) -> int:
        """Create a bill. Returns bill ID."""
        pass

    @abstractmethod
    def get_bill(self, bill_id: int) -> Optional[Bill]:
        """Get bill by ID."""
        pass

    @abstractmethod
    def list_bills(self, company_id: int, statuses: Optional[list[str]] = None) -> list[Bill]:
        """List bills, optionally restricted to the given statuses."""
        pass

    @abstractmethod
    def create_payment(
        self,
        company_id: int,
        direction: str,
        payment_number: str,
        payment_date: date,
        amount: Decimal,
        party_id: Optional[int] = None,
    ) -> int:
        """Create a payment ('received' or 'made'). Returns payment ID."""
        pass

    @abstractmethod
    def get_payment(self, payment_id: int) -> Optional[Payment]:
        """Get payment by ID."""
        pass

    @abstractmethod
    def list_payments(
        self,
        company_id: int,
        direction: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Payment]:
        """List payments, optionally by direction and date range."""
        pass

    @abstractmethod
    def create_expense(
        self,
        company_id: int,
        expense_number: str,
        expense_date: date,
        total_amount: Decimal,
        party_id: Optional[int] = None,
    ) -> int:
        """Create an expense. Returns expense ID."""
        pass

    @abstractmethod
    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        pass

    @abstractmethod
    def list_expenses(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Expense]:
        """List expenses, optionally by date range."""
        pass
