"""Receivable and payable documents.

Invoices, bills, payments and expenses are owned by other parts of the books;
this service gives them just enough CRUD to act as reconciliation candidates.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

from ledgerfeed.database.base import Database
from ledgerfeed.domain.entities import Bill, Expense, Invoice, JournalEntry, MatchType, Payment
from ledgerfeed.domain.errors import NotFoundError, ValidationError, company_not_found, party_not_found

INVOICE_STATUSES = ("draft", "sent", "partially_paid", "overdue", "paid", "cancelled")
BILL_STATUSES = ("draft", "pending", "partially_paid", "overdue", "paid", "cancelled")
OPEN_INVOICE_STATUSES = ["sent", "partially_paid", "overdue"]
OPEN_BILL_STATUSES = ["pending", "partially_paid", "overdue"]
PAYMENT_DIRECTIONS = ("received", "made")

Document = Union[Invoice, Bill, Payment, Expense, JournalEntry]


class DocumentService:
    """Service for invoices, bills, payments and expenses."""

    def __init__(self, db: Database):
        """Initialize document service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_refs(self, company_id: int, party_id: Optional[int]) -> None:
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        if party_id is not None:
            party = self.db.get_party(party_id)
            if party is None or party.company_id != company_id:
                raise NotFoundError(party_not_found(party_id))

    @staticmethod
    def _check_amount(amount: Decimal) -> None:
        if amount <= 0:
            raise ValidationError("Amount must be positive")

    def create_invoice(
        self,
        company_id: int,
        invoice_number: str,
        invoice_date: date,
        total_amount: Decimal,
        due_date: Optional[date] = None,
        customer_id: Optional[int] = None,
        balance_due: Optional[Decimal] = None,
        status: str = "sent",
    ) -> int:
        """Create a sales invoice.

        Args:
            company_id: Owning company
            invoice_number: Document number
            invoice_date: Issue date
            total_amount: Invoice total
            due_date: Due date (defaults to the issue date)
            customer_id: Optional customer party
            balance_due: Outstanding amount (defaults to the total)
            status: Invoice status

        Returns:
            Invoice ID

        Raises:
            NotFoundError: If the company or customer does not exist
            ValidationError: If the amount or status is invalid
        """
        self._check_refs(company_id, customer_id)
        self._check_amount(total_amount)
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Invalid invoice status '{status}'")
        return self.db.create_invoice(
            company_id=company_id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            due_date=due_date or invoice_date,
            total_amount=total_amount,
            balance_due=total_amount if balance_due is None else balance_due,
            customer_id=customer_id,
            status=status,
        )

    def list_invoices(self, company_id: int, open_only: bool = False) -> list[Invoice]:
        """List invoices; open ones are sent, partially paid or overdue."""
        return self.db.list_invoices(company_id, statuses=OPEN_INVOICE_STATUSES if open_only else None)

    def create_bill(
        self,
        company_id: int,
        bill_number: str,
        bill_date: date,
        total_amount: Decimal,
        due_date: Optional[date] = None,
        vendor_id: Optional[int] = None,
        vendor_bill_number: Optional[str] = None,
        balance_due: Optional[Decimal] = None,
        status: str = "pending",
    ) -> int:
        """Create a vendor bill. Defaults mirror create_invoice.

        Raises:
            NotFoundError: If the company or vendor does not exist
            ValidationError: If the amount or status is invalid
        """
        self._check_refs(company_id, vendor_id)
        self._check_amount(total_amount)
        if status not in BILL_STATUSES:
            raise ValidationError(f"Invalid bill status '{status}'")
        return self.db.create_bill(
            company_id=company_id,
            bill_number=bill_number,
            bill_date=bill_date,
            due_date=due_date or bill_date,
            total_amount=total_amount,
            balance_due=total_amount if balance_due is None else balance_due,
            vendor_id=vendor_id,
            vendor_bill_number=vendor_bill_number,
            status=status,
        )

    def list_bills(self, company_id: int, open_only: bool = False) -> list[Bill]:
        """List bills; open ones are pending, partially paid or overdue."""
        return self.db.list_bills(company_id, statuses=OPEN_BILL_STATUSES if open_only else None)

    def record_payment(
        self,
        company_id: int,
        direction: str,
        payment_number: str,
        payment_date: date,
        amount: Decimal,
        party_id: Optional[int] = None,
    ) -> int:
        """Record a payment received from a customer or made to a vendor."""
        self._check_refs(company_id, party_id)
        self._check_amount(amount)
        if direction not in PAYMENT_DIRECTIONS:
            raise ValidationError(f"Invalid payment direction '{direction}'. Use 'received' or 'made'")
        return self.db.create_payment(
            company_id=company_id,
            direction=direction,
            payment_number=payment_number,
            payment_date=payment_date,
            amount=amount,
            party_id=party_id,
        )

    def list_payments(
        self,
        company_id: int,
        direction: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Payment]:
        return self.db.list_payments(company_id, direction=direction, start_date=start_date, end_date=end_date)

    def create_expense(
        self,
        company_id: int,
        expense_number: str,
        expense_date: date,
        total_amount: Decimal,
        party_id: Optional[int] = None,
    ) -> int:
        """Record an expense voucher."""
        self._check_refs(company_id, party_id)
        self._check_amount(total_amount)
        return self.db.create_expense(
            company_id=company_id,
            expense_number=expense_number,
            expense_date=expense_date,
            total_amount=total_amount,
            party_id=party_id,
        )

    def list_expenses(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Expense]:
        return self.db.list_expenses(company_id, start_date=start_date, end_date=end_date)

    def get_document(self, company_id: int, match_type: MatchType, entity_id: int) -> Optional[Document]:
        """Fetch a matchable record of the given type, scoped to the company.

        Payments must also have the direction implied by the match type.
        """
        match_type = MatchType(match_type)
        if match_type == MatchType.INVOICE:
            document = self.db.get_invoice(entity_id)
        elif match_type == MatchType.BILL:
            document = self.db.get_bill(entity_id)
        elif match_type == MatchType.EXPENSE:
            document = self.db.get_expense(entity_id)
        elif match_type == MatchType.JOURNAL_ENTRY:
            document = self.db.get_journal_entry(entity_id)
        else:
            document = self.db.get_payment(entity_id)
            expected = "received" if match_type == MatchType.PAYMENT_RECEIVED else "made"
            if document is not None and document.direction != expected:
                return None

        if document is None or document.company_id != company_id:
            return None
        return document
