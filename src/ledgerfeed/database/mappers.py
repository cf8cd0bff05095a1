"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so schema changes stay out of the
domain services.
"""

from decimal import Decimal
from typing import Any, Optional

from ledgerfeed.domain import entities as domain
from ledgerfeed.database.models import (
    Company as ORMCompany,
    LedgerAccount as ORMLedgerAccount,
    Party as ORMParty,
    FiscalYear as ORMFiscalYear,
    CategorizationRule as ORMCategorizationRule,
    BankFeedTransaction as ORMBankFeedTransaction,
    JournalEntry as ORMJournalEntry,
    JournalEntryLine as ORMJournalEntryLine,
    Invoice as ORMInvoice,
    Bill as ORMBill,
    Payment as ORMPayment,
    Expense as ORMExpense,
)


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"))


def company_to_domain(orm_company: ORMCompany) -> domain.Company:
    """Convert SQLAlchemy Company model to domain Company entity."""
    return domain.Company(
        id=orm_company.id,
        name=orm_company.name,
        created_at=orm_company.created_at,
    )


def account_to_domain(orm_account: ORMLedgerAccount) -> domain.LedgerAccount:
    """Convert SQLAlchemy LedgerAccount model to domain LedgerAccount entity."""
    return domain.LedgerAccount(
        id=orm_account.id,
        company_id=orm_account.company_id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=orm_account.account_type,
        is_group=bool(orm_account.is_group),
        is_active=bool(orm_account.is_active),
        parent_id=orm_account.parent_id,
        created_at=orm_account.created_at,
    )


def party_to_domain(orm_party: ORMParty) -> domain.Party:
    """Convert SQLAlchemy Party model to domain Party entity."""
    return domain.Party(
        id=orm_party.id,
        company_id=orm_party.company_id,
        name=orm_party.name,
        party_type=orm_party.party_type,
        default_account_id=orm_party.default_account_id,
        is_active=bool(orm_party.is_active),
        created_at=orm_party.created_at,
    )


def fiscal_year_to_domain(orm_year: ORMFiscalYear) -> domain.FiscalYear:
    """Convert SQLAlchemy FiscalYear model to domain FiscalYear entity."""
    return domain.FiscalYear(
        id=orm_year.id,
        company_id=orm_year.company_id,
        name=orm_year.name,
        start_date=orm_year.start_date,
        end_date=orm_year.end_date,
        is_current=bool(orm_year.is_current),
    )


def condition_to_domain(raw: dict[str, Any]) -> domain.RuleCondition:
    """Convert a stored JSON condition to a domain RuleCondition."""
    value = raw.get("value", "")
    if raw.get("field") == "amount":
        value = Decimal(str(value))
    return domain.RuleCondition(
        field=raw.get("field", ""),
        operator=raw.get("operator", ""),
        value=value,
        case_sensitive=bool(raw.get("case_sensitive", False)),
    )


def rule_to_domain(orm_rule: ORMCategorizationRule) -> domain.CategorizationRule:
    """Convert SQLAlchemy CategorizationRule model to domain entity."""
    return domain.CategorizationRule(
        id=orm_rule.id,
        company_id=orm_rule.company_id,
        rule_name=orm_rule.rule_name,
        priority=orm_rule.priority,
        conditions=tuple(condition_to_domain(c) for c in (orm_rule.conditions or [])),
        target_account_id=orm_rule.target_account_id,
        target_party_id=orm_rule.target_party_id,
        is_active=bool(orm_rule.is_active),
        usage_count=orm_rule.usage_count or 0,
        last_used_at=orm_rule.last_used_at,
        created_at=orm_rule.created_at,
    )


def feed_transaction_to_domain(orm_txn: ORMBankFeedTransaction) -> domain.BankFeedTransaction:
    """Convert SQLAlchemy BankFeedTransaction model to domain entity."""
    return domain.BankFeedTransaction(
        id=orm_txn.id,
        company_id=orm_txn.company_id,
        bank_account_id=orm_txn.bank_account_id,
        transaction_date=orm_txn.transaction_date,
        description=orm_txn.description,
        debit_amount=_decimal(orm_txn.debit_amount),
        credit_amount=_decimal(orm_txn.credit_amount),
        running_balance=_decimal(orm_txn.running_balance),
        reference_number=orm_txn.reference_number,
        source_key=orm_txn.source_key,
        occurrence=orm_txn.occurrence,
        suggested_account_id=orm_txn.suggested_account_id,
        suggested_party_id=orm_txn.suggested_party_id,
        confidence_score=orm_txn.confidence_score or 0,
        categorization_source=domain.CategorizationSource(orm_txn.categorization_source),
        reconciliation_status=domain.ReconciliationStatus(orm_txn.reconciliation_status),
        created_entry_id=orm_txn.created_entry_id,
        matched_journal_entry_id=orm_txn.matched_journal_entry_id,
        matched_invoice_id=orm_txn.matched_invoice_id,
        matched_bill_id=orm_txn.matched_bill_id,
        matched_expense_id=orm_txn.matched_expense_id,
        matched_payment_received_id=orm_txn.matched_payment_received_id,
        matched_payment_made_id=orm_txn.matched_payment_made_id,
        imported_at=orm_txn.imported_at,
    )


def journal_line_to_domain(orm_line: ORMJournalEntryLine) -> domain.JournalEntryLine:
    """Convert SQLAlchemy JournalEntryLine model to domain entity."""
    return domain.JournalEntryLine(
        id=orm_line.id,
        journal_entry_id=orm_line.journal_entry_id,
        account_id=orm_line.account_id,
        debit_amount=_decimal(orm_line.debit_amount),
        credit_amount=_decimal(orm_line.credit_amount),
        party_id=orm_line.party_id,
        description=orm_line.description,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with lines) to domain entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        company_id=orm_entry.company_id,
        fiscal_year_id=orm_entry.fiscal_year_id,
        entry_number=orm_entry.entry_number,
        entry_date=orm_entry.entry_date,
        entry_type=orm_entry.entry_type,
        narration=orm_entry.narration,
        total_debit=_decimal(orm_entry.total_debit),
        total_credit=_decimal(orm_entry.total_credit),
        source_type=orm_entry.source_type,
        source_id=orm_entry.source_id,
        status=orm_entry.status,
        created_at=orm_entry.created_at,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        company_id=orm_invoice.company_id,
        invoice_number=orm_invoice.invoice_number,
        invoice_date=orm_invoice.invoice_date,
        due_date=orm_invoice.due_date,
        customer_id=orm_invoice.customer_id,
        total_amount=_decimal(orm_invoice.total_amount),
        balance_due=_decimal(orm_invoice.balance_due),
        status=orm_invoice.status,
    )


def bill_to_domain(orm_bill: ORMBill) -> domain.Bill:
    """Convert SQLAlchemy Bill model to domain entity."""
    return domain.Bill(
        id=orm_bill.id,
        company_id=orm_bill.company_id,
        bill_number=orm_bill.bill_number,
        vendor_bill_number=orm_bill.vendor_bill_number,
        bill_date=orm_bill.bill_date,
        due_date=orm_bill.due_date,
        vendor_id=orm_bill.vendor_id,
        total_amount=_decimal(orm_bill.total_amount),
        balance_due=_decimal(orm_bill.balance_due),
        status=orm_bill.status,
    )


def payment_to_domain(orm_payment: ORMPayment) -> domain.Payment:
    """Convert SQLAlchemy Payment model to domain entity."""
    return domain.Payment(
        id=orm_payment.id,
        company_id=orm_payment.company_id,
        direction=orm_payment.direction,
        payment_number=orm_payment.payment_number,
        payment_date=orm_payment.payment_date,
        party_id=orm_payment.party_id,
        amount=_decimal(orm_payment.amount),
    )


def expense_to_domain(orm_expense: ORMExpense) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain entity."""
    return domain.Expense(
        id=orm_expense.id,
        company_id=orm_expense.company_id,
        expense_number=orm_expense.expense_number,
        expense_date=orm_expense.expense_date,
        party_id=orm_expense.party_id,
        total_amount=_decimal(orm_expense.total_amount),
    )
