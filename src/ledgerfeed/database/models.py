"""SQLAlchemy models for ledgerfeed database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    JSON,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Company(Base):
    """Tenant company model."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class LedgerAccount(Base):
    """Chart-of-accounts model with hierarchical structure."""

    __tablename__ = "chart_of_accounts"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=True)
    is_group = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "code", name="uq_coa_company_code"),)

    parent = relationship("LedgerAccount", remote_side=[id], backref="children")


class Party(Base):
    """Customer/vendor model."""

    __tablename__ = "parties"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    name = Column(String, nullable=False)
    party_type = Column(String, nullable=False)
    default_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class FiscalYear(Base):
    """Fiscal year model."""

    __tablename__ = "fiscal_years"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_current = Column(Boolean, default=False, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "name", name="uq_fiscal_year_name"),)


class CategorizationRule(Base):
    """User-authored categorization rule model."""

    __tablename__ = "categorization_rules"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    rule_name = Column(String, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    conditions = Column(JSON, nullable=False, default=list)
    target_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=True)
    target_party_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class BankFeedTransaction(Base):
    """Imported bank statement line model."""

    __tablename__ = "bank_feed_transactions"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    bank_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    debit_amount = Column(Numeric(18, 2), nullable=True)
    credit_amount = Column(Numeric(18, 2), nullable=True)
    running_balance = Column(Numeric(18, 2), nullable=True)
    reference_number = Column(String, nullable=True)
    source_key = Column(String, nullable=False)
    occurrence = Column(Integer, default=1, nullable=False)
    suggested_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=True)
    suggested_party_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    confidence_score = Column(Integer, default=0, nullable=False)
    categorization_source = Column(String, default="none", nullable=False)
    reconciliation_status = Column(String, default="pending", nullable=False)
    created_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    matched_journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    matched_invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    matched_bill_id = Column(Integer, ForeignKey("bills.id"), nullable=True)
    matched_expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=True)
    matched_payment_received_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    matched_payment_made_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    imported_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "company_id", "bank_account_id", "source_key", "occurrence", name="uq_feed_source_line"
        ),
    )


class JournalEntry(Base):
    """Journal entry header model."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    fiscal_year_id = Column(Integer, ForeignKey("fiscal_years.id"), nullable=False)
    entry_number = Column(String, nullable=False)
    entry_date = Column(Date, nullable=False)
    entry_type = Column(String, default="manual", nullable=False)
    narration = Column(String, nullable=True)
    total_debit = Column(Numeric(18, 2), nullable=False)
    total_credit = Column(Numeric(18, 2), nullable=False)
    source_type = Column(String, nullable=True)
    source_id = Column(Integer, nullable=True)
    status = Column(String, default="draft", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "fiscal_year_id", "entry_number", name="uq_entry_number"),
    )

    lines = relationship(
        "JournalEntryLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.id",
    )


class JournalEntryLine(Base):
    """Journal entry line model."""

    __tablename__ = "journal_entry_lines"

    id = Column(Integer, primary_key=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=False)
    debit_amount = Column(Numeric(18, 2), default=0, nullable=False)
    credit_amount = Column(Numeric(18, 2), default=0, nullable=False)
    party_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    description = Column(String, nullable=True)

    entry = relationship("JournalEntry", back_populates="lines")


class EntrySequence(Base):
    """Last issued entry number per company, fiscal year and prefix.

    Allocation increments ``last_number`` in a single UPDATE, so two imports
    can never read the same value.
    """

    __tablename__ = "entry_sequences"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    fiscal_year_id = Column(Integer, ForeignKey("fiscal_years.id"), nullable=False)
    prefix = Column(String, nullable=False)
    last_number = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "fiscal_year_id", "prefix", name="uq_entry_sequence"),
    )


class Invoice(Base):
    """Sales invoice model."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    invoice_number = Column(String, nullable=False)
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    customer_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False)
    balance_due = Column(Numeric(18, 2), nullable=False)
    status = Column(String, default="sent", nullable=False)


class Bill(Base):
    """Vendor bill model."""

    __tablename__ = "bills"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    bill_number = Column(String, nullable=False)
    vendor_bill_number = Column(String, nullable=True)
    bill_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    vendor_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False)
    balance_due = Column(Numeric(18, 2), nullable=False)
    status = Column(String, default="pending", nullable=False)


class Payment(Base):
    """Payment received or made model."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    direction = Column(String, nullable=False)
    payment_number = Column(String, nullable=False)
    payment_date = Column(Date, nullable=False)
    party_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)


class Expense(Base):
    """Expense voucher model."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    expense_number = Column(String, nullable=False)
    expense_date = Column(Date, nullable=False)
    party_id = Column(Integer, ForeignKey("parties.id"), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
