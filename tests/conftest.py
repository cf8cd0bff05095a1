"""Shared pytest fixtures for ledgerfeed tests."""

import os
import tempfile
from datetime import date
from pathlib import Path

import pytest

from ledgerfeed.database.factories import create_sqlite_database
from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.bank_feed import BankFeedService
from ledgerfeed.domain.company import CompanyService
from ledgerfeed.domain.documents import DocumentService
from ledgerfeed.domain.fiscal_year import FiscalYearService
from ledgerfeed.domain.importer import ImportService
from ledgerfeed.domain.party import PartyService
from ledgerfeed.domain.reconciler import MatchSettings, ReconciliationService
from ledgerfeed.domain.rules import RuleService

# (code, name, type, is_group, parent code)
CHART_OF_ACCOUNTS = [
    ("1000", "Assets", "asset", True, None),
    ("1010", "HDFC Bank", "asset", False, "1000"),
    ("1020", "ICICI Bank", "asset", False, "1000"),
    ("1100", "Accounts Receivable", "asset", False, "1000"),
    ("2000", "Accounts Payable", "liability", False, None),
    ("4000", "Sales Income", "income", False, None),
    ("5000", "Expenses", "expense", True, None),
    ("5010", "Rent Expense", "expense", False, "5000"),
    ("5020", "Electricity Utility", "expense", False, "5000"),
    ("5030", "Office Supplies", "expense", False, "5000"),
    ("5040", "Salary Expense", "expense", False, "5000"),
]


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def company_service(temp_db):
    return CompanyService(temp_db)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def party_service(temp_db):
    return PartyService(temp_db)


@pytest.fixture
def fiscal_year_service(temp_db):
    return FiscalYearService(temp_db)


@pytest.fixture
def document_service(temp_db):
    return DocumentService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    return RuleService(temp_db)


@pytest.fixture
def bank_feed_service(temp_db):
    return BankFeedService(temp_db)


@pytest.fixture
def import_service(temp_db):
    return ImportService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Reconciliation service with default tunables, independent of the environment."""
    return ReconciliationService(temp_db, settings=MatchSettings())


@pytest.fixture
def company(company_service):
    """Create a sample company and return its ID."""
    return company_service.create_company("Acme Traders")


@pytest.fixture
def accounts(account_service, company):
    """Create the sample chart of accounts and return account IDs by code."""
    ids = {}
    for code, name, account_type, is_group, parent in CHART_OF_ACCOUNTS:
        ids[code] = account_service.create_account(
            company_id=company,
            code=code,
            name=name,
            account_type=account_type,
            is_group=is_group,
            parent_id=ids[parent] if parent else None,
        )
    return ids


@pytest.fixture
def bank_account(accounts):
    """ID of the sample bank ledger account."""
    return accounts["1010"]


@pytest.fixture
def fiscal_year(fiscal_year_service, company):
    """Create the current fiscal year and return it."""
    fiscal_year_service.create_fiscal_year(
        company_id=company,
        name="FY2024-25",
        start_date=date(2024, 4, 1),
        end_date=date(2025, 3, 31),
        is_current=True,
    )
    return fiscal_year_service.get_current(company)


@pytest.fixture
def parties(party_service, company):
    """Create a customer and a vendor and return party IDs by name."""
    return {
        "Globex": party_service.create_party(company, "Globex", "customer"),
        "Initech": party_service.create_party(company, "Initech", "vendor"),
    }


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
