"""Tests for statement preview, ingestion and the auto-categorize sweep."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerfeed.domain.entities import CategorizationSource, ReconciliationStatus
from ledgerfeed.domain.errors import (
    AccountNotFoundError,
    NoTransactionsParsedError,
    NotFoundError,
    UnsupportedFormatError,
)


@pytest.fixture
def statement(fixtures_dir):
    return (fixtures_dir / "sample_statement.csv").read_text(encoding="utf-8")


def amazon_rule(rule_service, company, accounts):
    return rule_service.create_rule(
        company,
        "Amazon",
        [{"field": "description", "operator": "contains", "value": "amazon"}],
        target_account_id=accounts["5030"],
    )


class TestPreview:
    def test_preview_suggestions_and_summary(self, bank_feed_service, company, accounts, parties, statement):
        preview = bank_feed_service.preview_statement(company, statement)

        rows = preview.rows
        assert len(rows) == 5
        assert rows[0].suggestion.account_name == "Rent Expense"
        assert rows[0].suggestion.source == CategorizationSource.HEURISTIC
        assert rows[1].suggestion.party_name == "Globex"
        assert not rows[1].suggestion.is_matched
        assert rows[2].suggestion.account_name == "Electricity Utility"

        assert preview.summary == {
            "total": 5,
            "matched": 2,
            "unmatched": 3,
            "total_debit": Decimal("56798.00"),
            "total_credit": Decimal("75000.00"),
        }

    def test_preview_stores_nothing_but_rule_usage(
        self, bank_feed_service, rule_service, company, accounts, statement
    ):
        rule_id = amazon_rule(rule_service, company, accounts)

        preview = bank_feed_service.preview_statement(company, statement)

        assert preview.rows[3].suggestion.rule_id == rule_id
        assert preview.rows[3].to_dict()["categorization_source"] == "rule"
        assert rule_service.get_rule(rule_id).usage_count == 2
        assert bank_feed_service.list_transactions(company) == []

    def test_preview_empty_statement(self, bank_feed_service, company):
        with pytest.raises(NoTransactionsParsedError):
            bank_feed_service.preview_statement(company, "Date,Description,Debit,Credit\n")

    def test_preview_unsupported_format(self, bank_feed_service, company, statement):
        with pytest.raises(UnsupportedFormatError):
            bank_feed_service.preview_statement(company, statement, fmt="qif")


class TestIngest:
    def test_ingest_creates_pending_transactions(
        self, bank_feed_service, company, bank_account, parties, statement
    ):
        result = bank_feed_service.ingest_statement(company, bank_account, statement)

        assert result == {"imported": 5, "duplicates": 0, "errors": []}
        transactions = bank_feed_service.list_transactions(company)
        assert len(transactions) == 5
        assert all(t.reconciliation_status == ReconciliationStatus.PENDING for t in transactions)
        globex_line = next(t for t in transactions if t.reference_number == "INV-1001")
        assert globex_line.credit_amount == Decimal("75000.00")
        assert globex_line.suggested_party_id == parties["Globex"]

    def test_reingest_counts_duplicates(self, bank_feed_service, company, bank_account, statement):
        bank_feed_service.ingest_statement(company, bank_account, statement)

        result = bank_feed_service.ingest_statement(company, bank_account, statement)

        assert result == {"imported": 0, "duplicates": 5, "errors": []}
        assert len(bank_feed_service.list_transactions(company)) == 5

    def test_same_statement_on_other_bank_is_not_duplicate(
        self, bank_feed_service, company, accounts, statement
    ):
        bank_feed_service.ingest_statement(company, accounts["1010"], statement)

        result = bank_feed_service.ingest_statement(company, accounts["1020"], statement)

        assert result["imported"] == 5

    def test_identical_lines_are_both_kept(self, bank_feed_service, company, bank_account, statement):
        bank_feed_service.ingest_statement(company, bank_account, statement)

        amazon = bank_feed_service.list_transactions(company, search="amazon")

        assert len(amazon) == 2
        assert sorted(t.occurrence for t in amazon) == [1, 2]

    def test_row_without_date_is_reported(self, bank_feed_service, company, bank_account):
        content = "Date,Description,Debit,Credit\nxx/yy,MYSTERY,10,\n01/04/2024,FEE,5,\n"

        result = bank_feed_service.ingest_statement(company, bank_account, content)

        assert result["imported"] == 1
        assert result["errors"] == ["Row 2: Missing or unparseable date"]

    def test_bank_account_must_be_postable(self, bank_feed_service, company, accounts, statement):
        with pytest.raises(AccountNotFoundError):
            bank_feed_service.ingest_statement(company, accounts["1000"], statement)


class TestListing:
    def test_filters(self, bank_feed_service, company, bank_account, statement):
        bank_feed_service.ingest_statement(company, bank_account, statement)

        newest = bank_feed_service.list_transactions(company, limit=1)
        ranged = bank_feed_service.list_transactions(
            company, start_date=date(2024, 4, 2), end_date=date(2024, 4, 3)
        )
        by_reference = bank_feed_service.list_transactions(company, search="eb123")

        assert newest[0].transaction_date == date(2024, 4, 5)
        assert {t.transaction_date for t in ranged} == {date(2024, 4, 2), date(2024, 4, 3)}
        assert len(by_reference) == 1
        assert bank_feed_service.list_transactions(company, status=ReconciliationStatus.MATCHED) == []

    def test_summary(self, bank_feed_service, company, bank_account, statement):
        bank_feed_service.ingest_statement(company, bank_account, statement)

        summary = bank_feed_service.get_summary(company)

        assert summary["total"] == 5
        assert summary["pending"] == 5
        assert summary["matched"] == 0
        assert summary["total_debit"] == Decimal("56798.00")
        assert summary["total_credit"] == Decimal("75000.00")

    def test_get_transaction_scoped_to_company(
        self, bank_feed_service, company_service, company, bank_account, statement
    ):
        bank_feed_service.ingest_statement(company, bank_account, statement)
        txn = bank_feed_service.list_transactions(company)[0]
        other = company_service.create_company("Other Co")

        assert bank_feed_service.get_transaction(company, txn.id).id == txn.id
        with pytest.raises(NotFoundError):
            bank_feed_service.get_transaction(other, txn.id)


class TestAutoCategorize:
    def test_sweep_applies_new_rules(
        self, bank_feed_service, rule_service, company, accounts, bank_account, statement
    ):
        bank_feed_service.ingest_statement(company, bank_account, statement)
        rule_id = amazon_rule(rule_service, company, accounts)

        result = bank_feed_service.auto_categorize(company)

        assert result == {"processed": 5, "categorized": 4}
        amazon = bank_feed_service.list_transactions(company, search="amazon")
        assert all(t.suggested_account_id == accounts["5030"] for t in amazon)
        assert all(t.categorization_source == CategorizationSource.RULE for t in amazon)
        assert rule_service.get_rule(rule_id).usage_count == 2

    def test_sweep_leaves_manual_choices_alone(
        self, bank_feed_service, reconciliation_service, company, accounts, bank_account, statement
    ):
        bank_feed_service.ingest_statement(company, bank_account, statement)
        rent = bank_feed_service.list_transactions(company, search="rent")[0]
        reconciliation_service.categorize_transaction(company, rent.id, accounts["5030"])

        result = bank_feed_service.auto_categorize(company)

        assert result["processed"] == 4
        assert bank_feed_service.get_transaction(company, rent.id).suggested_account_id == accounts["5030"]
