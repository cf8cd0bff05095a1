"""Tests for matching feed transactions to invoices, bills, payments and expenses."""

from datetime import date
from decimal import Decimal
from itertools import count

import pytest

from ledgerfeed.domain.entities import CategorizationSource, MatchType, ReconciliationStatus
from ledgerfeed.domain.errors import (
    AlreadyImportedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ledgerfeed.domain.reconciler import (
    BALANCE_DUE_CONFIDENCE,
    REFERENCE_CONFIDENCE,
    MatchCandidate,
    MatchSettings,
    ReconciliationService,
    select_candidate,
)

_keys = count(1)


@pytest.fixture
def add_feed(temp_db, company, bank_account):
    """Factory storing a pending feed transaction and returning its ID."""

    def _add(day, debit=None, credit=None, reference=None, party_id=None, description="BANK LINE"):
        return temp_db.create_feed_transaction(
            company_id=company,
            bank_account_id=bank_account,
            transaction_date=day,
            description=description,
            source_key=f"test-{next(_keys)}",
            debit_amount=Decimal(debit) if debit else None,
            credit_amount=Decimal(credit) if credit else None,
            reference_number=reference,
            suggested_party_id=party_id,
        )

    return _add


def invoice(document_service, company, number, amount, day=date(2024, 4, 1), due=None, customer=None, **kw):
    return document_service.create_invoice(
        company, number, day, Decimal(amount), due_date=due, customer_id=customer, **kw
    )


class TestMoneyIn:
    def test_matches_invoice_balance_due(
        self, reconciliation_service, document_service, bank_feed_service, company, add_feed
    ):
        invoice_id = invoice(document_service, company, "INV-1001", "75000")
        txn_id = add_feed(date(2024, 4, 2), credit="75000")

        result = reconciliation_service.auto_reconcile(company)

        assert result == {"processed": 1, "matched": 1, "ambiguous": 0, "failed": 0}
        txn = bank_feed_service.get_transaction(company, txn_id)
        assert txn.reconciliation_status == ReconciliationStatus.MATCHED
        assert txn.matched_invoice_id == invoice_id

    def test_partially_paid_invoice_matches_on_balance(
        self, reconciliation_service, document_service, company, add_feed
    ):
        invoice_id = invoice(
            document_service, company, "INV-1", "1000", balance_due=Decimal("400"), status="partially_paid"
        )
        txn_id = add_feed(date(2024, 4, 3), credit="400")

        match = reconciliation_service.find_match(company, txn_id)

        assert match.selected.entity_id == invoice_id
        assert match.selected.confidence_score == BALANCE_DUE_CONFIDENCE

    def test_reference_beats_amount(self, reconciliation_service, document_service, company, add_feed):
        invoice(document_service, company, "INV-1", "500")
        referenced = invoice(document_service, company, "INV-2002", "999")
        txn_id = add_feed(date(2024, 4, 2), credit="500", reference="2002")

        match = reconciliation_service.find_match(company, txn_id)

        assert match.selected.entity_id == referenced
        assert match.selected.confidence_score == REFERENCE_CONFIDENCE

    def test_paid_and_draft_invoices_are_ignored(self, reconciliation_service, document_service, company, add_feed):
        invoice(document_service, company, "INV-1", "500", status="paid")
        invoice(document_service, company, "INV-2", "500", status="draft")
        txn_id = add_feed(date(2024, 4, 2), credit="500")

        assert reconciliation_service.find_match(company, txn_id).candidates == []

    def test_date_window_around_invoice(self, reconciliation_service, document_service, company, add_feed):
        invoice(document_service, company, "INV-1", "500", day=date(2024, 4, 1), due=date(2024, 4, 10))
        inside = add_feed(date(2024, 4, 15), credit="500")
        outside = add_feed(date(2024, 4, 16), credit="500")
        early = add_feed(date(2024, 3, 27), credit="500")

        assert len(reconciliation_service.find_match(company, inside).candidates) == 1
        assert reconciliation_service.find_match(company, outside).candidates == []
        assert len(reconciliation_service.find_match(company, early).candidates) == 1

    def test_amount_tolerance(self, temp_db, document_service, company, add_feed):
        service = ReconciliationService(temp_db, settings=MatchSettings(amount_tolerance=Decimal("1")))
        invoice(document_service, company, "INV-1", "500.00")
        close = add_feed(date(2024, 4, 2), credit="500.50")
        off = add_feed(date(2024, 4, 2), credit="501.50")

        assert service.find_match(company, close).candidates
        assert not service.find_match(company, off).candidates

    def test_payment_received_candidate(self, reconciliation_service, document_service, company, add_feed):
        payment_id = document_service.record_payment(company, "received", "PAY-1", date(2024, 4, 1), Decimal("250"))
        txn_id = add_feed(date(2024, 4, 4), credit="250")

        match = reconciliation_service.find_match(company, txn_id)

        assert match.selected.match_type == MatchType.PAYMENT_RECEIVED
        assert match.selected.entity_id == payment_id


class TestMoneyOut:
    def test_bill_matched_by_vendor_reference(self, reconciliation_service, document_service, company, add_feed):
        bill_id = document_service.create_bill(
            company, "BILL-1", date(2024, 4, 1), Decimal("4200"), vendor_bill_number="EB123"
        )
        txn_id = add_feed(date(2024, 4, 3), debit="1", reference="eb123")

        match = reconciliation_service.find_match(company, txn_id)

        assert match.selected.match_type == MatchType.BILL
        assert match.selected.entity_id == bill_id
        assert match.selected.confidence_score == REFERENCE_CONFIDENCE

    def test_money_out_never_matches_invoices(self, reconciliation_service, document_service, company, add_feed):
        invoice(document_service, company, "INV-1", "500")
        txn_id = add_feed(date(2024, 4, 2), debit="500", reference="INV-1")

        assert reconciliation_service.find_match(company, txn_id).candidates == []

    def test_payment_made_beats_expense(self, reconciliation_service, document_service, company, add_feed):
        document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("99"))
        payment_id = document_service.record_payment(company, "made", "PAY-9", date(2024, 4, 1), Decimal("99"))
        txn_id = add_feed(date(2024, 4, 2), debit="99")

        match = reconciliation_service.find_match(company, txn_id)

        assert len(match.candidates) == 2
        assert match.selected.match_type == MatchType.PAYMENT_MADE
        assert match.selected.entity_id == payment_id

    def test_expense_outside_window(self, reconciliation_service, document_service, company, add_feed):
        document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("99"))
        txn_id = add_feed(date(2024, 4, 7), debit="99")

        assert reconciliation_service.find_match(company, txn_id).candidates == []


class TestSelection:
    def test_identical_invoices_are_ambiguous(
        self, reconciliation_service, document_service, bank_feed_service, company, add_feed
    ):
        invoice(document_service, company, "INV-1", "500")
        invoice(document_service, company, "INV-2", "500")
        txn_id = add_feed(date(2024, 4, 2), credit="500")

        result = reconciliation_service.auto_reconcile(company)

        assert result["matched"] == 0
        assert result["ambiguous"] == 1
        txn = bank_feed_service.get_transaction(company, txn_id)
        assert txn.reconciliation_status == ReconciliationStatus.PENDING
        assert txn.matched_entities == []

    def test_party_breaks_tie(self, reconciliation_service, document_service, company, parties, add_feed):
        invoice(document_service, company, "INV-1", "500", customer=parties["Initech"])
        wanted = invoice(document_service, company, "INV-2", "500", customer=parties["Globex"])
        txn_id = add_feed(date(2024, 4, 2), credit="500", party_id=parties["Globex"])

        match = reconciliation_service.find_match(company, txn_id)

        assert not match.ambiguous
        assert match.selected.entity_id == wanted

    def test_party_shared_by_tied_candidates_stays_ambiguous(self):
        candidates = [
            MatchCandidate(MatchType.INVOICE, 1, "INV-1", 90, "", party_id=7),
            MatchCandidate(MatchType.INVOICE, 2, "INV-2", 90, "", party_id=7),
        ]

        assert select_candidate(candidates, MatchSettings(), party_id=7) == (None, True)

    def test_below_threshold_is_not_selected(self):
        candidates = [MatchCandidate(MatchType.EXPENSE, 1, "EXP-1", 85, "")]

        assert select_candidate(candidates, MatchSettings(min_confidence=90)) == (None, False)

    def test_claimed_record_goes_to_oldest_transaction(
        self, reconciliation_service, document_service, bank_feed_service, company, add_feed
    ):
        invoice_id = invoice(document_service, company, "INV-1", "500")
        later = add_feed(date(2024, 4, 4), credit="500")
        earlier = add_feed(date(2024, 4, 2), credit="500")

        result = reconciliation_service.auto_reconcile(company)

        assert result["matched"] == 1
        assert bank_feed_service.get_transaction(company, earlier).matched_invoice_id == invoice_id
        assert bank_feed_service.get_transaction(company, later).reconciliation_status == ReconciliationStatus.PENDING

    def test_sweep_can_be_restricted(self, reconciliation_service, document_service, company, add_feed):
        invoice(document_service, company, "INV-1", "500")
        invoice(document_service, company, "INV-2", "700")
        add_feed(date(2024, 4, 2), credit="500")
        only = add_feed(date(2024, 4, 2), credit="700")

        result = reconciliation_service.auto_reconcile(company, transaction_ids=[only])

        assert result["processed"] == 1
        assert result["matched"] == 1

    def test_find_match_does_not_mutate(
        self, reconciliation_service, document_service, bank_feed_service, company, add_feed
    ):
        invoice(document_service, company, "INV-1", "500")
        txn_id = add_feed(date(2024, 4, 2), credit="500")

        reconciliation_service.find_match(company, txn_id)

        assert bank_feed_service.get_transaction(company, txn_id).reconciliation_status == ReconciliationStatus.PENDING


class TestLifecycle:
    def test_manual_match_then_reconcile(
        self, reconciliation_service, document_service, company, add_feed
    ):
        expense_id = document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("10"))
        txn_id = add_feed(date(2024, 6, 1), debit="999")

        matched = reconciliation_service.match_transaction(company, txn_id, "expense", expense_id)
        reconciled = reconciliation_service.reconcile_transaction(company, txn_id)

        assert matched.reconciliation_status == ReconciliationStatus.MATCHED
        assert matched.matched_expense_id == expense_id
        assert reconciled.reconciliation_status == ReconciliationStatus.RECONCILED

    def test_terminal_states(self, reconciliation_service, document_service, company, add_feed):
        expense_id = document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("10"))
        excluded = add_feed(date(2024, 4, 1), debit="10")
        reconciliation_service.exclude_transaction(company, excluded)

        with pytest.raises(InvalidTransitionError):
            reconciliation_service.match_transaction(company, excluded, MatchType.EXPENSE, expense_id)
        with pytest.raises(InvalidTransitionError):
            reconciliation_service.exclude_transaction(company, excluded)

    def test_reconcile_requires_matched(self, reconciliation_service, company, add_feed):
        txn_id = add_feed(date(2024, 4, 1), debit="10")

        with pytest.raises(InvalidTransitionError):
            reconciliation_service.reconcile_transaction(company, txn_id)

    def test_manual_match_errors(self, reconciliation_service, document_service, company, add_feed):
        expense_id = document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("10"))
        first = add_feed(date(2024, 4, 1), debit="10")
        second = add_feed(date(2024, 4, 1), debit="10")
        reconciliation_service.match_transaction(company, first, "expense", expense_id)

        with pytest.raises(ValidationError):
            reconciliation_service.match_transaction(company, second, "receipt", expense_id)
        with pytest.raises(NotFoundError):
            reconciliation_service.match_transaction(company, second, "invoice", 4242)
        with pytest.raises(ConflictError):
            reconciliation_service.match_transaction(company, second, "expense", expense_id)

    def test_claimed_record_is_not_offered(
        self, reconciliation_service, document_service, company, add_feed
    ):
        expense_id = document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("10"))
        first = add_feed(date(2024, 4, 1), debit="10")
        second = add_feed(date(2024, 4, 1), debit="10")
        reconciliation_service.match_transaction(company, first, "expense", expense_id)

        assert reconciliation_service.find_match(company, second).candidates == []


class TestCorrections:
    def test_categorize_with_rule(
        self, reconciliation_service, bank_feed_service, rule_service, company, accounts, add_feed
    ):
        txn_id = add_feed(date(2024, 4, 1), debit="10", description="UPI/SWIGGY/ORDER")

        rule_id = reconciliation_service.categorize_transaction(
            company, txn_id, accounts["5030"], create_rule=True
        )

        txn = bank_feed_service.get_transaction(company, txn_id)
        assert txn.suggested_account_id == accounts["5030"]
        assert txn.categorization_source == CategorizationSource.MANUAL
        assert txn.confidence_score == 100
        assert rule_service.get_rule(rule_id).rule_name == "Auto-rule: swiggy"

    def test_cannot_categorize_reconciled(
        self, reconciliation_service, document_service, company, accounts, add_feed
    ):
        expense_id = document_service.create_expense(company, "EXP-1", date(2024, 4, 1), Decimal("10"))
        txn_id = add_feed(date(2024, 4, 1), debit="10")
        reconciliation_service.match_transaction(company, txn_id, "expense", expense_id)
        reconciliation_service.reconcile_transaction(company, txn_id)

        with pytest.raises(InvalidTransitionError):
            reconciliation_service.categorize_transaction(company, txn_id, accounts["5030"])

    def test_create_entry_from_transaction(
        self, reconciliation_service, bank_feed_service, temp_db, company, accounts, bank_account, fiscal_year,
        add_feed,
    ):
        txn_id = add_feed(date(2024, 4, 1), debit="1200", description="OFFICE CHAIRS")

        entry_id = reconciliation_service.create_entry_from_transaction(company, txn_id, accounts["5030"])

        entry = temp_db.get_journal_entry(entry_id)
        assert entry.entry_number == "BK/FY2024-25/0001"
        assert entry.lines[0].account_id == accounts["5030"]
        assert entry.lines[1].account_id == bank_account
        txn = bank_feed_service.get_transaction(company, txn_id)
        assert txn.created_entry_id == entry_id
        assert txn.reconciliation_status == ReconciliationStatus.MATCHED
        assert txn.matched_journal_entry_id == entry_id

        with pytest.raises(AlreadyImportedError):
            reconciliation_service.create_entry_from_transaction(company, txn_id, accounts["5030"])

    def test_imported_receipt_still_matches_invoice(
        self, reconciliation_service, rule_service, import_service, bank_feed_service, document_service, company,
        accounts, bank_account, fiscal_year, parties, fixtures_dir,
    ):
        rule_service.create_rule(
            company,
            "Globex receipts",
            [{"field": "description", "operator": "contains", "value": "globex"}],
            target_account_id=accounts["1100"],
        )
        statement = (fixtures_dir / "sample_statement.csv").read_text(encoding="utf-8")
        bank_feed_service.ingest_statement(company, bank_account, statement)

        imported = import_service.import_feed_transactions(company, bank_account)

        globex = bank_feed_service.list_transactions(company, search="globex")[0]
        assert globex.created_entry_id in imported.entry_ids
        assert globex.reconciliation_status == ReconciliationStatus.PENDING
        assert globex.matched_journal_entry_id is None

        invoice_id = invoice(
            document_service, company, "INV-1001", "75000", day=date(2024, 3, 28), customer=parties["Globex"]
        )
        result = reconciliation_service.auto_reconcile(company)

        assert result["matched"] == 1
        txn = bank_feed_service.get_transaction(company, globex.id)
        assert txn.reconciliation_status == ReconciliationStatus.MATCHED
        assert txn.matched_invoice_id == invoice_id
        assert txn.created_entry_id == globex.created_entry_id


class TestMatchSettings:
    def test_defaults(self):
        settings = MatchSettings.from_env({})
        assert settings == MatchSettings(Decimal("0.01"), 5, 85)

    def test_overrides(self):
        settings = MatchSettings.from_env(
            {
                "LEDGERFEED_MATCH_WINDOW_DAYS": "10",
                "LEDGERFEED_MATCH_TOLERANCE": "1",
                "LEDGERFEED_MATCH_MIN_CONFIDENCE": "90",
            }
        )
        assert settings.date_window_days == 10
        assert settings.amount_tolerance == Decimal("1")
        assert settings.min_confidence == 90

    def test_invalid_value(self):
        with pytest.raises(ValidationError):
            MatchSettings.from_env({"LEDGERFEED_MATCH_WINDOW_DAYS": "soon"})

    def test_service_reads_environment(self, temp_db, monkeypatch):
        monkeypatch.setenv("LEDGERFEED_MATCH_MIN_CONFIDENCE", "95")
        assert ReconciliationService(temp_db).settings.min_confidence == 95
