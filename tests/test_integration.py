"""Integration tests for end-to-end workflows."""

import json
from datetime import date
from decimal import Decimal

from ledgerfeed.cli.main import cli
from ledgerfeed.domain.entities import CategorizationSource, ReconciliationStatus
from ledgerfeed.domain.importer import ImportRow

STATEMENT = "Date,Description,Debit,Credit\n01/04/2024,RENT PAYMENT,50000,\n02/04/2024,CUSTOMER PAYMENT,,75000\n"


def test_statement_to_journal(
    temp_db, company, accounts, bank_account, fiscal_year, rule_service, bank_feed_service, import_service
):
    """Test rule suggestion, preview and import of a two-line statement."""
    rule_service.create_rule(
        company,
        "Rent",
        [{"field": "description", "operator": "contains", "value": "RENT"}],
        target_account_id=accounts["5010"],
    )

    preview = bank_feed_service.preview_statement(company, STATEMENT)
    rent, customer = preview.rows

    assert rent.suggestion.account_id == accounts["5010"]
    assert rent.suggestion.source == CategorizationSource.RULE
    assert customer.suggestion.account_id is None
    assert customer.suggestion.source == CategorizationSource.NONE

    rows = [
        ImportRow(
            account_id=rent.suggestion.account_id,
            debit=rent.transaction.debit_amount,
            date=rent.transaction.date,
            description=rent.transaction.description,
        ),
        ImportRow(
            account_id=accounts["4000"],
            credit=customer.transaction.credit_amount,
            date=customer.transaction.date,
            description=customer.transaction.description,
        ),
    ]
    result = import_service.import_transactions(company, bank_account, rows)

    assert result.success
    assert result.created == 2
    first, second = (temp_db.get_journal_entry(entry_id) for entry_id in result.entry_ids)

    assert (first.lines[0].account_id, first.lines[0].debit_amount) == (accounts["5010"], Decimal("50000"))
    assert (first.lines[1].account_id, first.lines[1].credit_amount) == (bank_account, Decimal("50000"))
    assert (second.lines[0].account_id, second.lines[0].debit_amount) == (bank_account, Decimal("75000"))
    assert (second.lines[1].account_id, second.lines[1].credit_amount) == (accounts["4000"], Decimal("75000"))
    assert first.entry_date == date(2024, 4, 1)
    assert rule_service.get_rule(rule_service.list_rules(company)[0].id).usage_count == 1


def test_full_workflow(cli_runner, temp_db, fixtures_dir, company, accounts, fiscal_year, parties):
    """Test complete workflow: ingest -> categorize -> post -> match -> reconcile."""
    base = ["--db-path", temp_db.database_path, "--company", "Acme Traders"]
    statement_file = str(fixtures_dir / "sample_statement.csv")

    # Step 1: Preview does not store anything
    result = cli_runner.invoke(cli, base + ["statement", "preview", statement_file])
    assert result.exit_code == 0
    assert "Total: 5  Matched: 2  Unmatched: 3" in result.output

    # Step 2: Ingest, then ingest again
    result = cli_runner.invoke(cli, base + ["statement", "ingest", statement_file, "--bank-account", "1010"])
    assert result.exit_code == 0
    assert "Stored: 5 transactions" in result.output

    result = cli_runner.invoke(cli, base + ["statement", "ingest", statement_file, "--bank-account", "HDFC Bank"])
    assert result.exit_code == 0
    assert "Stored: 0 transactions" in result.output
    assert "Skipped: 5 duplicates" in result.output

    # Step 3: Teach a rule from a correction and re-run categorization
    result = cli_runner.invoke(cli, base + ["feed", "list", "--search", "amazon"])
    assert result.exit_code == 0
    amazon_ids = [int(line.split("|")[0].replace("ID:", "")) for line in result.output.splitlines() if "ID:" in line]
    assert len(amazon_ids) == 2

    result = cli_runner.invoke(
        cli, base + ["feed", "categorize", str(amazon_ids[0]), "Office Supplies", "--create-rule"]
    )
    assert result.exit_code == 0
    assert "Created rule" in result.output

    result = cli_runner.invoke(cli, base + ["feed", "auto-categorize"])
    assert result.exit_code == 0
    assert "Processed 4 transactions, categorized 3" in result.output

    # Step 4: Book the categorized lines
    result = cli_runner.invoke(cli, base + ["import", "feed", "--bank-account", "1010", "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["created"] == 4

    result = cli_runner.invoke(cli, base + ["journal", "list"])
    assert result.exit_code == 0
    assert "BK/FY2024-25/0004" in result.output

    # Step 5: The customer receipt is matched to its invoice
    result = cli_runner.invoke(
        cli,
        base + ["document", "invoice", "INV-1001", "75000", "--date", "2024-03-28", "--customer", "Globex"],
    )
    assert result.exit_code == 0

    result = cli_runner.invoke(cli, base + ["feed", "auto-reconcile"])
    assert result.exit_code == 0
    assert "Processed 5, matched 1" in result.output

    result = cli_runner.invoke(cli, base + ["feed", "list", "--status", "matched", "--search", "globex"])
    assert result.exit_code == 0
    globex_id = int(next(line for line in result.output.splitlines() if "ID:" in line).split("|")[0][3:])

    result = cli_runner.invoke(cli, base + ["feed", "reconcile", str(globex_id)])
    assert result.exit_code == 0

    result = cli_runner.invoke(cli, base + ["feed", "summary"])
    assert result.exit_code == 0
    assert "Reconciled: 1" in result.output
    assert "Pending:    4" in result.output
    assert "Matched:    0" in result.output

    txn = temp_db.get_feed_transaction(globex_id)
    assert txn.reconciliation_status == ReconciliationStatus.RECONCILED
