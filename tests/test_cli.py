"""Tests for CLI commands."""

import json

import pytest

from ledgerfeed.cli.main import cli


@pytest.fixture
def invoke(cli_runner, temp_db):
    """Invoke the CLI against the test database, inside Acme Traders."""

    def _invoke(*args, company="Acme Traders", **kwargs):
        base = ["--db-path", temp_db.database_path]
        if company is not None:
            base += ["--company", company]
        return cli_runner.invoke(cli, base + list(args), **kwargs)

    return _invoke


def _id_from(output: str) -> int:
    return int(output.split("(ID: ")[1].split(")")[0])


class TestCompanyCommands:
    def test_create_and_list(self, invoke):
        result = invoke("company", "create", "Wayne Enterprises", company=None)
        assert result.exit_code == 0
        assert "Created company 'Wayne Enterprises'" in result.output

        result = invoke("company", "list", company=None)
        assert result.exit_code == 0
        assert "Wayne Enterprises" in result.output

    def test_duplicate_company(self, invoke, company):
        result = invoke("company", "create", "Acme Traders", company=None)
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_command_without_company(self, invoke, monkeypatch):
        monkeypatch.delenv("LEDGERFEED_COMPANY", raising=False)
        result = invoke("account", "list", company=None)
        assert result.exit_code == 1
        assert "No company selected" in result.output

    def test_unknown_company(self, invoke):
        result = invoke("account", "list", company="Nobody Inc")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_company_from_environment(self, invoke, company, monkeypatch):
        monkeypatch.setenv("LEDGERFEED_COMPANY", "Acme Traders")
        result = invoke("account", "list", company=None)
        assert result.exit_code == 0
        assert "No accounts found." in result.output


class TestAccountCommands:
    def test_create_group_and_child(self, invoke, company):
        result = invoke("account", "create", "1000", "Assets", "--type", "asset", "--group")
        assert result.exit_code == 0

        result = invoke("account", "create", "1010", "HDFC Bank", "--type", "asset", "--parent", "1000")
        assert result.exit_code == 0
        assert "Created account 1010 'HDFC Bank'" in result.output

        result = invoke("account", "list", "--leaf-only")
        assert result.exit_code == 0
        assert "HDFC Bank" in result.output
        assert "Assets" not in result.output

    def test_parent_must_be_group(self, invoke, accounts):
        result = invoke("account", "create", "1011", "Sub", "--type", "asset", "--parent", "1010")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_deactivate(self, invoke, accounts):
        result = invoke("account", "deactivate", "Office Supplies")
        assert result.exit_code == 0

        result = invoke("account", "list", "--active-only")
        assert "Office Supplies" not in result.output


class TestRuleCommands:
    def test_create_list_update_delete(self, invoke, accounts, parties):
        result = invoke(
            "rule", "create", "AWS",
            "--condition", "description:contains:aws",
            "--condition", "amount:greater_than:100",
            "--account", "5030",
            "--priority", "5",
        )
        assert result.exit_code == 0
        rule_id = _id_from(result.output)

        result = invoke("rule", "list")
        assert result.exit_code == 0
        assert "AWS" in result.output
        assert "description contains 'aws'" in result.output

        result = invoke("rule", "update", str(rule_id), "--party", "Initech", "--disable")
        assert result.exit_code == 0

        result = invoke("rule", "list", "--active-only")
        assert "No rules found." in result.output

        result = invoke("rule", "delete", str(rule_id), "--yes")
        assert result.exit_code == 0
        assert "Deleted rule 'AWS'" in result.output

    def test_malformed_condition(self, invoke, accounts):
        result = invoke("rule", "create", "Bad", "--condition", "description", "--account", "5030")
        assert result.exit_code == 1
        assert "FIELD:OPERATOR:VALUE" in result.output

    def test_invalid_operator(self, invoke, accounts):
        result = invoke("rule", "create", "Bad", "--condition", "amount:contains:5", "--account", "5030")
        assert result.exit_code == 1
        assert "Invalid operator" in result.output

    def test_rule_without_target(self, invoke, company):
        result = invoke("rule", "create", "Bad", "--condition", "description:contains:x")
        assert result.exit_code == 1
        assert "target" in result.output

    def test_delete_cancelled(self, invoke, accounts):
        result = invoke("rule", "create", "Keep", "--condition", "description:contains:x", "--account", "5030")
        rule_id = _id_from(result.output)

        result = invoke("rule", "delete", str(rule_id), input="n\n")
        assert result.exit_code == 0
        assert "Deletion cancelled." in result.output

        result = invoke("rule", "list")
        assert "Keep" in result.output


class TestFiscalYearCommands:
    def test_create_and_switch(self, invoke, fiscal_year):
        result = invoke("fiscal-year", "create", "FY2025-26", "2025-04-01", "2026-03-31")
        assert result.exit_code == 0

        result = invoke("fiscal-year", "set-current", "FY2025-26")
        assert result.exit_code == 0

        result = invoke("fiscal-year", "list")
        assert "FY2025-26    | 2025-04-01 to 2026-03-31 (current)" in result.output

    def test_unknown_fiscal_year(self, invoke, company):
        result = invoke("fiscal-year", "set-current", "FY1999")
        assert result.exit_code == 1


class TestDocumentCommands:
    def test_record_and_list(self, invoke, parties):
        assert invoke("document", "invoice", "INV-1", "5,000", "--date", "2024-06-01", "--customer", "Globex").exit_code == 0
        assert invoke("document", "bill", "BILL-1", "700", "--date", "2024-06-01", "--vendor", "Initech").exit_code == 0
        assert invoke("document", "payment", "received", "PAY-1", "100", "--date", "2024-06-02").exit_code == 0
        assert invoke("document", "expense", "EXP-1", "50", "--date", "2024-06-02").exit_code == 0

        result = invoke("document", "list", "invoices", "--open-only")
        assert result.exit_code == 0
        assert "INV-1" in result.output
        assert "balance 5000" in result.output

        result = invoke("document", "list", "payments")
        assert "received" in result.output

    def test_invalid_amount(self, invoke, company):
        result = invoke("document", "expense", "EXP-1", "lots", "--date", "2024-06-02")
        assert result.exit_code == 1
        assert "Invalid amount" in result.output


class TestStatementCommands:
    def test_preview_json(self, invoke, fixtures_dir, accounts):
        result = invoke("statement", "preview", str(fixtures_dir / "sample_statement.csv"), "--json")
        assert result.exit_code == 0

        payload = json.loads(result.output)
        assert payload["summary"]["total"] == 5
        assert payload["transactions"][0]["suggested_account_name"] == "Rent Expense"
        assert payload["transactions"][0]["date"] == "2024-04-01"

    def test_preview_empty_file(self, invoke, tmp_path, company):
        empty = tmp_path / "empty.csv"
        empty.write_text("Date,Description,Debit,Credit\n")

        result = invoke("statement", "preview", str(empty))
        assert result.exit_code == 1
        assert "No transactions" in result.output

    def test_ingest_into_group_account(self, invoke, fixtures_dir, accounts):
        result = invoke("statement", "ingest", str(fixtures_dir / "sample_statement.csv"), "--bank-account", "1000")
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestImportCommands:
    def test_import_rows_file(self, invoke, tmp_path, accounts, fiscal_year):
        rows_file = tmp_path / "rows.json"
        rows_file.write_text(
            json.dumps(
                {
                    "transactions": [
                        {"account_id": accounts["5010"], "debit": "50,000", "date": "01/04/2024",
                         "description": "RENT"},
                        {"account_id": None, "credit": "10", "date": "2024-04-02", "description": "?"},
                    ]
                }
            )
        )

        result = invoke("import", "rows", str(rows_file), "--bank-account", "HDFC Bank")
        assert result.exit_code == 0
        assert "Created: 1 journal entries" in result.output
        assert "Errors: 1" in result.output

        result = invoke("journal", "show", "1")
        assert result.exit_code == 0
        assert "BK/FY2024-25/0001 (draft) on 2024-04-01" in result.output
        assert "5010 Rent Expense" in result.output

    def test_import_rows_keeps_going_past_bad_row(self, invoke, tmp_path, accounts, fiscal_year):
        rows_file = tmp_path / "rows.json"
        rows_file.write_text(
            json.dumps(
                [
                    {"account_id": accounts["5010"], "debit": "abc", "date": "01/04/2024"},
                    {"account_id": accounts["5010"], "debit": "500", "date": "01/04/2024", "description": "RENT"},
                ]
            )
        )

        result = invoke("import", "rows", str(rows_file), "--bank-account", "1010", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["created"] == 1
        assert [e["index"] for e in payload["errors"]] == [0]

    def test_import_without_fiscal_year(self, invoke, tmp_path, accounts):
        rows_file = tmp_path / "rows.json"
        rows_file.write_text(json.dumps([{"account_id": accounts["5010"], "debit": "1", "date": "01/04/2024"}]))

        result = invoke("import", "rows", str(rows_file), "--bank-account", "1010")
        assert result.exit_code == 1
        assert "fiscal year" in result.output.lower()
        assert "Hint: Create one with 'fiscal-year create'" in result.output

    def test_import_rows_bad_json(self, invoke, tmp_path, accounts):
        rows_file = tmp_path / "rows.json"
        rows_file.write_text("{not json")

        result = invoke("import", "rows", str(rows_file), "--bank-account", "1010")
        assert result.exit_code == 1
        assert "Could not read" in result.output


class TestFeedCommands:
    @pytest.fixture
    def ingested(self, invoke, fixtures_dir, accounts, fiscal_year, parties):
        result = invoke("statement", "ingest", str(fixtures_dir / "sample_statement.csv"), "--bank-account", "1010")
        assert result.exit_code == 0

    def _first_id(self, output: str) -> int:
        line = next(line for line in output.splitlines() if line.startswith("ID:"))
        return int(line.split("|")[0][3:])

    def test_list_filters(self, invoke, ingested):
        result = invoke("feed", "list", "--start-date", "2024-04-05")
        assert result.exit_code == 0
        assert result.output.count("AMAZON") == 2
        assert "RENT" not in result.output

        result = invoke("feed", "list", "--start-date", "xx/yy")
        assert result.exit_code == 1
        assert "Invalid start date" in result.output

    def test_post_creates_entry(self, invoke, ingested):
        txn_id = self._first_id(invoke("feed", "list", "--search", "electricity").output)

        result = invoke("feed", "post", str(txn_id), "5020")
        assert result.exit_code == 0
        assert "Created journal entry BK/FY2024-25/0001" in result.output

        result = invoke("feed", "post", str(txn_id), "5020")
        assert result.exit_code == 1
        assert "already" in result.output

    def test_exclude_then_match_fails(self, invoke, ingested):
        txn_id = self._first_id(invoke("feed", "list", "--search", "rent").output)
        assert invoke("document", "expense", "EXP-1", "50000", "--date", "2024-04-01").exit_code == 0

        result = invoke("feed", "exclude", str(txn_id))
        assert result.exit_code == 0

        result = invoke("feed", "match", str(txn_id), "expense", "1")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_find_match_and_manual_match(self, invoke, ingested):
        txn_id = self._first_id(invoke("feed", "list", "--search", "rent").output)
        assert invoke("document", "expense", "EXP-1", "50000", "--date", "2024-04-01").exit_code == 0

        result = invoke("feed", "find-match", str(txn_id))
        assert result.exit_code == 0
        assert "EXP-1" in result.output
        assert "*" in result.output

        result = invoke("feed", "match", str(txn_id), "expense", "1")
        assert result.exit_code == 0

        result = invoke("feed", "reconcile", str(txn_id))
        assert result.exit_code == 0

    def test_reconcile_pending_fails(self, invoke, ingested):
        txn_id = self._first_id(invoke("feed", "list").output)

        result = invoke("feed", "reconcile", str(txn_id))
        assert result.exit_code == 1

    def test_unknown_transaction(self, invoke, ingested):
        result = invoke("feed", "exclude", "9999")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_bad_match_setting(self, invoke, ingested, monkeypatch):
        monkeypatch.setenv("LEDGERFEED_MATCH_WINDOW_DAYS", "soon")
        result = invoke("feed", "auto-reconcile")
        assert result.exit_code == 1
        assert "Invalid match setting" in result.output

    def test_verbose_flag(self, cli_runner, temp_db, ingested):
        result = cli_runner.invoke(
            cli, ["-v", "--db-path", temp_db.database_path, "--company", "Acme Traders", "feed", "auto-categorize"]
        )
        assert result.exit_code == 0
        assert "Processed 5 transactions" in result.output
