"""Bank statement preview and ingest commands."""

import json
from pathlib import Path

import click

from ledgerfeed.cli.error_handling import handle_domain_error
from ledgerfeed.cli.resolution import require_company, resolve_account_or_exit
from ledgerfeed.domain.bank_feed import BankFeedService
from ledgerfeed.domain.statement import SUPPORTED_FORMATS


def _read_statement(ctx, statement_file: str) -> str:
    try:
        return Path(statement_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: Could not read {statement_file}: {e}", err=True)
        ctx.exit(1)


@click.group()
def statement_group():
    """Preview and ingest bank statements."""
    pass


@statement_group.command("preview")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=click.Choice(SUPPORTED_FORMATS), default="csv", show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Print rows and summary as JSON")
@click.pass_context
def preview_statement(ctx, statement_file: str, fmt: str, as_json: bool):
    """Parse a statement and show suggested accounts without storing it.

    Examples:
        ledgerfeed --company Acme statement preview hdfc_june.csv
    """
    company_id = require_company(ctx)
    content = _read_statement(ctx, statement_file)

    try:
        preview = BankFeedService(ctx.obj["db"]).preview_statement(company_id, content, fmt)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if as_json:
        payload = {"transactions": [row.to_dict() for row in preview.rows], "summary": preview.summary}
        click.echo(json.dumps(payload, indent=2, default=str))
        return

    click.echo("\nStatement preview:")
    click.echo("-" * 60)
    for row in preview.rows:
        txn = row.transaction
        amount = f"-{txn.debit_amount}" if txn.debit_amount else f"+{txn.credit_amount}"
        target = row.suggestion.account_name or "(uncategorized)"
        if row.suggestion.party_name:
            target = f"{target} / {row.suggestion.party_name}"
        click.echo(
            f"Row {txn.row_number:3d} | {str(txn.date or '??'):10s} | {txn.description[:30]:30s} | "
            f"{amount:>12} | {target} [{row.suggestion.source.value} {row.suggestion.confidence_score}]"
        )

    summary = preview.summary
    click.echo("-" * 60)
    click.echo(f"Total: {summary['total']}  Matched: {summary['matched']}  Unmatched: {summary['unmatched']}")
    click.echo(f"Debits: {summary['total_debit']}  Credits: {summary['total_credit']}")


@statement_group.command("ingest")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--bank-account", required=True, help="Bank ledger account (code, name or ID)")
@click.option("--format", "fmt", type=click.Choice(SUPPORTED_FORMATS), default="csv", show_default=True)
@click.pass_context
def ingest_statement(ctx, statement_file: str, bank_account: str, fmt: str):
    """Store statement lines as pending bank feed transactions.

    Re-ingesting the same statement skips lines that are already stored.
    """
    company_id = require_company(ctx)
    bank_account_id = resolve_account_or_exit(ctx, company_id, bank_account)
    content = _read_statement(ctx, statement_file)

    try:
        result = BankFeedService(ctx.obj["db"]).ingest_statement(company_id, bank_account_id, content, fmt)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo("\nIngest complete:")
    click.echo(f"  Stored: {result['imported']} transactions")
    click.echo(f"  Skipped: {result['duplicates']} duplicates")
    if result["errors"]:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result["errors"]:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register statement commands with main CLI."""
    cli.add_command(statement_group, name="statement")
