"""Journal entry import commands."""

import json
from pathlib import Path

import click

from ledgerfeed.cli.error_handling import handle_domain_error
from ledgerfeed.cli.resolution import require_company, resolve_account_or_exit
from ledgerfeed.domain.importer import ImportResult, ImportService


def _echo_result(result: ImportResult, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo("\nImport complete:")
    click.echo(f"  Created: {result.created} journal entries")
    if result.skipped:
        click.echo(f"  Skipped: {len(result.skipped)} already imported")
    if result.errors:
        click.echo(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            click.echo(f"    Row {error.index}: {error.error}", err=True)


@click.group()
def import_group():
    """Create journal entries from bank transactions."""
    pass


@import_group.command("rows")
@click.argument("rows_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--bank-account", required=True, help="Bank ledger account (code, name or ID)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def import_rows(ctx, rows_file: str, bank_account: str, as_json: bool):
    """Import rows from a JSON file as draft journal entries.

    The file holds a list of objects with account_id, debit or credit, date,
    description and optionally party_id, reference_number and
    transaction_id. Rows that were imported before are skipped and rows that
    cannot be read are reported by index without stopping the rest.
    """
    company_id = require_company(ctx)
    bank_account_id = resolve_account_or_exit(ctx, company_id, bank_account)

    try:
        data = json.loads(Path(rows_file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        click.echo(f"Error: Could not read {rows_file}: {e}", err=True)
        ctx.exit(1)
    if isinstance(data, dict):
        data = data.get("transactions", [])
    if not isinstance(data, list):
        click.echo("Error: Expected a list of rows", err=True)
        ctx.exit(1)

    try:
        result = ImportService(ctx.obj["db"]).import_transactions(company_id, bank_account_id, data)
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_result(result, as_json)


@import_group.command("feed")
@click.option("--bank-account", required=True, help="Bank ledger account (code, name or ID)")
@click.option("--transaction", "transaction_ids", type=int, multiple=True, help="Feed transaction ID (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def import_feed(ctx, bank_account: str, transaction_ids: tuple[int, ...], as_json: bool):
    """Import categorized feed transactions using their suggested accounts.

    Without --transaction every categorized transaction of the bank account
    that has no journal entry yet is imported.
    """
    company_id = require_company(ctx)
    bank_account_id = resolve_account_or_exit(ctx, company_id, bank_account)

    try:
        result = ImportService(ctx.obj["db"]).import_feed_transactions(
            company_id, bank_account_id, list(transaction_ids) or None
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_result(result, as_json)


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")
