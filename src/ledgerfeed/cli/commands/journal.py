"""Journal entry commands."""

import click

from ledgerfeed.cli.error_handling import handle_domain_error
from ledgerfeed.cli.resolution import require_company
from ledgerfeed.domain.importer import ImportService


@click.group()
def journal_group():
    """Inspect journal entries."""
    pass


@journal_group.command("list")
@click.pass_context
def list_entries(ctx):
    """List journal entries in creation order."""
    company_id = require_company(ctx)
    entries = ImportService(ctx.obj["db"]).list_entries(company_id)
    if not entries:
        click.echo("No journal entries found.")
        return

    click.echo("\nJournal entries:")
    click.echo("-" * 60)
    for entry in entries:
        click.echo(
            f"ID: {entry.id:4d} | {entry.entry_number:20s} | {entry.entry_date} | "
            f"{entry.total_debit:>12} | {entry.status:6s} | {(entry.narration or '')[:30]}"
        )


@journal_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show one journal entry with its lines."""
    company_id = require_company(ctx)
    db = ctx.obj["db"]
    try:
        entry = ImportService(db).get_entry(company_id, entry_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{entry.entry_number} ({entry.status}) on {entry.entry_date}")
    if entry.narration:
        click.echo(entry.narration)
    click.echo("-" * 60)
    for line in entry.lines:
        account = db.get_account(line.account_id)
        label = f"{account.code} {account.name}" if account else str(line.account_id)
        click.echo(f"{label:35s} | Dr {line.debit_amount:>12} | Cr {line.credit_amount:>12}")
    click.echo("-" * 60)
    click.echo(f"{'Total':35s} | Dr {entry.total_debit:>12} | Cr {entry.total_credit:>12}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
