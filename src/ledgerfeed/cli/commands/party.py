"""Customer and vendor commands."""

import click

from ledgerfeed.cli.resolution import require_company, resolve_account_or_exit
from ledgerfeed.domain.party import PARTY_TYPES, PartyService


@click.group()
def party_group():
    """Manage customers and vendors."""
    pass


@party_group.command("create")
@click.argument("name", metavar="PARTY_NAME")
@click.option("--type", "party_type", type=click.Choice(PARTY_TYPES), required=True, help="Party type")
@click.option("--default-account", help="Default ledger account (code, name or ID)")
@click.pass_context
def create_party(ctx, name: str, party_type: str, default_account: str | None):
    """Create a customer or vendor.

    Party names are looked for in statement descriptions, so use the name
    as it appears on the bank statement.

    Examples:
        ledgerfeed --company Acme party create "Globex" --type customer
        ledgerfeed --company Acme party create "Initech" --type vendor --default-account 5100
    """
    company_id = require_company(ctx)
    account_id = (
        resolve_account_or_exit(ctx, company_id, default_account) if default_account is not None else None
    )
    try:
        party_id = PartyService(ctx.obj["db"]).create_party(
            company_id=company_id,
            name=name,
            party_type=party_type,
            default_account_id=account_id,
        )
        click.echo(f"Created {party_type} '{name.strip()}' (ID: {party_id})")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@party_group.command("list")
@click.pass_context
def list_parties(ctx):
    """List the company's active parties."""
    company_id = require_company(ctx)
    parties = PartyService(ctx.obj["db"]).list_parties(company_id)
    if not parties:
        click.echo("No parties found.")
        return

    click.echo("\nParties:")
    click.echo("-" * 60)
    for party in parties:
        click.echo(f"ID: {party.id:3d} | {party.name:30s} | {party.party_type}")


def register_commands(cli):
    """Register party commands with main CLI."""
    cli.add_command(party_group, name="party")
