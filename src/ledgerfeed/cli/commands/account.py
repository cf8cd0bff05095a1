"""Ledger account commands."""

import click

from ledgerfeed.cli.resolution import require_company, resolve_account_or_exit
from ledgerfeed.domain.account import ACCOUNT_TYPES, AccountService


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES),
    required=True,
    help="Account type",
)
@click.option("--group", "is_group", is_flag=True, help="Create a group account that only holds children")
@click.option("--parent", help="Parent group account (code, name or ID)")
@click.pass_context
def create_account(ctx, code: str, name: str, account_type: str, is_group: bool, parent: str | None):
    """Create a ledger account.

    Examples:
        ledgerfeed --company Acme account create 1000 "Assets" --type asset --group
        ledgerfeed --company Acme account create 1010 "HDFC Bank" --type asset --parent 1000
    """
    company_id = require_company(ctx)
    service = AccountService(ctx.obj["db"])

    parent_id = resolve_account_or_exit(ctx, company_id, parent) if parent is not None else None

    try:
        account_id = service.create_account(
            company_id=company_id,
            code=code,
            name=name,
            account_type=account_type,
            is_group=is_group,
            parent_id=parent_id,
        )
        click.echo(f"Created account {code.strip()} '{name.strip()}' (ID: {account_id})")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@account_group.command("list")
@click.option("--leaf-only", is_flag=True, help="Only accounts that can take postings")
@click.option("--active-only", is_flag=True, help="Hide deactivated accounts")
@click.pass_context
def list_accounts(ctx, leaf_only: bool, active_only: bool):
    """List the company's accounts."""
    company_id = require_company(ctx)
    accounts = AccountService(ctx.obj["db"]).list_accounts(
        company_id, leaf_only=leaf_only, active_only=active_only
    )
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        flags = []
        if acc.is_group:
            flags.append("group")
        if not acc.is_active:
            flags.append("inactive")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"ID: {acc.id:3d} | {acc.code:8s} | {acc.name:25s} | {acc.account_type}{suffix}")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account so it no longer takes postings.

    ACCOUNT can be an account code, name or ID.
    """
    company_id = require_company(ctx)
    account_id = resolve_account_or_exit(ctx, company_id, account)
    try:
        AccountService(ctx.obj["db"]).set_active(account_id, False)
        click.echo(f"Deactivated account {account_id}")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str):
    """Re-activate a deactivated account."""
    company_id = require_company(ctx)
    account_id = resolve_account_or_exit(ctx, company_id, account)
    try:
        AccountService(ctx.obj["db"]).set_active(account_id, True)
        click.echo(f"Activated account {account_id}")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
