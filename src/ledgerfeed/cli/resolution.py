"""CLI helpers for resolving the company, accounts, parties and input values.

Each helper prints an error and exits on failure so commands keep the same
messaging and exit behavior.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import click

from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.company import CompanyService
from ledgerfeed.domain.party import PartyService
from ledgerfeed.utils.account_resolver import resolve_account
from ledgerfeed.utils.amount_parser import parse_amount
from ledgerfeed.utils.date_parser import parse_date
from ledgerfeed.utils.party_resolver import resolve_party


def require_company(ctx: click.Context) -> int:
    """Resolve the --company option to a company ID, or exit."""
    company = ctx.obj.get("company")
    if not company:
        click.echo("Error: No company selected. Use --company or set LEDGERFEED_COMPANY.", err=True)
        ctx.exit(1)
    try:
        return CompanyService(ctx.obj["db"]).resolve_company(company).id
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_account_or_exit(ctx: click.Context, company_id: int, account: str | int) -> int:
    """Resolve account ID, code or name, or exit with a CLI error."""
    try:
        return resolve_account(AccountService(ctx.obj["db"]), company_id, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_party_or_exit(ctx: click.Context, company_id: int, party: str | None) -> int | None:
    """Resolve an optional party ID or name, or exit with a CLI error."""
    if party is None:
        return None
    try:
        return resolve_party(PartyService(ctx.obj["db"]), company_id, party)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def parse_date_or_exit(ctx: click.Context, value: str | None, label: str = "date") -> date | None:
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        click.echo(f"Error: Invalid {label}: {exc}", err=True)
        ctx.exit(1)


def parse_amount_or_exit(ctx: click.Context, value: str | None, label: str = "amount") -> Decimal | None:
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as exc:
        click.echo(f"Error: Invalid {label}: {exc}", err=True)
        ctx.exit(1)
