"""Fiscal year commands."""

import click

from ledgerfeed.cli.resolution import parse_date_or_exit, require_company
from ledgerfeed.domain.fiscal_year import FiscalYearService


@click.group()
def fiscal_year_group():
    """Manage fiscal years."""
    pass


@fiscal_year_group.command("create")
@click.argument("name", metavar="NAME")
@click.argument("start_date")
@click.argument("end_date")
@click.option("--current", "is_current", is_flag=True, help="Make this the current fiscal year")
@click.pass_context
def create_fiscal_year(ctx, name: str, start_date: str, end_date: str, is_current: bool):
    """Create a fiscal year.

    Journal entry numbers restart in every fiscal year.

    Examples:
        ledgerfeed --company Acme fiscal-year create FY2024-25 2024-04-01 2025-03-31 --current
    """
    company_id = require_company(ctx)
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")
    try:
        fy_id = FiscalYearService(ctx.obj["db"]).create_fiscal_year(
            company_id=company_id,
            name=name,
            start_date=start,
            end_date=end,
            is_current=is_current,
        )
        click.echo(f"Created fiscal year '{name.strip()}' (ID: {fy_id})")
        if is_current:
            click.echo("Marked as current fiscal year")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@fiscal_year_group.command("list")
@click.pass_context
def list_fiscal_years(ctx):
    """List fiscal years."""
    company_id = require_company(ctx)
    years = FiscalYearService(ctx.obj["db"]).list_fiscal_years(company_id)
    if not years:
        click.echo("No fiscal years found.")
        return

    click.echo("\nFiscal years:")
    click.echo("-" * 60)
    for fy in years:
        marker = " (current)" if fy.is_current else ""
        click.echo(f"ID: {fy.id:3d} | {fy.name:12s} | {fy.start_date} to {fy.end_date}{marker}")


@fiscal_year_group.command("set-current")
@click.argument("fiscal_year", metavar="FISCAL_YEAR")
@click.pass_context
def set_current(ctx, fiscal_year: str):
    """Make a fiscal year current. FISCAL_YEAR is a name or ID."""
    company_id = require_company(ctx)
    service = FiscalYearService(ctx.obj["db"])

    match = None
    for fy in service.list_fiscal_years(company_id):
        if fy.name == fiscal_year or str(fy.id) == fiscal_year:
            match = fy
            break
    if match is None:
        click.echo(f"Error: Fiscal year '{fiscal_year}' not found", err=True)
        ctx.exit(1)

    try:
        service.set_current(company_id, match.id)
        click.echo(f"Fiscal year '{match.name}' is now current")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register fiscal year commands with main CLI."""
    cli.add_command(fiscal_year_group, name="fiscal-year")
