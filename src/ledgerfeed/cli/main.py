"""Main CLI entry point."""

import logging
import sys

import click
from dotenv import find_dotenv, load_dotenv

from ledgerfeed.database.factories import create_database

# Import and register all commands at module level
from ledgerfeed.cli.commands import (
    company,
    account,
    party,
    fiscal_year,
    document,
    rule,
    statement,
    import_cmd,
    feed,
    journal,
)


def configure_logging(verbose: bool) -> None:
    """Send library log records to stderr, INFO and up when verbose."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERFEED_DB_PATH environment variable)",
    envvar="LEDGERFEED_DB_PATH",
)
@click.option(
    "--company",
    help="Company name or ID to work in (overrides LEDGERFEED_COMPANY environment variable)",
    envvar="LEDGERFEED_COMPANY",
)
@click.option("--verbose", "-v", is_flag=True, help="Show informational log messages")
@click.pass_context
def cli(ctx, db_path: str | None, company: str | None, verbose: bool):
    """Ledgerfeed - Bank feed bookkeeping.

    Parse bank statements, suggest ledger accounts for each line, turn
    lines into journal entries and reconcile them against invoices, bills,
    payments and expenses. Every command works inside one company.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)
    ctx.obj["company"] = company

    # Initialize database connection only when actually running a command
    if ctx.invoked_subcommand is not None:
        db = create_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
company.register_commands(cli)
account.register_commands(cli)
party.register_commands(cli)
fiscal_year.register_commands(cli)
document.register_commands(cli)
rule.register_commands(cli)
statement.register_commands(cli)
import_cmd.register_commands(cli)
feed.register_commands(cli)
journal.register_commands(cli)


def main():
    """Main entry point for CLI."""
    load_dotenv(find_dotenv(usecwd=True))
    cli()


if __name__ == "__main__":
    main()
