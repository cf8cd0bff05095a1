"""CLI error handling helpers."""

import click

from ledgerfeed.domain.errors import (
    AlreadyImportedError,
    DomainError,
    NoActiveFiscalYearError,
    NoTransactionsParsedError,
)

# Checked in order, so subclasses come before their bases
ERROR_HINTS: tuple[tuple[type[Exception], str], ...] = (
    (NoActiveFiscalYearError, "Create one with 'fiscal-year create' or pick one with 'fiscal-year set-current'."),
    (
        NoTransactionsParsedError,
        "The header row needs a date or description column and debit/credit or amount columns.",
    ),
    (AlreadyImportedError, "Use 'journal list' to find the existing entry."),
)


def error_hint(error: Exception) -> str | None:
    """Follow-up advice for an error, if there is any."""
    for error_type, hint in ERROR_HINTS:
        if isinstance(error, error_type):
            return hint
    return None


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error, plus a hint when one applies, and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    hint = error_hint(error)
    if hint:
        click.echo(f"Hint: {hint}", err=True)
    ctx.exit(1)
