"""Bank feed commands: review, categorize, match and reconcile."""

import click

from ledgerfeed.cli.error_handling import handle_domain_error
from ledgerfeed.cli.resolution import (
    parse_date_or_exit,
    require_company,
    resolve_account_or_exit,
    resolve_party_or_exit,
)
from ledgerfeed.domain.bank_feed import BankFeedService
from ledgerfeed.domain.entities import MatchType, ReconciliationStatus
from ledgerfeed.domain.reconciler import ReconciliationService


def _reconciliation_service(ctx) -> ReconciliationService:
    try:
        return ReconciliationService(ctx.obj["db"])
    except ValueError as e:
        handle_domain_error(ctx, e)


def _format_amount(txn) -> str:
    if txn.debit_amount is not None:
        return f"-{txn.debit_amount}"
    return f"+{txn.credit_amount}"


@click.group()
def feed_group():
    """Work with stored bank feed transactions."""
    pass


@feed_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in ReconciliationStatus]), help="Filter by status")
@click.option("--bank-account", help="Filter by bank account (code, name or ID)")
@click.option("--start-date", help="Earliest date (inclusive)")
@click.option("--end-date", help="Latest date (inclusive)")
@click.option("--search", help="Text in description or reference")
@click.option("--limit", type=int, help="Maximum number of rows")
@click.pass_context
def list_feed(ctx, status, bank_account, start_date, end_date, search, limit):
    """List feed transactions, newest first."""
    company_id = require_company(ctx)
    bank_account_id = resolve_account_or_exit(ctx, company_id, bank_account) if bank_account else None

    transactions = BankFeedService(ctx.obj["db"]).list_transactions(
        company_id,
        status=ReconciliationStatus(status) if status else None,
        bank_account_id=bank_account_id,
        start_date=parse_date_or_exit(ctx, start_date, "start date"),
        end_date=parse_date_or_exit(ctx, end_date, "end date"),
        search=search,
        limit=limit,
    )
    if not transactions:
        click.echo("No feed transactions found.")
        return

    click.echo("\nFeed transactions:")
    click.echo("-" * 60)
    for txn in transactions:
        suggestion = f"acct {txn.suggested_account_id}" if txn.suggested_account_id else "uncategorized"
        click.echo(
            f"ID: {txn.id:4d} | {txn.transaction_date} | {txn.description[:30]:30s} | "
            f"{_format_amount(txn):>12} | {txn.reconciliation_status.value:10s} | "
            f"{suggestion} ({txn.categorization_source.value} {txn.confidence_score})"
        )


@feed_group.command("summary")
@click.pass_context
def feed_summary(ctx):
    """Show counts per reconciliation status and totals."""
    company_id = require_company(ctx)
    summary = BankFeedService(ctx.obj["db"]).get_summary(company_id)

    click.echo("\nBank feed summary:")
    click.echo("-" * 60)
    click.echo(f"Total:      {summary['total']}")
    for status in ReconciliationStatus:
        click.echo(f"{status.value.capitalize() + ':':11s} {summary[status.value]}")
    click.echo(f"Debits:     {summary['total_debit']}")
    click.echo(f"Credits:    {summary['total_credit']}")


@feed_group.command("auto-categorize")
@click.pass_context
def auto_categorize(ctx):
    """Re-run rules and heuristics over pending transactions."""
    company_id = require_company(ctx)
    result = BankFeedService(ctx.obj["db"]).auto_categorize(company_id)
    click.echo(f"Processed {result['processed']} transactions, categorized {result['categorized']}")


@feed_group.command("categorize")
@click.argument("transaction_id", type=int)
@click.argument("account", metavar="ACCOUNT")
@click.option("--party", help="Party name or ID")
@click.option("--create-rule", is_flag=True, help="Also create a rule from the description")
@click.pass_context
def categorize(ctx, transaction_id: int, account: str, party: str | None, create_rule: bool):
    """Set a transaction's account (and party) by hand.

    With --create-rule a rule keyed on the description is added so similar
    lines are categorized the same way next time.
    """
    company_id = require_company(ctx)
    account_id = resolve_account_or_exit(ctx, company_id, account)
    party_id = resolve_party_or_exit(ctx, company_id, party)

    try:
        rule_id = _reconciliation_service(ctx).categorize_transaction(
            company_id, transaction_id, account_id, party_id, create_rule=create_rule
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Categorized transaction {transaction_id}")
    if create_rule:
        if rule_id is None:
            click.echo("No usable keyword in the description; rule not created")
        else:
            click.echo(f"Created rule {rule_id}")


@feed_group.command("find-match")
@click.argument("transaction_id", type=int)
@click.pass_context
def find_match(ctx, transaction_id: int):
    """Show reconciliation candidates for a transaction."""
    company_id = require_company(ctx)
    try:
        result = _reconciliation_service(ctx).find_match(company_id, transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not result.candidates:
        click.echo("No candidates found.")
        return

    click.echo(f"\nCandidates for transaction {transaction_id}:")
    click.echo("-" * 60)
    for candidate in result.candidates:
        marker = " *" if result.selected is not None and candidate.key == result.selected.key else ""
        click.echo(
            f"{candidate.match_type.value:16s} {candidate.entity_id:4d} | {candidate.number:12s} | "
            f"{candidate.confidence_score:3d} | {candidate.reason}{marker}"
        )
    if result.ambiguous:
        click.echo("Ambiguous: several candidates tie for the best score")


@feed_group.command("match")
@click.argument("transaction_id", type=int)
@click.argument("match_type", type=click.Choice([t.value for t in MatchType]))
@click.argument("entity_id", type=int)
@click.pass_context
def match(ctx, transaction_id: int, match_type: str, entity_id: int):
    """Link a pending transaction to a record by hand."""
    company_id = require_company(ctx)
    try:
        _reconciliation_service(ctx).match_transaction(company_id, transaction_id, match_type, entity_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Matched transaction {transaction_id} to {match_type} {entity_id}")


@feed_group.command("reconcile")
@click.argument("transaction_id", type=int)
@click.pass_context
def reconcile(ctx, transaction_id: int):
    """Confirm a matched transaction."""
    company_id = require_company(ctx)
    try:
        _reconciliation_service(ctx).reconcile_transaction(company_id, transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reconciled transaction {transaction_id}")


@feed_group.command("exclude")
@click.argument("transaction_id", type=int)
@click.pass_context
def exclude(ctx, transaction_id: int):
    """Exclude a pending transaction from bookkeeping."""
    company_id = require_company(ctx)
    try:
        _reconciliation_service(ctx).exclude_transaction(company_id, transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Excluded transaction {transaction_id}")


@feed_group.command("auto-reconcile")
@click.option("--transaction", "transaction_ids", type=int, multiple=True, help="Limit to these IDs")
@click.pass_context
def auto_reconcile(ctx, transaction_ids: tuple[int, ...]):
    """Match pending transactions that have exactly one best candidate."""
    company_id = require_company(ctx)
    result = _reconciliation_service(ctx).auto_reconcile(company_id, list(transaction_ids) or None)
    click.echo(
        f"Processed {result['processed']}, matched {result['matched']}, "
        f"ambiguous {result['ambiguous']}, failed {result['failed']}"
    )


@feed_group.command("post")
@click.argument("transaction_id", type=int)
@click.argument("account", metavar="ACCOUNT")
@click.option("--party", help="Party name or ID")
@click.pass_context
def post(ctx, transaction_id: int, account: str, party: str | None):
    """Create a draft journal entry for a transaction against ACCOUNT."""
    company_id = require_company(ctx)
    account_id = resolve_account_or_exit(ctx, company_id, account)
    party_id = resolve_party_or_exit(ctx, company_id, party)

    try:
        entry_id = _reconciliation_service(ctx).create_entry_from_transaction(
            company_id, transaction_id, account_id, party_id
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    entry = ctx.obj["db"].get_journal_entry(entry_id)
    click.echo(f"Created journal entry {entry.entry_number} (ID: {entry_id})")


def register_commands(cli):
    """Register feed commands with main CLI."""
    cli.add_command(feed_group, name="feed")
