"""Invoice, bill, payment and expense commands.

These record the bookkeeping documents that bank lines are reconciled
against.
"""

import click

from ledgerfeed.cli.resolution import (
    parse_amount_or_exit,
    parse_date_or_exit,
    require_company,
    resolve_party_or_exit,
)
from ledgerfeed.domain.documents import (
    BILL_STATUSES,
    INVOICE_STATUSES,
    PAYMENT_DIRECTIONS,
    DocumentService,
)


@click.group()
def document_group():
    """Record invoices, bills, payments and expenses."""
    pass


@document_group.command("invoice")
@click.argument("number")
@click.argument("amount")
@click.option("--date", "doc_date", required=True, help="Invoice date")
@click.option("--due", help="Due date (defaults to the invoice date)")
@click.option("--customer", help="Customer name or ID")
@click.option("--balance", help="Outstanding balance (defaults to the total)")
@click.option("--status", type=click.Choice(INVOICE_STATUSES), default="sent", show_default=True)
@click.pass_context
def add_invoice(ctx, number, amount, doc_date, due, customer, balance, status):
    """Record a sales invoice.

    Examples:
        ledgerfeed --company Acme document invoice INV-1001 5000 --date 2024-06-01 --customer Globex
    """
    company_id = require_company(ctx)
    try:
        invoice_id = DocumentService(ctx.obj["db"]).create_invoice(
            company_id=company_id,
            invoice_number=number,
            invoice_date=parse_date_or_exit(ctx, doc_date),
            total_amount=parse_amount_or_exit(ctx, amount),
            due_date=parse_date_or_exit(ctx, due, "due date"),
            customer_id=resolve_party_or_exit(ctx, company_id, customer),
            balance_due=parse_amount_or_exit(ctx, balance, "balance"),
            status=status,
        )
        click.echo(f"Recorded invoice {number} (ID: {invoice_id})")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@document_group.command("bill")
@click.argument("number")
@click.argument("amount")
@click.option("--date", "doc_date", required=True, help="Bill date")
@click.option("--due", help="Due date (defaults to the bill date)")
@click.option("--vendor", help="Vendor name or ID")
@click.option("--vendor-ref", help="Vendor's own bill number")
@click.option("--balance", help="Outstanding balance (defaults to the total)")
@click.option("--status", type=click.Choice(BILL_STATUSES), default="pending", show_default=True)
@click.pass_context
def add_bill(ctx, number, amount, doc_date, due, vendor, vendor_ref, balance, status):
    """Record a vendor bill."""
    company_id = require_company(ctx)
    try:
        bill_id = DocumentService(ctx.obj["db"]).create_bill(
            company_id=company_id,
            bill_number=number,
            bill_date=parse_date_or_exit(ctx, doc_date),
            total_amount=parse_amount_or_exit(ctx, amount),
            due_date=parse_date_or_exit(ctx, due, "due date"),
            vendor_id=resolve_party_or_exit(ctx, company_id, vendor),
            vendor_bill_number=vendor_ref,
            balance_due=parse_amount_or_exit(ctx, balance, "balance"),
            status=status,
        )
        click.echo(f"Recorded bill {number} (ID: {bill_id})")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@document_group.command("payment")
@click.argument("direction", type=click.Choice(PAYMENT_DIRECTIONS))
@click.argument("number")
@click.argument("amount")
@click.option("--date", "doc_date", required=True, help="Payment date")
@click.option("--party", help="Customer or vendor name or ID")
@click.pass_context
def add_payment(ctx, direction, number, amount, doc_date, party):
    """Record a payment received or made.

    Examples:
        ledgerfeed --company Acme document payment received PAY-7 1200 --date 2024-06-03
    """
    company_id = require_company(ctx)
    try:
        payment_id = DocumentService(ctx.obj["db"]).record_payment(
            company_id=company_id,
            direction=direction,
            payment_number=number,
            payment_date=parse_date_or_exit(ctx, doc_date),
            amount=parse_amount_or_exit(ctx, amount),
            party_id=resolve_party_or_exit(ctx, company_id, party),
        )
        click.echo(f"Recorded payment {number} (ID: {payment_id})")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@document_group.command("expense")
@click.argument("number")
@click.argument("amount")
@click.option("--date", "doc_date", required=True, help="Expense date")
@click.option("--party", help="Vendor name or ID")
@click.pass_context
def add_expense(ctx, number, amount, doc_date, party):
    """Record an expense voucher."""
    company_id = require_company(ctx)
    try:
        expense_id = DocumentService(ctx.obj["db"]).create_expense(
            company_id=company_id,
            expense_number=number,
            expense_date=parse_date_or_exit(ctx, doc_date),
            total_amount=parse_amount_or_exit(ctx, amount),
            party_id=resolve_party_or_exit(ctx, company_id, party),
        )
        click.echo(f"Recorded expense {number} (ID: {expense_id})")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@document_group.command("list")
@click.argument("kind", type=click.Choice(["invoices", "bills", "payments", "expenses"]))
@click.option("--open-only", is_flag=True, help="Only open invoices or bills")
@click.pass_context
def list_documents(ctx, kind: str, open_only: bool):
    """List recorded documents of one kind."""
    company_id = require_company(ctx)
    service = DocumentService(ctx.obj["db"])

    if kind == "invoices":
        rows = [
            f"ID: {d.id:3d} | {d.invoice_number:12s} | {d.invoice_date} | due {d.due_date} | "
            f"{d.total_amount:>12} | balance {d.balance_due} | {d.status}"
            for d in service.list_invoices(company_id, open_only=open_only)
        ]
    elif kind == "bills":
        rows = [
            f"ID: {d.id:3d} | {d.bill_number:12s} | {d.bill_date} | due {d.due_date} | "
            f"{d.total_amount:>12} | balance {d.balance_due} | {d.status}"
            for d in service.list_bills(company_id, open_only=open_only)
        ]
    elif kind == "payments":
        rows = [
            f"ID: {d.id:3d} | {d.payment_number:12s} | {d.payment_date} | {d.amount:>12} | {d.direction}"
            for d in service.list_payments(company_id)
        ]
    else:
        rows = [
            f"ID: {d.id:3d} | {d.expense_number:12s} | {d.expense_date} | {d.total_amount:>12}"
            for d in service.list_expenses(company_id)
        ]

    if not rows:
        click.echo(f"No {kind} found.")
        return

    click.echo(f"\n{kind.capitalize()}:")
    click.echo("-" * 60)
    for row in rows:
        click.echo(row)


def register_commands(cli):
    """Register document commands with main CLI."""
    cli.add_command(document_group, name="document")
