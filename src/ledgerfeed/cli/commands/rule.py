"""Categorization rule commands."""

import click

from ledgerfeed.cli.error_handling import handle_domain_error
from ledgerfeed.cli.resolution import require_company, resolve_account_or_exit, resolve_party_or_exit
from ledgerfeed.domain.rules import RuleService


def _parse_condition_options(ctx, values: tuple[str, ...], case_sensitive: bool) -> list[dict]:
    """Turn FIELD:OPERATOR:VALUE options into condition dicts."""
    conditions = []
    for value in values:
        parts = value.split(":", 2)
        if len(parts) != 3:
            click.echo(f"Error: Invalid condition '{value}'. Use FIELD:OPERATOR:VALUE", err=True)
            ctx.exit(1)
        field, operator, text = parts
        conditions.append(
            {"field": field, "operator": operator, "value": text, "case_sensitive": case_sensitive}
        )
    return conditions


@click.group()
def rule_group():
    """Manage categorization rules."""
    pass


@rule_group.command("create")
@click.argument("name", metavar="RULE_NAME")
@click.option(
    "--condition",
    "conditions",
    multiple=True,
    required=True,
    help="Condition as FIELD:OPERATOR:VALUE (repeatable, all must hold)",
)
@click.option("--account", help="Target account (code, name or ID)")
@click.option("--party", help="Target party (name or ID)")
@click.option("--priority", type=int, default=0, show_default=True, help="Higher runs first")
@click.option("--case-sensitive", is_flag=True, help="Match text conditions case-sensitively")
@click.option("--inactive", is_flag=True, help="Create the rule disabled")
@click.pass_context
def create_rule(ctx, name, conditions, account, party, priority, case_sensitive, inactive):
    """Create a categorization rule.

    Fields are description, reference_number and amount. Text operators are
    contains, equals, starts_with, ends_with and regex; amount operators are
    equals, greater_than and less_than.

    Examples:
        ledgerfeed --company Acme rule create "AWS" --condition description:contains:aws --account 5200
        ledgerfeed --company Acme rule create "Big rent" --condition description:contains:rent \\
            --condition amount:greater_than:50000 --account Rent --priority 10
    """
    company_id = require_company(ctx)
    parsed = _parse_condition_options(ctx, conditions, case_sensitive)
    account_id = resolve_account_or_exit(ctx, company_id, account) if account is not None else None
    party_id = resolve_party_or_exit(ctx, company_id, party)

    try:
        rule_id = RuleService(ctx.obj["db"]).create_rule(
            company_id=company_id,
            rule_name=name,
            conditions=parsed,
            target_account_id=account_id,
            target_party_id=party_id,
            priority=priority,
            is_active=not inactive,
        )
        click.echo(f"Created rule '{name.strip()}' (ID: {rule_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide disabled rules")
@click.pass_context
def list_rules(ctx, active_only: bool):
    """List rules in evaluation order."""
    company_id = require_company(ctx)
    rules = RuleService(ctx.obj["db"]).list_rules(company_id, active_only=active_only)
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules (evaluation order):")
    click.echo("-" * 60)
    for rule in rules:
        state = "" if rule.is_active else " (inactive)"
        click.echo(
            f"ID: {rule.id:3d} | prio {rule.priority:3d} | {rule.rule_name}{state} | used {rule.usage_count}x"
        )
        for condition in rule.conditions:
            click.echo(f"        {condition.field} {condition.operator} '{condition.value}'")


@rule_group.command("update")
@click.argument("rule_id", type=int)
@click.option("--name", help="New rule name")
@click.option("--condition", "conditions", multiple=True, help="Replace conditions (FIELD:OPERATOR:VALUE)")
@click.option("--case-sensitive", is_flag=True, help="Match replacement text conditions case-sensitively")
@click.option("--account", help="New target account")
@click.option("--party", help="New target party")
@click.option("--clear-party", is_flag=True, help="Remove the target party")
@click.option("--priority", type=int, help="New priority")
@click.option("--enable/--disable", "is_active", default=None, help="Enable or disable the rule")
@click.pass_context
def update_rule(ctx, rule_id, name, conditions, case_sensitive, account, party, clear_party, priority, is_active):
    """Update a rule. Only the given options change."""
    company_id = require_company(ctx)
    service = RuleService(ctx.obj["db"])

    rule = service.get_rule(rule_id)
    if rule is None or rule.company_id != company_id:
        click.echo(f"Error: Rule {rule_id} not found", err=True)
        ctx.exit(1)

    parsed = _parse_condition_options(ctx, conditions, case_sensitive) if conditions else None
    account_id = resolve_account_or_exit(ctx, company_id, account) if account is not None else None
    party_id = resolve_party_or_exit(ctx, company_id, party)

    try:
        service.update_rule(
            rule_id,
            rule_name=name,
            priority=priority,
            conditions=parsed,
            target_account_id=account_id,
            target_party_id=party_id,
            is_active=is_active,
            clear_party=clear_party,
        )
        click.echo(f"Updated rule {rule_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_rule(ctx, rule_id: int, yes: bool):
    """Delete a rule."""
    company_id = require_company(ctx)
    service = RuleService(ctx.obj["db"])

    rule = service.get_rule(rule_id)
    if rule is None or rule.company_id != company_id:
        click.echo(f"Error: Rule {rule_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete rule '{rule.rule_name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_rule(rule_id)
        click.echo(f"Deleted rule '{rule.rule_name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
