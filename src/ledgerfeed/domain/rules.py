"""Categorization rule domain service."""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from ledgerfeed.database.base import Database
from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.categorizer import AMOUNT_FIELD, AMOUNT_OPERATORS, TEXT_FIELDS, TEXT_OPERATORS
from ledgerfeed.domain.entities import CategorizationRule, RuleCondition
from ledgerfeed.domain.errors import NotFoundError, ValidationError, party_not_found, rule_not_found

log = logging.getLogger(__name__)

# Words that say nothing about the counterparty; never used as rule keywords
STOP_WORDS = frozenset(
    {
        "the", "and", "for", "from", "to", "of", "in", "on", "at", "by",
        "upi", "neft", "rtgs", "imps", "ref", "no", "txn",
        "credit", "debit", "transfer", "payment", "received",
    }
)
MIN_KEYWORD_LENGTH = 3
AUTO_RULE_PREFIX = "Auto-rule: "


def extract_keywords(description: str) -> list[str]:
    """Significant words of a description, in order of appearance.

    Lower-cases, turns non-alphanumerics into spaces and keeps words of at
    least three characters that are not stop words.
    """
    words = re.sub(r"[^a-z0-9]+", " ", (description or "").lower()).split()
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH and w not in STOP_WORDS]


def parse_condition(raw: dict[str, Any] | RuleCondition) -> RuleCondition:
    """Validate one condition given as a dict or RuleCondition.

    Raises:
        ValidationError: If the field, operator or value is not usable
    """
    if isinstance(raw, RuleCondition):
        raw = raw.to_dict()

    field = str(raw.get("field", "")).strip().lower()
    operator = str(raw.get("operator", "")).strip().lower()
    value = raw.get("value")
    case_sensitive = bool(raw.get("case_sensitive", False))

    if field == AMOUNT_FIELD:
        if operator not in AMOUNT_OPERATORS:
            raise ValidationError(
                f"Invalid operator '{operator}' for amount. Must be one of: {', '.join(AMOUNT_OPERATORS)}"
            )
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(f"Invalid amount '{value}' in rule condition") from e
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount '{value}' in rule condition")
        return RuleCondition(field=field, operator=operator, value=amount, case_sensitive=False)

    if field not in TEXT_FIELDS:
        valid = ", ".join(TEXT_FIELDS + (AMOUNT_FIELD,))
        raise ValidationError(f"Invalid condition field '{field}'. Must be one of: {valid}")
    if operator not in TEXT_OPERATORS:
        raise ValidationError(
            f"Invalid operator '{operator}' for {field}. Must be one of: {', '.join(TEXT_OPERATORS)}"
        )
    if value is None or str(value) == "":
        raise ValidationError("Condition value cannot be empty")
    value = str(value)
    if operator == "regex":
        try:
            re.compile(value)
        except re.error as e:
            raise ValidationError(f"Invalid regular expression '{value}': {e}") from e

    return RuleCondition(field=field, operator=operator, value=value, case_sensitive=case_sensitive)


def parse_conditions(raw_conditions: Iterable[dict[str, Any] | RuleCondition]) -> tuple[RuleCondition, ...]:
    """Validate a condition list. At least one condition is required."""
    conditions = tuple(parse_condition(raw) for raw in raw_conditions)
    if not conditions:
        raise ValidationError("A rule needs at least one condition")
    return conditions


class RuleService:
    """Service for managing categorization rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)

    def _check_targets(
        self, company_id: int, target_account_id: Optional[int], target_party_id: Optional[int]
    ) -> None:
        if target_account_id is None and target_party_id is None:
            raise ValidationError("A rule needs a target account or a target party")
        if target_account_id is not None:
            self.account_service.get_postable_account(company_id, target_account_id)
        if target_party_id is not None:
            party = self.db.get_party(target_party_id)
            if party is None or party.company_id != company_id:
                raise NotFoundError(party_not_found(target_party_id))

    def _get_existing(self, rule_id: int) -> CategorizationRule:
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def create_rule(
        self,
        company_id: int,
        rule_name: str,
        conditions: Iterable[dict[str, Any] | RuleCondition],
        target_account_id: Optional[int] = None,
        target_party_id: Optional[int] = None,
        priority: int = 0,
        is_active: bool = True,
    ) -> int:
        """Create a categorization rule.

        Args:
            company_id: Owning company
            rule_name: Display name
            conditions: Conditions that must all hold
            target_account_id: Account suggested on match
            target_party_id: Party suggested on match
            priority: Higher priorities are evaluated first
            is_active: Inactive rules are never evaluated

        Returns:
            Rule ID

        Raises:
            ValidationError: If the name, conditions or targets are invalid
            AccountNotFoundError: If the target account cannot take postings
            NotFoundError: If the target party does not exist
        """
        rule_name = rule_name.strip()
        if not rule_name:
            raise ValidationError("Rule name cannot be empty")
        parsed = parse_conditions(conditions)
        self._check_targets(company_id, target_account_id, target_party_id)

        rule_id = self.db.create_rule(
            company_id=company_id,
            rule_name=rule_name,
            priority=priority,
            conditions=[c.to_dict() for c in parsed],
            target_account_id=target_account_id,
            target_party_id=target_party_id,
            is_active=is_active,
        )
        log.info("Created rule %d '%s' (priority %d)", rule_id, rule_name, priority)
        return rule_id

    def get_rule(self, rule_id: int) -> Optional[CategorizationRule]:
        """Get rule by ID."""
        return self.db.get_rule(rule_id)

    def list_rules(self, company_id: int, active_only: bool = False) -> list[CategorizationRule]:
        """List rules in evaluation order."""
        return self.db.list_rules(company_id, active_only=active_only)

    def update_rule(
        self,
        rule_id: int,
        rule_name: Optional[str] = None,
        priority: Optional[int] = None,
        conditions: Optional[Iterable[dict[str, Any] | RuleCondition]] = None,
        target_account_id: Optional[int] = None,
        target_party_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        clear_party: bool = False,
    ) -> None:
        """Update a rule. Fields left as None are unchanged.

        Args:
            clear_party: Remove the target party

        Raises:
            NotFoundError: If the rule does not exist
            ValidationError: If new values are invalid
        """
        rule = self._get_existing(rule_id)

        if rule_name is not None and not rule_name.strip():
            raise ValidationError("Rule name cannot be empty")
        parsed = parse_conditions(conditions) if conditions is not None else None

        new_account = target_account_id if target_account_id is not None else rule.target_account_id
        if clear_party:
            new_party = None
        else:
            new_party = target_party_id if target_party_id is not None else rule.target_party_id
        if target_account_id is not None or target_party_id is not None or clear_party:
            self._check_targets(rule.company_id, new_account, new_party)

        self.db.update_rule(
            rule_id,
            rule_name=rule_name.strip() if rule_name is not None else None,
            priority=priority,
            conditions=[c.to_dict() for c in parsed] if parsed is not None else None,
            target_account_id=target_account_id,
            target_party_id=new_party,
            is_active=is_active,
            update_party=True,
        )

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If the rule does not exist
        """
        self._get_existing(rule_id)
        self.db.delete_rule(rule_id)

    def record_usage(self, usage: dict[int, int]) -> None:
        """Add hit counts to rule usage counters."""
        self.db.record_rule_usage(usage)

    def create_rule_from_transaction(
        self,
        company_id: int,
        description: str,
        target_account_id: int,
        target_party_id: Optional[int] = None,
    ) -> Optional[int]:
        """Grow the rule table from a user correction.

        Creates "Auto-rule: <keyword>" with a single "description contains
        <keyword>" condition, prioritized above every existing rule of the
        company so the correction wins next time.

        Args:
            company_id: Owning company
            description: Description of the corrected transaction
            target_account_id: Account the user chose
            target_party_id: Party the user chose

        Returns:
            New rule ID, or None when the description has no usable keyword
        """
        keywords = extract_keywords(description)
        if not keywords:
            log.info("No keyword in '%s', rule not created", description)
            return None

        keyword = keywords[0]
        existing = self.db.list_rules(company_id)
        priority = max((r.priority for r in existing), default=0) + 1

        return self.create_rule(
            company_id=company_id,
            rule_name=f"{AUTO_RULE_PREFIX}{keyword}",
            conditions=[{"field": "description", "operator": "contains", "value": keyword}],
            target_account_id=target_account_id,
            target_party_id=target_party_id,
            priority=priority,
        )
