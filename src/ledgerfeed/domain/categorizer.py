"""Transaction categorization.

Proposes a ledger account and counterparty for a statement line. Everything
here is pure: the caller fetches accounts, parties and rules once into a
CategorizationSnapshot and records side effects (rule usage) itself.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Protocol

from ledgerfeed.domain.entities import (
    CategorizationRule,
    CategorizationSource,
    LedgerAccount,
    Party,
    RuleCondition,
)

log = logging.getLogger(__name__)

RULE_CONFIDENCE = 100
HEURISTIC_CONFIDENCE = 70
MANUAL_CONFIDENCE = 100
NO_CONFIDENCE = 0

TEXT_FIELDS = ("description", "reference_number")
AMOUNT_FIELD = "amount"
TEXT_OPERATORS = ("contains", "equals", "starts_with", "ends_with", "regex")
AMOUNT_OPERATORS = ("equals", "greater_than", "less_than")


class Categorizable(Protocol):
    """Fields the matcher reads from a raw or persisted transaction."""

    description: str
    reference_number: Optional[str]
    debit_amount: Optional[Decimal]
    credit_amount: Optional[Decimal]


@dataclass(frozen=True)
class KeywordHeuristic:
    """Description keywords mapped to account-name fragments."""

    keywords: tuple[str, ...]
    account_fragments: tuple[str, ...]

    def applies_to(self, description: str) -> bool:
        return any(keyword in description for keyword in self.keywords)

    def find_account(self, accounts: Iterable[LedgerAccount]) -> Optional[LedgerAccount]:
        for account in accounts:
            name = account.name.lower()
            if any(fragment in name for fragment in self.account_fragments):
                return account
        return None


# Evaluated top to bottom; the first group whose keyword appears decides.
HEURISTICS: tuple[KeywordHeuristic, ...] = (
    KeywordHeuristic(("salary", "payroll"), ("salary",)),
    KeywordHeuristic(("rent",), ("rent",)),
    KeywordHeuristic(("electricity", "power", "utility"), ("utility", "electricity")),
    KeywordHeuristic(("telephone", "mobile", "internet"), ("telephone", "communication")),
    KeywordHeuristic(("gst", "tax"), ("gst", "tax")),
    KeywordHeuristic(("insurance",), ("insurance",)),
    KeywordHeuristic(("interest",), ("interest",)),
)


@dataclass(frozen=True)
class CategorizationSnapshot:
    """Per-invocation view of a company's accounts, parties and rules.

    ``accounts`` holds active leaf accounts; ``rules`` holds active rules in
    evaluation order (see ``order_rules``).
    """

    accounts: tuple[LedgerAccount, ...]
    parties: tuple[Party, ...]
    rules: tuple[CategorizationRule, ...]

    @classmethod
    def build(
        cls,
        accounts: Iterable[LedgerAccount],
        parties: Iterable[Party],
        rules: Iterable[CategorizationRule],
    ) -> "CategorizationSnapshot":
        return cls(
            accounts=tuple(a for a in accounts if a.is_active and a.is_leaf),
            parties=tuple(parties),
            rules=tuple(order_rules(r for r in rules if r.is_active)),
        )

    def account(self, account_id: Optional[int]) -> Optional[LedgerAccount]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def party(self, party_id: Optional[int]) -> Optional[Party]:
        return next((p for p in self.parties if p.id == party_id), None)


@dataclass(frozen=True)
class Suggestion:
    """Categorization proposal for one transaction."""

    account_id: Optional[int] = None
    account_name: Optional[str] = None
    party_id: Optional[int] = None
    party_name: Optional[str] = None
    source: CategorizationSource = CategorizationSource.NONE
    confidence_score: int = NO_CONFIDENCE
    rule_id: Optional[int] = None
    rule_name: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.account_id is not None


def order_rules(rules: Iterable[CategorizationRule]) -> list[CategorizationRule]:
    """Sort rules into evaluation order.

    Higher priority first; equal priorities fall back to creation order
    (lower ID first).
    """
    return sorted(rules, key=lambda rule: (-rule.priority, rule.id))


def _transaction_amount(txn: Categorizable) -> Optional[Decimal]:
    if txn.debit_amount is not None:
        return txn.debit_amount
    return txn.credit_amount


def condition_matches(condition: RuleCondition, txn: Categorizable) -> bool:
    """Check a single rule condition against a transaction."""
    if condition.field == AMOUNT_FIELD:
        amount = _transaction_amount(txn)
        if amount is None:
            return False
        try:
            target = Decimal(str(condition.value))
        except InvalidOperation:
            return False
        # NaN raises on ordering comparisons
        if not target.is_finite():
            return False
        if condition.operator == "equals":
            return amount == target
        if condition.operator == "greater_than":
            return amount > target
        if condition.operator == "less_than":
            return amount < target
        return False

    if condition.field not in TEXT_FIELDS:
        return False

    field_value = getattr(txn, condition.field) or ""
    pattern = str(condition.value)

    if condition.operator == "regex":
        flags = 0 if condition.case_sensitive else re.IGNORECASE
        try:
            return re.search(pattern, field_value, flags) is not None
        except re.error:
            return False

    if not condition.case_sensitive:
        field_value = field_value.lower()
        pattern = pattern.lower()

    if condition.operator == "contains":
        return pattern in field_value
    if condition.operator == "equals":
        return field_value == pattern
    if condition.operator == "starts_with":
        return field_value.startswith(pattern)
    if condition.operator == "ends_with":
        return field_value.endswith(pattern)
    return False


def rule_matches(rule: CategorizationRule, txn: Categorizable) -> bool:
    """A rule matches when it has conditions and every one of them holds."""
    if not rule.conditions:
        return False
    return all(condition_matches(condition, txn) for condition in rule.conditions)


def match_rule(
    rules: Iterable[CategorizationRule], txn: Categorizable
) -> Optional[CategorizationRule]:
    """Return the first rule, in the given order, that matches."""
    for rule in rules:
        if rule.is_active and rule_matches(rule, txn):
            return rule
    return None


def match_heuristic(
    description: str, accounts: Iterable[LedgerAccount]
) -> Optional[LedgerAccount]:
    """Apply the built-in keyword table.

    The first keyword group present in the description decides the outcome;
    if no account carries that group's name fragment the line stays
    unmatched rather than falling through to later groups.
    """
    lowered = description.lower()
    for heuristic in HEURISTICS:
        if heuristic.applies_to(lowered):
            return heuristic.find_account(accounts)
    return None


def match_party(description: str, parties: Iterable[Party]) -> Optional[Party]:
    """Return the first party whose name appears in the description."""
    lowered = description.lower()
    for party in parties:
        name = party.name.strip().lower()
        if name and name in lowered:
            return party
    return None


def categorize(txn: Categorizable, snapshot: CategorizationSnapshot) -> Suggestion:
    """Propose an account and party for one transaction.

    Precedence: active rules in evaluation order, then the keyword table.
    The party scan runs regardless of how the account was found; a rule's
    own target party takes precedence over it.

    Args:
        txn: Raw or persisted transaction
        snapshot: Company accounts, parties and rules

    Returns:
        Suggestion (unmatched when neither rules nor heuristics apply)
    """
    description = txn.description or ""
    party = match_party(description, snapshot.parties)

    rule = match_rule(snapshot.rules, txn)
    if rule is not None:
        account = snapshot.account(rule.target_account_id)
        rule_party = snapshot.party(rule.target_party_id)
        if rule_party is not None:
            party = rule_party
        log.debug("Rule '%s' matched '%s'", rule.rule_name, description)
        return Suggestion(
            account_id=rule.target_account_id,
            account_name=account.name if account else None,
            party_id=party.id if party else None,
            party_name=party.name if party else None,
            source=CategorizationSource.RULE,
            confidence_score=RULE_CONFIDENCE,
            rule_id=rule.id,
            rule_name=rule.rule_name,
        )

    account = match_heuristic(description, snapshot.accounts)
    if account is not None:
        log.debug("Heuristic matched '%s' to %s", description, account.name)
        return Suggestion(
            account_id=account.id,
            account_name=account.name,
            party_id=party.id if party else None,
            party_name=party.name if party else None,
            source=CategorizationSource.HEURISTIC,
            confidence_score=HEURISTIC_CONFIDENCE,
        )

    return Suggestion(
        party_id=party.id if party else None,
        party_name=party.name if party else None,
    )
