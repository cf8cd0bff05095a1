"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to missing or dependent domain data."""


class UnsupportedFormatError(ValidationError):
    """Statement format tag is not one the parser understands."""


class NoTransactionsParsedError(ValidationError):
    """A statement produced zero usable transaction rows."""


class AccountNotFoundError(NotFoundError):
    """Ledger account is missing, inactive, a group, or owned by another company."""


class NoActiveFiscalYearError(DependencyError):
    """Company has no current fiscal year to number entries against."""


class InvalidTransitionError(ConflictError):
    """Reconciliation status change is not allowed from the current status."""


class AlreadyImportedError(ConflictError):
    """Bank feed transaction already produced a journal entry."""


def company_not_found(company: int | str) -> str:
    """Return message for missing company."""
    return f"Company '{company}' not found"


def account_not_found(account_id: int | str) -> str:
    """Return message for missing ledger account."""
    return f"Account {account_id} not found"


def party_not_found(party_id: int) -> str:
    """Return message for missing party."""
    return f"Party {party_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing categorization rule."""
    return f"Categorization rule {rule_id} not found"


def feed_transaction_not_found(transaction_id: int) -> str:
    """Return message for missing bank feed transaction."""
    return f"Bank feed transaction {transaction_id} not found"


def no_active_fiscal_year(company_id: int) -> str:
    """Return message when the company has no current fiscal year."""
    return f"No active fiscal year found for company {company_id}"


def unsupported_format(fmt: str) -> str:
    """Return message for an unsupported statement format."""
    return f"Unsupported statement format '{fmt}'. Use CSV."


def invalid_transition(transaction_id: int, current: str, target: str) -> str:
    """Return message for a disallowed reconciliation status change."""
    return f"Cannot move transaction {transaction_id} from '{current}' to '{target}'"


def already_imported(transaction_id: int, entry_id: int) -> str:
    """Return message when a feed transaction already produced an entry."""
    return f"Bank feed transaction {transaction_id} already imported as journal entry {entry_id}"
