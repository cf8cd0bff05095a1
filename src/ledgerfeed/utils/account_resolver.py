"""Utility for resolving ledger account references to IDs."""

from ledgerfeed.domain.account import AccountService
from ledgerfeed.domain.errors import AccountNotFoundError


def resolve_account(account_service: AccountService, company_id: int, account: str | int) -> int:
    """Resolve an account ID, code or name to an account ID.

    Args:
        account_service: AccountService instance
        company_id: Company the account must belong to
        account: Account ID (int or numeric string), code or name

    Returns:
        Account ID

    Raises:
        AccountNotFoundError: If no account of the company matches
    """
    accounts = account_service.list_accounts(company_id)

    if isinstance(account, int):
        for acc in accounts:
            if acc.id == account:
                return acc.id
        raise AccountNotFoundError(f"Account ID {account} not found")

    # Codes are often numeric, so they win over IDs for numeric strings
    for acc in accounts:
        if acc.code == account:
            return acc.id

    try:
        account_id = int(account)
    except (ValueError, TypeError):
        account_id = None
    if account_id is not None:
        for acc in accounts:
            if acc.id == account_id:
                return acc.id

    lowered = account.strip().lower()
    for acc in accounts:
        if acc.name.lower() == lowered:
            return acc.id

    raise AccountNotFoundError(f"Account '{account}' not found")
