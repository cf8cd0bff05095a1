"""Chart of accounts domain service."""

from typing import Optional
from ledgerfeed.database.base import Database
from ledgerfeed.domain.entities import LedgerAccount
from ledgerfeed.domain.errors import (
    AccountNotFoundError,
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    company_not_found,
)

ACCOUNT_TYPES = ("asset", "liability", "equity", "income", "expense")


class AccountService:
    """Service for managing a company's ledger accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        company_id: int,
        code: str,
        name: str,
        account_type: str,
        is_group: bool = False,
        parent_id: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        """Create a new ledger account.

        Args:
            company_id: Owning company
            code: Account code, unique within the company
            name: Account name
            account_type: One of asset, liability, equity, income, expense
            is_group: Group accounts only hold children and never take postings
            parent_id: Optional parent group account
            is_active: Whether the account is usable

        Returns:
            Account ID

        Raises:
            NotFoundError: If the company or parent does not exist
            ValidationError: If the type is unknown or the parent is not a group
            ConflictError: If the code is already used in the company
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))

        account_type = account_type.strip().lower()
        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(
                f"Invalid account type '{account_type}'. Must be one of: {', '.join(ACCOUNT_TYPES)}"
            )

        code = code.strip()
        name = name.strip()
        if not code or not name:
            raise ValidationError("Account code and name cannot be empty")

        for acc in self.db.list_accounts(company_id):
            if acc.code == code:
                raise ConflictError(f"Account with code '{code}' already exists")

        if parent_id is not None:
            parent = self.db.get_account(parent_id)
            if parent is None or parent.company_id != company_id:
                raise NotFoundError(account_not_found(parent_id))
            if not parent.is_group:
                raise ValidationError(f"Parent account {parent_id} is not a group account")

        return self.db.create_account(
            company_id=company_id,
            code=code,
            name=name,
            account_type=account_type,
            is_group=is_group,
            parent_id=parent_id,
            is_active=is_active,
        )

    def get_account(self, account_id: int) -> Optional[LedgerAccount]:
        """Get account by ID."""
        return self.db.get_account(account_id)

    def list_accounts(
        self, company_id: int, leaf_only: bool = False, active_only: bool = False
    ) -> list[LedgerAccount]:
        """List a company's accounts ordered by code.

        Args:
            company_id: Owning company
            leaf_only: Drop group accounts
            active_only: Drop inactive accounts

        Returns:
            List of account entities
        """
        accounts = self.db.list_accounts(company_id)
        if leaf_only:
            accounts = [acc for acc in accounts if acc.is_leaf]
        if active_only:
            accounts = [acc for acc in accounts if acc.is_active]
        return accounts

    def set_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account."""
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        self.db.set_account_active(account_id, is_active)

    def get_postable_account(self, company_id: int, account_id: int) -> LedgerAccount:
        """Return an account that can take postings for the company.

        Raises:
            AccountNotFoundError: If the account is missing, inactive, a group
                account or owned by another company
        """
        account = self.db.get_account(account_id)
        if account is None or account.company_id != company_id or not account.is_active or not account.is_leaf:
            raise AccountNotFoundError(account_not_found(account_id))
        return account
