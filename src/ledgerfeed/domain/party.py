"""Party (customer/vendor) domain service."""

from typing import Optional
from ledgerfeed.database.base import Database
from ledgerfeed.domain.entities import Party
from ledgerfeed.domain.errors import NotFoundError, ValidationError, account_not_found, company_not_found

PARTY_TYPES = ("customer", "vendor")


class PartyService:
    """Service for managing counterparties."""

    def __init__(self, db: Database):
        self.db = db

    def create_party(
        self,
        company_id: int,
        name: str,
        party_type: str,
        default_account_id: Optional[int] = None,
    ) -> int:
        """Create a customer or vendor.

        Args:
            company_id: Owning company
            name: Party name, matched against statement descriptions
            party_type: "customer" or "vendor"
            default_account_id: Optional ledger account used for the party

        Returns:
            Party ID

        Raises:
            NotFoundError: If the company or default account does not exist
            ValidationError: If the name is empty or the type is unknown
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        name = name.strip()
        if not name:
            raise ValidationError("Party name cannot be empty")
        party_type = party_type.strip().lower()
        if party_type not in PARTY_TYPES:
            raise ValidationError(f"Invalid party type '{party_type}'. Must be one of: {', '.join(PARTY_TYPES)}")
        if default_account_id is not None:
            account = self.db.get_account(default_account_id)
            if account is None or account.company_id != company_id:
                raise NotFoundError(account_not_found(default_account_id))

        return self.db.create_party(
            company_id=company_id,
            name=name,
            party_type=party_type,
            default_account_id=default_account_id,
        )

    def get_party(self, party_id: int) -> Optional[Party]:
        """Get party by ID."""
        return self.db.get_party(party_id)

    def list_parties(self, company_id: int, active_only: bool = True) -> list[Party]:
        """List a company's parties in creation order."""
        return self.db.list_parties(company_id, active_only=active_only)
