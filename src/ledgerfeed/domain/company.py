"""Company domain service."""

from typing import Optional
from ledgerfeed.database.base import Database
from ledgerfeed.domain.entities import Company
from ledgerfeed.domain.errors import ConflictError, NotFoundError, ValidationError, company_not_found


class CompanyService:
    """Service for managing tenant companies."""

    def __init__(self, db: Database):
        """Initialize company service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_company(self, name: str) -> int:
        """Create a new company.

        Args:
            name: Company name (unique)

        Returns:
            Company ID

        Raises:
            ValidationError: If the name is empty
            ConflictError: If a company with the same name exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Company name cannot be empty")
        if self.db.get_company_by_name(name) is not None:
            raise ConflictError(f"Company with name '{name}' already exists")
        return self.db.create_company(name)

    def get_company(self, company_id: int) -> Optional[Company]:
        """Get company by ID."""
        return self.db.get_company(company_id)

    def list_companies(self) -> list[Company]:
        """List all companies."""
        return self.db.list_companies()

    def resolve_company(self, company: str | int) -> Company:
        """Resolve a company name or ID.

        Exact names win over numeric IDs, so a company literally named "2"
        stays reachable.

        Raises:
            NotFoundError: If no company matches
        """
        if isinstance(company, int):
            found = self.db.get_company(company)
        else:
            found = self.db.get_company_by_name(company.strip())
            if found is None and company.strip().isdigit():
                found = self.db.get_company(int(company))
        if found is None:
            raise NotFoundError(company_not_found(company))
        return found
