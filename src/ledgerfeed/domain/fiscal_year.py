"""Fiscal year domain service."""

from datetime import date
from typing import Optional
from ledgerfeed.database.base import Database
from ledgerfeed.domain.entities import FiscalYear
from ledgerfeed.domain.errors import (
    ConflictError,
    NoActiveFiscalYearError,
    NotFoundError,
    ValidationError,
    company_not_found,
    no_active_fiscal_year,
)


class FiscalYearService:
    """Service for managing fiscal years. A company has at most one current year."""

    def __init__(self, db: Database):
        """Initialize fiscal year service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_fiscal_year(
        self,
        company_id: int,
        name: str,
        start_date: date,
        end_date: date,
        is_current: bool = False,
    ) -> int:
        """Create a fiscal year.

        Creating a current year clears the flag on the company's other years.

        Returns:
            Fiscal year ID

        Raises:
            NotFoundError: If the company does not exist
            ValidationError: If the name is empty or the dates are reversed
            ConflictError: If the name is already used in the company
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        name = name.strip()
        if not name:
            raise ValidationError("Fiscal year name cannot be empty")
        if end_date <= start_date:
            raise ValidationError("Fiscal year must end after it starts")
        for year in self.db.list_fiscal_years(company_id):
            if year.name == name:
                raise ConflictError(f"Fiscal year '{name}' already exists")

        return self.db.create_fiscal_year(
            company_id=company_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            is_current=is_current,
        )

    def list_fiscal_years(self, company_id: int) -> list[FiscalYear]:
        """List fiscal years ordered by start date."""
        return self.db.list_fiscal_years(company_id)

    def get_current(self, company_id: int) -> Optional[FiscalYear]:
        """Get the current fiscal year, or None."""
        return self.db.get_current_fiscal_year(company_id)

    def require_current(self, company_id: int) -> FiscalYear:
        """Get the current fiscal year.

        Raises:
            NoActiveFiscalYearError: If the company has no current fiscal year
        """
        fiscal_year = self.db.get_current_fiscal_year(company_id)
        if fiscal_year is None:
            raise NoActiveFiscalYearError(no_active_fiscal_year(company_id))
        return fiscal_year

    def set_current(self, company_id: int, fiscal_year_id: int) -> None:
        """Make the given fiscal year the company's current one."""
        self.db.set_current_fiscal_year(company_id, fiscal_year_id)
