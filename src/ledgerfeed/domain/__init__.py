"""Domain layer for ledgerfeed.

Services are exported lazily: the database layer imports
``ledgerfeed.domain.entities``, and eager service imports here would loop
back into it.
"""

_SERVICES = {
    "CompanyService": "ledgerfeed.domain.company",
    "AccountService": "ledgerfeed.domain.account",
    "PartyService": "ledgerfeed.domain.party",
    "FiscalYearService": "ledgerfeed.domain.fiscal_year",
    "DocumentService": "ledgerfeed.domain.documents",
    "RuleService": "ledgerfeed.domain.rules",
    "BankFeedService": "ledgerfeed.domain.bank_feed",
    "ImportService": "ledgerfeed.domain.importer",
    "ReconciliationService": "ledgerfeed.domain.reconciler",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
