"""Utility for resolving party references to IDs."""

from ledgerfeed.domain.errors import NotFoundError
from ledgerfeed.domain.party import PartyService


def resolve_party(party_service: PartyService, company_id: int, party: str | int) -> int:
    """Resolve a party ID or name (case-insensitive) to a party ID.

    Raises:
        NotFoundError: If no party of the company matches
    """
    parties = party_service.list_parties(company_id, active_only=False)

    if isinstance(party, str) and not party.strip().isdigit():
        lowered = party.strip().lower()
        for p in parties:
            if p.name.lower() == lowered:
                return p.id
        raise NotFoundError(f"Party '{party}' not found")

    party_id = int(party)
    for p in parties:
        if p.id == party_id:
            return p.id
    raise NotFoundError(f"Party ID {party_id} not found")
