from datetime import datetime
from typing import List

from importer.parsers import parse_clubs_page
from importer.phases.base import ListingPhase
from models.base import PhaseName
from models.club import Club
from schemas.candidates import ClubCandidate


class ClubsPhase(ListingPhase):
    """Clubs rating listing. Runs first: players link to clubs by name."""

    name = PhaseName.CLUBS
    model = Club
    candidate_kind = "club"

    async def fetch_page(self, page: int) -> str:
        return await self.client.fetch_clubs_page(page)

    def parse_page(self, html: str) -> List[ClubCandidate]:
        return parse_clubs_page(html)

    async def persist(self, candidates: List[ClubCandidate]) -> int:
        now = datetime.utcnow()
        rows = [
            Club(
                gomafia_id=candidate.gomafia_id,
                name=candidate.name.strip(),
                region=candidate.region,
                president_name=candidate.president_name,
                members_count=candidate.members_count,
                last_sync_at=now,
            )
            for candidate in candidates
        ]
        await self.repository.add_all(rows)
        return len(rows)
