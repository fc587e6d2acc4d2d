from datetime import datetime
from typing import List

from importer.parsers import parse_tournaments_page
from importer.phases.base import ListingPhase
from models.base import PhaseName
from models.tournament import Tournament
from schemas.candidates import TournamentCandidate


class TournamentsPhase(ListingPhase):
    name = PhaseName.TOURNAMENTS
    model = Tournament
    candidate_kind = "tournament"

    async def fetch_page(self, page: int) -> str:
        return await self.client.fetch_tournaments_page(page)

    def parse_page(self, html: str) -> List[TournamentCandidate]:
        return parse_tournaments_page(html)

    async def persist(self, candidates: List[TournamentCandidate]) -> int:
        now = datetime.utcnow()
        rows = [
            Tournament(
                gomafia_id=candidate.gomafia_id,
                name=candidate.name.strip(),
                stars=candidate.stars,
                status=candidate.status,
                start_date=candidate.start_date,
                end_date=candidate.end_date,
                prize_pool=candidate.prize_pool,
                last_sync_at=now,
            )
            for candidate in candidates
        ]
        await self.repository.add_all(rows)
        return len(rows)
