from datetime import datetime
from typing import List

from importer.parsers import parse_players_page
from importer.phases.base import ListingPhase
from models.base import PhaseName
from models.player import Player
from schemas.candidates import PlayerCandidate


class PlayersPhase(ListingPhase):
    """
    Players rating listing.

    The listing shows the club by name only; players whose club is not in
    the local store are inserted without a club link.
    """

    name = PhaseName.PLAYERS
    model = Player
    candidate_kind = "player"

    async def fetch_page(self, page: int) -> str:
        return await self.client.fetch_players_page(page)

    def parse_page(self, html: str) -> List[PlayerCandidate]:
        return parse_players_page(html)

    async def persist(self, candidates: List[PlayerCandidate]) -> int:
        club_ids = await self.repository.club_ids_by_name(
            candidate.club_name for candidate in candidates
        )
        now = datetime.utcnow()
        rows = [
            Player(
                gomafia_id=candidate.gomafia_id,
                name=candidate.name.strip(),
                region=candidate.region,
                club_id=club_ids.get(candidate.club_name),
                elo_rating=candidate.elo_rating,
                gg_points=candidate.gg_points,
                tournaments_played=candidate.tournaments_played,
                total_games=candidate.total_games or 0,
                wins=candidate.wins or 0,
                losses=candidate.losses or 0,
                last_sync_at=now,
            )
            for candidate in candidates
        ]
        await self.repository.add_all(rows)
        return len(rows)
