import logging
from typing import Any, Dict, List, Tuple

from core.exceptions import ParseError, ResourceNotFoundError
from importer.parsers import parse_tournament_games
from importer.phases.base import Phase
from models.base import PhaseName, SyncType
from models.game import Game, GameParticipation
from models.skipped_page import SkippedPage
from schemas.candidates import GameCandidate

logger = logging.getLogger(__name__)


class GamesPhase(Phase):
    """
    Games of every stored tournament; one batch per tournament.

    Batches follow the tournaments' gomafia_id order so batch indexes stay
    stable between an interrupted run and its resume. In INCREMENTAL mode a
    tournament that already has games keeps its batch slot but is not
    fetched. A tournament whose games page is gone (404) is recorded as a
    skipped page.
    """

    name = PhaseName.GAMES
    model = Game
    candidate_kind = "game"
    skippable_errors = (ParseError, ResourceNotFoundError)

    def __init__(self, context):
        super().__init__(context)
        self._tournaments: List[Tuple[str, str]] = []
        self._tournament_ids: Dict[str, str] = {}
        self._already_imported: set = set()

    async def count_batches(self) -> int:
        self._tournaments = await self.repository.tournaments_for_games()
        self._tournament_ids = {gomafia_id: local_id for local_id, gomafia_id in self._tournaments}
        if self.context.sync_type == SyncType.INCREMENTAL:
            self._already_imported = await self.repository.tournament_ids_with_games()
        logger.info(
            f"GAMES: {len(self._tournaments)} tournament(s), "
            f"{len(self._already_imported)} already have games"
        )
        return len(self._tournaments)

    def describe_batch(self, index: int) -> Dict[str, Any]:
        return {"entity_id": self._tournaments[index][1]}

    async def fetch_skipped(self, page: SkippedPage) -> List[GameCandidate]:
        if not self._tournaments:
            await self.count_batches()
        if page.entity_id not in self._tournament_ids:
            raise ResourceNotFoundError(
                f"Tournament {page.entity_id} is not stored locally",
                context={"phase": self.name.value, "entity_id": page.entity_id}
            )
        html = await self.client.fetch_tournament_games(page.entity_id)
        return parse_tournament_games(html, page.entity_id)

    async def fetch_batch(self, index: int) -> List[GameCandidate]:
        local_id, gomafia_id = self._tournaments[index]
        if local_id in self._already_imported:
            return []
        html = await self.client.fetch_tournament_games(gomafia_id)
        return parse_tournament_games(html, gomafia_id)

    async def persist(self, candidates: List[GameCandidate]) -> int:
        player_ids = await self.repository.player_ids_by_gomafia_id(
            participation.player_gomafia_id
            for candidate in candidates
            for participation in candidate.participations
        )
        rows = []
        for candidate in candidates:
            tournament_id = self._tournament_ids.get(candidate.tournament_gomafia_id)
            if tournament_id is None:
                logger.warning(
                    f"GAMES: game {candidate.gomafia_id} references unknown tournament "
                    f"{candidate.tournament_gomafia_id}; skipped"
                )
                continue
            rows.append(Game(
                gomafia_id=candidate.gomafia_id,
                tournament_id=tournament_id,
                date=candidate.date,
                duration_minutes=candidate.duration_minutes,
                winner_team=candidate.winner_team,
                participations=[
                    GameParticipation(
                        player_id=player_ids.get(participation.player_gomafia_id),
                        player_gomafia_id=participation.player_gomafia_id,
                        player_name=participation.player_name,
                        role=participation.role,
                        team=participation.team,
                        is_winner=participation.is_winner,
                        performance_score=participation.performance_score,
                    )
                    for participation in _unique_seats(candidate)
                ],
            ))
        await self.repository.add_all(rows)
        return len(rows)


def _unique_seats(candidate: GameCandidate):
    # One row per (game, player); a repeated player on a page keeps the first seat
    seen = set()
    for participation in candidate.participations:
        if participation.player_gomafia_id in seen:
            continue
        seen.add(participation.player_gomafia_id)
        yield participation
