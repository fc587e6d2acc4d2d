from datetime import datetime
from typing import List

from importer.parsers import parse_judges_page
from importer.phases.base import ListingPhase
from models.base import PhaseName
from models.judge import Judge
from schemas.candidates import JudgeCandidate


class JudgesPhase(ListingPhase):
    """Judges listing. A judge's gomafia_id is their player id, used for the player link."""

    name = PhaseName.JUDGES
    model = Judge
    candidate_kind = "judge"

    async def fetch_page(self, page: int) -> str:
        return await self.client.fetch_judges_page(page)

    def parse_page(self, html: str) -> List[JudgeCandidate]:
        return parse_judges_page(html)

    async def persist(self, candidates: List[JudgeCandidate]) -> int:
        player_ids = await self.repository.player_ids_by_gomafia_id(
            candidate.gomafia_id for candidate in candidates
        )
        now = datetime.utcnow()
        rows = [
            Judge(
                gomafia_id=candidate.gomafia_id,
                player_id=player_ids.get(candidate.gomafia_id),
                name=candidate.name.strip(),
                category=candidate.category,
                can_be_gs=candidate.can_be_gs,
                can_judge_final=candidate.can_judge_final,
                max_tables_as_gs=candidate.max_tables_as_gs,
                rating=candidate.rating,
                games_judged=candidate.games_judged,
                accreditation_date=candidate.accreditation_date,
                responsible_from_sc=candidate.responsible_from_sc,
                last_sync_at=now,
            )
            for candidate in candidates
        ]
        await self.repository.add_all(rows)
        return len(rows)
