"""
Typed candidate records produced by the entity parsers.

Candidates form a tagged union discriminated by ``kind``. They are transient:
every candidate passes validation and duplicate detection before a phase
turns it into an ORM row.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.base import PhaseName, PlayerRole, Team, TournamentStatus, WinnerTeam


class ClubCandidate(BaseModel):
    kind: Literal["club"] = "club"
    gomafia_id: str
    name: str
    region: Optional[str] = None
    president_name: Optional[str] = None
    members_count: Optional[int] = None


class PlayerCandidate(BaseModel):
    kind: Literal["player"] = "player"
    gomafia_id: str
    name: str
    region: Optional[str] = None
    club_name: Optional[str] = None
    elo_rating: int = 1200
    gg_points: Optional[float] = None
    tournaments_played: int = 0
    total_games: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None


class TournamentCandidate(BaseModel):
    kind: Literal["tournament"] = "tournament"
    gomafia_id: str
    name: str
    stars: Optional[int] = None
    status: TournamentStatus = TournamentStatus.SCHEDULED
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    prize_pool: Optional[Decimal] = None
    # Cells that were present but could not be parsed
    parse_errors: List[str] = Field(default_factory=list)


class ParticipationCandidate(BaseModel):
    player_gomafia_id: str
    player_name: Optional[str] = None
    role: PlayerRole
    team: Team
    is_winner: bool = False
    performance_score: Optional[int] = None


class GameCandidate(BaseModel):
    kind: Literal["game"] = "game"
    gomafia_id: str
    tournament_gomafia_id: str
    date: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    winner_team: Optional[WinnerTeam] = None
    participations: List[ParticipationCandidate] = Field(default_factory=list)


class JudgeCandidate(BaseModel):
    kind: Literal["judge"] = "judge"
    gomafia_id: str
    name: str
    category: Optional[str] = None
    can_be_gs: Optional[bool] = None
    can_judge_final: bool = False
    max_tables_as_gs: Optional[int] = None
    rating: Optional[float] = None
    games_judged: Optional[int] = None
    accreditation_date: Optional[datetime] = None
    responsible_from_sc: Optional[str] = None


Candidate = Annotated[
    Union[ClubCandidate, PlayerCandidate, TournamentCandidate, GameCandidate, JudgeCandidate],
    Field(discriminator="kind"),
]


# ============================================================================
# Remote detail records (verification)
# ============================================================================

class RemotePlayer(BaseModel):
    gomafia_id: str
    name: str
    elo_rating: Optional[int] = None
    total_games: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None


class RemoteClub(BaseModel):
    gomafia_id: str
    name: str
    region: Optional[str] = None


class RemoteTournament(BaseModel):
    gomafia_id: str
    name: str
    stars: Optional[int] = None


# ============================================================================
# Checkpoint value
# ============================================================================

class SyncCheckpoint(BaseModel):
    """
    Resume marker for one phase.

    last_batch_index is zero-based; processed_ids lists the external ids
    committed so far in this phase.
    """
    phase: PhaseName
    last_batch_index: int
    total_batches: int
    processed_ids: List[str] = Field(default_factory=list)
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
