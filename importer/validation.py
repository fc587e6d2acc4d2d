"""
Structural and domain validation of candidate records.

validate_candidate dispatches on the candidate variant; every variant of
schemas.candidates.Candidate has a registered rule set, and an unknown type
is rejected rather than silently accepted. Rules return False instead of
raising so phases can count and skip bad records.
"""

from functools import singledispatch
from typing import Optional
import logging

from schemas.candidates import (
    ClubCandidate,
    GameCandidate,
    JudgeCandidate,
    PlayerCandidate,
    TournamentCandidate,
)

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MAX_PARTICIPANTS = 10


def _has_key(gomafia_id: str) -> bool:
    return bool(gomafia_id and gomafia_id.strip())


def _has_name(name: str) -> bool:
    return bool(name) and len(name.strip()) >= MIN_NAME_LENGTH


def _non_negative(*values: Optional[float]) -> bool:
    return all(value is None or value >= 0 for value in values)


@singledispatch
def validate_candidate(candidate) -> bool:
    logger.warning(f"No validation rules for {type(candidate).__name__}; rejecting")
    return False


@validate_candidate.register
def _(candidate: ClubCandidate) -> bool:
    return (
        _has_key(candidate.gomafia_id)
        and _has_name(candidate.name)
        and _non_negative(candidate.members_count)
    )


@validate_candidate.register
def _(candidate: PlayerCandidate) -> bool:
    if not (_has_key(candidate.gomafia_id) and _has_name(candidate.name)):
        return False
    if not _non_negative(
        candidate.elo_rating,
        candidate.tournaments_played,
        candidate.total_games,
        candidate.wins,
        candidate.losses,
    ):
        return False

    counters = (candidate.total_games, candidate.wins, candidate.losses)
    if all(value is not None for value in counters):
        return candidate.wins + candidate.losses == candidate.total_games
    return True


@validate_candidate.register
def _(candidate: TournamentCandidate) -> bool:
    if candidate.parse_errors:
        return False
    if not (_has_key(candidate.gomafia_id) and _has_name(candidate.name)):
        return False
    if candidate.stars is not None and not 1 <= candidate.stars <= 5:
        return False
    if candidate.prize_pool is not None and candidate.prize_pool < 0:
        return False
    if candidate.start_date and candidate.end_date:
        return candidate.end_date >= candidate.start_date
    return True


@validate_candidate.register
def _(candidate: GameCandidate) -> bool:
    if not (_has_key(candidate.gomafia_id) and _has_key(candidate.tournament_gomafia_id)):
        return False
    if not _non_negative(candidate.duration_minutes):
        return False
    if len(candidate.participations) > MAX_PARTICIPANTS:
        return False
    return all(_has_key(p.player_gomafia_id) for p in candidate.participations)


@validate_candidate.register
def _(candidate: JudgeCandidate) -> bool:
    return (
        _has_key(candidate.gomafia_id)
        and _has_name(candidate.name)
        and _non_negative(candidate.games_judged, candidate.max_tables_as_gs, candidate.rating)
    )
