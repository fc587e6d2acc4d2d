"""
Unit tests for candidate validation
"""

from datetime import datetime
from decimal import Decimal
from importer.validation import validate_candidate
from models.base import PlayerRole, Team
from schemas.candidates import (
    ClubCandidate,
    GameCandidate,
    JudgeCandidate,
    ParticipationCandidate,
    PlayerCandidate,
    TournamentCandidate,
)


def _seat(player_id: str) -> ParticipationCandidate:
    return ParticipationCandidate(player_gomafia_id=player_id, role=PlayerRole.CIVILIAN, team=Team.RED)


class TestPlayerValidation:

    def test_valid_player(self):
        assert validate_candidate(PlayerCandidate(gomafia_id="1", name="Alice", elo_rating=1500))

    def test_short_name_rejected(self):
        assert not validate_candidate(PlayerCandidate(gomafia_id="1", name="A"))

    def test_missing_key_rejected(self):
        assert not validate_candidate(PlayerCandidate(gomafia_id=" ", name="Alice"))

    def test_wins_and_losses_must_add_up(self):
        assert validate_candidate(PlayerCandidate(gomafia_id="1", name="Alice", total_games=10, wins=6, losses=4))
        assert not validate_candidate(PlayerCandidate(gomafia_id="1", name="Alice", total_games=10, wins=6, losses=3))

    def test_partial_counters_are_not_checked(self):
        assert validate_candidate(PlayerCandidate(gomafia_id="1", name="Alice", total_games=10, wins=6))

    def test_negative_counters_rejected(self):
        assert not validate_candidate(PlayerCandidate(gomafia_id="1", name="Alice", elo_rating=-5))


class TestOtherVariants:

    def test_club(self):
        assert validate_candidate(ClubCandidate(gomafia_id="1", name="Red Stars"))
        assert not validate_candidate(ClubCandidate(gomafia_id="1", name="Red Stars", members_count=-1))

    def test_tournament_stars_range(self):
        assert validate_candidate(TournamentCandidate(gomafia_id="1", name="Cup", stars=5))
        assert not validate_candidate(TournamentCandidate(gomafia_id="1", name="Cup", stars=6))

    def test_tournament_dates_ordered(self):
        assert not validate_candidate(TournamentCandidate(
            gomafia_id="1", name="Cup",
            start_date=datetime(2024, 3, 3), end_date=datetime(2024, 3, 1),
        ))

    def test_tournament_negative_prize(self):
        assert not validate_candidate(TournamentCandidate(gomafia_id="1", name="Cup", prize_pool=Decimal("-1")))

    def test_tournament_with_unparsed_cell(self):
        assert not validate_candidate(TournamentCandidate(gomafia_id="1", name="Cup", parse_errors=["prize_pool"]))

    def test_game_participant_limit(self):
        ten = [_seat(str(i)) for i in range(10)]
        eleven = ten + [_seat("11")]
        assert validate_candidate(GameCandidate(gomafia_id="9", tournament_gomafia_id="1", participations=ten))
        assert not validate_candidate(GameCandidate(gomafia_id="9", tournament_gomafia_id="1", participations=eleven))

    def test_judge(self):
        assert validate_candidate(JudgeCandidate(gomafia_id="1", name="Judge Dredd", games_judged=3))

    def test_unknown_type_rejected(self):
        assert validate_candidate({"gomafia_id": "1", "name": "Alice"}) is False
