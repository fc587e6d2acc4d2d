"""
Import phases, in execution order.
"""

from importer.phases.base import ListingPhase, Phase, PhaseContext, PhaseResult
from importer.phases.clubs import ClubsPhase
from importer.phases.players import PlayersPhase
from importer.phases.tournaments import TournamentsPhase
from importer.phases.games import GamesPhase
from importer.phases.judges import JudgesPhase

# Clubs before players (club link), players before games and judges (player link)
PHASE_ORDER = [ClubsPhase, PlayersPhase, TournamentsPhase, GamesPhase, JudgesPhase]

__all__ = [
    "Phase",
    "ListingPhase",
    "PhaseContext",
    "PhaseResult",
    "ClubsPhase",
    "PlayersPhase",
    "TournamentsPhase",
    "GamesPhase",
    "JudgesPhase",
    "PHASE_ORDER",
]
