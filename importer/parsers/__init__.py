"""
HTML parsers and field normalizers for gomafia.pro pages.
"""

from importer.parsers.normalizers import normalize_region, parse_currency
from importer.parsers.pages import (
    parse_page_count,
    parse_clubs_page,
    parse_players_page,
    parse_tournaments_page,
    parse_judges_page,
    parse_tournament_games,
    parse_player_detail,
    parse_club_detail,
    parse_tournament_detail,
)

__all__ = [
    "normalize_region",
    "parse_currency",
    "parse_page_count",
    "parse_clubs_page",
    "parse_players_page",
    "parse_tournaments_page",
    "parse_judges_page",
    "parse_tournament_games",
    "parse_player_detail",
    "parse_club_detail",
    "parse_tournament_detail",
]
