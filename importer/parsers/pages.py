"""
Entity parsers for gomafia.pro HTML pages.

Each parser is a pure function from page HTML to typed candidates. A page
without its data table or container raises ParseError; a single odd row
still yields a candidate (possibly with empty fields) and is rejected later
by validation, so one bad row never costs the whole page.
"""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from core.exceptions import ParseError
from importer.parsers.normalizers import (
    DASH_PLACEHOLDERS,
    normalize_region,
    parse_bool_ru,
    parse_currency,
    parse_float,
    parse_int,
    parse_russian_date,
)
from models.base import PlayerRole, Team, TournamentStatus, WinnerTeam
from schemas.candidates import (
    ClubCandidate,
    GameCandidate,
    JudgeCandidate,
    ParticipationCandidate,
    PlayerCandidate,
    RemoteClub,
    RemotePlayer,
    RemoteTournament,
    TournamentCandidate,
)

logger = logging.getLogger(__name__)

_GAME_LINK = re.compile(r"/game/(\d+)")


# ============================================================================
# Helpers
# ============================================================================

def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _table_rows(soup: BeautifulSoup, parser: str) -> List[Tag]:
    table = soup.find("table")
    if table is None:
        raise ParseError("Page has no data table", context={"parser": parser})
    body = table.find("tbody") or table
    return [row for row in body.find_all("tr") if row.find("td")]


def _text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def _optional_text(node: Optional[Tag]) -> Optional[str]:
    text = _text(node)
    if not text or text in DASH_PLACEHOLDERS:
        return None
    return text


def _id_from_link(link: Optional[Tag]) -> str:
    """Last path segment of href: "/stats/12345?tab=x" -> "12345"."""
    if link is None:
        return ""
    href = link.get("href", "").split("?")[0].split("#")[0]
    segments = [segment for segment in href.split("/") if segment]
    return segments[-1] if segments else ""


def _cell(cells: List[Tag], index: int) -> Optional[Tag]:
    return cells[index] if index < len(cells) else None


def _parse_stars(node: Optional[Tag]) -> Optional[int]:
    text = _text(node)
    if not text:
        return None
    if "★" in text:
        return text.count("★")
    return parse_int(text)


def map_tournament_status(text: str) -> TournamentStatus:
    lowered = text.lower()
    if "заверш" in lowered:
        return TournamentStatus.COMPLETED
    if "идёт" in lowered or "идет" in lowered or "в процессе" in lowered:
        return TournamentStatus.IN_PROGRESS
    if "отмен" in lowered:
        return TournamentStatus.CANCELLED
    return TournamentStatus.SCHEDULED


def map_winner(text: str) -> Optional[WinnerTeam]:
    lowered = text.lower()
    if "ничья" in lowered or "draw" in lowered:
        return WinnerTeam.DRAW
    if "мафи" in lowered or "черн" in lowered or "black" in lowered:
        return WinnerTeam.BLACK
    if "мирн" in lowered or "город" in lowered or "красн" in lowered or "red" in lowered:
        return WinnerTeam.RED
    return None


def map_role(text: str) -> PlayerRole:
    lowered = text.lower()
    if "дон" in lowered or lowered == "don":
        return PlayerRole.DON
    if "маф" in lowered or lowered == "mafia":
        return PlayerRole.MAFIA
    if "шер" in lowered or lowered == "sheriff":
        return PlayerRole.SHERIFF
    return PlayerRole.CIVILIAN


def team_for_role(role: PlayerRole) -> Team:
    if role in (PlayerRole.DON, PlayerRole.MAFIA):
        return Team.BLACK
    return Team.RED


# ============================================================================
# Listing pages
# ============================================================================

def parse_page_count(html: str) -> int:
    """Highest page number in the pagination block, 1 when there is none."""
    soup = _soup(html)
    pagination = soup.select_one('[class*="pagination"]')
    if pagination is None:
        return 1
    numbers = [
        int(text)
        for text in (node.get_text(strip=True) for node in pagination.find_all(["a", "span", "li", "div"]))
        if text.isdigit()
    ]
    return max(numbers) if numbers else 1


def parse_clubs_page(html: str) -> List[ClubCandidate]:
    candidates = []
    for row in _table_rows(_soup(html), "parse_clubs_page"):
        link = row.select_one('a[href*="/club/"]')
        candidates.append(ClubCandidate(
            gomafia_id=_id_from_link(link),
            name=_text(link),
            region=normalize_region(_text(row.select_one(".region"))),
            president_name=_optional_text(row.select_one(".president")),
            members_count=parse_int(_text(row.select_one(".members"))),
        ))
    return candidates


def parse_players_page(html: str) -> List[PlayerCandidate]:
    candidates = []
    for row in _table_rows(_soup(html), "parse_players_page"):
        link = row.select_one('a[href*="/stats/"], a[href*="/player/"]')
        elo = parse_int(_text(row.select_one(".elo")))
        candidates.append(PlayerCandidate(
            gomafia_id=_id_from_link(link),
            name=_text(link),
            region=normalize_region(_text(row.select_one(".region"))),
            club_name=_optional_text(row.select_one(".club")),
            tournaments_played=parse_int(_text(row.select_one(".tournaments"))) or 0,
            gg_points=parse_float(_text(row.select_one(".gg-points"))),
            elo_rating=elo if elo is not None else 1200,
        ))
    return candidates


def parse_tournaments_page(html: str) -> List[TournamentCandidate]:
    """
    Tournament rows: cells[1] holds the link with the name in <b> and a
    stars span, cells[2] the start/end dates as nested divs, cells[4] the
    status text. The prize pool cell is optional.
    """
    candidates = []
    for row in _table_rows(_soup(html), "parse_tournaments_page"):
        cells = row.find_all("td")
        tournament_cell = _cell(cells, 1)
        link = tournament_cell.select_one('a[href*="/tournament/"]') if tournament_cell else None
        name_node = link.find("b") if link else None

        dates_cell = _cell(cells, 2)
        date_nodes = dates_cell.select("div > div") if dates_cell else []
        start_date = parse_russian_date(_text(date_nodes[0])) if date_nodes else None
        end_date = parse_russian_date(_text(date_nodes[1])) if len(date_nodes) > 1 else None

        parse_errors = []
        try:
            prize_pool = parse_currency(_text(row.select_one(".prize")) or None)
        except ParseError as e:
            logger.debug(f"Tournament row {_id_from_link(link)!r}: {e}")
            prize_pool = None
            parse_errors.append("prize_pool")

        candidates.append(TournamentCandidate(
            gomafia_id=_id_from_link(link),
            name=_text(name_node) or _text(link),
            stars=_parse_stars(link.select_one('[class*="star"]') if link else None),
            status=map_tournament_status(_text(_cell(cells, 4))),
            start_date=start_date,
            end_date=end_date,
            prize_pool=prize_pool,
            parse_errors=parse_errors,
        ))
    return candidates


def parse_judges_page(html: str) -> List[JudgeCandidate]:
    candidates = []
    for row in _table_rows(_soup(html), "parse_judges_page"):
        cells = row.find_all("td")
        judge_cell = _cell(cells, 0)
        link = judge_cell.select_one('a[href*="/stats/"]') if judge_cell else None
        final_text = _text(_cell(cells, 3)).lower()

        candidates.append(JudgeCandidate(
            gomafia_id=_id_from_link(link),
            name=_text(link),
            category=_optional_text(_cell(cells, 1)),
            can_be_gs=parse_bool_ru(_text(_cell(cells, 2))),
            can_judge_final=final_text in ("да", "5"),
            max_tables_as_gs=parse_int(_text(_cell(cells, 4))),
            rating=parse_float(_text(_cell(cells, 5))),
            games_judged=parse_int(_text(_cell(cells, 6))),
            accreditation_date=parse_russian_date(_text(_cell(cells, 7))),
            responsible_from_sc=_optional_text(_cell(cells, 8)),
        ))
    return candidates


def parse_tournament_games(html: str, tournament_gomafia_id: str) -> List[GameCandidate]:
    """
    Parse the games tab of a tournament page.

    A tournament without games is not an error; an empty list is returned.
    Games without their own /game/ link get a tournament-scoped id built
    from the game number.
    """
    soup = _soup(html)
    games = []

    for index, element in enumerate(soup.select(".game-row, .game-card"), start=1):
        link = element.select_one('a[href*="/game/"]')
        match = _GAME_LINK.search(link.get("href", "")) if link else None
        if match:
            gomafia_id = match.group(1)
        else:
            number = element.get("data-game-id") or _text(element.select_one(".game-number")) or str(index)
            gomafia_id = f"{tournament_gomafia_id}-{number}"

        winner = map_winner(_text(element.select_one(".winner, .result")))

        participations = []
        for player_row in element.select(".player-row, tr.player"):
            player_link = player_row.select_one('a[href*="/stats/"], a[href*="/player/"]')
            if player_link is None:
                continue
            role = map_role(_text(player_row.select_one(".role")))
            team = team_for_role(role)
            participations.append(ParticipationCandidate(
                player_gomafia_id=_id_from_link(player_link),
                player_name=_text(player_link) or None,
                role=role,
                team=team,
                is_winner=winner is not None and winner.value == team.value,
                performance_score=parse_int(_text(player_row.select_one(".score, .performance"))),
            ))

        games.append(GameCandidate(
            gomafia_id=gomafia_id,
            tournament_gomafia_id=tournament_gomafia_id,
            date=parse_russian_date(_text(element.select_one(".game-date, .date"))),
            duration_minutes=parse_int(_text(element.select_one(".duration, .game-duration"))),
            winner_team=winner,
            participations=participations,
        ))

    return games


# ============================================================================
# Detail pages (verification)
# ============================================================================

def _detail_name(soup: BeautifulSoup, selector: str, parser: str) -> str:
    node = soup.select_one(selector) or soup.find("h1")
    name = _text(node)
    if not name:
        raise ParseError("Detail page has no name", context={"parser": parser})
    return name


def parse_player_detail(html: str, gomafia_id: str) -> RemotePlayer:
    soup = _soup(html)
    return RemotePlayer(
        gomafia_id=gomafia_id,
        name=_detail_name(soup, ".player-name", "parse_player_detail"),
        elo_rating=parse_int(_text(soup.select_one(".elo-rating, .elo"))),
        total_games=parse_int(_text(soup.select_one(".total-games"))),
        wins=parse_int(_text(soup.select_one(".wins"))),
        losses=parse_int(_text(soup.select_one(".losses"))),
    )


def parse_club_detail(html: str, gomafia_id: str) -> RemoteClub:
    soup = _soup(html)
    return RemoteClub(
        gomafia_id=gomafia_id,
        name=_detail_name(soup, ".club-name", "parse_club_detail"),
        region=normalize_region(_text(soup.select_one(".club-region, .region"))),
    )


def parse_tournament_detail(html: str, gomafia_id: str) -> RemoteTournament:
    soup = _soup(html)
    return RemoteTournament(
        gomafia_id=gomafia_id,
        name=_detail_name(soup, ".tournament-name", "parse_tournament_detail"),
        stars=_parse_stars(soup.select_one('[class*="star"]')),
    )
