"""
Pytest configuration and fixtures

No live database or network: the pipeline is exercised against an
in-memory repository with real commit/rollback semantics, a scripted
gomafia.pro client and a fake advisory lock.
"""

import copy
import uuid
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

import models  # noqa: F401  registers every mapper
from core.exceptions import ResourceNotFoundError
from models.base import RunStatus, SkippedPageStatus
from models.club import Club
from models.game import Game
from models.player import Player
from models.skipped_page import SkippedPage
from models.sync_log import SyncLog
from models.sync_status import CURRENT_STATUS_ID, SyncStatus
from models.tournament import Tournament
from schemas.candidates import SyncCheckpoint


# ============================================================================
# In-memory repository
# ============================================================================

class _State:
    def __init__(self):
        self.rows: Dict[type, Dict[str, Any]] = {}
        self.status: Dict[str, Any] = {}
        self.checkpoint: Optional[SyncCheckpoint] = None
        self.runs: Dict[str, Dict[str, Any]] = {}
        self.skipped: List[Dict[str, Any]] = []
        self.reports: List[Any] = []

    def copy(self) -> "_State":
        state = _State()
        state.rows = {model: dict(rows) for model, rows in self.rows.items()}
        state.status = dict(self.status)
        state.checkpoint = self.checkpoint
        state.runs = copy.deepcopy(self.runs)
        state.skipped = list(self.skipped)
        state.reports = list(self.reports)
        return state


class FakeRepository:
    """
    Same interface as ImportRepository.

    Writes go to a staged copy of the committed state; commit() publishes
    it and rollback() drops it, so tests can observe what a crash between
    batches would leave behind.
    """

    def __init__(self):
        self.committed = _State()
        self._staged: Optional[_State] = None
        self.commits = 0
        self.rollbacks = 0
        self.fail_on_add: Optional[Exception] = None
        self.fail_on_commit: Optional[Exception] = None

    @property
    def _view(self) -> _State:
        return self._staged or self.committed

    @property
    def _write(self) -> _State:
        if self._staged is None:
            self._staged = self.committed.copy()
        return self._staged

    # Transactions

    async def commit(self):
        if self.fail_on_commit is not None:
            raise self.fail_on_commit
        if self._staged is not None:
            self.committed = self._staged
            self._staged = None
        self.commits += 1

    async def rollback(self):
        self._staged = None
        self.rollbacks += 1

    # Entities

    def seed(self, *rows):
        """Insert already-committed rows."""
        for row in rows:
            if row.id is None:
                row.id = str(uuid.uuid4())
            self.committed.rows.setdefault(type(row), {})[row.gomafia_id] = row

    def rows(self, model) -> List[Any]:
        return list(self.committed.rows.get(model, {}).values())

    async def exists(self, model, gomafia_id):
        return gomafia_id in self._view.rows.get(model, {})

    async def add_all(self, rows):
        if self.fail_on_add is not None:
            raise self.fail_on_add
        state = self._write
        for row in rows:
            table = state.rows.setdefault(type(row), {})
            if row.gomafia_id in table:
                raise RuntimeError(f"duplicate key {type(row).__name__}.gomafia_id={row.gomafia_id}")
            if row.id is None:
                row.id = str(uuid.uuid4())
            table[row.gomafia_id] = row

    async def count(self, model):
        return len(self._view.rows.get(model, {}))

    async def sample(self, model, size):
        return list(self._view.rows.get(model, {}).values())[:max(size, 0)]

    async def club_ids_by_name(self, names):
        names = set(names)
        return {club.name: club.id for club in self._view.rows.get(Club, {}).values() if club.name in names}

    async def player_ids_by_gomafia_id(self, gomafia_ids):
        players = self._view.rows.get(Player, {})
        return {gid: players[gid].id for gid in set(gomafia_ids) if gid in players}

    async def tournaments_for_games(self):
        tournaments = sorted(self._view.rows.get(Tournament, {}).values(), key=lambda t: t.gomafia_id)
        return [(t.id, t.gomafia_id) for t in tournaments]

    async def tournament_ids_with_games(self):
        return {game.tournament_id for game in self._view.rows.get(Game, {}).values()}

    # Status row

    async def get_status(self):
        if not self._view.status:
            return None
        return SyncStatus(**self._view.status)

    async def update_status(self, **fields):
        state = self._write
        if not state.status:
            state.status = dict(
                id=CURRENT_STATUS_ID,
                is_running=False,
                progress=0,
                run_status=RunStatus.IDLE,
                cancel_requested=False,
            )
        state.status.update(fields)
        state.status["updated_at"] = datetime.utcnow()
        return SyncStatus(**state.status)

    async def cancel_requested(self):
        return bool(self._view.status.get("cancel_requested"))

    def request_cancel(self):
        """Simulate another process setting the flag and committing."""
        self.committed.status["cancel_requested"] = True
        if self._staged is not None:
            self._staged.status["cancel_requested"] = True

    # Checkpoint

    async def load_checkpoint(self):
        return self._view.checkpoint

    async def save_checkpoint(self, checkpoint, run_id=None):
        self._write.checkpoint = checkpoint

    async def clear_checkpoint(self):
        self._write.checkpoint = None

    # Runs

    async def start_run(self, run_id, sync_type):
        self._write.runs[run_id] = dict(
            run_id=run_id,
            sync_type=sync_type,
            status=RunStatus.RUNNING,
            started_at=datetime.utcnow(),
            records_processed=0,
        )

    async def finish_run(self, run_id, status, records_processed=0, errors=None, error_message=None):
        run = self._write.runs.get(run_id)
        if run is None:
            return None
        run.update(
            status=status,
            completed_at=datetime.utcnow(),
            records_processed=records_processed,
            error_details=errors or None,
            error_message=error_message,
        )
        return SyncLog(**run)

    async def list_runs(self, limit=20):
        runs = sorted(self._view.runs.values(), key=lambda r: r["started_at"], reverse=True)
        return [SyncLog(**run) for run in runs[:limit]]

    # Skipped pages

    async def record_skipped_page(self, phase, error_code, error_message, run_id=None, page_number=None, entity_id=None):
        self._write.skipped.append(dict(
            id=str(uuid.uuid4()),
            run_id=run_id,
            phase=phase,
            page_number=page_number,
            entity_id=entity_id,
            error_code=error_code,
            error_message=error_message,
            status=SkippedPageStatus.PENDING,
            created_at=datetime.utcnow(),
        ))

    async def list_skipped_pages(self, status=None):
        return [
            SkippedPage(**page) for page in self._view.skipped
            if status is None or page["status"] == status
        ]

    async def resolve_skipped_page(self, page_id):
        skipped = self._write.skipped
        for position, page in enumerate(skipped):
            if page["id"] == page_id:
                skipped[position] = dict(page, status=SkippedPageStatus.RESOLVED)

    # Reports

    async def add_report(self, report):
        if report.id is None:
            report.id = str(uuid.uuid4())
        self._write.reports.append(report)

    async def latest_report(self):
        return self._view.reports[-1] if self._view.reports else None


# ============================================================================
# Scripted client and lock
# ============================================================================

class FakeClient:
    """
    Serves HTML from a dict keyed by (kind, page_or_id).

    A value that is an exception instance is raised instead; a missing key
    raises ResourceNotFoundError like a 404.
    """

    def __init__(self, pages: Optional[Dict[tuple, Any]] = None):
        self.pages = pages or {}
        self.calls: List[tuple] = []
        self.ping_error: Optional[Exception] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def _get(self, key):
        self.calls.append(key)
        value = self.pages.get(key)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise ResourceNotFoundError(f"Resource not found: {key}", context={"key": str(key)})
        return value

    async def ping(self):
        self.calls.append(("ping",))
        if self.ping_error is not None:
            raise self.ping_error

    async def fetch_clubs_page(self, page, year=None):
        return await self._get(("clubs", page))

    async def fetch_players_page(self, page, year=None):
        return await self._get(("players", page))

    async def fetch_tournaments_page(self, page):
        return await self._get(("tournaments", page))

    async def fetch_judges_page(self, page):
        return await self._get(("judges", page))

    async def fetch_tournament_games(self, tournament_gomafia_id):
        return await self._get(("games", tournament_gomafia_id))

    async def fetch_player_detail(self, gomafia_id):
        return await self._get(("player", gomafia_id))

    async def fetch_club_detail(self, gomafia_id):
        return await self._get(("club", gomafia_id))

    async def fetch_tournament_detail(self, gomafia_id):
        return await self._get(("tournament", gomafia_id))


class FakeLock:
    """Stands in for AdvisoryLockManager; ``available=False`` means another session holds it."""

    def __init__(self, available: bool = True):
        self.available = available
        self.held = False
        self.acquire_calls = 0
        self.release_calls = 0

    async def acquire_lock(self):
        self.acquire_calls += 1
        if self.held:
            return True
        if not self.available:
            return False
        self.held = True
        return True

    async def release_lock(self):
        self.release_calls += 1
        self.held = False


# ============================================================================
# HTML builders
# ============================================================================

def _pagination(pages: int) -> str:
    if pages <= 1:
        return ""
    links = "".join(f'<a href="?page={n}">{n}</a>' for n in range(1, pages + 1))
    return f'<div class="pagination">{links}</div>'


def clubs_page(clubs, pages: int = 1) -> str:
    rows = "".join(
        f'<tr><td><a href="/club/{cid}">{name}</a></td>'
        f'<td class="region">{region}</td><td class="president">Иван Петров</td>'
        f'<td class="members">25</td></tr>'
        for cid, name, region in clubs
    )
    return f"<html><body><table><tbody>{rows}</tbody></table>{_pagination(pages)}</body></html>"


def players_page(players, pages: int = 1) -> str:
    rows = "".join(
        f'<tr><td><a href="/stats/{pid}">{name}</a></td>'
        f'<td class="region">МСК</td><td class="club">{club}</td>'
        f'<td class="tournaments">12</td><td class="gg-points">345,5</td>'
        f'<td class="elo">{elo}</td></tr>'
        for pid, name, club, elo in players
    )
    return f"<html><body><table><tbody>{rows}</tbody></table>{_pagination(pages)}</body></html>"


def tournaments_page(tournaments, pages: int = 1) -> str:
    rows = "".join(
        f'<tr><td>{n}</td>'
        f'<td><a href="/tournament/{tid}"><b>{name}</b><span class="stars">★★★</span></a></td>'
        f'<td><div><div>01.03.2024</div><div>03.03.2024</div></div></td>'
        f'<td>Москва</td><td>Завершён</td><td class="prize">60 000 ₽</td></tr>'
        for n, (tid, name) in enumerate(tournaments, start=1)
    )
    return f"<html><body><table><tbody>{rows}</tbody></table>{_pagination(pages)}</body></html>"


def judges_page(judges, pages: int = 1) -> str:
    rows = "".join(
        f'<tr><td><a href="/stats/{pid}">{name}</a></td><td>Судья 1 категории</td>'
        f'<td>да</td><td>да</td><td>3</td><td>4,5</td><td>120</td>'
        f'<td>1 января 2020 г.</td><td>—</td></tr>'
        for pid, name in judges
    )
    return f"<html><body><table><tbody>{rows}</tbody></table>{_pagination(pages)}</body></html>"


def games_page(games) -> str:
    """games: [(game_id, winner_text, [(player_id, name, role_text), ...])]"""
    cards = []
    for game_id, winner, seats in games:
        players = "".join(
            f'<div class="player-row"><a href="/stats/{pid}">{name}</a>'
            f'<span class="role">{role}</span><span class="score">2</span></div>'
            for pid, name, role in seats
        )
        cards.append(
            f'<div class="game-card"><a href="/game/{game_id}">Игра</a>'
            f'<span class="result">{winner}</span>{players}</div>'
        )
    return f"<html><body>{''.join(cards)}</body></html>"


def detail_page(name_class: str, name: str, extra: str = "") -> str:
    return f'<html><body><h1 class="{name_class}">{name}</h1>{extra}</body></html>'


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_repository():
    return FakeRepository()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_lock():
    return FakeLock()


@pytest.fixture
def html():
    """Builders for gomafia.pro-shaped pages"""
    return SimpleNamespace(
        clubs=clubs_page,
        players=players_page,
        tournaments=tournaments_page,
        judges=judges_page,
        games=games_page,
        detail=detail_page,
    )


@pytest.fixture
def site_pages(html):
    """
    A small but complete site: 2 club pages, 2 player pages, 1 tournament
    page with 2 tournaments, their games, and 1 judges page.
    """
    return {
        ("clubs", 1): html.clubs([("c1", "Red Stars", "МСК"), ("c2", "Black Cats", "СПб")], pages=2),
        ("clubs", 2): html.clubs([("c3", "Don Club", "Казань")], pages=2),
        ("players", 1): html.players([("p1", "Alice", "Red Stars", 1500), ("p2", "Bob", "Black Cats", 1400)], pages=2),
        ("players", 2): html.players([("p3", "Carol", "Nowhere", 1300)], pages=2),
        ("tournaments", 1): html.tournaments([("t1", "Spring Cup"), ("t2", "Summer Cup")]),
        ("games", "t1"): html.games([
            ("101", "Победа мирных", [("p1", "Alice", "Шериф"), ("p2", "Bob", "Дон")]),
        ]),
        ("games", "t2"): html.games([
            ("102", "Победа мафии", [("p2", "Bob", "Мафия"), ("p3", "Carol", "Мирный")]),
            ("103", "Победа мирных", [("p1", "Alice", "Мирный"), ("p9", "Ghost", "Дон")]),
        ]),
        ("judges", 1): html.judges([("p1", "Alice"), ("j7", "Judge Dredd")]),
    }
