"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (PhaseName, SyncType, RunStatus, ...)
    club, player, tournament, game, judge: Entities mirrored from gomafia.pro
    sync_status: Singleton pipeline status row
    checkpoint: Resume marker of the in-progress import
    sync_log: Import run history
    skipped_page: Pages that could not be parsed during an import
    integrity_report: Verification run results
    notification: Stored admin alerts

Database Schema:
    Every entity has a surrogate string id and a unique gomafia_id natural
    key. JSON payloads use PostgreSQL JSONB.

Usage:
    from models import Player, SyncStatus
    from models.base import PhaseName, RunStatus
"""

from models.base import (
    Base,
    PhaseName,
    SyncType,
    RunStatus,
    IntegrityStatus,
    TriggerType,
    TournamentStatus,
    WinnerTeam,
    Team,
    PlayerRole,
    SkippedPageStatus,
)
from models.club import Club
from models.player import Player
from models.tournament import Tournament
from models.game import Game, GameParticipation
from models.judge import Judge
from models.sync_status import SyncStatus
from models.checkpoint import ImportCheckpoint
from models.sync_log import SyncLog
from models.skipped_page import SkippedPage
from models.integrity_report import DataIntegrityReport
from models.notification import Notification

__all__ = [
    "Base",
    "PhaseName",
    "SyncType",
    "RunStatus",
    "IntegrityStatus",
    "TriggerType",
    "TournamentStatus",
    "WinnerTeam",
    "Team",
    "PlayerRole",
    "SkippedPageStatus",
    "Club",
    "Player",
    "Tournament",
    "Game",
    "GameParticipation",
    "Judge",
    "SyncStatus",
    "ImportCheckpoint",
    "SyncLog",
    "SkippedPage",
    "DataIntegrityReport",
    "Notification",
]
