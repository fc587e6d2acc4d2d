"""
Pydantic schemas for data validation and serialization.

Schemas:
    candidates: Parsed records, remote detail records and the import checkpoint
    sync: Results passed between the orchestrator, the import service and callers
    api: API endpoint request/response schemas

Usage:
    from schemas.candidates import PlayerCandidate, SyncCheckpoint
    from schemas.api import SyncStatusResponse, TriggerRequest

Validation:
    Candidate schemas only coerce types. Business rules (name length,
    rating range, required links) live in importer.validation so a rejected
    record is counted rather than raising out of the parser.
"""

from schemas.candidates import (
    ClubCandidate,
    GameCandidate,
    JudgeCandidate,
    PlayerCandidate,
    SyncCheckpoint,
    TournamentCandidate,
)
from schemas.sync import CancelResult, ImportResult, TriggerResult

__all__ = [
    "ClubCandidate",
    "PlayerCandidate",
    "TournamentCandidate",
    "GameCandidate",
    "JudgeCandidate",
    "SyncCheckpoint",
    "ImportResult",
    "TriggerResult",
    "CancelResult",
]
