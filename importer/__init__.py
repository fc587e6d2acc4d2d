"""
gomafia.pro import pipeline.

Components:
    client: Rate-limited HTTP transport with retry
    parsers: HTML parsers and field normalizers
    validation: Candidate validation rules
    repository: Persistence of entities, status, checkpoint and run log
    lock: Cross-process advisory import lock
    phases: Clubs, Players, Tournaments, Games, Judges
    orchestrator: Import run state machine
    service: Trigger / cancel / status entry point
    scheduler: Daily incremental import and periodic verification

Usage:
    from importer.service import import_service
    result = await import_service.run(SyncType.INCREMENTAL)
"""

__all__ = [
    "GomafiaClient",
    "RetryPolicy",
    "AdvisoryLockManager",
    "CancellationToken",
    "ImportRepository",
    "ImportOrchestrator",
]

from importer.retry import RetryPolicy
from importer.client import GomafiaClient
from importer.lock import AdvisoryLockManager
from importer.cancellation import CancellationToken
from importer.repository import ImportRepository
from importer.orchestrator import ImportOrchestrator
