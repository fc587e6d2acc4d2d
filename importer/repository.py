"""
Persistence capability used by the phases, the orchestrator and verification.

Everything goes through one AsyncSession. Nothing here commits on its own:
callers decide transaction boundaries with commit()/rollback(), which is
what lets a batch's rows and its checkpoint land in a single transaction.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import PhaseName, RunStatus, SkippedPageStatus, SyncType
from models.checkpoint import CURRENT_CHECKPOINT_ID, ImportCheckpoint
from models.club import Club
from models.game import Game
from models.integrity_report import DataIntegrityReport
from models.player import Player
from models.skipped_page import SkippedPage
from models.sync_log import SyncLog
from models.sync_status import CURRENT_STATUS_ID, SyncStatus
from models.tournament import Tournament
from schemas.candidates import SyncCheckpoint

logger = logging.getLogger(__name__)


class ImportRepository:
    """
    Entity-scoped queries plus the status, checkpoint and run-log rows.

    Responsibilities:
    - Natural-key existence checks and inserts for entity rows
    - Read/replace of the singleton SyncStatus row
    - Read/replace/clear of the single ImportCheckpoint row
    - Run history, skipped pages and integrity reports
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def commit(self):
        await self.db.commit()

    async def rollback(self):
        await self.db.rollback()

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    async def exists(self, model, gomafia_id: str) -> bool:
        result = await self.db.execute(
            select(model.id).where(model.gomafia_id == gomafia_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def add_all(self, rows: List[Any]) -> None:
        """Stage new rows and flush so constraint violations surface inside the batch."""
        if not rows:
            return
        self.db.add_all(rows)
        await self.db.flush()

    async def count(self, model) -> int:
        result = await self.db.execute(select(func.count()).select_from(model))
        return result.scalar() or 0

    async def sample(self, model, size: int) -> List[Any]:
        if size <= 0:
            return []
        result = await self.db.execute(
            select(model).order_by(func.random()).limit(size)
        )
        return list(result.scalars().all())

    async def club_ids_by_name(self, names: Iterable[str]) -> Dict[str, str]:
        names = {name for name in names if name}
        if not names:
            return {}
        result = await self.db.execute(
            select(Club.name, Club.id).where(Club.name.in_(names))
        )
        return {name: club_id for name, club_id in result.all()}

    async def player_ids_by_gomafia_id(self, gomafia_ids: Iterable[str]) -> Dict[str, str]:
        gomafia_ids = {gomafia_id for gomafia_id in gomafia_ids if gomafia_id}
        if not gomafia_ids:
            return {}
        result = await self.db.execute(
            select(Player.gomafia_id, Player.id).where(Player.gomafia_id.in_(gomafia_ids))
        )
        return {gomafia_id: player_id for gomafia_id, player_id in result.all()}

    async def tournaments_for_games(self) -> List[Tuple[str, str]]:
        """(id, gomafia_id) of every stored tournament, in stable gomafia_id order."""
        result = await self.db.execute(
            select(Tournament.id, Tournament.gomafia_id).order_by(Tournament.gomafia_id)
        )
        return [(row.id, row.gomafia_id) for row in result.all()]

    async def tournament_ids_with_games(self) -> Set[str]:
        result = await self.db.execute(select(Game.tournament_id).distinct())
        return set(result.scalars().all())

    # ------------------------------------------------------------------
    # Status row
    # ------------------------------------------------------------------

    async def get_status(self) -> Optional[SyncStatus]:
        return await self.db.get(SyncStatus, CURRENT_STATUS_ID)

    async def update_status(self, **fields) -> SyncStatus:
        """Replace the given fields of the status row, creating the row on first use."""
        status = await self.get_status()
        if status is None:
            status = SyncStatus(
                id=CURRENT_STATUS_ID,
                is_running=False,
                progress=0,
                run_status=RunStatus.IDLE,
                cancel_requested=False,
            )
            self.db.add(status)
        for key, value in fields.items():
            setattr(status, key, value)
        status.updated_at = datetime.utcnow()
        await self.db.flush()
        return status

    async def cancel_requested(self) -> bool:
        # Column query: bypasses the identity map so writes by other processes are seen
        result = await self.db.execute(
            select(SyncStatus.cancel_requested).where(SyncStatus.id == CURRENT_STATUS_ID)
        )
        return bool(result.scalar_one_or_none())

    # ------------------------------------------------------------------
    # Checkpoint row
    # ------------------------------------------------------------------

    async def load_checkpoint(self) -> Optional[SyncCheckpoint]:
        row = await self.db.get(ImportCheckpoint, CURRENT_CHECKPOINT_ID)
        if row is None:
            return None
        return SyncCheckpoint(
            phase=row.phase,
            last_batch_index=row.last_batch_index,
            total_batches=row.total_batches,
            processed_ids=list(row.processed_ids or []),
            message=row.message or "",
            timestamp=row.timestamp,
        )

    async def save_checkpoint(self, checkpoint: SyncCheckpoint, run_id: Optional[str] = None) -> None:
        row = await self.db.get(ImportCheckpoint, CURRENT_CHECKPOINT_ID)
        if row is None:
            row = ImportCheckpoint(id=CURRENT_CHECKPOINT_ID)
            self.db.add(row)
        row.run_id = run_id
        row.phase = checkpoint.phase
        row.last_batch_index = checkpoint.last_batch_index
        row.total_batches = checkpoint.total_batches
        row.processed_ids = list(checkpoint.processed_ids)
        row.message = checkpoint.message
        row.timestamp = checkpoint.timestamp
        await self.db.flush()

    async def clear_checkpoint(self) -> None:
        await self.db.execute(
            delete(ImportCheckpoint).where(ImportCheckpoint.id == CURRENT_CHECKPOINT_ID)
        )

    # ------------------------------------------------------------------
    # Run history
    # ------------------------------------------------------------------

    async def start_run(self, run_id: str, sync_type: SyncType) -> SyncLog:
        run = SyncLog(
            run_id=run_id,
            sync_type=sync_type,
            status=RunStatus.RUNNING,
            started_at=datetime.utcnow(),
        )
        self.db.add(run)
        await self.db.flush()
        return run

    async def finish_run(
        self,
        run_id: str,
        status: RunStatus,
        records_processed: int = 0,
        errors: Optional[List[str]] = None,
        error_message: Optional[str] = None
    ) -> Optional[SyncLog]:
        result = await self.db.execute(select(SyncLog).where(SyncLog.run_id == run_id))
        run = result.scalar_one_or_none()
        if run is None:
            logger.warning(f"No run log for run_id={run_id}")
            return None
        run.status = status
        run.completed_at = datetime.utcnow()
        run.duration_seconds = (run.completed_at - run.started_at).total_seconds()
        run.records_processed = records_processed
        run.error_details = errors or None
        run.error_message = error_message
        await self.db.flush()
        return run

    async def list_runs(self, limit: int = 20) -> List[SyncLog]:
        result = await self.db.execute(
            select(SyncLog).order_by(SyncLog.started_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Skipped pages
    # ------------------------------------------------------------------

    async def record_skipped_page(
        self,
        phase: PhaseName,
        error_code: str,
        error_message: str,
        run_id: Optional[str] = None,
        page_number: Optional[int] = None,
        entity_id: Optional[str] = None
    ) -> None:
        self.db.add(SkippedPage(
            run_id=run_id,
            phase=phase,
            page_number=page_number,
            entity_id=entity_id,
            error_code=error_code,
            error_message=error_message,
            status=SkippedPageStatus.PENDING,
            created_at=datetime.utcnow(),
        ))
        await self.db.flush()

    async def list_skipped_pages(self, status: Optional[SkippedPageStatus] = None) -> List[SkippedPage]:
        query = select(SkippedPage).order_by(SkippedPage.created_at.desc())
        if status is not None:
            query = query.where(SkippedPage.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def resolve_skipped_page(self, page_id) -> None:
        await self.db.execute(
            update(SkippedPage)
            .where(SkippedPage.id == page_id)
            .values(status=SkippedPageStatus.RESOLVED)
        )

    # ------------------------------------------------------------------
    # Integrity reports
    # ------------------------------------------------------------------

    async def add_report(self, report: DataIntegrityReport) -> None:
        self.db.add(report)
        await self.db.flush()

    async def latest_report(self) -> Optional[DataIntegrityReport]:
        result = await self.db.execute(
            select(DataIntegrityReport).order_by(DataIntegrityReport.timestamp.desc()).limit(1)
        )
        return result.scalar_one_or_none()
