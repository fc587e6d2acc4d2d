# ============================================================================
# File: importer/orchestrator.py
# Description: Import run state machine with locking, resume and cancellation
# ============================================================================
"""
Import Orchestrator - drives Clubs -> Players -> Tournaments -> Games -> Judges.

This module provides:
- Mutual exclusion through the advisory import lock
- Resume from the persisted checkpoint of an interrupted run
- Cooperative cancellation (in-process token or the status-row flag)
- Accurate status row and run-log bookkeeping for every terminal state
"""

import asyncio
import logging
import math
import uuid
from datetime import datetime
from typing import List, Optional, Sequence, Type

from core.exceptions import ImportCancelledError, SyncException
from importer.cancellation import CancellationToken
from importer.client import GomafiaClient
from importer.lock import AdvisoryLockManager
from importer.phases import PHASE_ORDER, Phase, PhaseContext
from importer.repository import ImportRepository
from models.base import RunStatus, SyncType
from schemas.candidates import SyncCheckpoint
from schemas.sync import ImportResult

logger = logging.getLogger(__name__)


class ImportOrchestrator:
    """
    Import run state machine.

    Responsibilities:
    - Take the import lock (or report a conflict without touching anything)
    - Pick the starting phase from the stored checkpoint
    - Run phases in order, stopping at the first fatal error
    - Record COMPLETED / CANCELLED / FAILED on the status row and run log
    - Release the lock on every exit path
    """

    def __init__(
        self,
        repository: ImportRepository,
        lock_manager: AdvisoryLockManager,
        client: GomafiaClient,
        phases: Optional[Sequence[Type[Phase]]] = None,
        prefetch: Optional[bool] = None,
        incremental_max_pages: Optional[int] = None
    ):
        self.repository = repository
        self.lock_manager = lock_manager
        self.client = client
        self.phases = list(phases or PHASE_ORDER)
        self.prefetch = prefetch
        self.incremental_max_pages = incremental_max_pages

    async def execute(
        self,
        sync_type: SyncType = SyncType.FULL,
        cancel_token: Optional[CancellationToken] = None,
        run_id: Optional[str] = None,
        force_restart: bool = False
    ) -> ImportResult:
        """
        Run one import.

        Returns:
            ImportResult. A lock conflict returns success=False, conflict=True
            and changes no state. Failures and cancellation are reported in
            the result, not raised.
        """
        if not await self.lock_manager.acquire_lock():
            logger.warning("Import already in progress; not starting another")
            return ImportResult.conflicted()

        try:
            return await self._run(
                sync_type=sync_type,
                cancel_token=cancel_token or CancellationToken(),
                run_id=run_id or str(uuid.uuid4()),
                force_restart=force_restart,
            )
        finally:
            await self.lock_manager.release_lock()

    async def _run(
        self,
        sync_type: SyncType,
        cancel_token: CancellationToken,
        run_id: str,
        force_restart: bool
    ) -> ImportResult:
        records_processed = 0
        errors: List[str] = []

        try:
            # --------------------------------------------------
            # START
            # --------------------------------------------------
            checkpoint = await self._start(run_id, sync_type, force_restart)
            start_position = self._resume_position(checkpoint)

            # --------------------------------------------------
            # PHASES
            # --------------------------------------------------
            total_phases = len(self.phases)
            for position, phase_class in enumerate(self.phases):
                if position < start_position:
                    logger.info(f"Skipping {phase_class.name.value} phase (completed before interruption)")
                    continue

                if await self._should_cancel(cancel_token):
                    raise ImportCancelledError(
                        "Import cancelled",
                        context={"phase": phase_class.name.value}
                    )

                phase = phase_class(self._phase_context(
                    run_id, sync_type, cancel_token, position, total_phases
                ))
                logger.info(f"Starting {phase.get_phase_name().value} phase")
                await self.repository.update_status(
                    current_operation=f"Running {phase.get_phase_name().value} phase"
                )
                await self.repository.commit()

                resume_from = checkpoint if position == start_position else None
                result = await phase.execute(resume_from=resume_from)

                records_processed += result.inserted
                errors.extend(result.errors)

                await self.repository.update_status(
                    progress=math.floor((position + 1) / total_phases * 100),
                    current_operation=f"{phase.get_phase_name().value} phase complete",
                )
                await self.repository.commit()

            # --------------------------------------------------
            # COMPLETE
            # --------------------------------------------------
            await self.repository.clear_checkpoint()
            await self._finish(run_id, sync_type, RunStatus.COMPLETED, records_processed, errors)
            logger.info(f"Import {run_id} completed: {records_processed} records")
            return ImportResult(
                success=True,
                records_processed=records_processed,
                errors=errors,
                status=RunStatus.COMPLETED,
                run_id=run_id,
            )

        except ImportCancelledError as e:
            logger.info(f"Import {run_id} cancelled: {e.context.get('phase')}")
            reason = cancel_token.reason or "Import cancelled by user"
            errors.append(reason)
            await self._safe_rollback()
            await self._finish(
                run_id,
                sync_type,
                RunStatus.CANCELLED,
                records_processed,
                errors,
                last_error=reason,
            )
            return ImportResult(
                success=False,
                records_processed=records_processed,
                errors=errors,
                status=RunStatus.CANCELLED,
                run_id=run_id,
            )

        except asyncio.CancelledError:
            logger.warning(f"Import {run_id} task cancelled")
            await self._safe_rollback()
            await self._finish(
                run_id,
                sync_type,
                RunStatus.CANCELLED,
                records_processed,
                errors,
                last_error=cancel_token.reason or "Import cancelled by user",
            )
            raise

        except Exception as e:
            message = e.message if isinstance(e, SyncException) else str(e)
            error_detail = {
                "run_id": run_id,
                "error_type": type(e).__name__,
                "error_message": message,
            }
            if isinstance(e, SyncException):
                error_detail.update(e.to_dict())
            logger.error(
                f"Import {run_id} failed: {message}",
                extra={"error_context": error_detail}
            )
            errors.append(message)
            await self._safe_rollback()
            await self._finish(
                run_id,
                sync_type,
                RunStatus.FAILED,
                records_processed,
                errors,
                last_error=message,
            )
            return ImportResult(
                success=False,
                records_processed=records_processed,
                errors=errors,
                status=RunStatus.FAILED,
                run_id=run_id,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _start(self, run_id: str, sync_type: SyncType, force_restart: bool) -> Optional[SyncCheckpoint]:
        previous = await self.repository.get_status()
        if previous is not None and previous.is_running and previous.current_run_id:
            logger.warning(
                f"Run {previous.current_run_id} did not finish cleanly; marking it FAILED"
            )
            await self.repository.finish_run(
                previous.current_run_id,
                RunStatus.FAILED,
                error_message="Interrupted before completion",
            )

        if force_restart:
            logger.info("Force restart requested; discarding checkpoint")
            await self.repository.clear_checkpoint()
            checkpoint = None
        else:
            checkpoint = await self.repository.load_checkpoint()
            if checkpoint is not None:
                logger.info(f"Resuming from checkpoint: {checkpoint.message}")

        await self.repository.start_run(run_id, sync_type)
        await self.repository.update_status(
            is_running=True,
            run_status=RunStatus.RUNNING,
            progress=0,
            current_operation="Starting import",
            current_run_id=run_id,
            cancel_requested=False,
        )
        await self.repository.commit()
        return checkpoint

    def _resume_position(self, checkpoint: Optional[SyncCheckpoint]) -> int:
        if checkpoint is None:
            return 0
        for position, phase_class in enumerate(self.phases):
            if phase_class.name == checkpoint.phase:
                return position
        logger.warning(f"Checkpoint names unknown phase {checkpoint.phase}; starting over")
        return 0

    def _phase_context(
        self,
        run_id: str,
        sync_type: SyncType,
        cancel_token: CancellationToken,
        position: int,
        total_phases: int
    ) -> PhaseContext:
        context = PhaseContext(
            repository=self.repository,
            client=self.client,
            sync_type=sync_type,
            run_id=run_id,
            should_cancel=lambda: self._should_cancel(cancel_token),
            progress_span=(
                math.floor(position / total_phases * 100),
                math.floor((position + 1) / total_phases * 100),
            ),
        )
        if self.prefetch is not None:
            context.prefetch = self.prefetch
        if self.incremental_max_pages is not None:
            context.incremental_max_pages = self.incremental_max_pages
        return context

    async def _should_cancel(self, cancel_token: CancellationToken) -> bool:
        if cancel_token.cancelled:
            return True
        if await self.repository.cancel_requested():
            cancel_token.cancel()
            return True
        return False

    async def _safe_rollback(self):
        try:
            await self.repository.rollback()
        except Exception as e:
            logger.error(f"Rollback failed: {e}")

    async def _finish(
        self,
        run_id: str,
        sync_type: SyncType,
        status: RunStatus,
        records_processed: int,
        errors: List[str],
        last_error: Optional[str] = None
    ) -> None:
        """
        Write the terminal state. Every terminal state stamps the sync time
        and type; only COMPLETED resets progress and clears the last error.
        A database failure here is logged, not raised.
        """
        fields = dict(
            is_running=False,
            run_status=status,
            current_operation=None,
            cancel_requested=False,
            last_sync_time=datetime.utcnow(),
            last_sync_type=sync_type,
        )
        if status == RunStatus.COMPLETED:
            fields.update(progress=100, last_error=None)
        if last_error is not None:
            fields["last_error"] = last_error

        try:
            await self.repository.update_status(**fields)
            await self.repository.finish_run(
                run_id,
                status,
                records_processed=records_processed,
                errors=errors,
                error_message=last_error,
            )
            await self.repository.commit()
        except Exception as e:
            logger.error(
                f"Failed to record {status.value} state for run {run_id}: {e}",
                extra={"error_context": {"run_id": run_id, "status": status.value}}
            )
            await self._safe_rollback()
