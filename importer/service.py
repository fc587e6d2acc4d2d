"""
Entry point for starting, cancelling and inspecting imports.

Shared by the HTTP API, the CLI scripts and the scheduler. trigger() answers
immediately: it takes the import lock itself so a conflict is reported
synchronously, then runs the orchestrator as a background task that owns
the lock until the run ends.
"""

import asyncio
import functools
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core.database import async_session_maker, engine as default_engine
from core.exceptions import ParseError, TransportError
from importer.cancellation import CancellationToken
from importer.client import GomafiaClient
from importer.lock import AdvisoryLockManager
from importer.orchestrator import ImportOrchestrator
from importer.phases import PHASE_ORDER, PhaseContext
from importer.repository import ImportRepository
from models.base import SkippedPageStatus, SyncType, TriggerType
from models.integrity_report import DataIntegrityReport
from models.skipped_page import SkippedPage
from models.sync_log import SyncLog
from schemas.api import SyncStatusResponse
from schemas.sync import CancelResult, ImportResult, RetryResult, TriggerResult
from verification.alerts import build_alert_sink
from verification.service import DataVerificationService

logger = logging.getLogger(__name__)


@dataclass
class ActiveRun:
    run_id: str
    task: asyncio.Task
    token: CancellationToken


class ImportService:
    """
    Import and verification operations for every caller.

    Collaborators are factories so each run gets its own session, HTTP
    client and lock connection.
    """

    def __init__(
        self,
        engine=None,
        session_maker=None,
        client_factory: Optional[Callable[[], GomafiaClient]] = None,
        lock_factory: Optional[Callable[[], AdvisoryLockManager]] = None,
        repository_factory: Callable = ImportRepository,
    ):
        self.engine = engine or default_engine
        self.session_maker = session_maker or async_session_maker
        self.client_factory = client_factory or GomafiaClient
        self.lock_factory = lock_factory or (lambda: AdvisoryLockManager(self.engine))
        self.repository_factory = repository_factory
        self._active: Dict[str, ActiveRun] = {}

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    async def trigger(self, sync_type: SyncType = SyncType.FULL, force_restart: bool = False) -> TriggerResult:
        """Start an import in the background, or report a conflict."""
        lock = self.lock_factory()
        if not await lock.acquire_lock():
            return TriggerResult(success=False, conflict=True, message="Import already in progress")

        run_id = str(uuid.uuid4())
        token = CancellationToken()
        try:
            task = asyncio.create_task(
                self._execute(lock, sync_type, token, run_id, force_restart),
                name=f"import-{run_id}",
            )
        except Exception:
            await lock.release_lock()
            raise

        self._active[run_id] = ActiveRun(run_id=run_id, task=task, token=token)
        task.add_done_callback(functools.partial(self._on_run_done, run_id))

        logger.info(f"{sync_type.value} import {run_id} started")
        return TriggerResult(success=True, message=f"{sync_type.value} import started", run_id=run_id)

    def _on_run_done(self, run_id: str, task: asyncio.Task) -> None:
        """Forget a finished background run and log how it ended."""
        self._active.pop(run_id, None)
        if task.cancelled():
            logger.warning(f"Import {run_id} task was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Import {run_id} crashed: {error}",
                extra={"error_context": {"run_id": run_id, "error_type": type(error).__name__}}
            )

    async def run(self, sync_type: SyncType = SyncType.FULL, force_restart: bool = False) -> ImportResult:
        """Run an import in the foreground and return its result."""
        lock = self.lock_factory()
        run_id = str(uuid.uuid4())
        token = CancellationToken()
        self._active[run_id] = ActiveRun(run_id=run_id, task=asyncio.current_task(), token=token)
        try:
            return await self._execute(lock, sync_type, token, run_id, force_restart)
        finally:
            self._active.pop(run_id, None)

    async def _execute(
        self,
        lock: AdvisoryLockManager,
        sync_type: SyncType,
        token: CancellationToken,
        run_id: str,
        force_restart: bool
    ) -> ImportResult:
        try:
            async with self.session_maker() as session, self.client_factory() as client:
                orchestrator = ImportOrchestrator(self.repository_factory(session), lock, client)
                result = await orchestrator.execute(
                    sync_type=sync_type,
                    cancel_token=token,
                    run_id=run_id,
                    force_restart=force_restart,
                )
        except Exception as e:
            logger.error(f"Import {run_id} could not run: {e}")
            raise
        finally:
            await lock.release_lock()

        if result.conflict:
            logger.warning(f"Import {run_id} not started: another import holds the lock")
        return result

    async def wait(self, run_id: str) -> Optional[ImportResult]:
        """Await a background run started by trigger(); None if it is not known here."""
        active = self._active.get(run_id)
        if active is None:
            return None
        return await active.task

    async def cancel(self, run_id: Optional[str] = None) -> CancelResult:
        """
        Ask the running import to stop at its next batch boundary.

        Runs in this process are signalled directly; a run in another
        process sees the status-row flag.
        """
        targets = [self._active[run_id]] if run_id in self._active else (
            list(self._active.values()) if run_id is None else []
        )
        for active in targets:
            active.token.cancel()

        async with self.session_maker() as session:
            repository = self.repository_factory(session)
            status = await repository.get_status()
            running_elsewhere = (
                status is not None
                and status.is_running
                and (run_id is None or status.current_run_id == run_id)
            )
            if running_elsewhere:
                await repository.update_status(cancel_requested=True)
                await repository.commit()

        if not targets and not running_elsewhere:
            return CancelResult(success=False, message="No import is running")

        logger.info(f"Cancellation requested for {run_id or 'current import'}")
        return CancelResult(success=True, message="Cancellation requested")

    async def get_status(self) -> SyncStatusResponse:
        async with self.session_maker() as session:
            repository = self.repository_factory(session)
            status = await repository.get_status()
            checkpoint = await repository.load_checkpoint()

        response = SyncStatusResponse.model_validate(status) if status is not None else SyncStatusResponse()
        if checkpoint is not None:
            response.checkpoint_message = checkpoint.message
        return response

    async def list_runs(self, limit: int = 20) -> List[SyncLog]:
        async with self.session_maker() as session:
            return await self.repository_factory(session).list_runs(limit)

    async def list_skipped_pages(self, status: Optional[SkippedPageStatus] = None) -> List[SkippedPage]:
        async with self.session_maker() as session:
            return await self.repository_factory(session).list_skipped_pages(status)

    async def retry_skipped_pages(self) -> RetryResult:
        """
        Fetch every PENDING skipped page again under the import lock.

        Pages are retried in phase order so games can link to players
        recovered in the same pass. Each page commits on its own: a page
        that imports is marked RESOLVED, one that still fails stays PENDING.
        """
        lock = self.lock_factory()
        if not await lock.acquire_lock():
            return RetryResult(success=False, conflict=True, message="Import already in progress")

        resolved = still_pending = inserted = 0
        try:
            async with self.session_maker() as session, self.client_factory() as client:
                repository = self.repository_factory(session)
                pending = await repository.list_skipped_pages(SkippedPageStatus.PENDING)
                context = PhaseContext(repository=repository, client=client, prefetch=False)
                phases = {phase_class.name: phase_class(context) for phase_class in PHASE_ORDER}
                order = [phase_class.name for phase_class in PHASE_ORDER]

                for page in sorted(pending, key=lambda p: order.index(p.phase)):
                    phase = phases[page.phase]
                    where = page.entity_id or f"page {page.page_number}"
                    try:
                        added = await phase.retry_skipped_page(page)
                        await repository.resolve_skipped_page(page.id)
                        await repository.commit()
                    except (TransportError, ParseError) as e:
                        await repository.rollback()
                        still_pending += 1
                        logger.warning(
                            f"{page.phase.value} {where} still unavailable: {e.message}",
                            extra={"error_context": e.context}
                        )
                        continue
                    resolved += 1
                    inserted += added
                    logger.info(f"{page.phase.value} {where} resolved ({added} new)")
        finally:
            await lock.release_lock()

        return RetryResult(
            success=still_pending == 0,
            message=f"{resolved} skipped page(s) resolved, {still_pending} still pending",
            resolved=resolved,
            still_pending=still_pending,
            records_inserted=inserted,
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def run_verification(self, trigger: TriggerType = TriggerType.MANUAL) -> DataIntegrityReport:
        async with self.session_maker() as session, self.client_factory() as client:
            service = DataVerificationService(
                self.repository_factory(session),
                client,
                alert_sink=build_alert_sink(session),
            )
            return await service.run_data_verification(trigger)

    async def get_latest_verification_report(self) -> Optional[DataIntegrityReport]:
        async with self.session_maker() as session:
            return await self.repository_factory(session).latest_report()


import_service = ImportService()
