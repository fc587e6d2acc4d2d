# ============================================================================
# File: importer/phases/base.py
# Description: Batched, checkpointed import phase
# ============================================================================
"""
Base class for the five import phases.

A phase splits its work into numbered batches (listing pages, or one
tournament's game list). Each batch is fetched, parsed, validated,
de-duplicated and persisted; its rows, the checkpoint and the status
progress are committed in one transaction, so a crash between batches
loses nothing that was reported as done.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Type

from core.config import settings
from core.exceptions import ImportCancelledError, ParseError
from importer.client import GomafiaClient
from importer.parsers import parse_page_count
from importer.repository import ImportRepository
from importer.validation import validate_candidate
from models.base import PhaseName, SyncType
from models.skipped_page import SkippedPage
from schemas.candidates import SyncCheckpoint

logger = logging.getLogger(__name__)


async def _never_cancelled() -> bool:
    return False


@dataclass
class PhaseContext:
    """Collaborators and run parameters shared by every phase of a run."""
    repository: ImportRepository
    client: GomafiaClient
    sync_type: SyncType = SyncType.FULL
    run_id: Optional[str] = None
    should_cancel: Callable[[], Awaitable[bool]] = _never_cancelled
    # Slice of the overall 0-100 progress owned by this phase
    progress_span: Tuple[int, int] = (0, 100)
    prefetch: bool = field(default_factory=lambda: settings.PREFETCH_NEXT_BATCH)
    incremental_max_pages: int = field(default_factory=lambda: settings.INCREMENTAL_MAX_PAGES)


@dataclass
class PhaseResult:
    phase: PhaseName
    total_batches: int = 0
    batches_processed: int = 0
    inserted: int = 0
    invalid: int = 0
    duplicates: int = 0
    skipped_batches: int = 0
    errors: List[str] = field(default_factory=list)


class Phase(ABC):
    """
    One step of the import state machine.

    Subclasses set ``name`` and ``model`` and implement count_batches,
    fetch_batch and persist. execute() drives the batch loop.
    """

    name: PhaseName
    model: Type[Any]
    # Candidate variant this phase accepts; other kinds are rejected as invalid
    candidate_kind: Optional[str] = None

    # Batch-level failures recorded as skipped pages instead of aborting the run
    skippable_errors: Tuple[Type[Exception], ...] = (ParseError,)

    def __init__(self, context: PhaseContext):
        self.context = context
        self.repository = context.repository
        self.client = context.client
        self.processed_ids: List[str] = []

    def get_phase_name(self) -> PhaseName:
        return self.name

    def validate_data(self, candidate) -> bool:
        if self.candidate_kind is not None and getattr(candidate, "kind", None) != self.candidate_kind:
            logger.warning(
                f"{self.name.value}: rejecting {type(candidate).__name__} record, "
                f"expected kind '{self.candidate_kind}'"
            )
            return False
        return validate_candidate(candidate)

    async def check_duplicate(self, gomafia_id: str) -> bool:
        return await self.repository.exists(self.model, gomafia_id)

    def create_checkpoint(
        self,
        last_batch_index: int,
        total_batches: int,
        processed_ids: List[str]
    ) -> SyncCheckpoint:
        return SyncCheckpoint(
            phase=self.name,
            last_batch_index=last_batch_index,
            total_batches=total_batches,
            processed_ids=list(processed_ids),
            message=f"{self.name.value}: batch {last_batch_index + 1}/{total_batches} committed",
            timestamp=datetime.utcnow(),
        )

    @abstractmethod
    async def count_batches(self) -> int:
        """Number of batches this phase will process."""

    @abstractmethod
    async def fetch_batch(self, index: int) -> List[Any]:
        """Fetch and parse batch ``index`` (zero-based) into candidates."""

    @abstractmethod
    async def persist(self, candidates: List[Any]) -> int:
        """Stage rows for new candidates; returns the number inserted."""

    def describe_batch(self, index: int) -> Dict[str, Any]:
        """Where a batch came from, for skipped-page records."""
        return {"page_number": index + 1}

    async def fetch_skipped(self, page: SkippedPage) -> List[Any]:
        """Fetch the batch a skipped-page record points at."""
        if page.page_number is None:
            raise ParseError(
                "Skipped page has no page number",
                context={"phase": self.name.value, "skipped_page_id": page.id}
            )
        return await self.fetch_batch(page.page_number - 1)

    async def retry_skipped_page(self, page: SkippedPage) -> int:
        """
        Fetch a skipped batch again and stage rows for records not stored yet.

        Does not commit. Returns the number of rows inserted.

        Raises:
            TransportError, ParseError: the batch still cannot be read
        """
        candidates = await self.fetch_skipped(page)
        seen: Set[str] = set()
        new_records = []
        for candidate in candidates:
            if not self.validate_data(candidate) or candidate.gomafia_id in seen:
                continue
            seen.add(candidate.gomafia_id)
            if not await self.check_duplicate(candidate.gomafia_id):
                new_records.append(candidate)
        return await self.persist(new_records) if new_records else 0

    # ------------------------------------------------------------------
    # Batch loop
    # ------------------------------------------------------------------

    async def execute(self, resume_from: Optional[SyncCheckpoint] = None) -> PhaseResult:
        """
        Run every remaining batch of this phase.

        Args:
            resume_from: Checkpoint of this phase from an interrupted run.
                Batches up to and including its last_batch_index are skipped.

        Raises:
            ImportCancelledError: cancellation observed at a batch boundary
            TransportError: the source failed after retries
            Exception: persistence failures (the batch is rolled back first)
        """
        result = PhaseResult(phase=self.name)
        total = await self.count_batches()
        result.total_batches = total

        start = 0
        self.processed_ids = []
        if resume_from is not None and resume_from.phase == self.name:
            start = resume_from.last_batch_index + 1
            self.processed_ids = list(resume_from.processed_ids)
            logger.info(f"{self.name.value}: resuming after batch {start}/{total}")

        if start >= total:
            logger.info(f"{self.name.value}: nothing to do ({total} batches)")
            return result

        seen: Set[str] = set(self.processed_ids)
        pending: Optional[asyncio.Task] = None

        try:
            for index in range(start, total):
                if await self.context.should_cancel():
                    raise ImportCancelledError(
                        "Import cancelled",
                        context={"phase": self.name.value, "batch_index": index}
                    )

                fetch_task = pending or self._start_fetch(index)
                pending = None

                failure: Optional[Exception] = None
                try:
                    candidates = await fetch_task
                except self.skippable_errors as e:
                    candidates = []
                    failure = e

                if self.context.prefetch and index + 1 < total:
                    pending = self._start_fetch(index + 1)

                await self._commit_batch(index, total, candidates, failure, seen, result)

        except ImportCancelledError:
            # Let an in-flight prefetch finish on its own
            if pending is not None:
                await asyncio.gather(pending, return_exceptions=True)
                pending = None
            raise
        finally:
            if pending is not None:
                pending.cancel()
                await asyncio.gather(pending, return_exceptions=True)

        logger.info(
            f"{self.name.value} phase complete: {result.inserted} inserted, "
            f"{result.duplicates} duplicates, {result.invalid} invalid, "
            f"{result.skipped_batches} skipped batches"
        )
        return result

    def _start_fetch(self, index: int) -> asyncio.Task:
        return asyncio.ensure_future(self.fetch_batch(index))

    async def _commit_batch(
        self,
        index: int,
        total: int,
        candidates: List[Any],
        failure: Optional[Exception],
        seen: Set[str],
        result: PhaseResult
    ) -> None:
        valid = []
        for candidate in candidates:
            if not self.validate_data(candidate):
                result.invalid += 1
                logger.debug(f"{self.name.value}: invalid record {getattr(candidate, 'gomafia_id', None)}")
                continue
            if candidate.gomafia_id in seen:
                result.duplicates += 1
                continue
            seen.add(candidate.gomafia_id)
            valid.append(candidate)

        try:
            new_records = []
            for candidate in valid:
                if await self.check_duplicate(candidate.gomafia_id):
                    result.duplicates += 1
                else:
                    new_records.append(candidate)

            inserted = await self.persist(new_records) if new_records else 0

            if failure is not None:
                await self._record_skipped(index, failure)

            processed_ids = self.processed_ids + [c.gomafia_id for c in valid]
            checkpoint = self.create_checkpoint(index, total, processed_ids)
            await self.repository.save_checkpoint(checkpoint, run_id=self.context.run_id)
            await self.repository.update_status(
                progress=self._progress(index, total),
                current_operation=checkpoint.message,
            )
            await self.repository.commit()

        except Exception:
            await self.repository.rollback()
            for candidate in valid:
                seen.discard(candidate.gomafia_id)
            raise

        self.processed_ids = processed_ids
        result.inserted += inserted
        result.batches_processed += 1
        if failure is not None:
            result.skipped_batches += 1
            result.errors.append(
                f"{self.name.value}: batch {index + 1}/{total} skipped: "
                f"{getattr(failure, 'message', str(failure))}"
            )
        logger.info(f"{checkpoint.message} ({inserted} new)")

    async def _record_skipped(self, index: int, failure: Exception) -> None:
        message = getattr(failure, "message", str(failure))
        where = self.describe_batch(index)
        logger.warning(
            f"{self.name.value}: skipping batch {index + 1} {where}: {message}",
            extra={"error_context": getattr(failure, "context", {})}
        )
        await self.repository.record_skipped_page(
            phase=self.name,
            error_code=type(failure).__name__,
            error_message=message,
            run_id=self.context.run_id,
            page_number=where.get("page_number"),
            entity_id=where.get("entity_id"),
        )

    def _progress(self, index: int, total: int) -> int:
        low, high = self.context.progress_span
        return low + math.floor((index + 1) / total * (high - low))


class ListingPhase(Phase):
    """
    Phase over a paginated listing: batch i is page i + 1.

    The first page is fetched once to read the page count and reused as
    batch 0.
    """

    def __init__(self, context: PhaseContext):
        super().__init__(context)
        self._first_page: Optional[str] = None

    @abstractmethod
    async def fetch_page(self, page: int) -> str:
        pass

    @abstractmethod
    def parse_page(self, html: str) -> List[Any]:
        pass

    async def count_batches(self) -> int:
        self._first_page = await self.fetch_page(1)
        pages = parse_page_count(self._first_page)
        if self.context.sync_type == SyncType.INCREMENTAL:
            pages = min(pages, self.context.incremental_max_pages)
        logger.info(f"{self.name.value}: {pages} page(s) to process")
        return pages

    async def fetch_batch(self, index: int) -> List[Any]:
        page = index + 1
        if page == 1 and self._first_page is not None:
            html = self._first_page
        else:
            html = await self.fetch_page(page)
        return self.parse_page(html)
