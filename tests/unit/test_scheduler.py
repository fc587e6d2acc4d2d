import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from core.exceptions import SourceUnavailableError
from importer.scheduler import SyncScheduler
from models.base import RunStatus, SyncType, TriggerType
from schemas.sync import ImportResult


@pytest.mark.asyncio
async def test_scheduler_initialization():
    scheduler = SyncScheduler(service=AsyncMock())
    assert scheduler.scheduler is not None
    assert scheduler.service is not None


@pytest.mark.asyncio
async def test_import_job_runs_incremental_import():
    service = AsyncMock()
    service.run.return_value = ImportResult(success=True, status=RunStatus.COMPLETED, records_processed=12)

    await SyncScheduler(service=service).run_import_job()

    service.run.assert_awaited_once_with(SyncType.INCREMENTAL)


@pytest.mark.asyncio
async def test_import_job_tolerates_conflict():
    service = AsyncMock()
    service.run.return_value = ImportResult.conflicted()

    await SyncScheduler(service=service).run_import_job()

    service.run.assert_awaited_once()


@pytest.mark.asyncio
async def test_import_job_failure_is_logged_not_raised():
    service = AsyncMock()
    service.run.side_effect = RuntimeError("database down")

    await SyncScheduler(service=service).run_import_job()


@pytest.mark.asyncio
async def test_verification_job_is_scheduled_trigger():
    service = AsyncMock()
    service.run_verification.return_value = MagicMock(overall_accuracy=98.5)

    await SyncScheduler(service=service).run_verification_job()

    service.run_verification.assert_awaited_once_with(TriggerType.SCHEDULED)


@pytest.mark.asyncio
async def test_verification_job_unreachable_source():
    service = AsyncMock()
    service.run_verification.side_effect = SourceUnavailableError("gomafia.pro is unreachable")

    await SyncScheduler(service=service).run_verification_job()


def test_start_registers_both_jobs():
    scheduler = SyncScheduler(service=AsyncMock())

    with patch.object(scheduler.scheduler, "start") as mock_start:
        scheduler.start()

    job_ids = {job.id for job in scheduler.scheduler.get_jobs()}
    assert job_ids == {"import_job", "verification_job"}
    mock_start.assert_called_once()
