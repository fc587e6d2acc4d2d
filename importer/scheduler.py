import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.exceptions import SyncException
from importer.service import ImportService, import_service
from models.base import SyncType, TriggerType

logger = logging.getLogger(__name__)


class SyncScheduler:
    def __init__(self, service: ImportService = None):
        self.service = service or import_service
        self.scheduler = AsyncIOScheduler()

    async def run_import_job(self):
        """Job: daily incremental import"""
        logger.info("Scheduler: Starting incremental import")
        try:
            result = await self.service.run(SyncType.INCREMENTAL)
            if result.conflict:
                logger.info("Scheduler: Import skipped, another import is running")
            else:
                logger.info(
                    f"Scheduler: Import finished with status {result.status.value if result.status else 'unknown'}, "
                    f"{result.records_processed} records"
                )
        except Exception as e:
            logger.error(f"Scheduler: Import job failed - {e}")

    async def run_verification_job(self):
        """Job: periodic data verification"""
        logger.info("Scheduler: Starting data verification")
        try:
            report = await self.service.run_verification(TriggerType.SCHEDULED)
            logger.info(f"Scheduler: Verification finished, accuracy {report.overall_accuracy:.2f}%")
        except SyncException as e:
            logger.error(f"Scheduler: Verification job failed - {e.message}")
        except Exception as e:
            logger.error(f"Scheduler: Verification job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_import_job,
            trigger=CronTrigger(hour=settings.SYNC_CRON_HOUR, minute=0),
            id="import_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.add_job(
            self.run_verification_job,
            trigger=IntervalTrigger(hours=settings.VERIFICATION_INTERVAL_HOURS),
            id="verification_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info("Sync Scheduler started")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Sync Scheduler stopped")
