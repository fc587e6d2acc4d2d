"""
Script to run one gomafia.pro import in the foreground
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import engine
from core.logging import setup_logging
from importer.service import ImportService
from models.base import RunStatus, SyncType

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Import gomafia.pro data into the local database")
    parser.add_argument(
        "--type",
        dest="sync_type",
        choices=[sync_type.value for sync_type in SyncType],
        default=SyncType.FULL.value,
        help="FULL walks every listing page; INCREMENTAL only the first few",
    )
    parser.add_argument(
        "--force-restart",
        action="store_true",
        help="Ignore the stored checkpoint and start from the first phase",
    )
    return parser.parse_args(argv)


async def run_import(sync_type: SyncType, force_restart: bool) -> int:
    """Returns the process exit code: 0 completed, 1 failed, 2 conflict, 3 cancelled"""
    service = ImportService()
    try:
        result = await service.run(sync_type, force_restart=force_restart)
    finally:
        await engine.dispose()

    if result.conflict:
        logger.warning("Another import is already running")
        return 2

    for error in result.errors:
        logger.warning(f"  {error}")

    if result.status == RunStatus.COMPLETED:
        logger.info(f"Import completed: {result.records_processed} new records")
        return 0
    if result.status == RunStatus.CANCELLED:
        logger.info("Import cancelled; progress is kept for the next run")
        return 3

    logger.error("Import failed; the next run resumes from the last checkpoint")
    return 1


if __name__ == "__main__":
    setup_logging()
    args = parse_args()
    sys.exit(asyncio.run(run_import(SyncType(args.sync_type), args.force_restart)))
