"""
Script to run one data verification and print the report summary
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import engine
from core.exceptions import SourceUnavailableError
from core.logging import setup_logging
from importer.service import ImportService
from models.base import IntegrityStatus, TriggerType

logger = logging.getLogger(__name__)


async def run_verification() -> int:
    service = ImportService()
    try:
        report = await service.run_verification(TriggerType.MANUAL)
    except SourceUnavailableError as e:
        logger.error(f"Verification not run: {e.message}")
        return 1
    finally:
        await engine.dispose()

    logger.info(f"Overall accuracy: {report.overall_accuracy:.2f}% ({report.status.value})")
    for kind, outcome in report.results.items():
        logger.info(f"  {kind}: {outcome['matched']}/{outcome['sampled']} matched ({outcome['accuracy']:.2f}%)")

    return 0 if report.status == IntegrityStatus.OK else 2


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_verification()))
