"""
Health check endpoint with database and import status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db
from importer.repository import ImportRepository
from models.base import RunStatus
from schemas.api import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Whether an import is running and how the last one ended
    """
    db_connected = False
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    status_row = None
    if db_connected:
        try:
            status_row = await ImportRepository(db).get_status()
        except Exception as e:
            logger.error(f"Failed to read sync status: {str(e)}")

    if not db_connected:
        overall = "unhealthy"
    elif status_row is not None and status_row.run_status == RunStatus.FAILED:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthCheckResponse(
        status=overall,
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        import_running=bool(status_row and status_row.is_running),
        last_run_status=status_row.run_status if status_row else None,
        last_sync_time=status_row.last_sync_time if status_row else None,
        last_error=status_row.last_error if status_row else None,
    )
