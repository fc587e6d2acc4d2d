"""
Import control endpoints: trigger, cancel, status and history
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from api.dependencies import get_import_service
from importer.service import ImportService
from models.base import SkippedPageStatus
from schemas.api import (
    CancelRequest,
    CancelResponse,
    RetrySkippedPagesResponse,
    SkippedPageResponse,
    SyncRunResponse,
    SyncStatusResponse,
    TriggerRequest,
    TriggerResponse,
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/imports", tags=["Imports"])


@router.post("", response_model=TriggerResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_import(
    request: Request,
    body: TriggerRequest = TriggerRequest(),
    service: ImportService = Depends(get_import_service)
):
    """
    Start an import in the background.

    Returns 409 when another import (in any process) holds the import lock.
    """
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] POST /imports sync_type={body.sync_type.value} force_restart={body.force_restart}")

    result = await service.trigger(body.sync_type, force_restart=body.force_restart)
    if result.conflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)

    return TriggerResponse(success=result.success, message=result.message, run_id=result.run_id)


@router.post("/cancel", response_model=CancelResponse)
async def cancel_import(
    body: CancelRequest = CancelRequest(),
    service: ImportService = Depends(get_import_service)
):
    """Request cancellation; the run stops at its next batch boundary."""
    result = await service.cancel(body.run_id)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return CancelResponse(success=result.success, message=result.message)


@router.get("/status", response_model=SyncStatusResponse)
async def import_status(service: ImportService = Depends(get_import_service)):
    return await service.get_status()


@router.get("/runs", response_model=List[SyncRunResponse])
async def list_runs(
    limit: int = Query(20, ge=1, le=100, description="Number of recent runs to return"),
    service: ImportService = Depends(get_import_service)
):
    runs = await service.list_runs(limit)
    return [SyncRunResponse.model_validate(run) for run in runs]


@router.get("/skipped-pages", response_model=List[SkippedPageResponse])
async def list_skipped_pages(
    page_status: Optional[SkippedPageStatus] = Query(None, alias="status", description="PENDING or RESOLVED"),
    service: ImportService = Depends(get_import_service)
):
    pages = await service.list_skipped_pages(page_status)
    return [SkippedPageResponse.model_validate(page) for page in pages]


@router.post("/skipped-pages/retry", response_model=RetrySkippedPagesResponse)
async def retry_skipped_pages(service: ImportService = Depends(get_import_service)):
    """
    Fetch every PENDING skipped page again and mark the ones that import RESOLVED.

    Returns 409 while an import holds the import lock.
    """
    result = await service.retry_skipped_pages()
    if result.conflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    return RetrySkippedPagesResponse(**result.model_dump(exclude={"conflict"}))
