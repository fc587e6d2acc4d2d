"""
Data verification endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from api.dependencies import get_import_service
from core.exceptions import SourceUnavailableError
from importer.service import ImportService
from schemas.api import IntegrityReportResponse, VerificationRequest
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/verification", tags=["Verification"])


@router.get("/latest", response_model=IntegrityReportResponse)
async def latest_report(service: ImportService = Depends(get_import_service)):
    report = await service.get_latest_verification_report()
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No verification report yet")
    return IntegrityReportResponse.model_validate(report)


@router.post("", response_model=IntegrityReportResponse)
async def run_verification(
    body: VerificationRequest = VerificationRequest(),
    service: ImportService = Depends(get_import_service)
):
    """
    Run a verification now and return its report.

    Returns 503 when gomafia.pro cannot be reached; no report is stored then.
    """
    try:
        report = await service.run_verification(body.trigger_type)
    except SourceUnavailableError as e:
        logger.warning(f"Verification not run: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    return IntegrityReportResponse.model_validate(report)
