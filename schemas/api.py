"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from models.base import (
    IntegrityStatus,
    PhaseName,
    RunStatus,
    SkippedPageStatus,
    SyncType,
    TriggerType,
)

# ============================================================================
# Health Check Schemas
# ============================================================================


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    import_running: bool = False
    last_run_status: Optional[RunStatus] = None
    last_sync_time: Optional[datetime] = None
    last_error: Optional[str] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2026-01-15T10:30:00Z",
                "database_connected": True,
                "import_running": False,
                "last_run_status": "COMPLETED",
                "last_sync_time": "2026-01-15T03:41:12Z",
                "last_error": None
            }
        }


# ============================================================================
# Import Schemas
# ============================================================================

class TriggerRequest(BaseModel):
    """Body of POST /imports"""
    sync_type: SyncType = Field(default=SyncType.FULL, description="FULL or INCREMENTAL")
    force_restart: bool = Field(default=False, description="Discard the stored checkpoint first")


class TriggerResponse(BaseModel):
    success: bool
    message: str
    run_id: Optional[str] = None


class CancelRequest(BaseModel):
    run_id: Optional[str] = Field(None, description="Run to cancel; defaults to the current run")


class CancelResponse(BaseModel):
    success: bool
    message: str


class RetrySkippedPagesResponse(BaseModel):
    success: bool
    message: str
    resolved: int = 0
    still_pending: int = 0
    records_inserted: int = 0


class SyncStatusResponse(BaseModel):
    """Snapshot of the singleton status row"""
    is_running: bool = False
    progress: int = Field(default=0, ge=0, le=100)
    current_operation: Optional[str] = None
    run_status: RunStatus = RunStatus.IDLE
    current_run_id: Optional[str] = None
    cancel_requested: bool = False
    last_sync_time: Optional[datetime] = None
    last_sync_type: Optional[SyncType] = None
    last_error: Optional[str] = None
    checkpoint_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "is_running": True,
                "progress": 34,
                "current_operation": "PLAYERS: batch 12/170 committed",
                "run_status": "RUNNING",
                "current_run_id": "5a3f7c1e-2d7b-4a52-9b4c-0f2a1c6b7e10",
                "cancel_requested": False,
                "last_sync_time": "2026-01-14T03:40:02Z",
                "last_sync_type": "INCREMENTAL",
                "last_error": None,
                "checkpoint_message": "PLAYERS: batch 12/170 committed"
            }
        }


class SyncRunResponse(BaseModel):
    """One entry of the run history"""
    run_id: str
    sync_type: SyncType
    status: RunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    records_processed: int = 0
    error_message: Optional[str] = None
    error_details: Optional[List[str]] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class SkippedPageResponse(BaseModel):
    id: str
    run_id: Optional[str] = None
    phase: PhaseName
    page_number: Optional[int] = None
    entity_id: Optional[str] = None
    error_code: str
    error_message: Optional[str] = None
    status: SkippedPageStatus
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


# ============================================================================
# Verification Schemas
# ============================================================================

class VerificationRequest(BaseModel):
    trigger_type: TriggerType = TriggerType.MANUAL


class IntegrityReportResponse(BaseModel):
    """Stored verification report"""
    id: str
    timestamp: datetime
    overall_accuracy: float
    status: IntegrityStatus
    trigger_type: TriggerType
    results: Dict[str, Any]
    discrepancies: Optional[List[Dict[str, Any]]] = None

    class Config:
        from_attributes = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": "0b8e54a2-5d55-4a3c-8f2d-3c1e6f0d9a77",
                "timestamp": "2026-01-15T04:00:00Z",
                "overall_accuracy": 97.0,
                "status": "OK",
                "trigger_type": "SCHEDULED",
                "results": {
                    "players": {"accuracy": 97.0, "sampled": 100, "matched": 97}
                },
                "discrepancies": [
                    {"kind": "players", "gomafia_id": "1024", "fields": ["elo_rating"]}
                ]
            }
        }


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
