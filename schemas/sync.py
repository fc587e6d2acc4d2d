"""
Result objects exchanged between the orchestrator, the import service and callers
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from models.base import RunStatus


class ImportResult(BaseModel):
    """Outcome of ImportOrchestrator.execute()"""
    success: bool
    records_processed: int = 0
    errors: List[str] = Field(default_factory=list)
    status: Optional[RunStatus] = None
    run_id: Optional[str] = None
    conflict: bool = False

    @classmethod
    def conflicted(cls) -> "ImportResult":
        return cls(
            success=False,
            conflict=True,
            errors=["Import already in progress"],
        )


class TriggerResult(BaseModel):
    success: bool
    message: str
    run_id: Optional[str] = None
    conflict: bool = False


class CancelResult(BaseModel):
    success: bool
    message: str


class RetryResult(BaseModel):
    """Outcome of retrying PENDING skipped pages"""
    success: bool
    message: str
    resolved: int = 0
    still_pending: int = 0
    records_inserted: int = 0
    conflict: bool = False
