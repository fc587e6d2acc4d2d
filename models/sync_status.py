from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, Text
from datetime import datetime
from models.base import Base, SyncType, RunStatus

CURRENT_STATUS_ID = "current"


class SyncStatus(Base):
    """
    Singleton row describing the import pipeline.

    Purpose:
    - Progress and current operation for status displays
    - Last terminal state and error of the most recent run
    - Cross-process cancellation flag (cancel_requested)

    Design:
    - Exactly one row with id = "current", created on the first import
    - Updated in place, never deleted
    - Written only by the orchestrator (cancel_requested also by cancel())
    """
    __tablename__ = "sync_status"

    id = Column(String(32), primary_key=True, default=CURRENT_STATUS_ID)

    is_running = Column(Boolean, nullable=False, default=False)
    progress = Column(Integer, nullable=False, default=0)
    current_operation = Column(String(255), nullable=True)

    run_status = Column(Enum(RunStatus), nullable=False, default=RunStatus.IDLE)
    current_run_id = Column(String(36), nullable=True)
    cancel_requested = Column(Boolean, nullable=False, default=False)

    last_sync_time = Column(DateTime, nullable=True)
    last_sync_type = Column(Enum(SyncType), nullable=True)
    last_error = Column(Text, nullable=True)

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
