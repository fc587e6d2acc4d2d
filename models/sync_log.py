from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Float, Integer, Text, Index
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime
from models.base import Base, SyncType, RunStatus


class SyncLog(Base):
    """
    Audit trail of import runs.

    Purpose:
    - History of every run and its terminal state
    - Error tracking across phases
    - Detecting runs interrupted by a crash (still RUNNING with no lock holder)
    """
    __tablename__ = "sync_logs"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    run_id = Column(String(36), unique=True, nullable=False, index=True)

    sync_type = Column(Enum(SyncType), nullable=False)
    status = Column(Enum(RunStatus), nullable=False, default=RunStatus.RUNNING, index=True)

    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    records_processed = Column(Integer, default=0)

    error_message = Column(Text, nullable=True)
    error_details = Column(JSONB, nullable=True)

    __table_args__ = (
        Index("idx_sync_log_status_started", "status", "started_at"),
    )
