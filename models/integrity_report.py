from sqlalchemy import Column, String, Float, DateTime, Enum
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime
from models.base import Base, IntegrityStatus, TriggerType, generate_uuid


class DataIntegrityReport(Base):
    """
    Result of one verification run.

    Append-only; the newest row by timestamp is the "latest" report.
    results holds per-kind {accuracy, sampled, matched}.
    """
    __tablename__ = "data_integrity_reports"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    overall_accuracy = Column(Float, nullable=False)
    status = Column(Enum(IntegrityStatus), nullable=False)
    trigger_type = Column(Enum(TriggerType), nullable=False)

    results = Column(JSONB, nullable=False)
    discrepancies = Column(JSONB, nullable=True)
