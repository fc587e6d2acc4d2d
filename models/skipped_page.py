from sqlalchemy import Column, BigInteger, Integer, String, Enum, DateTime, Text, Index
from datetime import datetime
from models.base import Base, PhaseName, SkippedPageStatus


class SkippedPage(Base):
    """
    Listing page or tournament games page that could not be parsed.

    The run carries on past it; operators review PENDING rows.
    """
    __tablename__ = "skipped_pages"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    run_id = Column(String(36), nullable=True, index=True)

    phase = Column(Enum(PhaseName), nullable=False)
    page_number = Column(Integer, nullable=True)
    entity_id = Column(String(64), nullable=True)
    error_code = Column(String(64), nullable=False)
    error_message = Column(Text, nullable=False)

    status = Column(Enum(SkippedPageStatus), nullable=False, default=SkippedPageStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_skipped_page_phase_status", "phase", "status"),
    )
