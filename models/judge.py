from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, ForeignKey
from datetime import datetime
from models.base import Base, generate_uuid


class Judge(Base):
    """Certified judge scraped from the judges listing."""
    __tablename__ = "judges"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    gomafia_id = Column(String(32), unique=True, nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(255), nullable=False)
    category = Column(String(128), nullable=True)
    can_be_gs = Column(Boolean, nullable=True)
    can_judge_final = Column(Boolean, nullable=False, default=False)
    max_tables_as_gs = Column(Integer, nullable=True)
    rating = Column(Float, nullable=True)
    games_judged = Column(Integer, nullable=True)
    accreditation_date = Column(DateTime, nullable=True)
    responsible_from_sc = Column(String(255), nullable=True)

    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
