from sqlalchemy import Column, String, Integer, Numeric, DateTime, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, TournamentStatus, generate_uuid


class Tournament(Base):
    """Tournament scraped from the tournaments listing."""
    __tablename__ = "tournaments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    gomafia_id = Column(String(32), unique=True, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    stars = Column(Integer, nullable=True)
    status = Column(Enum(TournamentStatus), nullable=False, default=TournamentStatus.SCHEDULED)
    start_date = Column(DateTime, nullable=True, index=True)
    end_date = Column(DateTime, nullable=True)
    prize_pool = Column(Numeric(14, 2), nullable=True)

    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    games = relationship("Game", back_populates="tournament")
