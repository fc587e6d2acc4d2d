from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, generate_uuid


class Player(Base):
    """
    Player scraped from the players rating listing.

    Invariant: when all three counters are known, wins + losses == total_games.
    """
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    gomafia_id = Column(String(32), unique=True, nullable=False, index=True)

    name = Column(String(255), nullable=False, index=True)
    region = Column(String(255), nullable=True)
    club_id = Column(String(36), ForeignKey("clubs.id", ondelete="SET NULL"), nullable=True, index=True)

    elo_rating = Column(Integer, nullable=False, default=1200)
    gg_points = Column(Float, nullable=True)
    tournaments_played = Column(Integer, nullable=False, default=0)
    total_games = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)

    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    club = relationship("Club", back_populates="players")
