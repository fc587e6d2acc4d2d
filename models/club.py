from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, generate_uuid


class Club(Base):
    """
    Mafia club scraped from the clubs rating listing.

    gomafia_id is the natural key; id is the local surrogate.
    """
    __tablename__ = "clubs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    gomafia_id = Column(String(32), unique=True, nullable=False, index=True)

    name = Column(String(255), nullable=False, index=True)
    region = Column(String(255), nullable=True)
    president_name = Column(String(255), nullable=True)
    members_count = Column(Integer, nullable=True)

    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    players = relationship("Player", back_populates="club")
