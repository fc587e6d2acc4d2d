from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, WinnerTeam, Team, PlayerRole, generate_uuid


class Game(Base):
    """
    A single game of a tournament.

    Games are imported per tournament, so tournament_id is always set.
    """
    __tablename__ = "games"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    gomafia_id = Column(String(64), unique=True, nullable=False, index=True)
    tournament_id = Column(String(36), ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    winner_team = Column(Enum(WinnerTeam), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    tournament = relationship("Tournament", back_populates="games")
    participations = relationship(
        "GameParticipation", back_populates="game", cascade="all, delete-orphan"
    )


class GameParticipation(Base):
    """
    One seat in a game.

    player_id stays NULL when the player is not in the local store yet; the
    external id is kept so the link can be repaired by a later run.
    """
    __tablename__ = "game_participations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="SET NULL"), nullable=True)
    player_gomafia_id = Column(String(32), nullable=False)
    player_name = Column(String(255), nullable=True)

    role = Column(Enum(PlayerRole), nullable=False)
    team = Column(Enum(Team), nullable=False)
    is_winner = Column(Boolean, nullable=False, default=False)
    performance_score = Column(Integer, nullable=True)

    game = relationship("Game", back_populates="participations")

    __table_args__ = (
        Index("idx_participation_game_player", "game_id", "player_gomafia_id", unique=True),
    )
