from sqlalchemy.orm import declarative_base
import enum
import uuid

Base = declarative_base()


def generate_uuid() -> str:
    """Surrogate key for local rows; never sent to the remote source."""
    return str(uuid.uuid4())


# ============================================================================
# ENUMS
# ============================================================================

class PhaseName(str, enum.Enum):
    """Import phases in execution order"""
    CLUBS = "CLUBS"
    PLAYERS = "PLAYERS"
    TOURNAMENTS = "TOURNAMENTS"
    GAMES = "GAMES"
    JUDGES = "JUDGES"


class SyncType(str, enum.Enum):
    """Import scope"""
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"


class RunStatus(str, enum.Enum):
    """Import run state machine"""
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class IntegrityStatus(str, enum.Enum):
    """Verification outcome"""
    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class TriggerType(str, enum.Enum):
    """What started a verification run"""
    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"


class TournamentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class WinnerTeam(str, enum.Enum):
    BLACK = "BLACK"
    RED = "RED"
    DRAW = "DRAW"


class Team(str, enum.Enum):
    BLACK = "BLACK"
    RED = "RED"


class PlayerRole(str, enum.Enum):
    DON = "DON"
    MAFIA = "MAFIA"
    SHERIFF = "SHERIFF"
    CIVILIAN = "CIVILIAN"


class SkippedPageStatus(str, enum.Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
