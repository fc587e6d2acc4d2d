from sqlalchemy import Column, Integer, String, Enum, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime
from models.base import Base, PhaseName

CURRENT_CHECKPOINT_ID = "current"


class ImportCheckpoint(Base):
    """
    Durable resume marker of the in-progress import.

    Purpose:
    - Resume a crashed or cancelled run without reprocessing committed batches
    - Replay processed_ids to skip records already committed in the phase

    Design:
    - One row (id = "current"), replaced on every committed batch
    - Written in the same transaction as the batch's inserted rows, so a
      durable checkpoint always implies durable rows
    - Deleted when a run completes successfully
    """
    __tablename__ = "import_checkpoints"

    id = Column(String(32), primary_key=True, default=CURRENT_CHECKPOINT_ID)
    run_id = Column(String(36), nullable=True)

    phase = Column(Enum(PhaseName), nullable=False)
    last_batch_index = Column(Integer, nullable=False)
    total_batches = Column(Integer, nullable=False)
    processed_ids = Column(JSONB, nullable=False, default=list)
    message = Column(Text, nullable=True)

    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
