from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String

from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base


class SyncCursor(Base):
    __tablename__ = "sync_cursors"

    """Tracks progress of a named sync stream.

    A cursor stores the checkpoint of the last successful pass for a stream
    ("products" for checkpointed catalog pulls, "cycle" for the last
    completed sync cycle) so both survive restarts.
    """

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    stream_name = Column(String, nullable=False, unique=True)

    last_synced_at = Column(DateTime, nullable=True)

    details = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
