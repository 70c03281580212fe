from sqlalchemy import JSON, BigInteger, Column, DateTime, Index, Integer, String, Text

from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base
from store_edge.db.models.enums import QueueOperation, enum_column


class SyncQueueItem(Base):
    __tablename__ = "sync_queue"

    """One durable intention to replicate one record mutation to HQ.

    The payload is a snapshot taken when the mutation was written, never a
    live reference. Rows are deleted only once HQ has acknowledged the
    operation, so a crash before acknowledgement leaves them for retry.
    """

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    table_name = Column(String, nullable=False)
    record_id = Column(String(36), nullable=False)
    operation = Column(enum_column(QueueOperation, "queue_operation_enum"), nullable=False)

    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    retry_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_sync_queue_created_at", "created_at", "id"),
        Index("idx_sync_queue_table_record", "table_name", "record_id"),
    )
