from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base
from store_edge.db.models.enums import MovementType, SyncStatus, enum_column


class StockMovement(Base):
    __tablename__ = "stock_movements"

    """A stock change for one product (receipt, sale-out, count adjustment, transfer).

    Direction is carried by ``movement_type``; ``quantity`` is signed only for
    adjustments. The id is generated on the device and doubles as the
    idempotency key HQ deduplicates on.
    """

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    movement_type = Column(enum_column(MovementType, "movement_type_enum"), nullable=False)
    quantity = Column(Integer, nullable=False)

    reference_number = Column(String, nullable=True)
    reference_type = Column(String, nullable=True)
    reference_id = Column(String, nullable=True)

    notes = Column(Text, nullable=True)
    user_id = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    sync_status = Column(enum_column(SyncStatus, "sync_status_enum"), nullable=False, default=SyncStatus.PENDING)
    last_synced = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_stock_movements_sync_status", "sync_status"),
    )
