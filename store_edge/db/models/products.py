from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text

from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base
from store_edge.db.models.enums import SyncStatus, enum_column


class Product(Base):
    __tablename__ = "products"

    """Locally cached mirror of an authoritative catalog entry.

    Carries pricing, stock thresholds and the stock snapshot (current and
    available) as last pulled from HQ. ``sync_status``/``last_synced``
    record how this row relates to the server copy; ``last_synced`` is only
    ever written by the sync cycle.
    """

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=True)
    sku = Column(String, nullable=True)
    barcode = Column(String, nullable=True, index=True)

    unit = Column(String, nullable=False, default="EA")
    cost_price = Column(Numeric(18, 2), nullable=False, default=0)
    selling_price = Column(Numeric(18, 2), nullable=False, default=0)

    min_stock_level = Column(Integer, nullable=False, default=0)
    max_stock_level = Column(Integer, nullable=True)
    reorder_point = Column(Integer, nullable=False, default=0)
    current_stock = Column(Integer, nullable=False, default=0)
    available_stock = Column(Integer, nullable=False, default=0)

    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    sync_status = Column(enum_column(SyncStatus, "sync_status_enum"), nullable=False, default=SyncStatus.SYNCED)
    last_synced = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_products_category_id", "category_id"),
        Index("idx_products_sync_status", "sync_status"),
    )
