from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base


class SaleItem(Base):
    __tablename__ = "sale_items"

    """A single product line within a sale.

    Product id, name and price are snapshotted at the time of sale so that
    historical receipts do not change when the catalog is later edited.
    """

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    sale_id = Column(String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = Column(String(36), nullable=False, index=True)
    product_name = Column(String, nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    total_price = Column(Numeric(18, 2), nullable=False)
    discount = Column(Numeric(18, 2), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
