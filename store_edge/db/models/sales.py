from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Numeric, String, Text, UniqueConstraint

from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base
from store_edge.db.models.enums import PaymentStatus, SyncStatus, enum_column


class Sale(Base):
    __tablename__ = "sales"

    """A completed checkout (receipt header) recorded at this terminal.

    Totals are fixed at creation time: total = sum(item totals) + tax - discount.
    The sale owns its SaleItem rows; both are written in one transaction and
    replicated to HQ as a single bundle.
    """

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    sale_number = Column(String, nullable=False)

    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)

    subtotal = Column(Numeric(18, 2), nullable=False)
    tax_amount = Column(Numeric(18, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(18, 2), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False)

    payment_method = Column(String, nullable=False)
    payment_status = Column(enum_column(PaymentStatus, "payment_status_enum"), nullable=False, default=PaymentStatus.COMPLETED)
    cashier_id = Column(String, nullable=False)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    sync_status = Column(enum_column(SyncStatus, "sync_status_enum"), nullable=False, default=SyncStatus.PENDING)
    last_synced = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        Index("idx_sales_sync_status", "sync_status"),
        Index("idx_sales_created_at", "created_at"),
    )
