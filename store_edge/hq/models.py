# store_edge/hq/models.py
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

from store_edge.core.time_utils import utcnow
from store_edge.db.models.enums import MovementType, PaymentStatus, enum_column

HQBase = declarative_base()


def _new_id() -> str:
    return str(uuid4())


class HQCategory(HQBase):
    __tablename__ = "hq_categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=True)
    icon = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class HQSupplier(HQBase):
    __tablename__ = "hq_suppliers"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    contact_person = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class HQProduct(HQBase):
    __tablename__ = "hq_products"

    """Authoritative catalog entry."""

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(String(36), ForeignKey("hq_categories.id"), nullable=True)
    supplier_id = Column(String(36), ForeignKey("hq_suppliers.id"), nullable=True)
    sku = Column(String, nullable=True)
    barcode = Column(String, nullable=True)
    unit = Column(String, nullable=False, default="EA")
    cost_price = Column(Numeric(18, 2), nullable=False, default=0)
    selling_price = Column(Numeric(18, 2), nullable=False, default=0)
    min_stock_level = Column(Integer, nullable=False, default=0)
    max_stock_level = Column(Integer, nullable=True)
    reorder_point = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    category = relationship(HQCategory, lazy="raise")
    supplier = relationship(HQSupplier, lazy="raise")
    inventory_level = relationship("HQInventoryLevel", uselist=False, back_populates="product", lazy="raise")


class HQInventoryLevel(HQBase):
    __tablename__ = "hq_inventory_levels"

    """On-hand and available quantity per product, as HQ sees it."""

    id = Column(String(36), primary_key=True, default=_new_id)
    product_id = Column(String(36), ForeignKey("hq_products.id"), nullable=False, unique=True)

    current_stock = Column(Integer, nullable=False, default=0)
    reserved_stock = Column(Integer, nullable=False, default=0)
    available_stock = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    product = relationship(HQProduct, back_populates="inventory_level", lazy="raise")


class HQSale(HQBase):
    __tablename__ = "hq_sales"

    id = Column(String(36), primary_key=True, default=_new_id)
    sale_number = Column(String, nullable=False)
    store_id = Column(String, nullable=True)

    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)

    subtotal = Column(Numeric(18, 2), nullable=False)
    tax_amount = Column(Numeric(18, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(18, 2), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False)

    payment_method = Column(String, nullable=False)
    payment_status = Column(enum_column(PaymentStatus, "payment_status_enum"), nullable=False)
    cashier_id = Column(String, nullable=False)
    notes = Column(Text, nullable=True)

    client_created_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("sale_number", name="uq_hq_sales_sale_number"),
    )


class HQSaleItem(HQBase):
    __tablename__ = "hq_sale_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    sale_id = Column(String(36), ForeignKey("hq_sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    total_price = Column(Numeric(18, 2), nullable=False)
    discount = Column(Numeric(18, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class HQStockMovement(HQBase):
    __tablename__ = "hq_stock_movements"

    id = Column(String(36), primary_key=True, default=_new_id)
    product_id = Column(String(36), ForeignKey("hq_products.id"), nullable=False)
    movement_type = Column(enum_column(MovementType, "movement_type_enum"), nullable=False)
    quantity = Column(Integer, nullable=False)
    reference_number = Column(String, nullable=True)
    reference_type = Column(String, nullable=True)
    reference_id = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    user_id = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_hq_stock_movements_natural_key", "reference_number", "product_id", "quantity"),
    )
