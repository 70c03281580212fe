from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from store_edge.core.time_utils import utcnow
from store_edge.db.models.enums import MovementType, PaymentStatus, QueueOperation, SyncStatus


def _new_id() -> str:
    return str(uuid4())


class CategoryData(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

    class Config:
        from_attributes = True


class SupplierData(BaseModel):
    id: str
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class ProductData(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    supplier_id: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    unit: str = "EA"
    cost_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    min_stock_level: int = 0
    max_stock_level: Optional[int] = None
    reorder_point: int = 0
    image_url: Optional[str] = None
    is_active: bool = True
    current_stock: int = 0
    available_stock: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    sync_status: SyncStatus = SyncStatus.PENDING
    last_synced: Optional[datetime] = None

    class Config:
        from_attributes = True


class SaleData(BaseModel):
    id: str = Field(default_factory=_new_id)
    sale_number: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    subtotal: Decimal
    tax_amount: Decimal = Decimal("0")
    discount_amount: Optional[Decimal] = None
    total_amount: Decimal
    payment_method: str
    payment_status: PaymentStatus = PaymentStatus.COMPLETED
    cashier_id: str
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    sync_status: SyncStatus = SyncStatus.PENDING
    last_synced: Optional[datetime] = None

    class Config:
        from_attributes = True


class SaleItemData(BaseModel):
    id: str = Field(default_factory=_new_id)
    sale_id: Optional[str] = None
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount: Decimal = Decimal("0")
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True


class StockMovementData(BaseModel):
    id: str = Field(default_factory=_new_id)
    product_id: str
    movement_type: MovementType
    quantity: int
    reference_number: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    sync_status: SyncStatus = SyncStatus.PENDING
    last_synced: Optional[datetime] = None

    class Config:
        from_attributes = True


class SyncQueueEntry(BaseModel):
    id: int
    table_name: str
    record_id: str
    operation: QueueOperation
    payload: Dict[str, Any]
    created_at: datetime
    retry_count: int = 0
    last_error: Optional[str] = None

    class Config:
        from_attributes = True
