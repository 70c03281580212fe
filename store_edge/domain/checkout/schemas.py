# store_edge/domain/checkout/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from store_edge.db.models.enums import PaymentStatus, SyncStatus


class CheckoutItem(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    discount: Decimal = Decimal("0")


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = Field(min_length=1)
    payment_method: str
    cashier_id: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None
    notes: Optional[str] = None


class SaleItemOut(BaseModel):
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: str
    sale_number: str
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Optional[Decimal]
    total_amount: Decimal
    payment_method: str
    payment_status: PaymentStatus
    cashier_id: str
    created_at: datetime
    sync_status: SyncStatus
    last_synced: Optional[datetime]
    items: List[SaleItemOut] = []

    class Config:
        from_attributes = True
