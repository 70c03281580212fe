# store_edge/domain/sync/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from store_edge.core.time_utils import utcnow
from store_edge.db.schemas import CategoryData, SaleData, SaleItemData, StockMovementData, SupplierData


class InventoryLevelData(BaseModel):
    product_id: str
    current_stock: int = 0
    available_stock: int = 0
    reserved_stock: int = 0
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PulledProduct(BaseModel):
    """Authoritative catalog entry as served by HQ, joined with category,
    supplier and stock level."""

    id: str
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
    created_at: datetime
    updated_at: datetime

    category: Optional[CategoryData] = None
    supplier: Optional[SupplierData] = None
    inventory_level: Optional[InventoryLevelData] = None

    class Config:
        from_attributes = True


class SaleBundle(BaseModel):
    sale: SaleData
    items: List[SaleItemData]


class PushAck(BaseModel):
    # "conflict": HQ already had the record and kept its own version
    status: Literal["created", "conflict"]
    id: str
    sale_number: Optional[str] = None

    @property
    def is_conflict(self) -> bool:
        return self.status == "conflict"


class SyncDeltas(BaseModel):
    products: List[PulledProduct] = []
    inventory_levels: List[InventoryLevelData] = []
    stock_movements: List[StockMovementData] = []
    server_time: datetime = Field(default_factory=utcnow)


class SyncResult(BaseModel):
    success: bool
    synced_items: int = 0
    errors: List[str] = []
    last_sync_time: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class SyncStatusOut(BaseModel):
    is_online: bool
    is_syncing: bool
    last_sync_time: Optional[str] = None
    queued_items: int

    class Config:
        alias_generator = to_camel
        populate_by_name = True
