from typing import List, Optional

from sqlalchemy import case, func, or_, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from store_edge.db.models.enums import MovementType, SyncStatus
from store_edge.db.models.products import Product
from store_edge.db.models.sale_items import SaleItem
from store_edge.db.models.sales import Sale
from store_edge.db.models.stock_movements import StockMovement


async def get_products(
    db: AsyncSession,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    active: Optional[bool] = True,
) -> List[Product]:
    stmt = select(Product)
    if active is not None:
        stmt = stmt.where(Product.is_active == active)
    if category_id:
        stmt = stmt.where(Product.category_id == category_id)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.barcode.ilike(pattern),
            )
        )
    result = await db.execute(stmt.order_by(Product.name))
    return list(result.scalars().all())


async def get_product_by_id(
    db: AsyncSession,
    product_id: str
) -> Optional[Product]:
    result = await db.execute(
        select(Product).where(Product.id == product_id)
    )
    return result.scalar_one_or_none()


def _not_in_snapshot(status_column, synced_column, product: Product):
    # rows HQ had not seen when this product's stock snapshot was pulled
    if product.last_synced is None:
        return true()
    return or_(status_column != SyncStatus.SYNCED, synced_column > product.last_synced)


async def get_available_stock(
    db: AsyncSession,
    product: Product
) -> int:
    """Snapshot availability adjusted by local sales and movements HQ has not reflected yet."""
    sold = await db.execute(
        select(func.coalesce(func.sum(SaleItem.quantity), 0))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .where(
            SaleItem.product_id == product.id,
            _not_in_snapshot(Sale.sync_status, Sale.last_synced, product),
        )
    )

    signed_quantity = case(
        (StockMovement.movement_type == MovementType.IN, StockMovement.quantity),
        (StockMovement.movement_type == MovementType.ADJUSTMENT, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )
    moved = await db.execute(
        select(func.coalesce(func.sum(signed_quantity), 0))
        .where(
            StockMovement.product_id == product.id,
            _not_in_snapshot(StockMovement.sync_status, StockMovement.last_synced, product),
        )
    )

    return product.available_stock + int(moved.scalar()) - int(sold.scalar())
