from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from store_edge.db.models.enums import SyncStatus
from store_edge.db.models.sale_items import SaleItem
from store_edge.db.models.sales import Sale


async def get_sale_by_id(
    db: AsyncSession,
    sale_id: str
) -> Optional[Sale]:
    result = await db.execute(
        select(Sale).where(Sale.id == sale_id)
    )
    return result.scalar_one_or_none()


async def get_sale_items(
    db: AsyncSession,
    sale_id: str
) -> List[SaleItem]:
    result = await db.execute(
        select(SaleItem).where(SaleItem.sale_id == sale_id).order_by(SaleItem.created_at)
    )
    return list(result.scalars().all())


async def get_sales_by_status(
    db: AsyncSession,
    status: SyncStatus
) -> List[Sale]:
    # oldest first: stock effects replay in the order they happened
    result = await db.execute(
        select(Sale).where(Sale.sync_status == status).order_by(Sale.created_at)
    )
    return list(result.scalars().all())
