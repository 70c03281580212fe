from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from store_edge.db.models.sync_queue import SyncQueueItem


async def list_queue_items(
    db: AsyncSession,
    table_name: Optional[str] = None
) -> List[SyncQueueItem]:
    stmt = select(SyncQueueItem)
    if table_name:
        stmt = stmt.where(SyncQueueItem.table_name == table_name)
    result = await db.execute(stmt.order_by(SyncQueueItem.created_at, SyncQueueItem.id))
    return list(result.scalars().all())


async def get_queue_item(
    db: AsyncSession,
    item_id: int
) -> Optional[SyncQueueItem]:
    result = await db.execute(
        select(SyncQueueItem).where(SyncQueueItem.id == item_id)
    )
    return result.scalar_one_or_none()


async def delete_queue_items(
    db: AsyncSession,
    item_ids: Iterable[int]
) -> int:
    ids = list(item_ids)
    if not ids:
        return 0
    result = await db.execute(
        delete(SyncQueueItem).where(SyncQueueItem.id.in_(ids))
    )
    return result.rowcount


async def delete_record_items(
    db: AsyncSession,
    table_name: str,
    record_id: str,
    before: Optional[datetime] = None,
) -> int:
    stmt = delete(SyncQueueItem).where(
        SyncQueueItem.table_name == table_name,
        SyncQueueItem.record_id == record_id,
    )
    if before is not None:
        stmt = stmt.where(SyncQueueItem.created_at < before)
    result = await db.execute(stmt)
    return result.rowcount
