from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from store_edge.db.models.sync_cursors import SyncCursor


async def get_cursor_by_stream(
    db: AsyncSession,
    stream_name: str
) -> Optional[SyncCursor]:
    result = await db.execute(
        select(SyncCursor).where(SyncCursor.stream_name == stream_name)
    )
    return result.scalar_one_or_none()
