# store_edge/domain/inventory/service.py
import logging

from store_edge.core.errors import NotFoundError
from store_edge.db.models.enums import SyncStatus
from store_edge.db.schemas import StockMovementData
from store_edge.db.store import LocalStore
from .schemas import StockMovementCreate

logger = logging.getLogger(__name__)


async def record_stock_movement(store: LocalStore, data: StockMovementCreate) -> StockMovementData:
    product = await store.get_product(data.product_id)
    if product is None:
        raise NotFoundError(f"Product {data.product_id} not found")

    movement = StockMovementData(**data.model_dump(), sync_status=SyncStatus.PENDING)
    await store.save_stock_movement(movement)
    logger.info(
        "Stock movement %s recorded: %s %d of %s",
        movement.id, movement.movement_type.value, movement.quantity, product.name,
    )
    return movement
