# store_edge/db/store.py
"""Durable local store for the offline-capable edge.

Every mutation that must reach HQ is written together with its sync queue
entry in one transaction: either both rows exist afterwards or neither does.
"""
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.sql import select

from store_edge.core.errors import (
    ConstraintViolationError,
    InsufficientStockError,
    NotFoundError,
    StorageUnavailableError,
    StoreNotInitializedError,
)
from store_edge.core.time_utils import utcnow
from store_edge.db.base import Base, make_engine, make_sessionmaker
from store_edge.db.models.categories import Category
from store_edge.db.models.enums import QueueOperation, SyncStatus
from store_edge.db.models.products import Product
from store_edge.db.models.sale_items import SaleItem
from store_edge.db.models.sales import Sale
from store_edge.db.models.stock_movements import StockMovement
from store_edge.db.models.suppliers import Supplier
from store_edge.db.models.sync_cursors import SyncCursor
from store_edge.db.models.sync_queue import SyncQueueItem
from store_edge.db.repositories import products as product_repo
from store_edge.db.repositories import sales as sale_repo
from store_edge.db.repositories import sync_cursors as cursor_repo
from store_edge.db.repositories import sync_queue as queue_repo
from store_edge.db.schemas import (
    CategoryData,
    ProductData,
    SaleData,
    SaleItemData,
    StockMovementData,
    SupplierData,
    SyncQueueEntry,
)

logger = logging.getLogger(__name__)

SYNCED_TABLES = {
    "products": Product,
    "sales": Sale,
    "stock_movements": StockMovement,
}

# children before parents
_CLEAR_ORDER = [SyncQueueItem, SyncCursor, SaleItem, Sale, StockMovement, Product, Supplier, Category]


class LocalStore:
    def __init__(self, db_url: str):
        self._db_url = db_url
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None
        # awaited between the entity write and its queue write
        self._before_queue_write = None

    @property
    def is_initialized(self) -> bool:
        return self._sessions is not None

    async def initialize(self) -> None:
        if self._sessions is not None:
            return

        engine = make_engine(self._db_url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            await engine.dispose()
            logger.error("Offline database initialization failed: %s", exc)
            raise StorageUnavailableError(f"Cannot open local store: {exc}") from exc

        self._engine = engine
        self._sessions = make_sessionmaker(engine)
        logger.info("Offline database initialized")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None

    def _require(self) -> async_sessionmaker:
        if self._sessions is None:
            raise StoreNotInitializedError()
        return self._sessions

    @asynccontextmanager
    async def _transaction(self):
        sessions = self._require()
        try:
            async with sessions.begin() as db:
                yield db
        except IntegrityError as exc:
            raise ConstraintViolationError(str(exc.orig)) from exc

    @asynccontextmanager
    async def _reading(self):
        async with self._require()() as db:
            yield db

    @staticmethod
    def _model_for(table_name: str):
        try:
            return SYNCED_TABLES[table_name]
        except KeyError:
            raise ValueError(f"Unknown sync table: {table_name}") from None

    async def _enqueue(self, db, table_name: str, record_id: str, operation: QueueOperation, payload: Dict[str, Any]) -> SyncQueueItem:
        await db.flush()
        if self._before_queue_write is not None:
            await self._before_queue_write(table_name, record_id)

        item = SyncQueueItem(
            table_name=table_name,
            record_id=record_id,
            operation=operation,
            payload=payload,
            created_at=utcnow(),
        )
        db.add(item)
        await db.flush()
        logger.debug("Queued %s %s/%s", operation.value, table_name, record_id)
        return item

    # Products

    async def get_products(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        active: Optional[bool] = True,
    ) -> List[ProductData]:
        async with self._reading() as db:
            rows = await product_repo.get_products(db, category_id=category_id, search=search, active=active)
            return [ProductData.model_validate(row) for row in rows]

    async def get_product(self, product_id: str) -> Optional[ProductData]:
        async with self._reading() as db:
            row = await product_repo.get_product_by_id(db, product_id)
            return ProductData.model_validate(row) if row is not None else None

    async def get_available_stock(self, product_id: str) -> int:
        async with self._reading() as db:
            product = await product_repo.get_product_by_id(db, product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            return await product_repo.get_available_stock(db, product)

    async def save_product(self, product: ProductData) -> None:
        async with self._transaction() as db:
            existing = await db.get(Product, product.id)
            await db.merge(Product(**product.model_dump()))
            if product.sync_status != SyncStatus.SYNCED:
                operation = QueueOperation.UPDATE if existing is not None else QueueOperation.CREATE
                await self._enqueue(db, "products", product.id, operation, product.model_dump(mode="json"))

    async def apply_pulled_product(
        self,
        product: ProductData,
        category: Optional[CategoryData] = None,
        supplier: Optional[SupplierData] = None,
    ) -> None:
        """Write an authoritative catalog entry (and its joined rows) without queueing it."""
        async with self._transaction() as db:
            if category is not None:
                await db.merge(Category(**category.model_dump()))
            if supplier is not None:
                await db.merge(Supplier(**supplier.model_dump()))
            await db.flush()
            await db.merge(Product(**product.model_dump()))

    async def apply_inventory_level(self, product_id: str, current_stock: int, available_stock: int, at: datetime) -> bool:
        async with self._transaction() as db:
            result = await db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(
                    current_stock=current_stock,
                    available_stock=available_stock,
                    sync_status=SyncStatus.SYNCED,
                    last_synced=at,
                )
            )
        return result.rowcount > 0

    # Sales

    async def save_sale(self, sale: SaleData, items: List[SaleItemData], reserve_stock: bool = False) -> None:
        if not items:
            raise ConstraintViolationError("A sale must have at least one item")

        rows = [item.model_copy(update={"sale_id": sale.id}) for item in items]
        async with self._transaction() as db:
            if reserve_stock:
                await self._reserve_stock(db, rows)

            db.add(Sale(**sale.model_dump()))
            await db.flush()
            db.add_all([SaleItem(**row.model_dump()) for row in rows])

            payload = {
                "sale": sale.model_dump(mode="json"),
                "items": [row.model_dump(mode="json") for row in rows],
            }
            await self._enqueue(db, "sales", sale.id, QueueOperation.CREATE, payload)

    async def _reserve_stock(self, db, items: Iterable[SaleItemData]) -> None:
        wanted = defaultdict(int)
        for item in items:
            wanted[item.product_id] += item.quantity

        for product_id, quantity in wanted.items():
            product = await product_repo.get_product_by_id(db, product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            available = await product_repo.get_available_stock(db, product)
            if quantity > available:
                raise InsufficientStockError(
                    f"Insufficient stock for product {product.name}",
                    details={"product_id": product_id, "requested": quantity, "available": available},
                )

    async def get_sale(self, sale_id: str) -> Optional[SaleData]:
        async with self._reading() as db:
            row = await sale_repo.get_sale_by_id(db, sale_id)
            return SaleData.model_validate(row) if row is not None else None

    async def get_sale_items(self, sale_id: str) -> List[SaleItemData]:
        async with self._reading() as db:
            rows = await sale_repo.get_sale_items(db, sale_id)
            return [SaleItemData.model_validate(row) for row in rows]

    async def get_pending_sales(self) -> List[SaleData]:
        async with self._reading() as db:
            rows = await sale_repo.get_sales_by_status(db, SyncStatus.PENDING)
            return [SaleData.model_validate(row) for row in rows]

    # Stock movements

    async def save_stock_movement(self, movement: StockMovementData) -> None:
        async with self._transaction() as db:
            existing = await db.get(StockMovement, movement.id)
            await db.merge(StockMovement(**movement.model_dump()))
            if movement.sync_status != SyncStatus.SYNCED:
                operation = QueueOperation.UPDATE if existing is not None else QueueOperation.CREATE
                await self._enqueue(db, "stock_movements", movement.id, operation, movement.model_dump(mode="json"))

    async def apply_pulled_movement(self, movement: StockMovementData) -> bool:
        """Insert a movement recorded elsewhere; local rows and unknown products are left alone."""
        async with self._transaction() as db:
            if await db.get(StockMovement, movement.id) is not None:
                return False
            if await db.get(Product, movement.product_id) is None:
                return False
            db.add(StockMovement(**movement.model_dump()))
        return True

    async def get_stock_movement(self, movement_id: str) -> Optional[StockMovementData]:
        async with self._reading() as db:
            row = await db.get(StockMovement, movement_id)
            return StockMovementData.model_validate(row) if row is not None else None

    # Sync queue

    async def add_to_sync_queue(self, table_name: str, record_id: str, operation: QueueOperation, payload: Dict[str, Any]) -> SyncQueueEntry:
        async with self._transaction() as db:
            item = await self._enqueue(db, table_name, record_id, QueueOperation(operation), payload)
            return SyncQueueEntry.model_validate(item)

    async def get_sync_queue(self, table_name: Optional[str] = None) -> List[SyncQueueEntry]:
        async with self._reading() as db:
            rows = await queue_repo.list_queue_items(db, table_name)
            return [SyncQueueEntry.model_validate(row) for row in rows]

    async def remove_from_sync_queue(self, item_id: int) -> bool:
        async with self._transaction() as db:
            removed = await queue_repo.delete_queue_items(db, [item_id])
        return removed > 0

    async def remove_record_from_sync_queue(self, table_name: str, record_id: str, before: Optional[datetime] = None) -> int:
        async with self._transaction() as db:
            return await queue_repo.delete_record_items(db, table_name, record_id, before)

    async def record_sync_failure(self, item_id: int, message: str) -> int:
        async with self._transaction() as db:
            item = await queue_repo.get_queue_item(db, item_id)
            if item is None:
                return 0
            item.retry_count += 1
            item.last_error = message
            return item.retry_count

    async def reset_sync_failures(self) -> int:
        """Put every record marked ``error`` back in line for the next cycle."""
        reset = 0
        async with self._transaction() as db:
            for model in SYNCED_TABLES.values():
                result = await db.execute(
                    update(model)
                    .where(model.sync_status == SyncStatus.ERROR)
                    .values(sync_status=SyncStatus.PENDING)
                )
                reset += result.rowcount
            await db.execute(update(SyncQueueItem).values(retry_count=0))
        return reset

    async def update_sync_status(self, table_name: str, record_id: str, status: SyncStatus) -> bool:
        model = self._model_for(table_name)
        async with self._transaction() as db:
            result = await db.execute(
                update(model).where(model.id == record_id).values(sync_status=SyncStatus(status))
            )
        return result.rowcount > 0

    async def mark_synced(self, table_name: str, record_id: str, at: datetime, queue_item_ids: Iterable[int] = ()) -> None:
        """Flip a record to synced and drop its acknowledged queue entries together."""
        model = self._model_for(table_name)
        async with self._transaction() as db:
            await db.execute(
                update(model)
                .where(model.id == record_id)
                .values(sync_status=SyncStatus.SYNCED, last_synced=at)
            )
            await queue_repo.delete_queue_items(db, queue_item_ids)

    # Checkpoints

    async def get_cursor(self, stream_name: str) -> Optional[datetime]:
        async with self._reading() as db:
            cursor = await cursor_repo.get_cursor_by_stream(db, stream_name)
            return cursor.last_synced_at if cursor is not None else None

    async def set_cursor(self, stream_name: str, at: datetime) -> None:
        async with self._transaction() as db:
            cursor = await cursor_repo.get_cursor_by_stream(db, stream_name)
            if cursor is None:
                db.add(SyncCursor(stream_name=stream_name, last_synced_at=at))
            else:
                cursor.last_synced_at = at

    # Maintenance

    async def count_rows(self, table_name: str) -> int:
        models = {"sync_queue": SyncQueueItem, "sale_items": SaleItem, **SYNCED_TABLES}
        if table_name not in models:
            raise ValueError(f"Unknown table: {table_name}")
        model = models[table_name]
        async with self._reading() as db:
            result = await db.execute(select(func.count()).select_from(model))
            return int(result.scalar())

    async def clear_all(self) -> None:
        """Delete every row in every table. Unsynced sales and movements are lost."""
        async with self._transaction() as db:
            for model in _CLEAR_ORDER:
                await db.execute(delete(model))
        logger.warning("Local store cleared")
