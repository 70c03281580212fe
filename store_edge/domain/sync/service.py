# store_edge/domain/sync/service.py
import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Optional, TypeVar

from store_edge.core.config import Settings
from store_edge.core.errors import ConstraintViolationError, NetworkUnavailableError, RemoteRejectedError, StoreEdgeError
from store_edge.core.time_utils import to_utc_z, utcnow
from store_edge.db.models.enums import SyncStatus
from store_edge.db.schemas import ProductData, StockMovementData
from store_edge.db.store import LocalStore
from store_edge.domain.sync.network import NetworkMonitor
from store_edge.domain.sync.queue import SyncQueue
from store_edge.domain.sync.remote import RemoteSyncEndpoint
from store_edge.domain.sync.schemas import PulledProduct, SyncResult, SyncStatusOut

logger = logging.getLogger(__name__)

T = TypeVar("T")

CYCLE_STREAM = "cycle"
PRODUCTS_STREAM = "products"
# first delta pull asks HQ for everything; later checkpoints are HQ server_time
DELTA_EPOCH = datetime(1970, 1, 1)

NO_NETWORK = "No network connection"
ALREADY_SYNCING = "Sync already in progress"

REMOTE_ERRORS = (NetworkUnavailableError, RemoteRejectedError)


class SyncOrchestrator:
    """Runs sync cycles: pull the catalog, push pending sales, push queued movements.

    One instance per process, built with its collaborators. The syncing flag
    lives in memory only, so a crash mid-cycle never leaves the next process
    stuck in ``syncing``.
    """

    def __init__(
        self,
        store: LocalStore,
        monitor: NetworkMonitor,
        remote: RemoteSyncEndpoint,
        settings: Settings,
    ):
        self._store = store
        self._monitor = monitor
        self._remote = remote
        self._settings = settings
        self._queue = SyncQueue(store, max_retries=settings.SYNC_MAX_RETRIES)
        self._active = 0
        self._last_sync_time: Optional[str] = None

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    @property
    def is_syncing(self) -> bool:
        return self._active > 0

    @property
    def last_sync_time(self) -> Optional[str]:
        return self._last_sync_time

    def set_last_sync_time(self, value: str) -> None:
        self._last_sync_time = value

    async def load_checkpoint(self) -> None:
        at = await self._store.get_cursor(CYCLE_STREAM)
        if at is not None:
            self._last_sync_time = to_utc_z(at)

    async def status(self) -> SyncStatusOut:
        return SyncStatusOut(
            is_online=self._monitor.is_connected(),
            is_syncing=self.is_syncing,
            last_sync_time=self._last_sync_time,
            queued_items=await self._queue.size(),
        )

    def _not_attempted(self, reason: str) -> SyncResult:
        return SyncResult(
            success=False,
            synced_items=0,
            errors=[reason],
            last_sync_time=self._last_sync_time or to_utc_z(utcnow()),
        )

    async def sync(self, force: bool = False) -> SyncResult:
        if self._active and not force:
            logger.info("Sync already in progress")
            return self._not_attempted(ALREADY_SYNCING)

        if not self._monitor.is_connected():
            logger.info("Sync skipped - no network connection")
            return self._not_attempted(NO_NETWORK)

        self._active += 1
        started = utcnow()
        clock = time.monotonic()
        try:
            logger.info("Starting data sync")
            result = SyncResult(success=True, last_sync_time=to_utc_z(started))

            await self._pull_products(result, started)
            await self._push_sales(result)
            await self._push_stock_movements(result)

            result.success = not result.errors
            self._last_sync_time = result.last_sync_time
            await self._store.set_cursor(CYCLE_STREAM, started)

            logger.info(
                "Data sync completed: %d synced, %d errors in %.2fs",
                result.synced_items,
                len(result.errors),
                time.monotonic() - clock,
            )
            return result
        except Exception as exc:
            logger.exception("Data sync failed")
            return self._not_attempted(str(exc) or exc.__class__.__name__)
        finally:
            self._active -= 1

    async def force_sync(self) -> SyncResult:
        return await self.sync(force=True)

    async def handle_app_state_change(self, state: str) -> Optional[SyncResult]:
        """Sync when the app returns to the foreground while online."""
        if state == "active" and self._monitor.is_connected():
            logger.info("App foregrounded - starting background sync")
            return await self.sync()
        return None

    async def retry_failed(self) -> int:
        reset = await self._store.reset_sync_failures()
        logger.info("Re-queued %d records that had given up syncing", reset)
        return reset

    async def _call(self, awaitable: Awaitable[T]) -> T:
        timeout = self._settings.SYNC_CALL_TIMEOUT
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout or None)
        except asyncio.TimeoutError as exc:
            raise NetworkUnavailableError(f"Timed out after {timeout:g}s") from exc

    async def _record_failure(self, table_name: str, record_id: str, message: str) -> None:
        retries = await self._queue.fail(table_name, record_id, message)
        if self._queue.exhausted(retries):
            await self._store.update_sync_status(table_name, record_id, SyncStatus.ERROR)
            logger.error("%s (giving up after %d attempts)", message, retries)
        else:
            logger.warning(message)

    @staticmethod
    def _to_local_product(pulled: PulledProduct, at: datetime) -> ProductData:
        level = pulled.inventory_level
        return ProductData(
            **pulled.model_dump(exclude={"category", "supplier", "inventory_level"}),
            current_stock=level.current_stock if level else 0,
            available_stock=level.available_stock if level else 0,
            sync_status=SyncStatus.SYNCED,
            last_synced=at,
        )

    async def _pull_products(self, result: SyncResult, started: datetime) -> None:
        checkpoint = None
        if self._settings.SYNC_PULL_MODE == "delta":
            checkpoint = await self._store.get_cursor(PRODUCTS_STREAM) or DELTA_EPOCH

        deltas = None
        try:
            if checkpoint is not None:
                deltas = await self._call(self._remote.pull_deltas_since(checkpoint))
                products = deltas.products
            else:
                products = await self._call(self._remote.pull_products())
        except REMOTE_ERRORS as exc:
            result.errors.append(f"Failed to fetch products: {exc.message}")
            return

        failed = False
        for pulled in products:
            try:
                await self._store.apply_pulled_product(
                    self._to_local_product(pulled, started),
                    category=pulled.category,
                    supplier=pulled.supplier,
                )
            except ConstraintViolationError as exc:
                failed = True
                result.errors.append(f"Product sync error for {pulled.name}: {exc.message}")
                continue
            # the authoritative copy replaces local edits queued before this cycle
            await self._queue.discard_superseded("products", pulled.id, before=started)
            result.synced_items += 1

        if deltas is not None:
            for level in deltas.inventory_levels:
                await self._store.apply_inventory_level(
                    level.product_id, level.current_stock, level.available_stock, started
                )
            for movement in deltas.stock_movements:
                await self._store.apply_pulled_movement(
                    movement.model_copy(update={"sync_status": SyncStatus.SYNCED, "last_synced": started})
                )

        if deltas is not None and not failed:
            await self._store.set_cursor(PRODUCTS_STREAM, deltas.server_time)

        logger.info("Products synced: %d", len(products))

    async def _push_sales(self, result: SyncResult) -> None:
        for sale in await self._store.get_pending_sales():
            try:
                items = await self._store.get_sale_items(sale.id)
                ack = await self._call(self._remote.push_sale(sale, items))
            except StoreEdgeError as exc:
                message = f"Failed to sync sale {sale.sale_number}: {exc.message}"
                result.errors.append(message)
                await self._record_failure("sales", sale.id, message)
                continue

            entries = await self._queue.entries_for("sales", sale.id)
            await self._store.mark_synced("sales", sale.id, utcnow(), [entry.id for entry in entries])
            result.synced_items += 1

            if ack.is_conflict:
                logger.info("Sale %s already on server, kept server copy", sale.sale_number)
            else:
                logger.info("Sale synced: %s", sale.sale_number)

    async def _push_stock_movements(self, result: SyncResult) -> None:
        for record in await self._queue.pending("stock_movements"):
            movement = StockMovementData.model_validate(record.payload)
            try:
                ack = await self._call(self._remote.push_stock_movement(movement))
            except REMOTE_ERRORS as exc:
                message = f"Failed to sync stock movement {movement.id}: {exc.message}"
                result.errors.append(message)
                await self._record_failure("stock_movements", movement.id, message)
                continue

            await self._queue.acknowledge(record, utcnow())
            result.synced_items += 1
            logger.info("Stock movement synced: %s (%s)", movement.id, ack.status)
