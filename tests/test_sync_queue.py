from conftest import make_product
from store_edge.core.time_utils import utcnow
from store_edge.db.models.enums import MovementType, QueueOperation, SyncStatus
from store_edge.db.schemas import StockMovementData
from store_edge.domain.sync.queue import SyncQueue


def _movement(quantity, movement_id="mv-1"):
    return StockMovementData(
        id=movement_id,
        product_id="prod-1",
        movement_type=MovementType.ADJUSTMENT,
        quantity=quantity,
    )


def test_last_write_wins_for_the_same_record(store, run_with_store):
    queue = SyncQueue(store)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_stock_movement(_movement(5))
        await store.save_stock_movement(_movement(-2))
        await store.save_stock_movement(_movement(3, movement_id="mv-2"))
        return await queue.pending("stock_movements"), await queue.size()

    pending, size = run_with_store(scenario)

    assert size == 3
    assert [record.record_id for record in pending] == ["mv-1", "mv-2"]
    first = pending[0]
    assert first.payload["quantity"] == -2
    assert first.latest.operation == QueueOperation.UPDATE
    assert len(first.entry_ids) == 2


def test_acknowledge_drops_every_entry_for_the_record(store, run_with_store):
    queue = SyncQueue(store)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_stock_movement(_movement(5))
        await store.save_stock_movement(_movement(6))
        [record] = await queue.pending("stock_movements")
        await queue.acknowledge(record, utcnow())
        return await queue.size(), await store.get_stock_movement("mv-1")

    size, movement = run_with_store(scenario)

    assert size == 0
    assert movement.sync_status == SyncStatus.SYNCED
    assert movement.quantity == 6


def test_records_past_the_retry_ceiling_are_held_back(store, run_with_store):
    queue = SyncQueue(store, max_retries=2)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_stock_movement(_movement(5))
        first = await queue.fail("stock_movements", "mv-1", "HTTP 500")
        still_pending = await queue.pending("stock_movements")
        second = await queue.fail("stock_movements", "mv-1", "HTTP 500")
        return first, still_pending, second, await queue.pending("stock_movements"), await queue.size()

    first, still_pending, second, pending, size = run_with_store(scenario)

    assert (first, second) == (1, 2)
    assert len(still_pending) == 1
    assert pending == []
    assert size == 1


def test_failure_message_is_kept_on_the_entry(store, run_with_store):
    queue = SyncQueue(store)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_stock_movement(_movement(1))
        await queue.fail("stock_movements", "mv-1", "Remote endpoint rejected the request")
        return await store.get_sync_queue("stock_movements")

    [entry] = run_with_store(scenario)

    assert entry.retry_count == 1
    assert entry.last_error == "Remote endpoint rejected the request"


def test_fail_for_unqueued_record_is_a_no_op(store, run_with_store):
    queue = SyncQueue(store)

    async def scenario():
        return await queue.fail("stock_movements", "unknown", "boom")

    assert run_with_store(scenario) == 0
