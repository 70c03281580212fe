import asyncio
from decimal import Decimal

from conftest import FakeRemote, make_product, make_pulled, make_sale
from store_edge.core.errors import NetworkUnavailableError, StorageUnavailableError
from store_edge.db.models.enums import MovementType, SyncStatus
from store_edge.db.schemas import StockMovementData
from store_edge.domain.checkout.schemas import CheckoutRequest
from store_edge.domain.checkout.service import checkout
from store_edge.domain.sync.network import NetworkMonitor
from store_edge.domain.sync.schemas import PulledProduct
from store_edge.domain.sync.service import DELTA_EPOCH, SyncOrchestrator


def _orchestrator(store, remote, settings, connected=True):
    return SyncOrchestrator(store, NetworkMonitor(connected=connected), remote, settings)


def test_offline_sync_makes_no_remote_calls(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings, connected=False)

    async def scenario():
        return await orchestrator.sync(), await orchestrator.sync(force=True)

    result, forced = run_with_store(scenario)

    assert result.success is False
    assert result.errors == ["No network connection"]
    assert forced.errors == ["No network connection"]
    assert remote.calls == []


def test_cycle_pulls_then_pushes_sales_then_movements(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    sale, items = make_sale("S-1")

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(sale, items)
        await store.save_stock_movement(StockMovementData(
            id="mv-1", product_id="prod-1", movement_type=MovementType.IN, quantity=12,
        ))
        result = await orchestrator.sync()
        return result, await store.get_sale(sale.id), await orchestrator.queue.size()

    result, synced_sale, queued = run_with_store(scenario)

    assert remote.calls == ["pull_products", ("push_sale", "S-1"), ("push_stock_movement", "mv-1")]
    assert result.success is True
    assert result.errors == []
    assert result.synced_items == 3
    assert synced_sale.sync_status == SyncStatus.SYNCED
    assert queued == 0
    assert orchestrator.last_sync_time == result.last_sync_time
    assert result.last_sync_time.endswith("Z")


def test_one_failing_sale_does_not_stop_the_rest(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    remote.fail_sales.add("S-1")
    first, first_items = make_sale("S-1", minutes_ago=2)
    second, second_items = make_sale("S-2", minutes_ago=1)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(first, first_items)
        await store.save_sale(second, second_items)
        result = await orchestrator.sync()
        return (
            result,
            await store.get_sale(first.id),
            await store.get_sale(second.id),
            await store.get_sync_queue("sales"),
        )

    result, failed, pushed, queue = run_with_store(scenario)

    assert result.success is False
    assert result.errors == ["Failed to sync sale S-1: Internal server error"]
    assert result.synced_items == 2
    assert failed.sync_status == SyncStatus.PENDING
    assert pushed.sync_status == SyncStatus.SYNCED
    assert [(entry.record_id, entry.retry_count) for entry in queue] == [(first.id, 1)]


def test_pull_failure_still_pushes(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    remote.pull_error = NetworkUnavailableError("Connection refused")
    sale, items = make_sale("S-1")

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(sale, items)
        return await orchestrator.sync()

    result = run_with_store(scenario)

    assert result.success is False
    assert result.errors == ["Failed to fetch products: Connection refused"]
    assert ("push_sale", "S-1") in remote.calls
    assert result.synced_items == 1


def test_concurrent_sync_is_rejected(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    remote.delay = 0.3

    async def scenario():
        first = asyncio.ensure_future(orchestrator.sync())
        await asyncio.sleep(0.05)
        syncing = orchestrator.is_syncing
        second = await orchestrator.sync()
        return syncing, second, await first, orchestrator.is_syncing

    syncing, second, first, still_syncing = run_with_store(scenario)

    assert syncing is True
    assert second.success is False
    assert second.errors == ["Sync already in progress"]
    assert first.success is True
    assert still_syncing is False
    assert remote.calls.count("pull_products") == 1


def test_slow_remote_call_times_out(store, run_with_store, remote, settings):
    settings.SYNC_CALL_TIMEOUT = 0.05
    orchestrator = _orchestrator(store, remote, settings)
    remote.delay = 2

    async def scenario():
        return await orchestrator.sync()

    result = run_with_store(scenario)

    assert result.success is False
    assert result.errors == ["Failed to fetch products: Timed out after 0.05s"]
    assert orchestrator.is_syncing is False


def test_unexpected_error_yields_failed_result(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)

    async def scenario():
        await store.close()
        return await orchestrator.sync()

    result = run_with_store(scenario)

    assert result.success is False
    assert result.errors == ["Database not initialized"]
    assert orchestrator.is_syncing is False


def test_checkout_totals_reach_the_remote(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)

    async def scenario():
        await orchestrator.sync()
        sale, _ = await checkout(store, CheckoutRequest(
            items=[{"product_id": "prod-1", "quantity": 1}],
            payment_method="card",
            cashier_id="cashier-1",
        ), settings)
        result = await orchestrator.sync()
        return sale, result, await store.get_sale(sale.id)

    sale, result, stored = run_with_store(scenario)

    assert (sale.subtotal, sale.tax_amount, sale.total_amount) == (
        Decimal("10.00"), Decimal("0.80"), Decimal("10.80"),
    )
    assert result.success is True
    pushed, pushed_items = remote.sales[sale.sale_number]
    assert pushed.total_amount == Decimal("10.80")
    assert [item.quantity for item in pushed_items] == [1]
    assert stored.sync_status == SyncStatus.SYNCED


def test_conflict_ack_counts_as_synced(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    sale, items = make_sale("S-1")
    remote.sales["S-1"] = make_sale("S-1")

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(sale, items)
        return await orchestrator.sync(), await store.get_sale(sale.id)

    result, stored = run_with_store(scenario)

    assert result.success is True
    assert stored.sync_status == SyncStatus.SYNCED


def test_retry_ceiling_marks_error_until_retried(store, run_with_store, remote, settings):
    settings.SYNC_MAX_RETRIES = 2
    orchestrator = _orchestrator(store, remote, settings)
    remote.fail_sales.add("S-1")
    sale, items = make_sale("S-1")

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(sale, items)
        await orchestrator.sync()
        await orchestrator.sync()
        gave_up = await store.get_sale(sale.id)
        pushes_before = remote.calls.count(("push_sale", "S-1"))
        await orchestrator.sync()
        pushes_after = remote.calls.count(("push_sale", "S-1"))

        remote.fail_sales.clear()
        requeued = await orchestrator.retry_failed()
        result = await orchestrator.sync()
        return gave_up, pushes_before, pushes_after, requeued, result, await store.get_sale(sale.id)

    gave_up, pushes_before, pushes_after, requeued, result, stored = run_with_store(scenario)

    assert gave_up.sync_status == SyncStatus.ERROR
    assert pushes_before == pushes_after == 2
    assert requeued == 1
    assert result.success is True
    assert stored.sync_status == SyncStatus.SYNCED


def test_pulled_catalog_replaces_queued_local_edits(store, run_with_store, settings):
    remote = FakeRemote(products=[make_pulled(name="Coffee (HQ)", stock=7)])
    orchestrator = _orchestrator(store, remote, settings)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_product(make_product(name="Coffee (local)", sync_status=SyncStatus.PENDING))
        await orchestrator.sync()
        return await store.get_product("prod-1"), await store.get_sync_queue("products")

    product, queue = run_with_store(scenario)

    assert product.name == "Coffee (HQ)"
    assert product.available_stock == 7
    assert product.sync_status == SyncStatus.SYNCED
    assert queue == []


def test_product_with_missing_category_is_reported_per_item(store, run_with_store, settings):
    orphan = make_pulled("prod-2", "Orphan")
    orphan.category_id = "no-such-category"
    remote = FakeRemote(products=[make_pulled(), orphan])
    orchestrator = _orchestrator(store, remote, settings)

    async def scenario():
        return await orchestrator.sync(), await store.get_products()

    result, products = run_with_store(scenario)

    assert result.success is False
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Product sync error for Orphan:")
    assert [p.id for p in products] == ["prod-1"]


def test_delta_mode_checkpoints_on_server_time(store, run_with_store, remote, settings):
    settings.SYNC_PULL_MODE = "delta"
    orchestrator = _orchestrator(store, remote, settings)

    async def scenario():
        await orchestrator.sync()
        await orchestrator.sync()
        return await store.get_cursor("products")

    cursor = run_with_store(scenario)

    assert remote.calls == [
        ("pull_deltas_since", DELTA_EPOCH),
        ("pull_deltas_since", remote.server_time),
    ]
    assert cursor == remote.server_time


def test_last_sync_time_survives_restart(store, run_with_store, remote, settings):
    first = _orchestrator(store, remote, settings)
    second = _orchestrator(store, remote, settings)

    async def scenario():
        result = await first.sync()
        await second.load_checkpoint()
        return result

    result = run_with_store(scenario)

    assert second.last_sync_time == result.last_sync_time


def test_foreground_triggers_sync_only_when_online(store, run_with_store, remote, settings):
    online = _orchestrator(store, remote, settings)
    offline = _orchestrator(store, remote, settings, connected=False)

    async def scenario():
        return (
            await online.handle_app_state_change("background"),
            await offline.handle_app_state_change("active"),
            await online.handle_app_state_change("active"),
        )

    background, offline_result, foreground = run_with_store(scenario)

    assert background is None
    assert offline_result is None
    assert foreground.success is True
    assert remote.calls == ["pull_products"]


def test_status_reports_queue_depth(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings, connected=False)
    sale, items = make_sale("S-1")

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(sale, items)
        return await orchestrator.status()

    status = run_with_store(scenario)

    assert status.model_dump(by_alias=True) == {
        "isOnline": False,
        "isSyncing": False,
        "lastSyncTime": None,
        "queuedItems": 1,
    }


def test_pending_sales_are_pushed_oldest_first(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    newest = make_sale("S-3", minutes_ago=1)
    oldest = make_sale("S-1", minutes_ago=3)
    middle = make_sale("S-2", minutes_ago=2)

    async def scenario():
        await store.apply_pulled_product(make_product())
        for sale, items in (newest, oldest, middle):
            await store.save_sale(sale, items)
        return await orchestrator.sync()

    result = run_with_store(scenario)

    assert result.success is True
    assert [call for call in remote.calls if call[0] == "push_sale"] == [
        ("push_sale", "S-1"), ("push_sale", "S-2"), ("push_sale", "S-3"),
    ]


def test_middle_sale_failure_leaves_neighbours_synced(store, run_with_store, remote, settings):
    orchestrator = _orchestrator(store, remote, settings)
    remote.fail_sales.add("S-2")
    sales = [make_sale(f"S-{n}", minutes_ago=4 - n) for n in (1, 2, 3)]

    async def scenario():
        await store.apply_pulled_product(make_product())
        for sale, items in sales:
            await store.save_sale(sale, items)
        result = await orchestrator.sync()
        stored = [await store.get_sale(sale.id) for sale, _ in sales]
        return result, stored, await store.get_sync_queue("sales")

    result, stored, queue = run_with_store(scenario)

    assert [call[1] for call in remote.calls if call[0] == "push_sale"] == ["S-1", "S-2", "S-3"]
    assert [sale.sync_status for sale in stored] == [SyncStatus.SYNCED, SyncStatus.PENDING, SyncStatus.SYNCED]
    assert result.errors == ["Failed to sync sale S-2: Internal server error"]
    assert [(entry.record_id, entry.last_error) for entry in queue] == [
        (sales[1][0].id, "Failed to sync sale S-2: Internal server error"),
    ]


def test_local_read_failure_is_isolated_to_its_sale(store, run_with_store, remote, settings, monkeypatch):
    orchestrator = _orchestrator(store, remote, settings)
    broken, broken_items = make_sale("S-1", minutes_ago=2)
    healthy, healthy_items = make_sale("S-2", minutes_ago=1)
    read_items = store.get_sale_items

    async def get_sale_items(sale_id):
        if sale_id == broken.id:
            raise StorageUnavailableError("disk I/O error")
        return await read_items(sale_id)

    monkeypatch.setattr(store, "get_sale_items", get_sale_items)

    async def scenario():
        await store.apply_pulled_product(make_product())
        await store.save_sale(broken, broken_items)
        await store.save_sale(healthy, healthy_items)
        return await orchestrator.sync(), await store.get_sale(healthy.id)

    result, pushed = run_with_store(scenario)

    assert result.errors == ["Failed to sync sale S-1: disk I/O error"]
    assert pushed.sync_status == SyncStatus.SYNCED
    assert ("push_sale", "S-1") not in remote.calls


def test_locally_saved_product_survives_sync_and_repull(store, run_with_store, settings):
    local = make_product(
        "prod-7", "Oat Milk", price="3.25", stock=12,
        unit="L", reorder_point=4, min_stock_level=2, max_stock_level=40,
        sync_status=SyncStatus.PENDING, last_synced=None,
    )
    hq_copy = PulledProduct(
        **local.model_dump(exclude={"current_stock", "available_stock", "sync_status", "last_synced"}),
        inventory_level={"product_id": local.id, "current_stock": 12, "available_stock": 12},
    )
    remote = FakeRemote(products=[hq_copy])
    orchestrator = _orchestrator(store, remote, settings)
    business_fields = {
        "name", "sku", "unit", "cost_price", "selling_price", "min_stock_level",
        "max_stock_level", "reorder_point", "is_active", "current_stock", "available_stock",
    }

    async def scenario():
        await store.save_product(local)
        first = await orchestrator.sync()
        second = await orchestrator.sync()
        return first, second, await store.get_product(local.id), await store.get_sync_queue("products")

    first, second, product, queue = run_with_store(scenario)

    assert first.success and second.success
    assert product.model_dump(include=business_fields) == local.model_dump(include=business_fields)
    assert product.sync_status == SyncStatus.SYNCED
    assert product.last_synced is not None
    assert queue == []
