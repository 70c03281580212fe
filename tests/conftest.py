"""
Pytest fixtures for store-edge tests.

Every test drives its async work through ``asyncio.run``; a store is
initialized and closed inside the same event loop it is used in.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from store_edge.core.config import Settings
from store_edge.core.errors import RemoteRejectedError
from store_edge.core.time_utils import utcnow
from store_edge.db.models.enums import SyncStatus
from store_edge.db.schemas import CategoryData, ProductData, SaleData, SaleItemData
from store_edge.db.store import LocalStore
from store_edge.domain.sync.schemas import PulledProduct, PushAck, SyncDeltas


class FakeRemote:
    """In-memory HQ that records every call made to it."""

    def __init__(self, products=None):
        self.products = list(products or [])
        self.calls = []
        self.sales = {}
        self.movements = {}
        self.fail_sales = set()
        self.pull_error = None
        self.delay = 0
        self.server_time = datetime(2030, 1, 1, 12, 0, 0)

    async def pull_products(self):
        self.calls.append("pull_products")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.pull_error is not None:
            raise self.pull_error
        return list(self.products)

    async def pull_deltas_since(self, checkpoint):
        self.calls.append(("pull_deltas_since", checkpoint))
        return SyncDeltas(products=list(self.products), server_time=self.server_time)

    async def push_sale(self, sale, items):
        self.calls.append(("push_sale", sale.sale_number))
        if sale.sale_number in self.fail_sales:
            raise RemoteRejectedError("Internal server error", status_code=500)
        existing = self.sales.get(sale.sale_number)
        if existing is not None:
            return PushAck(status="conflict", id=existing[0].id, sale_number=sale.sale_number)
        self.sales[sale.sale_number] = (sale, items)
        return PushAck(status="created", id=sale.id, sale_number=sale.sale_number)

    async def push_stock_movement(self, movement):
        self.calls.append(("push_stock_movement", movement.id))
        status = "conflict" if movement.id in self.movements else "created"
        self.movements[movement.id] = movement
        return PushAck(status=status, id=movement.id)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'edge.db'}",
        HQ_DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'hq.db'}",
        STORE_ID="store-test",
        TERMINAL_ID="pos-test",
        REMOTE_SYNC_URL="http://hq.test",
        REMOTE_SYNC_TOKEN="",
        CONNECTIVITY_PROBE_URL="",
        SYNC_CALL_TIMEOUT=5.0,
        SYNC_MAX_RETRIES=10,
        SYNC_PULL_MODE="full",
        TAX_RATE=0.08,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def store(settings):
    return LocalStore(settings.DB_URL)


@pytest.fixture
def run_with_store(store):
    """Run ``scenario()`` against an initialized store, closing it afterwards."""

    def run(scenario):
        async def main():
            await store.initialize()
            try:
                return await scenario()
            finally:
                await store.close()

        return asyncio.run(main())

    return run


def make_category(category_id="cat-1", name="Beverages"):
    return CategoryData(id=category_id, name=name)


def make_product(product_id="prod-1", name="Coffee", price="10.00", stock=10, **overrides):
    now = utcnow()
    fields = dict(
        id=product_id,
        name=name,
        sku=f"SKU-{product_id}",
        selling_price=Decimal(price),
        cost_price=Decimal("4.00"),
        current_stock=stock,
        available_stock=stock,
        created_at=now,
        updated_at=now,
        sync_status=SyncStatus.SYNCED,
        last_synced=now,
    )
    fields.update(overrides)
    return ProductData(**fields)


def make_pulled(product_id="prod-1", name="Coffee", price="10.00", stock=10):
    now = utcnow()
    return PulledProduct(
        id=product_id,
        name=name,
        sku=f"SKU-{product_id}",
        selling_price=Decimal(price),
        created_at=now,
        updated_at=now,
        inventory_level={"product_id": product_id, "current_stock": stock, "available_stock": stock},
    )


def make_sale(sale_number="S-1", product=None, quantity=1, minutes_ago=0):
    product = product or make_product()
    created = utcnow() - timedelta(minutes=minutes_ago)
    line_total = product.selling_price * quantity
    sale = SaleData(
        sale_number=sale_number,
        subtotal=line_total,
        tax_amount=Decimal("0"),
        total_amount=line_total,
        payment_method="cash",
        cashier_id="cashier-1",
        created_at=created,
        updated_at=created,
    )
    items = [
        SaleItemData(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.selling_price,
            total_price=line_total,
        )
    ]
    return sale, items


@pytest.fixture
def remote():
    return FakeRemote(products=[make_pulled()])
