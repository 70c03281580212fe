# store_edge/domain/checkout/service.py
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Tuple
from uuid import uuid4

from store_edge.core.config import Settings
from store_edge.core.errors import NotFoundError
from store_edge.core.time_utils import utcnow
from store_edge.db.models.enums import PaymentStatus, SyncStatus
from store_edge.db.schemas import SaleData, SaleItemData
from store_edge.db.store import LocalStore
from .schemas import CheckoutRequest, SaleOut

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_sale_number(settings: Settings) -> str:
    # unique per device without a round trip: terminal, timestamp, random suffix
    return f"{settings.TERMINAL_ID}-{utcnow():%Y%m%d%H%M%S}-{uuid4().hex[:6].upper()}"


async def checkout(
    store: LocalStore,
    data: CheckoutRequest,
    settings: Settings,
) -> Tuple[SaleData, List[SaleItemData]]:
    """Record a sale locally; stock is reserved in the same transaction that writes it."""
    sale_id = str(uuid4())
    now = utcnow()

    items = []
    for line in data.items:
        product = await store.get_product(line.product_id)
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {line.product_id} not found")

        items.append(SaleItemData(
            sale_id=sale_id,
            product_id=product.id,
            product_name=product.name,
            quantity=line.quantity,
            unit_price=money(product.selling_price),
            total_price=money(product.selling_price * line.quantity - line.discount),
            discount=money(line.discount),
            created_at=now,
        ))

    subtotal = money(sum((item.total_price for item in items), Decimal("0")))
    tax_rate = data.tax_rate if data.tax_rate is not None else Decimal(str(settings.TAX_RATE))
    tax_amount = money(subtotal * tax_rate)
    discount_amount = money(data.discount_amount)

    sale = SaleData(
        id=sale_id,
        sale_number=generate_sale_number(settings),
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        customer_email=data.customer_email,
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total_amount=subtotal + tax_amount - discount_amount,
        payment_method=data.payment_method,
        payment_status=PaymentStatus.COMPLETED,
        cashier_id=data.cashier_id,
        notes=data.notes,
        created_at=now,
        updated_at=now,
        sync_status=SyncStatus.PENDING,
    )

    await store.save_sale(sale, items, reserve_stock=True)
    logger.info("Sale %s recorded locally (%d items, total %s)", sale.sale_number, len(items), sale.total_amount)
    return sale, items


def to_sale_out(sale: SaleData, items: List[SaleItemData]) -> SaleOut:
    return SaleOut(**sale.model_dump(), items=[item.model_dump() for item in items])
