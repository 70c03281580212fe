# store_edge/hq/service.py
"""Server side of the sync contract.

Pushes are idempotent: a sale whose sale_number HQ already holds, or a
stock movement HQ has already recorded, is acknowledged as a conflict and
HQ keeps its own copy. A sale, its items and the stock it consumes are
written in one transaction.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import select

from store_edge.core.errors import NotFoundError
from store_edge.core.time_utils import utcnow
from store_edge.db.models.enums import MovementType
from store_edge.db.schemas import StockMovementData
from store_edge.domain.sync.schemas import InventoryLevelData, PulledProduct, PushAck, SaleBundle, SyncDeltas
from store_edge.hq.models import (
    HQCategory,
    HQInventoryLevel,
    HQProduct,
    HQSale,
    HQSaleItem,
    HQStockMovement,
    HQSupplier,
)

logger = logging.getLogger(__name__)

_PRODUCT_FIELDS = (
    "name", "description", "category_id", "supplier_id", "sku", "barcode", "unit",
    "cost_price", "selling_price", "min_stock_level", "max_stock_level",
    "reorder_point", "image_url", "is_active",
)


def signed_quantity(movement_type: MovementType, quantity: int) -> int:
    if movement_type in (MovementType.IN, MovementType.ADJUSTMENT):
        return quantity
    return -quantity


async def get_sale_by_number(
    db: AsyncSession,
    sale_number: str
) -> Optional[HQSale]:
    result = await db.execute(
        select(HQSale).where(HQSale.sale_number == sale_number)
    )
    return result.scalar_one_or_none()


async def find_recorded_movement(
    db: AsyncSession,
    movement: StockMovementData
) -> Optional[HQStockMovement]:
    existing = await db.get(HQStockMovement, movement.id)
    if existing is not None or movement.reference_number is None:
        return existing

    # devices predating client ids: approximate by the natural key
    result = await db.execute(
        select(HQStockMovement)
        .where(
            HQStockMovement.reference_number == movement.reference_number,
            HQStockMovement.product_id == movement.product_id,
            HQStockMovement.quantity == movement.quantity,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _get_or_create_level(db: AsyncSession, product_id: str) -> HQInventoryLevel:
    result = await db.execute(
        select(HQInventoryLevel).where(HQInventoryLevel.product_id == product_id)
    )
    level = result.scalar_one_or_none()
    if level is None:
        level = HQInventoryLevel(product_id=product_id, current_stock=0, reserved_stock=0, available_stock=0)
        db.add(level)
    return level


async def _apply_stock(db: AsyncSession, product_id: str, delta: int) -> None:
    level = await _get_or_create_level(db, product_id)
    level.current_stock += delta
    level.available_stock += delta
    level.updated_at = utcnow()


async def push_sale(
    db: AsyncSession,
    bundle: SaleBundle,
    store_id: Optional[str] = None,
) -> PushAck:
    sale = bundle.sale
    existing = await get_sale_by_number(db, sale.sale_number)
    if existing is not None:
        logger.info("Sale %s already recorded, keeping server version", sale.sale_number)
        return PushAck(status="conflict", id=existing.id, sale_number=existing.sale_number)

    for item in bundle.items:
        if await db.get(HQProduct, item.product_id) is None:
            raise NotFoundError(f"Unknown product {item.product_id} in sale {sale.sale_number}")

    try:
        hq_sale = HQSale(
            id=sale.id,
            sale_number=sale.sale_number,
            store_id=store_id,
            customer_name=sale.customer_name,
            customer_phone=sale.customer_phone,
            customer_email=sale.customer_email,
            subtotal=sale.subtotal,
            tax_amount=sale.tax_amount,
            discount_amount=sale.discount_amount,
            total_amount=sale.total_amount,
            payment_method=sale.payment_method,
            payment_status=sale.payment_status,
            cashier_id=sale.cashier_id,
            notes=sale.notes,
            client_created_at=sale.created_at,
        )
        db.add(hq_sale)
        await db.flush()

        for item in bundle.items:
            db.add(HQSaleItem(
                id=item.id,
                sale_id=hq_sale.id,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                discount=item.discount,
            ))
            db.add(HQStockMovement(
                product_id=item.product_id,
                movement_type=MovementType.OUT,
                quantity=item.quantity,
                reference_number=sale.sale_number,
                reference_type="sale",
                reference_id=hq_sale.id,
                notes=f"Sale: {sale.sale_number}",
                user_id=sale.cashier_id,
            ))
            await _apply_stock(db, item.product_id, -item.quantity)

        await db.commit()
    except IntegrityError:
        await db.rollback()
        # lost a race with an identical push
        existing = await get_sale_by_number(db, sale.sale_number)
        if existing is None:
            raise
        return PushAck(status="conflict", id=existing.id, sale_number=existing.sale_number)

    logger.info("Sale %s recorded with %d items", sale.sale_number, len(bundle.items))
    return PushAck(status="created", id=hq_sale.id, sale_number=hq_sale.sale_number)


async def push_stock_movement(
    db: AsyncSession,
    movement: StockMovementData
) -> PushAck:
    existing = await find_recorded_movement(db, movement)
    if existing is not None:
        logger.info("Stock movement %s already recorded as %s", movement.id, existing.id)
        return PushAck(status="conflict", id=existing.id)

    if await db.get(HQProduct, movement.product_id) is None:
        raise NotFoundError(f"Unknown product {movement.product_id}")

    try:
        db.add(HQStockMovement(
            id=movement.id,
            product_id=movement.product_id,
            movement_type=movement.movement_type,
            quantity=movement.quantity,
            reference_number=movement.reference_number,
            reference_type=movement.reference_type,
            reference_id=movement.reference_id,
            notes=movement.notes,
            user_id=movement.user_id,
        ))
        await _apply_stock(db, movement.product_id, signed_quantity(movement.movement_type, movement.quantity))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await db.get(HQStockMovement, movement.id)
        if existing is None:
            raise
        return PushAck(status="conflict", id=existing.id)

    return PushAck(status="created", id=movement.id)


def _catalog_query():
    return (
        select(HQProduct)
        .options(
            selectinload(HQProduct.category),
            selectinload(HQProduct.supplier),
            selectinload(HQProduct.inventory_level),
        )
        .execution_options(populate_existing=True)
    )


async def list_products(db: AsyncSession) -> List[PulledProduct]:
    result = await db.execute(_catalog_query().order_by(HQProduct.name))
    return [PulledProduct.model_validate(row) for row in result.scalars().all()]


async def deltas_since(
    db: AsyncSession,
    since: datetime
) -> SyncDeltas:
    server_time = utcnow()

    products = await db.execute(
        _catalog_query().where(HQProduct.updated_at >= since).order_by(HQProduct.name)
    )
    levels = await db.execute(
        select(HQInventoryLevel).where(HQInventoryLevel.updated_at >= since)
    )
    movements = await db.execute(
        select(HQStockMovement).where(HQStockMovement.created_at >= since).order_by(HQStockMovement.created_at)
    )

    return SyncDeltas(
        products=[PulledProduct.model_validate(row) for row in products.scalars().all()],
        inventory_levels=[InventoryLevelData.model_validate(row) for row in levels.scalars().all()],
        stock_movements=[StockMovementData.model_validate(row) for row in movements.scalars().all()],
        server_time=server_time,
    )


async def upsert_catalog_product(
    db: AsyncSession,
    product: PulledProduct
) -> PulledProduct:
    """Create or update a catalog entry, with its category, supplier and stock level."""
    if product.category is not None:
        await db.merge(HQCategory(**product.category.model_dump()))
    if product.supplier is not None:
        await db.merge(HQSupplier(**product.supplier.model_dump()))
    await db.flush()

    row = await db.get(HQProduct, product.id)
    if row is None:
        row = HQProduct(id=product.id, created_at=product.created_at)
        db.add(row)
    for name in _PRODUCT_FIELDS:
        setattr(row, name, getattr(product, name))
    row.updated_at = utcnow()

    if product.inventory_level is not None:
        level = await _get_or_create_level(db, product.id)
        level.current_stock = product.inventory_level.current_stock
        level.available_stock = product.inventory_level.available_stock
        level.reserved_stock = product.inventory_level.reserved_stock
        level.updated_at = utcnow()

    await db.commit()

    result = await db.execute(_catalog_query().where(HQProduct.id == product.id))
    return PulledProduct.model_validate(result.scalar_one())
