# store_edge/hq/routes.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from store_edge.core.time_utils import to_naive_utc
from store_edge.db.schemas import StockMovementData
from store_edge.domain.sync.schemas import PulledProduct, PushAck, SaleBundle, SyncDeltas
from store_edge.hq import service


async def get_db(request: Request):
    async with request.app.state.sessions() as session:
        yield session


async def require_device_token(
    request: Request,
    authorization: Optional[str] = Header(default=None),
):
    token = request.app.state.settings.REMOTE_SYNC_TOKEN
    if token and authorization != f"Bearer {token}":
        raise HTTPException(status_code=401, detail="Unauthorized")


router = APIRouter(prefix="/sync", tags=["sync"], dependencies=[Depends(require_device_token)])
catalog_router = APIRouter(prefix="/catalog", tags=["catalog"], dependencies=[Depends(require_device_token)])


@router.post("/sales", response_model=PushAck)
async def push_sale_endpoint(
    payload: SaleBundle,
    db: AsyncSession = Depends(get_db),
    x_store_id: Optional[str] = Header(default=None),
):
    return await service.push_sale(db, payload, store_id=x_store_id)


@router.post("/stock-movements", response_model=PushAck)
async def push_stock_movement_endpoint(
    payload: StockMovementData,
    db: AsyncSession = Depends(get_db),
):
    return await service.push_stock_movement(db, payload)


@router.get("/products", response_model=List[PulledProduct])
async def pull_products_endpoint(db: AsyncSession = Depends(get_db)):
    return await service.list_products(db)


@router.get("/deltas", response_model=SyncDeltas)
async def pull_deltas_endpoint(
    since: datetime = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await service.deltas_since(db, to_naive_utc(since))


@catalog_router.put("/products", response_model=PulledProduct)
async def upsert_product_endpoint(
    payload: PulledProduct,
    db: AsyncSession = Depends(get_db),
):
    return await service.upsert_catalog_product(db, payload)
