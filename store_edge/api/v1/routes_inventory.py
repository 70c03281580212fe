# store_edge/api/v1/routes_inventory.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from store_edge.api.deps import get_store
from store_edge.core.errors import NotFoundError
from store_edge.db.schemas import ProductData, StockMovementData
from store_edge.db.store import LocalStore
from store_edge.domain.inventory.schemas import StockMovementCreate
from store_edge.domain.inventory.service import record_stock_movement


router = APIRouter(prefix="/api/v1", tags=["inventory"])


@router.get("/products", response_model=List[ProductData])
async def list_products_endpoint(
    category_id: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    store: LocalStore = Depends(get_store),
):
    return await store.get_products(category_id=category_id, search=search)


@router.get("/products/{product_id}/available-stock")
async def available_stock_endpoint(
    product_id: str,
    store: LocalStore = Depends(get_store),
):
    return {"product_id": product_id, "available_stock": await store.get_available_stock(product_id)}


@router.post("/stock-movements", response_model=StockMovementData, status_code=201)
async def create_stock_movement_endpoint(
    payload: StockMovementCreate,
    store: LocalStore = Depends(get_store),
):
    return await record_stock_movement(store, payload)


@router.get("/stock-movements/{movement_id}", response_model=StockMovementData)
async def get_stock_movement_endpoint(
    movement_id: str,
    store: LocalStore = Depends(get_store),
):
    movement = await store.get_stock_movement(movement_id)
    if movement is None:
        raise NotFoundError(f"Stock movement {movement_id} not found")
    return movement
