# store_edge/api/v1/routes_checkout.py
from fastapi import APIRouter, Depends

from store_edge.api.deps import get_settings, get_store
from store_edge.core.config import Settings
from store_edge.core.errors import NotFoundError
from store_edge.db.store import LocalStore
from store_edge.domain.checkout.schemas import CheckoutRequest, SaleOut
from store_edge.domain.checkout.service import checkout, to_sale_out


router = APIRouter(prefix="/api/v1/sales", tags=["sales"])


@router.post("", response_model=SaleOut, status_code=201)
async def create_sale_endpoint(
    payload: CheckoutRequest,
    store: LocalStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    sale, items = await checkout(store, payload, settings)
    return to_sale_out(sale, items)


@router.get("/{sale_id}", response_model=SaleOut)
async def get_sale_endpoint(
    sale_id: str,
    store: LocalStore = Depends(get_store),
):
    sale = await store.get_sale(sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return to_sale_out(sale, await store.get_sale_items(sale_id))
