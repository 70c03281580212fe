import logging
from datetime import datetime
from typing import Any, List, Optional, Protocol

import httpx

from store_edge.core.config import Settings
from store_edge.core.errors import NetworkUnavailableError, RemoteRejectedError
from store_edge.db.schemas import SaleData, SaleItemData, StockMovementData
from store_edge.domain.sync.schemas import PulledProduct, PushAck, SaleBundle, SyncDeltas

logger = logging.getLogger(__name__)


class RemoteSyncEndpoint(Protocol):
    """The RPC surface HQ exposes to edge devices."""

    async def push_sale(self, sale: SaleData, items: List[SaleItemData]) -> PushAck:
        ...

    async def push_stock_movement(self, movement: StockMovementData) -> PushAck:
        ...

    async def pull_products(self) -> List[PulledProduct]:
        ...

    async def pull_deltas_since(self, checkpoint: datetime) -> SyncDeltas:
        ...


class HttpRemoteSync:
    """``RemoteSyncEndpoint`` over HTTP/JSON.

    Transport failures and timeouts raise ``NetworkUnavailableError``; any
    non-2xx answer raises ``RemoteRejectedError``.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        store_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        if store_id:
            headers["X-Store-Id"] = store_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "HttpRemoteSync":
        return cls(
            settings.REMOTE_SYNC_URL,
            token=settings.REMOTE_SYNC_TOKEN,
            store_id=settings.STORE_ID,
            timeout=settings.SYNC_CALL_TIMEOUT,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkUnavailableError(f"Request to {url} timed out") from exc
        except httpx.TransportError as exc:
            raise NetworkUnavailableError(str(exc) or f"Cannot reach {url}") from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.is_error:
            raise RemoteRejectedError(
                self._error_message(response),
                status_code=response.status_code,
            )
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("message") or body.get("error")
            if detail:
                return str(detail)
        return f"HTTP {response.status_code}"

    async def push_sale(self, sale: SaleData, items: List[SaleItemData]) -> PushAck:
        bundle = SaleBundle(sale=sale, items=items)
        data = await self._request("POST", "/sync/sales", json=bundle.model_dump(mode="json"))
        return PushAck.model_validate(data)

    async def push_stock_movement(self, movement: StockMovementData) -> PushAck:
        data = await self._request("POST", "/sync/stock-movements", json=movement.model_dump(mode="json"))
        return PushAck.model_validate(data)

    async def pull_products(self) -> List[PulledProduct]:
        data = await self._request("GET", "/sync/products")
        return [PulledProduct.model_validate(row) for row in data]

    async def pull_deltas_since(self, checkpoint: datetime) -> SyncDeltas:
        data = await self._request("GET", "/sync/deltas", params={"since": checkpoint.isoformat()})
        return SyncDeltas.model_validate(data)
