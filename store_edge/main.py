# store_edge/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from store_edge.api.v1.routes_checkout import router as checkout_router
from store_edge.api.v1.routes_inventory import router as inventory_router
from store_edge.api.v1.routes_sync import router as sync_router
from store_edge.core.config import Settings, settings as default_settings
from store_edge.core.errors import (
    ConstraintViolationError,
    NotFoundError,
    StorageUnavailableError,
    StoreEdgeError,
    StoreNotInitializedError,
)
from store_edge.core.logging import configure_logging
from store_edge.db.store import LocalStore
from store_edge.domain.sync.network import NetworkMonitor
from store_edge.domain.sync.remote import HttpRemoteSync, RemoteSyncEndpoint
from store_edge.domain.sync.service import SyncOrchestrator


def _status_for(exc: StoreEdgeError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConstraintViolationError):
        return 409
    if isinstance(exc, (StoreNotInitializedError, StorageUnavailableError)):
        return 503
    return 400


def create_app(
    settings: Settings = default_settings,
    remote: Optional[RemoteSyncEndpoint] = None,
    monitor: Optional[NetworkMonitor] = None,
) -> FastAPI:
    """Point-of-sale edge service: records sales offline and syncs with HQ."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)

        store = LocalStore(settings.DB_URL)
        await store.initialize()

        own_monitor = monitor is None
        net = NetworkMonitor.from_settings(settings) if own_monitor else monitor
        own_remote = remote is None
        endpoint = HttpRemoteSync.from_settings(settings) if own_remote else remote

        orchestrator = SyncOrchestrator(store, net, endpoint, settings)
        net.attach_sync_trigger(orchestrator.sync)
        await orchestrator.load_checkpoint()

        app.state.store = store
        app.state.monitor = net
        app.state.orchestrator = orchestrator
        if own_monitor:
            net.start()

        yield

        await net.stop()
        await net.wait_for_sync()
        if own_remote:
            await endpoint.aclose()
        await store.close()

    app = FastAPI(title="store-edge", lifespan=lifespan)
    app.state.settings = settings

    @app.exception_handler(StoreEdgeError)
    async def store_edge_error_handler(request: Request, exc: StoreEdgeError):
        return JSONResponse(status_code=_status_for(exc), content={"detail": exc.message, **exc.to_dict()})

    app.include_router(checkout_router)
    app.include_router(inventory_router)
    app.include_router(sync_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
