# store_edge/api/v1/routes_sync.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from store_edge.api.deps import get_orchestrator, get_store
from store_edge.db.schemas import SyncQueueEntry
from store_edge.db.store import LocalStore
from store_edge.domain.sync.schemas import SyncResult, SyncStatusOut
from store_edge.domain.sync.service import SyncOrchestrator


router = APIRouter(prefix="/api/v1", tags=["sync"])


@router.post("/sync", response_model=SyncResult)
async def sync_endpoint(
    force: bool = Query(default=False),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.sync(force=force)


@router.get("/sync/status", response_model=SyncStatusOut)
async def sync_status_endpoint(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.status()


@router.get("/sync/queue", response_model=List[SyncQueueEntry])
async def sync_queue_endpoint(
    table_name: Optional[str] = Query(default=None),
    store: LocalStore = Depends(get_store),
):
    return await store.get_sync_queue(table_name)


@router.post("/sync/retry-failed")
async def retry_failed_endpoint(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    return {"requeued": await orchestrator.retry_failed()}


@router.delete("/local-data", status_code=204)
async def clear_local_data_endpoint(store: LocalStore = Depends(get_store)):
    await store.clear_all()
