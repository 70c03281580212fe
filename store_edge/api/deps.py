# store_edge/api/deps.py
from fastapi import Request

from store_edge.core.config import Settings
from store_edge.db.store import LocalStore
from store_edge.domain.sync.service import SyncOrchestrator


def get_store(request: Request) -> LocalStore:
    return request.app.state.store


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
