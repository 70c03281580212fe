# store_edge/hq/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from store_edge.core.config import Settings, settings as default_settings
from store_edge.core.errors import NotFoundError, StoreEdgeError
from store_edge.core.logging import configure_logging
from store_edge.db.base import make_engine, make_sessionmaker
from store_edge.hq.models import HQBase
from store_edge.hq.routes import catalog_router, router


def create_app(settings: Settings = default_settings) -> FastAPI:
    """Reference HQ service implementing the remote side of the sync contract."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        engine = make_engine(settings.HQ_DB_URL)
        async with engine.begin() as conn:
            await conn.run_sync(HQBase.metadata.create_all)
        app.state.sessions = make_sessionmaker(engine)
        yield
        await engine.dispose()

    app = FastAPI(title="store-edge HQ", lifespan=lifespan)
    app.state.settings = settings

    @app.exception_handler(StoreEdgeError)
    async def store_edge_error_handler(request: Request, exc: StoreEdgeError):
        status_code = 404 if isinstance(exc, NotFoundError) else 422
        return JSONResponse(status_code=status_code, content={"detail": exc.message, **exc.to_dict()})

    app.include_router(router)
    app.include_router(catalog_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
