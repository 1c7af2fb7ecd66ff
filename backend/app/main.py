"""FastAPI application for the OI dashboard backend."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.oi import SnapshotHistory, create_oi_router, create_snapshot_source
from app.oi.config import Settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app: one history, one source polling into it, one router reading it."""
    settings = settings or Settings.from_env()
    history = SnapshotHistory(max_size=settings.history_limit)
    source = create_snapshot_source(history, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await source.start()
        logger.info("OI dashboard tracking %s", source.get_symbol())
        try:
            yield
        finally:
            await source.stop()

    app = FastAPI(title="OI Dashboard API", lifespan=lifespan)
    app.state.history = history
    app.state.source = source
    app.include_router(create_oi_router(history, settings, source))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "symbol": settings.symbol, "snapshots": len(history)}

    return app


app = create_app()
