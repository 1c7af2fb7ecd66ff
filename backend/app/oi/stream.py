"""HTTP endpoints for the OI table, export, summary and live stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Callable
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response, StreamingResponse

from .cache import SnapshotHistory
from .config import Settings
from .errors import InvalidConfigError
from .export import build_export, export_filename, to_csv
from .interface import SnapshotSource
from .pipeline import ViewFilters, build_views
from .summary import exchange_pcr, summarize
from .window import ALL_TIME

logger = logging.getLogger(__name__)


def create_oi_router(
    history: SnapshotHistory,
    settings: Settings,
    source: SnapshotSource | None = None,
) -> APIRouter:
    """Create the OI router bound to a history (and optionally its source).

    This factory pattern lets us inject the history without globals.
    """
    router = APIRouter(prefix="/api/oi", tags=["open-interest"])

    def _filters(date: str | None, time_filter: str | None, strike_count: int | None) -> ViewFilters:
        try:
            return ViewFilters(
                selected_date=date or None,
                time_filter=time_filter or ALL_TIME,
                strike_count=settings.strike_count if strike_count is None else strike_count,
                strike_step=settings.strike_step,
            )
        except InvalidConfigError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    def _views_payload(filters: ViewFilters) -> dict:
        views = build_views(history.get_all(), filters, lot_size=settings.lot_size, tz=settings.tz)
        return {
            "symbol": settings.symbol,
            "lot_size": settings.lot_size,
            "strike_count": filters.strike_count,
            "count": len(views),
            "views": [view.to_dict() for view in views],
        }

    @router.get("/snapshots")
    async def get_snapshots(
        date: str | None = Query(None, description="YYYY-MM-DD, local calendar day"),
        time_filter: str | None = Query(ALL_TIME, description="1h, 3h, 6h or all"),
        strike_count: int | None = Query(None, description="Odd number of strikes around ATM"),
    ) -> dict:
        """Deduplicated snapshot table, newest first."""
        return _views_payload(_filters(date, time_filter, strike_count))

    @router.get("/export")
    async def export_csv(
        date: str | None = Query(None),
        time_filter: str | None = Query(ALL_TIME),
        strike_count: int | None = Query(None),
    ) -> Response:
        """CSV download of the same rows the table shows, oldest first."""
        filters = _filters(date, time_filter, strike_count)
        rows = build_export(history.get_all(), filters, lot_size=settings.lot_size, tz=settings.tz)
        today = datetime.now(settings.tz).astimezone(settings.tz).date()
        filename = export_filename(filters.selected_date, today)
        return Response(
            content=to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.get("/summary")
    async def get_summary() -> dict:
        """Exchange-reported totals and PCR per snapshot, newest first."""
        snapshots = history.get_all()
        latest = snapshots[-1] if snapshots else None
        return {
            "symbol": settings.symbol,
            "spot_price": latest.spot_price if latest else None,
            "pcr": exchange_pcr(latest) if latest else 0.0,
            "records": summarize(snapshots),
        }

    @router.post("/fetch-all")
    async def fetch_all(
        date: str | None = Query(None),
        time_filter: str | None = Query(ALL_TIME),
    ) -> dict:
        """Reload the complete history from the source, narrowed by the filters."""
        if source is None:
            raise HTTPException(status_code=503, detail="No snapshot source configured")
        filters = _filters(date, time_filter, None)
        loaded = await source.fetch_all(selected_date=filters.selected_date, time_filter=filters.time_filter)
        return {"loaded": loaded, "total": len(history)}

    @router.get("/stream")
    async def stream_views(
        request: Request,
        date: str | None = Query(None),
        time_filter: str | None = Query(ALL_TIME),
        strike_count: int | None = Query(None),
    ) -> StreamingResponse:
        """SSE endpoint pushing the snapshot table whenever history changes.

        The client connects with EventSource and receives events in the
        same format as GET /snapshots:

            data: {"symbol": "NIFTY", "count": 3, "views": [...]}
        """
        filters = _filters(date, time_filter, strike_count)
        return StreamingResponse(
            _generate_events(history, request, lambda: _views_payload(filters)),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    history: SnapshotHistory,
    request: Request,
    render: Callable[[], dict],
    interval: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted table events.

    Re-renders only when the history version changed. Stops when the client
    disconnects (detected via request.is_disconnected()).
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = history.version
            if current_version != last_version:
                last_version = current_version
                payload = json.dumps(render())
                yield f"data: {payload}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
