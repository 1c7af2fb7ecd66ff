"""HTTP client for the upstream option-chain snapshot API."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, tzinfo
from typing import Any

import httpx

from .cache import SnapshotHistory
from .interface import SnapshotSource
from .models import Snapshot
from .window import ALL_TIME, TIME_FILTER_HOURS

logger = logging.getLogger(__name__)

INITIAL_HISTORY_LIMIT = 25
FULL_HISTORY_LIMIT = 5000
FULL_HISTORY_DELAY = 10.0


class HttpSnapshotSource(SnapshotSource):
    """SnapshotSource backed by the dashboard's REST API.

    Endpoints:
      - GET /api/latest?symbol=S    latest snapshot record (or null)
      - GET /api/history?symbol=S&limit=N[&trim=true][&startDate&endDate][&hours]
                                    list of records, oldest first

    start() loads a short trimmed history, then polls /api/latest and merges
    each new snapshot into the history. While the history is empty each poll
    retries the trimmed load. FULL_HISTORY_DELAY seconds after start the full
    history replaces the trimmed one; fetch_all() does the same on demand and
    sets the date/time filters sent upstream from then on.
    """

    def __init__(
        self,
        base_url: str,
        history: SnapshotHistory,
        symbol: str = "NIFTY",
        poll_interval: float = 5.0,
        timeout: float = 20.0,
        tz: tzinfo | None = None,
        full_history_delay: float | None = FULL_HISTORY_DELAY,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._history = history
        self._symbol = symbol
        self._interval = poll_interval
        self._timeout = timeout
        self._tz = tz
        self._full_history_delay = full_history_delay
        self._task: asyncio.Task | None = None
        self._full_load_task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None
        self._selected_date: date | None = None
        self._time_filter: str = ALL_TIME

    async def start(self) -> None:
        self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)

        # Load a short history first so the table has data right away
        await self._load_history(limit=INITIAL_HISTORY_LIMIT, trim=True)

        self._task = asyncio.create_task(self._poll_loop(), name="oi-poller")
        if self._full_history_delay is not None:
            self._full_load_task = asyncio.create_task(self._delayed_full_load(), name="oi-full-history")
        logger.info(
            "HTTP poller started: %s for %s, %.1fs interval",
            self._base_url,
            self._symbol,
            self._interval,
        )

    async def stop(self) -> None:
        for task in (self._full_load_task, self._task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._full_load_task = None
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        logger.info("HTTP poller stopped")

    async def fetch_all(self, selected_date: date | None = None, time_filter: str | None = None) -> int:
        self._selected_date = selected_date
        self._time_filter = time_filter or ALL_TIME
        return await self._load_history(limit=FULL_HISTORY_LIMIT, trim=False)

    def get_symbol(self) -> str:
        return self._symbol

    # --- Internal ---

    def history_params(self, limit: int, trim: bool) -> dict[str, Any]:
        """Query parameters for /api/history under the active filters."""
        params: dict[str, Any] = {"symbol": self._symbol, "limit": limit}
        if trim:
            params["trim"] = "true"
        if self._selected_date is not None:
            params["startDate"] = self._selected_date.isoformat()
            params["endDate"] = self._selected_date.isoformat()
        hours = TIME_FILTER_HOURS.get(self._time_filter)
        if hours:
            params["hours"] = hours
        return params

    async def _poll_loop(self) -> None:
        """Poll on interval. The initial history load already happened in start()."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._poll_once()
            except Exception:
                logger.exception("Poll cycle failed")

    async def _delayed_full_load(self) -> None:
        await asyncio.sleep(self._full_history_delay)
        logger.info("Loading full history after %.1fs", self._full_history_delay)
        await self._load_history(limit=FULL_HISTORY_LIMIT, trim=False)

    async def _poll_once(self) -> None:
        """Execute one poll cycle: fetch the latest snapshot, merge into history."""
        if len(self._history) == 0:
            await self._load_history(limit=INITIAL_HISTORY_LIMIT, trim=True)

        try:
            raw = await self._fetch_latest()
        except Exception as e:
            logger.error("Latest snapshot poll failed: %s", e)
            # Don't re-raise; the loop retries on the next interval.
            return

        if not raw:
            logger.debug("No latest snapshot for %s", self._symbol)
            return

        snapshot = self._parse(raw)
        if snapshot is None:
            return
        if self._history.merge(snapshot):
            logger.debug("Merged snapshot %s", snapshot.raw_timestamp)
        else:
            logger.debug("No changes detected")

    async def _load_history(self, limit: int, trim: bool) -> int:
        try:
            records = await self._fetch_history(self.history_params(limit, trim))
        except Exception as e:
            logger.error("History fetch failed: %s", e)
            return 0

        if not isinstance(records, list):
            logger.warning("History response is not a list; ignoring")
            return 0

        snapshots = [s for s in (self._parse(raw) for raw in records) if s is not None]
        self._history.replace(snapshots)
        logger.info("Loaded %d snapshots of history (limit=%d)", len(snapshots), limit)
        return len(snapshots)

    def _parse(self, raw: Any) -> Snapshot | None:
        try:
            return Snapshot.from_dict(raw, tz=self._tz)
        except ValueError as e:
            logger.warning("Skipping malformed snapshot record: %s", e)
            return None

    async def _fetch_latest(self) -> Any:
        return await self._get_json("/api/latest", {"symbol": self._symbol})

    async def _fetch_history(self, params: dict[str, Any]) -> Any:
        return await self._get_json("/api/history", params)

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        if self._client is None:
            raise RuntimeError("HttpSnapshotSource is not started")
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()
