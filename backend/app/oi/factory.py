"""Factory for creating snapshot sources."""

from __future__ import annotations

import logging

from .cache import SnapshotHistory
from .config import Settings
from .interface import SnapshotSource

logger = logging.getLogger(__name__)


def create_snapshot_source(history: SnapshotHistory, settings: Settings | None = None) -> SnapshotSource:
    """Create the appropriate snapshot source based on settings.

    - OI_API_URL set and non-empty → HttpSnapshotSource (real upstream API)
    - Otherwise → SimulatorSnapshotSource (GBM option chain)

    Returns an unstarted source. Caller must await source.start().
    """
    settings = settings or Settings.from_env()

    if settings.api_url:
        from .http_client import HttpSnapshotSource

        logger.info("Snapshot source: HTTP API at %s", settings.api_url)
        return HttpSnapshotSource(
            base_url=settings.api_url,
            history=history,
            symbol=settings.symbol,
            poll_interval=settings.poll_interval,
            tz=settings.tz,
        )
    else:
        from .simulator import SimulatorSnapshotSource

        logger.info("Snapshot source: option-chain simulator")
        return SimulatorSnapshotSource(
            history=history,
            symbol=settings.symbol,
            update_interval=settings.poll_interval,
            tz=settings.tz,
        )
