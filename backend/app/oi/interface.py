"""Abstract interface for option-chain snapshot sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date


class SnapshotSource(ABC):
    """Contract for snapshot providers.

    Implementations write snapshots into a shared SnapshotHistory on their own
    schedule. The pipeline never calls the source directly; it reads the
    history.

    Lifecycle:
        source = create_snapshot_source(history, settings)
        await source.start()
        # ... app runs ...
        await source.fetch_all(day, "all")   # user asked for the full day
        # ... app shutting down ...
        await source.stop()
    """

    @abstractmethod
    async def start(self) -> None:
        """Load the initial history and begin polling for new snapshots.

        Must be called exactly once. Calling start() twice is undefined behavior.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the background task and release resources.

        Safe to call multiple times. After stop(), the source will not write
        to the history again.
        """

    @abstractmethod
    async def fetch_all(self, selected_date: date | None = None, time_filter: str | None = None) -> int:
        """Replace the history with the full available history.

        ``selected_date`` and ``time_filter`` narrow what is requested from
        sources that can filter upstream; others may ignore them.
        Returns the number of snapshots loaded.
        """

    @abstractmethod
    def get_symbol(self) -> str:
        """Return the underlying symbol being tracked."""
