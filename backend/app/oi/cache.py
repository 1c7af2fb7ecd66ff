"""Thread-safe in-memory snapshot history."""

from __future__ import annotations

from collections.abc import Iterable
from threading import Lock

from .models import Snapshot

DEFAULT_MAX_SIZE = 5000


class SnapshotHistory:
    """In-memory history of option-chain snapshots, oldest first.

    Writers: HttpSnapshotSource or SimulatorSnapshotSource (one at a time).
    Readers: the table/export/summary endpoints, which copy the list and run
    the pipeline over the copy.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        self._snapshots: list[Snapshot] = []
        self._lock = Lock()
        self._max_size = max_size
        self._version: int = 0  # Monotonically increasing; bumped on every change

    def merge(self, snapshot: Snapshot) -> bool:
        """Append a newly polled snapshot. Returns False if already present.

        A snapshot is a duplicate when its id, or failing that its raw
        timestamp, matches one already held. The oldest entries are dropped
        beyond ``max_size``.
        """
        with self._lock:
            if any(self._same(existing, snapshot) for existing in self._snapshots):
                return False
            self._snapshots.append(snapshot)
            if len(self._snapshots) > self._max_size:
                del self._snapshots[: len(self._snapshots) - self._max_size]
            self._version += 1
            return True

    def replace(self, snapshots: Iterable[Snapshot]) -> None:
        """Swap in a freshly fetched history."""
        items = list(snapshots)[-self._max_size :]
        with self._lock:
            self._snapshots = items
            self._version += 1

    def clear(self) -> None:
        with self._lock:
            self._snapshots = []
            self._version += 1

    def get_all(self) -> list[Snapshot]:
        """Copy of the current history."""
        with self._lock:
            return list(self._snapshots)

    def latest(self) -> Snapshot | None:
        with self._lock:
            return self._snapshots[-1] if self._snapshots else None

    @property
    def version(self) -> int:
        """Current version counter. Useful for SSE change detection."""
        return self._version

    @property
    def max_size(self) -> int:
        return self._max_size

    @staticmethod
    def _same(a: Snapshot, b: Snapshot) -> bool:
        if a.snapshot_id is not None and a.snapshot_id == b.snapshot_id:
            return True
        return a.raw_timestamp is not None and a.raw_timestamp == b.raw_timestamp

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)

    def __contains__(self, snapshot: Snapshot) -> bool:
        with self._lock:
            return any(existing is snapshot for existing in self._snapshots)
