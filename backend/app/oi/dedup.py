"""Change-based deduplication of consecutive snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import LEGS, Snapshot
from .strikes import StrikeSelector

logger = logging.getLogger(__name__)


def chronological(snapshots: Iterable[Snapshot]) -> list[Snapshot]:
    """Return snapshots oldest first.

    Sorting is stable, so equal timestamps keep their input order. When any
    timestamp is malformed the ordering is indeterminate and the input order
    is trusted as-is.
    """
    items = list(snapshots)
    if any(s.timestamp is None for s in items):
        logger.debug("Malformed timestamp in history; keeping input order for %d snapshots", len(items))
        return items
    return sorted(items, key=lambda s: s.timestamp)


def has_oi_change(current: Snapshot, baseline: Snapshot, selector: StrikeSelector) -> bool:
    """True if any strike in ``current``'s window moved OI on either leg."""
    for strike in selector.window_for(current):
        for side in LEGS:
            if current.open_interest(strike, side) != baseline.open_interest(strike, side):
                return True
    return False


def dedupe_unchanged(snapshots: Iterable[Snapshot], selector: StrikeSelector) -> list[Snapshot]:
    """Collapse runs of snapshots showing no OI change in the active window.

    The oldest snapshot of each run is kept as the baseline; later ones are
    compared against the last kept snapshot, not their raw neighbour. Each
    snapshot's window comes from its own spot price. Output is oldest first.
    """
    kept: list[Snapshot] = []
    for snapshot in chronological(snapshots):
        if not kept or has_oi_change(snapshot, kept[-1], selector):
            kept.append(snapshot)
    return kept
