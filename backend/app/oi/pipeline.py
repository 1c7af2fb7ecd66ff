"""History processing pipeline: filter, dedupe, diff."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, tzinfo

from .dedup import chronological, dedupe_unchanged
from .diff import DEFAULT_LOT_SIZE, SnapshotView, compute_views
from .models import Snapshot
from .strikes import DEFAULT_STRIKE_COUNT, DEFAULT_STRIKE_STEP, StrikeSelector
from .window import ALL_TIME, filter_window, parse_selected_date


@dataclass(frozen=True, slots=True)
class ViewFilters:
    """User-chosen filters for one render or export pass.

    Invalid strike settings raise InvalidConfigError on construction.
    """

    selected_date: date | None = None
    time_filter: str | None = ALL_TIME
    strike_count: int = DEFAULT_STRIKE_COUNT
    strike_step: float = DEFAULT_STRIKE_STEP

    def __post_init__(self) -> None:
        object.__setattr__(self, "selected_date", parse_selected_date(self.selected_date))
        StrikeSelector(count=self.strike_count, step=self.strike_step)

    @property
    def selector(self) -> StrikeSelector:
        return StrikeSelector(count=self.strike_count, step=self.strike_step)


def predecessor_lookup(history: Sequence[Snapshot]) -> Callable[[Snapshot], Snapshot | None]:
    """Map each snapshot to its older neighbour in ``history`` (oldest first)."""
    previous: dict[Snapshot, Snapshot | None] = {}
    prior = None
    for snapshot in history:
        previous[snapshot] = prior
        prior = snapshot
    return lambda snapshot: previous.get(snapshot)


def visible_history(
    snapshots: Iterable[Snapshot],
    filters: ViewFilters,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[Snapshot]:
    """Filtered and deduplicated history, oldest first."""
    windowed = filter_window(snapshots, filters.selected_date, filters.time_filter, now=now, tz=tz)
    return dedupe_unchanged(chronological(windowed), filters.selector)


def build_views(
    snapshots: Iterable[Snapshot],
    filters: ViewFilters,
    lot_size: int = DEFAULT_LOT_SIZE,
    now: datetime | None = None,
    tz: tzinfo | None = None,
    newest_first: bool = True,
) -> list[SnapshotView]:
    """Run the full pipeline and return one view per visible snapshot.

    Values never depend on ``newest_first``: each predecessor comes from the
    chronological sequence, and only the output order is flipped.
    """
    history = visible_history(snapshots, filters, now=now, tz=tz)
    views = compute_views(history, predecessor_lookup(history), filters.selector, lot_size)
    if newest_first:
        views.reverse()
    return views
