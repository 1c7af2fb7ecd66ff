"""Date and relative-time filtering of snapshot history."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo

from .errors import InvalidConfigError
from .models import Snapshot

ALL_TIME = "all"

# Relative-time filters, in hours. Any other non-"all" value falls back to 24h.
TIME_FILTER_HOURS: dict[str, int] = {"1h": 1, "3h": 3, "6h": 6}
DEFAULT_FILTER_HOURS = 24


def parse_selected_date(value: date | str | None) -> date | None:
    """Accept a date, a 'YYYY-MM-DD' string, or None/empty."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"Selected date must be YYYY-MM-DD, got {value!r}") from e


def filter_duration(time_filter: str) -> timedelta:
    return timedelta(hours=TIME_FILTER_HOURS.get(time_filter, DEFAULT_FILTER_HOURS))


def _local(value: datetime, tz: tzinfo | None) -> datetime:
    """Aware ``value`` in ``tz``; None means the system zone's rules at that instant."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz) if tz is not None else value.astimezone()
    return value.astimezone(tz)


def _resolve_now(now: datetime | None, tz: tzinfo | None) -> datetime:
    return _local(now if now is not None else datetime.now(tz), tz)


def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """First and last instant of a local calendar day, both inclusive.

    Each bound carries its own UTC offset, so a day on the far side of a DST
    change keeps its local midnight.
    """
    return _local(datetime.combine(day, time.min), tz), _local(datetime.combine(day, time.max), tz)


def filter_window(
    snapshots: Iterable[Snapshot],
    selected_date: date | str | None = None,
    time_filter: str | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[Snapshot]:
    """Return the snapshots visible under a (date, relative-time) filter pair.

    The date filter keeps snapshots inside the selected local calendar day,
    both ends inclusive. A relative-time filter ("1h", "3h", "6h", ...) keeps
    snapshots no older than ``now - duration``, but only when no date is
    selected or the selected date is today: for a past day "last hour" would
    always be empty, so it is ignored.

    Snapshots whose timestamp failed to parse cannot be placed on the
    timeline and are dropped whenever either filter is active.

    Input order is preserved.
    """
    result = list(snapshots)
    day = parse_selected_date(selected_date)
    relative = bool(time_filter) and time_filter != ALL_TIME

    if day is None and not relative:
        return result

    now = _resolve_now(now, tz)
    result = [s for s in result if s.timestamp is not None]

    if day is not None:
        start, end = day_bounds(day, tz)
        result = [s for s in result if start <= s.timestamp <= end]

    if relative:
        is_past_date = day is not None and day != now.date()
        if not is_past_date:
            cutoff = now - filter_duration(time_filter)
            result = [s for s in result if s.timestamp >= cutoff]

    return result
