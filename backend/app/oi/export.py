"""Flat tabular export of the snapshot table."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import date, datetime, tzinfo
from typing import Any

from .diff import DEFAULT_LOT_SIZE, SnapshotView
from .models import Snapshot
from .pipeline import ViewFilters, build_views

EXPORT_HEADER: tuple[str, ...] = (
    "Timestamp",
    "NSE Time",
    "Spot Price",
    "Strike Price",
    "CE OI",
    "CE OI Change",
    "CE OI Change %",
    "CE OI Value",
    "CE Volume",
    "CE Vol Change",
    "CE IV",
    "CE LTP",
    "PE LTP",
    "PE IV",
    "PE Volume",
    "PE Vol Change",
    "PE OI Value",
    "PE OI",
    "PE OI Change",
    "PE OI Change %",
)


def _timestamp_cell(snapshot: Snapshot) -> str:
    if snapshot.timestamp is None:
        return str(snapshot.raw_timestamp or "")
    return snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S")


def export_rows(views: Iterable[SnapshotView]) -> list[list[Any]]:
    """Header plus one row per strike per snapshot.

    Every numeric cell is read from the same SnapshotView the table renders.
    Absent IV/LTP are exported as None (an empty CSV cell).
    """
    rows: list[list[Any]] = [list(EXPORT_HEADER)]
    for view in views:
        snap = view.snapshot
        prefix = [_timestamp_cell(snap), snap.nse_timestamp or "", snap.spot_price]
        for row in view.rows:
            ce, pe = row.ce, row.pe
            rows.append(
                prefix
                + [
                    row.strike,
                    ce.open_interest,
                    ce.oi_change,
                    ce.oi_change_percent,
                    ce.oi_value,
                    ce.volume,
                    ce.volume_change,
                    ce.implied_volatility,
                    ce.last_price,
                    pe.last_price,
                    pe.implied_volatility,
                    pe.volume,
                    pe.volume_change,
                    pe.oi_value,
                    pe.open_interest,
                    pe.oi_change,
                    pe.oi_change_percent,
                ]
            )
    return rows


def to_csv(rows: Sequence[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def export_filename(selected_date: date | None = None, today: date | None = None) -> str:
    """Download name keyed on the active date filter, else today's date."""
    day = selected_date or today or date.today()
    return f"oi_history_{day.isoformat()}.csv"


def build_export(
    snapshots: Iterable[Snapshot],
    filters: ViewFilters,
    lot_size: int = DEFAULT_LOT_SIZE,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[list[Any]]:
    """Export rows for the same visible history the table shows, oldest first."""
    views = build_views(snapshots, filters, lot_size=lot_size, now=now, tz=tz, newest_first=False)
    return export_rows(views)
