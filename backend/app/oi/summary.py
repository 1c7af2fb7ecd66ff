"""Exchange-reported OI totals and put/call ratio over history."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Snapshot


def exchange_pcr(snapshot: Snapshot) -> float:
    """Put/call ratio from the exchange's filtered totals; 0 without call OI."""
    if snapshot.filtered_ce_total_oi <= 0:
        return 0.0
    return snapshot.filtered_pe_total_oi / snapshot.filtered_ce_total_oi


def summarize(snapshots: Iterable[Snapshot], newest_first: bool = True) -> list[dict]:
    """One totals/PCR record per snapshot, in history order or reversed."""
    rows = [
        {
            "timestamp": s.iso_timestamp,
            "time": s.time_label,
            "ce_total": s.filtered_ce_total_oi,
            "pe_total": s.filtered_pe_total_oi,
            "pcr": exchange_pcr(s),
        }
        for s in snapshots
    ]
    if newest_first:
        rows.reverse()
    return rows
