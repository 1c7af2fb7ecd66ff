"""Fixtures for OI history tests.

Snapshots are built from upstream-shaped records so every test also goes
through Snapshot.from_dict. All timestamps are in a fixed zone (IST) and
tests pass ``now``/``tz`` explicitly, so results don't depend on the machine.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from app.oi.models import Snapshot

IST = ZoneInfo("Asia/Kolkata")


def make_record(
    timestamp,
    spot: float = 22000.0,
    chain: dict | None = None,
    nse_timestamp: str | None = None,
    filtered: tuple[int, int] | None = None,
    snapshot_id: str | None = None,
) -> dict:
    """Build an upstream record.

    ``chain`` maps strike -> {"CE": {...}, "PE": {...}} with upstream field
    names; a datetime ``timestamp`` is serialised to ISO-8601.
    """
    ts = timestamp.isoformat() if isinstance(timestamp, datetime) else timestamp
    data = [{"strikePrice": strike, **legs} for strike, legs in (chain or {}).items()]
    record: dict = {
        "timestamp": ts,
        "data": {"records": {"underlyingValue": spot, "data": data}},
    }
    if nse_timestamp is not None:
        record["data"]["nseTimestamp"] = nse_timestamp
    if filtered is not None:
        record["data"]["filtered"] = {"CE": {"totOI": filtered[0]}, "PE": {"totOI": filtered[1]}}
    if snapshot_id is not None:
        record["_id"] = snapshot_id
    return record


def oi_chain(strikes, ce_oi=1000, pe_oi=1000, **extra) -> dict:
    """Chain with the same CE/PE open interest on every strike."""
    return {
        strike: {"CE": {"openInterest": ce_oi, **extra}, "PE": {"openInterest": pe_oi, **extra}}
        for strike in strikes
    }


@pytest.fixture
def ist():
    return IST


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def make_snapshot():
    """Factory fixture: make_snapshot(timestamp, spot=..., chain=..., ...) -> Snapshot."""

    def _make(timestamp, spot: float = 22000.0, chain: dict | None = None, **kwargs) -> Snapshot:
        return Snapshot.from_dict(make_record(timestamp, spot, chain, **kwargs), tz=IST)

    return _make


@pytest.fixture
def chain_factory():
    return oi_chain
