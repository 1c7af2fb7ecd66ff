"""Data models for option-chain snapshots."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_TIME = "Unknown Time"

CALL = "CE"
PUT = "PE"
LEGS = (CALL, PUT)


def _as_int(value: Any) -> int:
    """Coerce a count field to int; absent or unparsable values become 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _mapping(value: Any, name: str) -> Mapping[str, Any]:
    """``value`` as a mapping; absent or empty becomes {}."""
    if not value:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


def parse_timestamp(value: Any, tz: tzinfo | None = None) -> datetime | None:
    """Parse an upstream timestamp into an aware datetime, or None.

    Accepts ISO-8601 strings (trailing 'Z' allowed), epoch milliseconds and
    datetime objects. Naive values are taken to be in ``tz``, or in the
    system local zone when ``tz`` is None.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=tz).astimezone(tz)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        if tz is not None:
            return parsed.replace(tzinfo=tz)
        return parsed.astimezone()
    return parsed


@dataclass(frozen=True, slots=True)
class LegQuote:
    """One side (call or put) of one strike in one snapshot."""

    open_interest: int = 0
    total_traded_volume: int = 0
    implied_volatility: float | None = None
    last_price: float | None = None
    diff_open_interest: int | None = None
    diff_total_traded_volume: int | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> LegQuote:
        raw = _mapping(raw, "Option leg")
        if not raw:
            return cls()
        return cls(
            open_interest=_as_int(raw.get("openInterest")),
            total_traded_volume=_as_int(raw.get("totalTradedVolume")),
            implied_volatility=_as_optional_float(raw.get("impliedVolatility")),
            last_price=_as_optional_float(raw.get("lastPrice")),
            diff_open_interest=_as_optional_int(raw.get("diffOpenInterest")),
            diff_total_traded_volume=_as_optional_int(raw.get("diffTotalTradedVolume")),
        )

    def to_dict(self) -> dict:
        return {
            "openInterest": self.open_interest,
            "totalTradedVolume": self.total_traded_volume,
            "impliedVolatility": self.implied_volatility,
            "lastPrice": self.last_price,
            "diffOpenInterest": self.diff_open_interest,
            "diffTotalTradedVolume": self.diff_total_traded_volume,
        }


@dataclass(frozen=True, slots=True)
class StrikeRecord:
    """Call and put quotes for a single strike. Either leg may be missing."""

    strike_price: float
    ce: LegQuote | None = None
    pe: LegQuote | None = None

    def leg(self, side: str) -> LegQuote | None:
        if side == CALL:
            return self.ce
        if side == PUT:
            return self.pe
        raise ValueError(f"Unknown option leg: {side!r}")


@dataclass(frozen=True, slots=True, eq=False)
class Snapshot:
    """Immutable capture of the option chain at one instant.

    Compared and hashed by identity: two polls with equal contents are still
    distinct observations.
    """

    raw_timestamp: Any
    timestamp: datetime | None
    spot_price: float = 0.0
    nse_timestamp: str | None = None
    strike_records: Mapping[float, StrikeRecord] = field(default_factory=dict)
    snapshot_id: str | None = None
    filtered_ce_total_oi: int = 0
    filtered_pe_total_oi: int = 0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], tz: tzinfo | None = None) -> Snapshot:
        """Build a Snapshot from the data-source record shape.

        Raises ValueError when the record is structurally unusable (not a
        mapping, a nested section or leg of the wrong type, or a strike entry
        without a numeric strikePrice). Missing optional fields fall back to
        defaults.
        """
        if not isinstance(raw, Mapping):
            raise ValueError(f"Snapshot record must be a mapping, got {type(raw).__name__}")

        data = _mapping(raw.get("data"), "data")
        records = _mapping(data.get("records"), "data.records")
        filtered = _mapping(data.get("filtered"), "data.filtered")
        items = records.get("data") or []
        if not isinstance(items, list):
            raise ValueError(f"data.records.data must be a list, got {type(items).__name__}")

        strike_records: dict[float, StrikeRecord] = {}
        for item in items:
            if not isinstance(item, Mapping):
                raise ValueError(f"Invalid strike entry: {item!r}")
            try:
                strike = float(item["strikePrice"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid strike entry: {item!r}") from e
            if strike in strike_records:
                logger.debug("Duplicate strike %s ignored", strike)
                continue
            strike_records[strike] = StrikeRecord(
                strike_price=strike,
                ce=LegQuote.from_dict(item.get(CALL)) if item.get(CALL) is not None else None,
                pe=LegQuote.from_dict(item.get(PUT)) if item.get(PUT) is not None else None,
            )

        raw_ts = raw.get("timestamp")
        snapshot_id = raw.get("_id")
        return cls(
            raw_timestamp=raw_ts,
            timestamp=parse_timestamp(raw_ts, tz),
            spot_price=_as_optional_float(records.get("underlyingValue")) or 0.0,
            nse_timestamp=data.get("nseTimestamp") or None,
            strike_records=strike_records,
            snapshot_id=str(snapshot_id) if snapshot_id is not None else None,
            filtered_ce_total_oi=_as_int(_mapping(filtered.get(CALL), "filtered.CE").get("totOI")),
            filtered_pe_total_oi=_as_int(_mapping(filtered.get(PUT), "filtered.PE").get("totOI")),
        )

    def record(self, strike: float) -> StrikeRecord | None:
        return self.strike_records.get(strike)

    def leg(self, strike: float, side: str) -> LegQuote | None:
        record = self.strike_records.get(strike)
        return record.leg(side) if record else None

    def open_interest(self, strike: float, side: str) -> int:
        """OI at a strike/leg, 0 when the record or leg is missing."""
        quote = self.leg(strike, side)
        return quote.open_interest if quote else 0

    @property
    def time_label(self) -> str:
        """HH:MM:SS display label, or a placeholder for malformed timestamps."""
        if self.timestamp is None:
            return UNKNOWN_TIME
        return self.timestamp.strftime("%H:%M:%S")

    @property
    def iso_timestamp(self) -> str | None:
        return self.timestamp.isoformat() if self.timestamp else None
