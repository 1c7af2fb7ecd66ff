"""Per-strike and per-snapshot open-interest differentials."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .models import CALL, PUT, LegQuote, Snapshot
from .strikes import StrikeSelector

DEFAULT_LOT_SIZE = 65
LAKH = 100_000
BAR_HEADROOM = 1.05


def percent_change(current: float, delta: float) -> float:
    """Change relative to the previous value (``current - delta``); 0 when that is 0."""
    base = current - delta
    if base == 0:
        return 0.0
    return delta / base * 100


def oi_value(count: float, lot_size: int) -> float:
    """Scale a contract count into lakhs of notional units."""
    return count * lot_size / LAKH


@dataclass(frozen=True, slots=True)
class LegChange:
    """One leg of one strike, with its change against the predecessor."""

    quote: LegQuote | None
    oi_change: int
    volume_change: int
    has_prev: bool
    volume_has_prev: bool
    lot_size: int = DEFAULT_LOT_SIZE

    @property
    def open_interest(self) -> int:
        return self.quote.open_interest if self.quote else 0

    @property
    def volume(self) -> int:
        return self.quote.total_traded_volume if self.quote else 0

    @property
    def implied_volatility(self) -> float | None:
        return self.quote.implied_volatility if self.quote else None

    @property
    def last_price(self) -> float | None:
        return self.quote.last_price if self.quote else None

    @property
    def oi_change_percent(self) -> float:
        return percent_change(self.open_interest, self.oi_change)

    @property
    def oi_value(self) -> float:
        return oi_value(self.open_interest, self.lot_size)

    @property
    def oi_change_value(self) -> float:
        return oi_value(self.oi_change, self.lot_size)

    def to_dict(self) -> dict:
        return {
            "open_interest": self.open_interest,
            "oi_change": self.oi_change,
            "oi_change_percent": self.oi_change_percent,
            "oi_value": self.oi_value,
            "oi_change_value": self.oi_change_value,
            "volume": self.volume,
            "volume_change": self.volume_change,
            "implied_volatility": self.implied_volatility,
            "last_price": self.last_price,
            "has_prev": self.has_prev,
            "volume_has_prev": self.volume_has_prev,
        }


def leg_change(
    quote: LegQuote | None,
    previous: LegQuote | None,
    has_predecessor: bool,
    lot_size: int = DEFAULT_LOT_SIZE,
) -> LegChange:
    """Delta for one leg.

    With a predecessor snapshot the delta is current minus previous (a
    missing previous leg counts as 0). Without one, the server-reported diff
    is used if present; otherwise the delta is 0 and flagged as not
    meaningful. OI and volume follow the rule independently.
    """
    current_oi = quote.open_interest if quote else 0
    current_volume = quote.total_traded_volume if quote else 0

    if has_predecessor:
        prev_oi = previous.open_interest if previous else 0
        prev_volume = previous.total_traded_volume if previous else 0
        return LegChange(
            quote=quote,
            oi_change=current_oi - prev_oi,
            volume_change=current_volume - prev_volume,
            has_prev=True,
            volume_has_prev=True,
            lot_size=lot_size,
        )

    reported_oi = quote.diff_open_interest if quote else None
    reported_volume = quote.diff_total_traded_volume if quote else None
    return LegChange(
        quote=quote,
        oi_change=reported_oi if reported_oi is not None else 0,
        volume_change=reported_volume if reported_volume is not None else 0,
        has_prev=reported_oi is not None,
        volume_has_prev=reported_volume is not None,
        lot_size=lot_size,
    )


@dataclass(frozen=True, slots=True)
class StrikeRow:
    """Call and put changes for one strike of the window."""

    strike: float
    ce: LegChange
    pe: LegChange
    is_atm: bool = False
    has_record: bool = True

    @property
    def has_prev(self) -> bool:
        return self.ce.has_prev or self.pe.has_prev

    def leg(self, side: str) -> LegChange:
        if side == CALL:
            return self.ce
        if side == PUT:
            return self.pe
        raise ValueError(f"Unknown option leg: {side!r}")

    def to_dict(self) -> dict:
        return {
            "strike": self.strike,
            "is_atm": self.is_atm,
            "has_record": self.has_record,
            "has_prev": self.has_prev,
            CALL: self.ce.to_dict(),
            PUT: self.pe.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class LegTotals:
    """Window-wide sums for one leg."""

    open_interest: int = 0
    oi_change: int = 0
    volume: int = 0
    volume_change: int = 0
    weighted_iv: float = 0.0
    oi_value: float = 0.0
    oi_change_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "open_interest": self.open_interest,
            "oi_change": self.oi_change,
            "volume": self.volume,
            "volume_change": self.volume_change,
            "weighted_iv": self.weighted_iv,
            "oi_value": self.oi_value,
            "oi_change_value": self.oi_change_value,
        }


def weighted_iv(legs: Iterable[LegChange]) -> float:
    """OI-weighted mean IV over legs with a quoted IV and positive OI."""
    product = 0.0
    weight = 0
    for leg in legs:
        iv = leg.implied_volatility
        if iv and leg.open_interest > 0:
            product += iv * leg.open_interest
            weight += leg.open_interest
    return product / weight if weight > 0 else 0.0


def leg_totals(rows: Iterable[StrikeRow], side: str, lot_size: int = DEFAULT_LOT_SIZE) -> LegTotals:
    legs = [row.leg(side) for row in rows]
    total_oi = sum(leg.open_interest for leg in legs)
    total_change = sum(leg.oi_change for leg in legs)
    return LegTotals(
        open_interest=total_oi,
        oi_change=total_change,
        volume=sum(leg.volume for leg in legs),
        volume_change=sum(leg.volume_change for leg in legs),
        weighted_iv=weighted_iv(legs),
        oi_value=oi_value(total_oi, lot_size),
        oi_change_value=oi_value(total_change, lot_size),
    )


@dataclass(frozen=True, slots=True)
class SnapshotView:
    """Everything the table (and the export) shows for one snapshot."""

    snapshot: Snapshot
    has_predecessor: bool
    atm_strike: float
    rows: tuple[StrikeRow, ...]
    ce_totals: LegTotals
    pe_totals: LegTotals

    @property
    def strikes(self) -> list[float]:
        return [row.strike for row in self.rows]

    @property
    def pcr(self) -> float:
        """Put/call OI ratio over the window."""
        if self.ce_totals.open_interest <= 0:
            return 0.0
        return self.pe_totals.open_interest / self.ce_totals.open_interest

    @property
    def call_share(self) -> float:
        combined = self.ce_totals.open_interest + self.pe_totals.open_interest
        return self.ce_totals.open_interest / combined * 100 if combined > 0 else 0.0

    @property
    def put_share(self) -> float:
        combined = self.ce_totals.open_interest + self.pe_totals.open_interest
        return self.pe_totals.open_interest / combined * 100 if combined > 0 else 0.0

    @property
    def bar_scale(self) -> float:
        """Full width of a per-strike OI bar: the largest leg OI plus 5%."""
        largest = max((max(r.ce.open_interest, r.pe.open_interest) for r in self.rows), default=0)
        return max(largest * BAR_HEADROOM, 1)

    def totals(self, side: str) -> LegTotals:
        if side == CALL:
            return self.ce_totals
        if side == PUT:
            return self.pe_totals
        raise ValueError(f"Unknown option leg: {side!r}")

    def to_dict(self) -> dict:
        snap = self.snapshot
        return {
            "id": snap.snapshot_id,
            "timestamp": snap.iso_timestamp,
            "time": snap.time_label,
            "nse_timestamp": snap.nse_timestamp,
            "spot_price": snap.spot_price,
            "atm_strike": self.atm_strike,
            "has_predecessor": self.has_predecessor,
            "rows": [row.to_dict() for row in self.rows],
            "totals": {CALL: self.ce_totals.to_dict(), PUT: self.pe_totals.to_dict()},
            "pcr": self.pcr,
            "call_share": self.call_share,
            "put_share": self.put_share,
            "bar_scale": self.bar_scale,
        }


def compute_view(
    snapshot: Snapshot,
    predecessor: Snapshot | None,
    selector: StrikeSelector,
    lot_size: int = DEFAULT_LOT_SIZE,
) -> SnapshotView:
    """Derive the per-strike rows and totals for ``snapshot``.

    ``predecessor`` must be the chronologically older neighbour in the same
    filtered, deduplicated sequence, or None for the oldest visible snapshot.
    """
    atm = selector.atm_for(snapshot)
    has_predecessor = predecessor is not None
    rows = []
    for strike in selector.window_for(snapshot):
        record = snapshot.record(strike)
        rows.append(
            StrikeRow(
                strike=strike,
                ce=leg_change(
                    snapshot.leg(strike, CALL),
                    predecessor.leg(strike, CALL) if predecessor else None,
                    has_predecessor,
                    lot_size,
                ),
                pe=leg_change(
                    snapshot.leg(strike, PUT),
                    predecessor.leg(strike, PUT) if predecessor else None,
                    has_predecessor,
                    lot_size,
                ),
                is_atm=strike == atm,
                has_record=record is not None,
            )
        )
    return SnapshotView(
        snapshot=snapshot,
        has_predecessor=has_predecessor,
        atm_strike=atm,
        rows=tuple(rows),
        ce_totals=leg_totals(rows, CALL, lot_size),
        pe_totals=leg_totals(rows, PUT, lot_size),
    )


def compute_views(
    snapshots: Iterable[Snapshot],
    predecessor_of: Callable[[Snapshot], Snapshot | None],
    selector: StrikeSelector,
    lot_size: int = DEFAULT_LOT_SIZE,
) -> list[SnapshotView]:
    """Views for each snapshot, in the order given."""
    return [compute_view(s, predecessor_of(s), selector, lot_size) for s in snapshots]
