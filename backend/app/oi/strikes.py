"""At-the-money strike and strike window selection."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import InvalidConfigError
from .models import Snapshot

DEFAULT_STRIKE_STEP = 50
DEFAULT_STRIKE_COUNT = 5


def _validate_step(step: float) -> None:
    if isinstance(step, bool) or not isinstance(step, (int, float)) or not step > 0:
        raise InvalidConfigError(f"Strike step must be a positive number, got {step!r}")


def _validate_count(count: int) -> None:
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidConfigError(f"Strike count must be an integer, got {count!r}")
    if count < 1 or count % 2 == 0:
        raise InvalidConfigError(f"Strike count must be odd and >= 1, got {count}")


def nearest_strike(spot: float, step: float = DEFAULT_STRIKE_STEP) -> float:
    """Round ``spot`` to the nearest multiple of ``step``, ties away from zero."""
    _validate_step(step)
    multiple = math.floor(abs(spot) / step + 0.5)
    return math.copysign(multiple * step, spot)


def strike_window(atm_strike: float, count: int, step: float = DEFAULT_STRIKE_STEP) -> list[float]:
    """Return ``count`` ascending strikes centred on ``atm_strike``."""
    _validate_count(count)
    _validate_step(step)
    half = (count - 1) // 2
    return [atm_strike + k * step for k in range(-half, half + 1)]


@dataclass(frozen=True, slots=True)
class StrikeSelector:
    """The active strike window definition.

    Every consumer (table, export, deduplication) derives its strikes from
    this object so the three always agree.
    """

    count: int = DEFAULT_STRIKE_COUNT
    step: float = DEFAULT_STRIKE_STEP

    def __post_init__(self) -> None:
        _validate_count(self.count)
        _validate_step(self.step)

    def atm_for(self, snapshot: Snapshot) -> float:
        return nearest_strike(snapshot.spot_price, self.step)

    def window_for(self, snapshot: Snapshot) -> list[float]:
        """Strikes around the snapshot's own ATM strike."""
        return strike_window(self.atm_for(snapshot), self.count, self.step)
