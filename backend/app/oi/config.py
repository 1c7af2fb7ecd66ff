"""Runtime settings read from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .cache import DEFAULT_MAX_SIZE
from .diff import DEFAULT_LOT_SIZE
from .seed_chains import STRIKE_STEPS
from .strikes import DEFAULT_STRIKE_COUNT, DEFAULT_STRIKE_STEP, StrikeSelector

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "NIFTY"
DEFAULT_POLL_INTERVAL = 5.0


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _env_int(name: str, default: int | None) -> int | None:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, value, default)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, value, default)
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    """Environment-derived configuration.

    OI_API_URL         upstream base URL; empty selects the simulator
    OI_SYMBOL          underlying symbol (NIFTY)
    OI_LOT_SIZE        contract multiplier for OI value (65)
    OI_STRIKE_STEP     distance between strikes (per symbol: 50, or 100 for
                       BANKNIFTY and SENSEX)
    OI_STRIKE_COUNT    default window size, odd (5)
    OI_POLL_INTERVAL   seconds between polls (5)
    OI_HISTORY_LIMIT   max snapshots kept in memory (5000)
    OI_TIMEZONE        IANA zone for date filters; empty uses the system zone
    """

    api_url: str = ""
    symbol: str = DEFAULT_SYMBOL
    lot_size: int = DEFAULT_LOT_SIZE
    strike_step: int | None = None
    strike_count: int = DEFAULT_STRIKE_COUNT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    history_limit: int = DEFAULT_MAX_SIZE
    timezone: str = ""

    def __post_init__(self) -> None:
        if self.strike_step is None:
            object.__setattr__(self, "strike_step", STRIKE_STEPS.get(self.symbol, DEFAULT_STRIKE_STEP))
        StrikeSelector(count=self.strike_count, step=self.strike_step)

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            api_url=_env_str("OI_API_URL", "").rstrip("/"),
            symbol=_env_str("OI_SYMBOL", DEFAULT_SYMBOL).upper() or DEFAULT_SYMBOL,
            lot_size=_env_int("OI_LOT_SIZE", DEFAULT_LOT_SIZE),
            strike_step=_env_int("OI_STRIKE_STEP", None),
            strike_count=_env_int("OI_STRIKE_COUNT", DEFAULT_STRIKE_COUNT),
            poll_interval=_env_float("OI_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            history_limit=_env_int("OI_HISTORY_LIMIT", DEFAULT_MAX_SIZE),
            timezone=_env_str("OI_TIMEZONE", ""),
        )

    @property
    def tz(self) -> tzinfo | None:
        """Configured zone, or None for the system local zone."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown OI_TIMEZONE %r; using system local time", self.timezone)
            return None
