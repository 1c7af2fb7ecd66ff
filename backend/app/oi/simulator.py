"""GBM-driven option-chain simulator."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, tzinfo

import numpy as np

from .cache import SnapshotHistory
from .interface import SnapshotSource
from .models import CALL, PUT, Snapshot
from .seed_chains import (
    BASE_IV,
    BASE_OI,
    CHAIN_DEPTH,
    DAYS_TO_EXPIRY,
    DEFAULT_PARAMS,
    IV_SMILE_PER_STRIKE,
    OI_CHANGE_PROBABILITY,
    OI_CHANGE_SCALE,
    OI_DECAY_PER_STRIKE,
    SEED_SPOTS,
    SPOT_PARAMS,
    STRIKE_STEPS,
)
from .strikes import DEFAULT_STRIKE_STEP, nearest_strike

logger = logging.getLogger(__name__)


class ChainSimulator:
    """Simulated option chain for one underlying.

    The spot follows Geometric Brownian Motion:

        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Each strike/leg keeps its own open interest, volume and IV. On every step
    a leg's OI moves with probability ``oi_change_probability`` by a normal
    draw scaled to its current size; volume only grows. Records come out in
    the same shape as the upstream API, so they go through Snapshot.from_dict
    like real data.
    """

    # NSE session 09:15-15:30 = 6.25h, 252 sessions per year
    TRADING_SECONDS_PER_YEAR = 252 * 6.25 * 3600  # 5,670,000
    DEFAULT_DT = 5.0 / TRADING_SECONDS_PER_YEAR  # one 5s poll

    def __init__(
        self,
        symbol: str,
        dt: float = DEFAULT_DT,
        oi_change_probability: float = OI_CHANGE_PROBABILITY,
        depth: int = CHAIN_DEPTH,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._symbol = symbol
        self._dt = dt
        self._change_prob = oi_change_probability
        self._depth = depth
        self._rng = rng if rng is not None else np.random.default_rng()
        self._step = STRIKE_STEPS.get(symbol, DEFAULT_STRIKE_STEP)
        self._params = SPOT_PARAMS.get(symbol, dict(DEFAULT_PARAMS))
        if symbol in SEED_SPOTS:
            self._spot = SEED_SPOTS[symbol]
        else:
            self._spot = float(self._rng.uniform(10_000.0, 50_000.0))

        # strike -> leg -> {"oi", "open_oi", "volume", "iv"}
        self._chain: dict[float, dict[str, dict[str, float]]] = {}
        self._ensure_strikes()

    # --- Public API ---

    @property
    def spot(self) -> float:
        return round(self._spot, 2)

    @property
    def strike_step(self) -> int:
        return self._step

    def strikes(self) -> list[float]:
        return sorted(self._chain)

    def step(self, timestamp: datetime | None = None) -> dict:
        """Advance the chain by one tick and return the new record."""
        mu = self._params["mu"]
        sigma = self._params["sigma"]
        drift = (mu - 0.5 * sigma**2) * self._dt
        diffusion = sigma * math.sqrt(self._dt) * self._rng.standard_normal()
        self._spot *= math.exp(drift + diffusion)

        self._ensure_strikes()
        for legs in self._chain.values():
            for state in legs.values():
                if self._rng.random() < self._change_prob:
                    change = int(round(self._rng.normal(0.0, max(state["oi"], 1_000) * OI_CHANGE_SCALE)))
                    state["oi"] = max(0, state["oi"] + change)
                    state["volume"] += abs(change) + int(self._rng.integers(0, 500))
                state["iv"] = max(0.5, state["iv"] + self._rng.normal(0.0, 0.05))

        return self.record(timestamp)

    def record(self, timestamp: datetime | None = None) -> dict:
        """Current chain as an upstream-shaped record."""
        ts = timestamp or datetime.now().astimezone()
        data = []
        total = {CALL: 0, PUT: 0}
        for strike in self.strikes():
            item: dict = {"strikePrice": strike}
            for side, state in self._chain[strike].items():
                oi = int(state["oi"])
                total[side] += oi
                item[side] = {
                    "openInterest": oi,
                    "diffOpenInterest": oi - int(state["open_oi"]),
                    "totalTradedVolume": int(state["volume"]),
                    "impliedVolatility": round(state["iv"], 2),
                    "lastPrice": self._last_price(strike, side, state["iv"]),
                }
            data.append(item)

        return {
            "timestamp": ts.isoformat(),
            "data": {
                "nseTimestamp": ts.strftime("%d-%b-%Y %H:%M:%S"),
                "records": {"underlyingValue": self.spot, "data": data},
                "filtered": {CALL: {"totOI": total[CALL]}, PUT: {"totOI": total[PUT]}},
            },
        }

    # --- Internals ---

    def _ensure_strikes(self) -> None:
        """List strikes within ``depth`` steps of the current ATM strike."""
        atm = nearest_strike(self._spot, self._step)
        for k in range(-self._depth, self._depth + 1):
            strike = atm + k * self._step
            if strike <= 0 or strike in self._chain:
                continue
            distance = abs(k)
            oi = BASE_OI * math.exp(-OI_DECAY_PER_STRIKE * distance)
            iv = BASE_IV + IV_SMILE_PER_STRIKE * distance
            self._chain[strike] = {
                side: {
                    "oi": float(int(oi * self._rng.uniform(0.7, 1.3))),
                    "volume": 0.0,
                    "iv": iv,
                }
                for side in (CALL, PUT)
            }
            for state in self._chain[strike].values():
                state["open_oi"] = state["oi"]

    def _last_price(self, strike: float, side: str, iv: float) -> float:
        """Intrinsic value plus a bell-shaped time value around the spot."""
        spot = self._spot
        intrinsic = max(spot - strike, 0.0) if side == CALL else max(strike - spot, 0.0)
        width = spot * iv / 100 * math.sqrt(DAYS_TO_EXPIRY / 365)
        time_value = 0.4 * width * math.exp(-0.5 * ((strike - spot) / width) ** 2)
        return round(intrinsic + time_value, 2)


class SimulatorSnapshotSource(SnapshotSource):
    """SnapshotSource backed by ChainSimulator.

    Runs a background asyncio task that steps the simulator every
    ``update_interval`` seconds and merges the record into the history.
    """

    def __init__(
        self,
        history: SnapshotHistory,
        symbol: str = "NIFTY",
        update_interval: float = 5.0,
        oi_change_probability: float = OI_CHANGE_PROBABILITY,
        tz: tzinfo | None = None,
    ) -> None:
        self._history = history
        self._symbol = symbol
        self._interval = update_interval
        self._change_prob = oi_change_probability
        self._tz = tz
        self._sim: ChainSimulator | None = None
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        self._sim = ChainSimulator(
            symbol=self._symbol,
            oi_change_probability=self._change_prob,
        )
        # Seed the history so the table has a baseline immediately
        self._merge(self._sim.record(self._now()))
        self._task = asyncio.create_task(self._run_loop(), name="oi-simulator-loop")
        logger.info("Simulator started for %s", self._symbol)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Simulator stopped")

    async def fetch_all(self, selected_date: date | None = None, time_filter: str | None = None) -> int:
        # The simulator has no upstream; the in-memory history is everything.
        return len(self._history)

    def get_symbol(self) -> str:
        return self._symbol

    def _now(self) -> datetime:
        return datetime.now(self._tz).astimezone(self._tz)

    def _merge(self, record: dict) -> None:
        self._history.merge(Snapshot.from_dict(record, tz=self._tz))

    async def _run_loop(self) -> None:
        """Core loop: step the chain, merge into history, sleep."""
        while True:
            try:
                if self._sim:
                    self._merge(self._sim.step(self._now()))
            except Exception:
                logger.exception("Simulator step failed")
            await asyncio.sleep(self._interval)
