"""Integration tests for SimulatorSnapshotSource."""

import asyncio

import pytest

from app.oi.cache import SnapshotHistory
from app.oi.simulator import SimulatorSnapshotSource


@pytest.mark.asyncio
class TestSimulatorSnapshotSource:
    """Integration tests for the SimulatorSnapshotSource."""

    async def test_start_populates_history(self):
        """Test that start() merges an opening snapshot immediately."""
        history = SnapshotHistory()
        source = SimulatorSnapshotSource(history, update_interval=0.1)
        await source.start()

        assert len(history) >= 1
        assert history.latest().spot_price > 0

        await source.stop()

    async def test_history_grows_over_time(self):
        history = SnapshotHistory()
        source = SimulatorSnapshotSource(history, update_interval=0.05)
        await source.start()

        initial_version = history.version
        await asyncio.sleep(0.3)  # Several update cycles

        assert history.version > initial_version
        assert len(history) > 1

        await source.stop()

    async def test_stop_is_clean(self):
        """Test that stop() is clean and idempotent."""
        source = SimulatorSnapshotSource(SnapshotHistory(), update_interval=0.1)
        await source.start()
        await source.stop()
        assert source._task is None
        # Double stop should not raise
        await source.stop()

    async def test_loop_keeps_running(self):
        source = SimulatorSnapshotSource(SnapshotHistory(), update_interval=0.05)
        await source.start()
        await asyncio.sleep(0.15)

        assert source._task is not None
        assert not source._task.done()

        await source.stop()

    async def test_fetch_all_returns_history_size(self):
        history = SnapshotHistory()
        source = SimulatorSnapshotSource(history, update_interval=10.0)
        await source.start()

        assert await source.fetch_all() == len(history)

        await source.stop()

    async def test_get_symbol(self):
        source = SimulatorSnapshotSource(SnapshotHistory(), symbol="SENSEX")
        assert source.get_symbol() == "SENSEX"
