"""Tests for ConnectivityMonitor edge delivery and probing."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from expense_sync import ConnectivityMonitor


class TestEdges:
    """Listeners see transitions, not repeated verdicts."""

    async def test_no_verdict_reads_as_offline(self) -> None:
        assert ConnectivityMonitor().is_online is False

    async def test_edges_only(self) -> None:
        monitor = ConnectivityMonitor()
        seen: list[bool] = []
        monitor.subscribe(seen.append)

        await monitor.set_online(False)
        await monitor.set_online(True)
        await monitor.set_online(True)
        await monitor.set_online(False)
        await monitor.set_online(False)

        assert seen == [True, False]

    async def test_async_listeners_are_awaited(self) -> None:
        monitor = ConnectivityMonitor()
        listener = AsyncMock()
        monitor.subscribe(listener)

        changed = await monitor.set_online(True)

        assert changed is True
        listener.assert_awaited_once_with(True)

    async def test_failing_listener_does_not_block_others(self) -> None:
        monitor = ConnectivityMonitor()
        seen: list[bool] = []

        def broken(online: bool) -> None:
            raise RuntimeError("boom")

        monitor.subscribe(broken)
        monitor.subscribe(seen.append)

        await monitor.set_online(True)

        assert seen == [True]

    async def test_unsubscribe(self) -> None:
        monitor = ConnectivityMonitor()
        seen: list[bool] = []
        unsubscribe = monitor.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        await monitor.set_online(True)

        assert seen == []


class TestProbe:
    """Tests for probe-driven verdicts."""

    async def test_probe_result_becomes_verdict(self) -> None:
        monitor = ConnectivityMonitor(probe=AsyncMock(return_value=True))

        assert await monitor.probe_once() is True
        assert monitor.is_online is True

    async def test_probe_error_counts_as_offline(self) -> None:
        monitor = ConnectivityMonitor(probe=AsyncMock(side_effect=OSError("no route")))
        await monitor.set_online(True)

        assert await monitor.probe_once() is False
        assert monitor.is_online is False

    async def test_slow_probe_times_out_as_offline(self) -> None:
        async def hang() -> bool:
            await asyncio.sleep(10)
            return True

        monitor = ConnectivityMonitor(probe=hang, probe_timeout=0.01)

        assert await monitor.probe_once() is False

    async def test_without_probe_keeps_last_verdict(self) -> None:
        monitor = ConnectivityMonitor()
        await monitor.set_online(True)

        assert await monitor.probe_once() is True

    async def test_background_loop(self) -> None:
        probe = AsyncMock(return_value=True)
        monitor = ConnectivityMonitor(probe=probe, probe_interval=0.01)
        seen: list[bool] = []
        monitor.subscribe(seen.append)

        await monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()

        assert probe.await_count >= 2
        assert seen == [True]
        assert monitor.is_online is True
