"""
Network reachability tracking.

Holds the last connectivity verdict and tells subscribers about every
edge (offline to online and back). Verdicts come either from the host
application via ``set_online`` or from an optional background probe.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from .logging_utils import get_sync_logger

logger = get_sync_logger("connectivity")

ConnectivityListener = Callable[[bool], Awaitable[None] | None]
Probe = Callable[[], Awaitable[bool]]


class ConnectivityMonitor:
    """Reachability verdict plus edge notifications.

    No verdict yet reads as offline. The first online verdict is an
    offline-to-online edge.

    Example:
        >>> monitor = ConnectivityMonitor(probe=remote.ping, probe_interval=15)
        >>> monitor.subscribe(lambda online: print("online" if online else "offline"))
        >>> await monitor.start()
    """

    def __init__(
        self,
        probe: Probe | None = None,
        probe_interval: float = 15.0,
        probe_timeout: float = 3.0,
    ) -> None:
        """Initialize the monitor.

        Args:
            probe: Coroutine function returning True when the remote is reachable
            probe_interval: Seconds between background probes
            probe_timeout: Seconds before a probe counts as failed
        """
        self.probe = probe
        self.probe_interval = probe_interval
        self.probe_timeout = probe_timeout

        self._online: bool | None = None
        self._listeners: list[ConnectivityListener] = []
        self._running = False
        self._probe_task: asyncio.Task[None] | None = None

    @property
    def is_online(self) -> bool:
        """Last verdict; unknown counts as offline."""
        return bool(self._online)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a listener for connectivity edges.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_online(self, online: bool) -> bool:
        """Record a verdict and notify listeners if it is an edge.

        Returns:
            True if the verdict changed the state
        """
        previous = self.is_online
        self._online = online
        if online == previous:
            return False

        logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        for listener in list(self._listeners):
            try:
                result = listener(online)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Connectivity listener failed: {e}", exc_info=True)
        return True

    async def probe_once(self) -> bool:
        """Run the probe and record its verdict.

        Returns:
            The verdict; any probe error counts as offline
        """
        if self.probe is None:
            return self.is_online
        try:
            online = bool(await asyncio.wait_for(self.probe(), timeout=self.probe_timeout))
        except Exception as e:
            logger.debug(f"Connectivity probe failed: {e}")
            online = False
        await self.set_online(online)
        return online

    async def start(self) -> None:
        """Start background probing."""
        if self._running or self.probe is None:
            return
        self._running = True
        self._probe_task = asyncio.create_task(self._probe_loop())
        logger.info(f"Connectivity monitor started (interval={self.probe_interval}s)")

    async def stop(self) -> None:
        """Stop background probing."""
        self._running = False
        if self._probe_task:
            self._probe_task.cancel()
            try:
                await self._probe_task
            except asyncio.CancelledError:
                pass
            self._probe_task = None
        logger.info("Connectivity monitor stopped")

    async def _probe_loop(self) -> None:
        while self._running:
            await self.probe_once()
            await asyncio.sleep(self.probe_interval)
