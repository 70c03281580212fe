import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

import httpx

from store_edge.core.config import Settings

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]
SyncTrigger = Callable[[], Awaitable[object]]


class NetworkMonitor:
    """Single cached connectivity flag with transition listeners.

    Observations come from ``set_connected`` (or the optional HTTP probe
    loop). Listeners fire only when the state changes. Going online also
    starts a sync through the attached trigger; going offline just notifies,
    syncs already running are left to fail on their own.
    """

    def __init__(
        self,
        probe_url: Optional[str] = None,
        probe_interval: float = 15.0,
        probe_timeout: float = 3.0,
        connected: bool = False,
    ):
        self._connected = connected
        self._probe_url = probe_url
        self._probe_interval = probe_interval
        self._probe_timeout = probe_timeout
        self._listeners: List[Listener] = []
        self._sync_trigger: Optional[SyncTrigger] = None
        self._sync_tasks: Set[asyncio.Task] = set()
        self._probe_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "NetworkMonitor":
        return cls(
            probe_url=settings.CONNECTIVITY_PROBE_URL,
            probe_interval=settings.CONNECTIVITY_PROBE_INTERVAL,
            probe_timeout=settings.CONNECTIVITY_PROBE_TIMEOUT,
        )

    def is_connected(self) -> bool:
        return self._connected

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if subscribed:
                subscribed = False
                self._listeners.remove(listener)

        return unsubscribe

    def attach_sync_trigger(self, trigger: SyncTrigger) -> None:
        self._sync_trigger = trigger

    def set_connected(self, connected: bool) -> None:
        was_connected = self._connected
        self._connected = connected
        if was_connected == connected:
            return

        if connected:
            logger.info("Network connected - starting sync")
            self._schedule_sync()
        else:
            logger.info("Network disconnected - going offline")

        for listener in list(self._listeners):
            try:
                listener(connected)
            except Exception:
                logger.exception("Connectivity listener %r failed", listener)

    def _schedule_sync(self) -> None:
        if self._sync_trigger is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; automatic sync not started")
            return
        task = loop.create_task(self._sync_trigger())
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    async def wait_for_sync(self) -> None:
        """Wait until syncs started by connectivity transitions have finished."""
        if self._sync_tasks:
            await asyncio.gather(*list(self._sync_tasks), return_exceptions=True)

    async def probe(self) -> bool:
        if not self._probe_url:
            return self._connected
        try:
            async with httpx.AsyncClient(timeout=self._probe_timeout) as client:
                response = await client.get(self._probe_url)
            online = response.status_code < 500
        except httpx.HTTPError as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            online = False
        self.set_connected(online)
        return online

    async def _probe_loop(self) -> None:
        while True:
            await self.probe()
            await asyncio.sleep(self._probe_interval)

    def start(self) -> None:
        if self._probe_url and self._probe_task is None:
            self._probe_task = asyncio.get_running_loop().create_task(self._probe_loop())

    async def stop(self) -> None:
        if self._probe_task is not None:
            self._probe_task.cancel()
            try:
                await self._probe_task
            except asyncio.CancelledError:
                pass
            self._probe_task = None
