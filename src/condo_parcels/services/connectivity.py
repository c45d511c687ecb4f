"""Online/offline tracking and reconnect-triggered sync.

Transitions arrive either from the front-desk client (which forwards its
browser online/offline events) or from an optional background probe that
pings the remote store. Each offline-to-online transition runs exactly one
drain of the pending queue.
"""

from __future__ import annotations

import asyncio
import logging

from condo_parcels.core.settings import settings
from condo_parcels.schemas.sync import SyncResult
from condo_parcels.services.local_store import LocalStorageError
from condo_parcels.services.remote_store import RemoteDocumentStore, get_remote_store
from condo_parcels.services.sync_engine import SyncEngine, get_sync_engine

# Configure logger for this module
logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Edge-triggered connectivity state with a sync hook on reconnect."""

    def __init__(
        self,
        sync_engine: SyncEngine,
        remote_store: RemoteDocumentStore | None = None,
        initially_online: bool = True,
        probe_interval_seconds: float | None = None,
    ) -> None:
        self.sync_engine = sync_engine
        self.remote_store = remote_store
        self._online = initially_online
        self._probe_interval = probe_interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def is_online(self) -> bool:
        return self._online

    async def set_online(self, online: bool) -> SyncResult | None:
        """Record a reported connectivity state.

        Returns:
            The drain result when this report was an offline-to-online transition,
            otherwise None.
        """
        if online == self._online:
            return None

        self._online = online
        if not online:
            logger.info("Network disconnected, entering offline mode")
            return None

        logger.info("Network reconnected, syncing...")
        result = await self.sync_engine.sync_pending_items()
        logger.info("Sync result after reconnect: %s", result.model_dump(mode="json"))
        return result

    async def start(self) -> None:
        """Start the background probe loop."""

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background probe loop."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(
            0.1,
            float(self._probe_interval or settings.connectivity_probe_interval_seconds),
        )
        remote_store = self.remote_store or get_remote_store()

        while not self._stopping.is_set():
            reachable = await remote_store.ping()
            try:
                await self.set_online(reachable)
            except LocalStorageError as e:
                logger.error("Reconnect sync could not read the local queue: %s", e)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue


_monitor: ConnectivityMonitor | None = None


def get_connectivity_monitor() -> ConnectivityMonitor:
    """Return the process-wide connectivity monitor."""
    global _monitor
    if _monitor is None:
        _monitor = ConnectivityMonitor(
            get_sync_engine(),
            initially_online=settings.assume_online_at_startup,
        )
    return _monitor
