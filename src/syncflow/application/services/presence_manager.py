"""Presence registration, heartbeat and stale-peer eviction."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from syncflow.domain import store_paths
from syncflow.domain.clock import Clock, now_ms
from syncflow.domain.contracts.realtime_store import (
    RealtimeStoreProtocol,  # noqa: TC001 - Runtime dependency: used in __init__ signature
)
from syncflow.domain.models.presence_record import PresenceInfo, PresenceRecord

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_MS = 30_000
STALE_THRESHOLD_MS = 60_000

TickHook = Callable[[], Awaitable[None]]
StatusCallback = Callable[[bool], None]


@dataclass(frozen=True)
class PresenceSettings:
    """Timing for presence heartbeats."""

    heartbeat_interval_ms: int = HEARTBEAT_INTERVAL_MS
    stale_threshold_ms: int = STALE_THRESHOLD_MS

    def __post_init__(self) -> None:
        if self.heartbeat_interval_ms >= self.stale_threshold_ms:
            raise ValueError("heartbeat interval must be shorter than the stale threshold")


def sweep_stale(
    records: Iterable[PresenceRecord], now: int, threshold_ms: int = STALE_THRESHOLD_MS
) -> list[PresenceRecord]:
    """Return every record whose last heartbeat is older than the threshold.

    Pure; the caller deletes what is returned.
    """
    return [record for record in records if now - record.last_seen > threshold_ms]


def _wire_record(record_id: str, info: PresenceInfo, last_seen: int) -> dict:
    record = PresenceRecord(
        id=record_id,
        display_name=info.display_name,
        device_class=info.device_class,
        profile_image=info.profile_image,
        last_seen=last_seen,
    )
    return record.model_dump(mode="json", by_alias=True)


class PresenceHandle:
    """A registered presence record. Releasing it stops the heartbeat and deletes the record."""

    def __init__(self, manager: PresenceManager, record_id: str, task: asyncio.Task) -> None:
        self._manager = manager
        self.record_id = record_id
        self._task = task
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Stop heartbeating and remove the record. Safe to call twice."""
        if self._released:
            return
        self._released = True
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.debug(f"Heartbeat for {self.record_id} cancelled")
        await self._manager._remove(self.record_id)


class PresenceManager:
    """Publishes this client's presence record and evicts stale peers."""

    def __init__(
        self,
        store: RealtimeStoreProtocol,
        settings: PresenceSettings | None = None,
        clock: Clock = now_ms,
        on_status_change: StatusCallback | None = None,
    ) -> None:
        """Initialize the presence manager.

        Args:
            store: The realtime store.
            settings: Heartbeat timing.
            clock: Epoch-millisecond clock.
            on_status_change: Called with True/False when publishing starts succeeding or failing.
        """
        self._store = store
        self.settings = settings or PresenceSettings()
        self._clock = clock
        self._on_status_change = on_status_change
        self.connected: bool | None = None

    async def register(
        self, record_id: str, info: PresenceInfo, on_tick: TickHook | None = None
    ) -> PresenceHandle:
        """Publish the record now, then keep refreshing it on every heartbeat.

        Args:
            record_id: Identity the record is keyed by.
            info: Display data published with the record.
            on_tick: Optional coroutine run after every heartbeat (e.g. a stale sweep).

        Returns:
            Handle whose release stops the heartbeat and deletes the record.
        """
        await self._publish(record_id, info)
        task = asyncio.create_task(self._heartbeat_loop(record_id, info, on_tick))
        logger.info(f"Registered presence for {record_id} ({info.device_class})")
        return PresenceHandle(self, record_id, task)

    async def _heartbeat_loop(
        self, record_id: str, info: PresenceInfo, on_tick: TickHook | None
    ) -> None:
        interval = self.settings.heartbeat_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            await self._publish(record_id, info)
            if on_tick is not None:
                try:
                    await on_tick()
                except Exception as e:
                    logger.error(f"Presence tick hook failed: {e}", exc_info=True)

    async def _publish(self, record_id: str, info: PresenceInfo) -> bool:
        """Write the record and re-arm its removal on disconnect.

        Failures are left for the next heartbeat to retry. The disconnect hook is
        consumed when it fires, so it is renewed after every successful write.
        """
        path = store_paths.device_path(record_id)
        try:
            await self._store.write(path, _wire_record(record_id, info, self._clock()))
        except Exception as e:
            logger.warning(f"Presence heartbeat for {record_id} failed: {e}")
            self._set_connected(False)
            return False
        self._set_connected(True)
        try:
            await self._store.on_disconnect_remove(path)
        except Exception as e:
            logger.warning(f"Failed to register disconnect cleanup for {path}: {e}")
        return True

    async def _remove(self, record_id: str) -> None:
        path = store_paths.device_path(record_id)
        try:
            await self._store.cancel_on_disconnect(path)
        except Exception as e:
            logger.warning(f"Failed to cancel disconnect cleanup for {path}: {e}")
        try:
            await self._store.delete(path)
            logger.info(f"Unregistered presence for {record_id}")
        except Exception as e:
            # The store's disconnect hook still removes it server-side.
            logger.warning(f"Failed to delete presence record {record_id}: {e}")

    async def evict_stale(
        self, records: Iterable[PresenceRecord], now: int | None = None
    ) -> list[str]:
        """Delete every stale record and return their ids.

        Deleting an already-deleted record is a no-op, so concurrent sweeps by
        several clients are harmless.
        """
        now = self._clock() if now is None else now
        stale = sweep_stale(records, now, self.settings.stale_threshold_ms)
        evicted: list[str] = []
        for record in stale:
            try:
                await self._store.delete(store_paths.device_path(record.id))
                evicted.append(record.id)
            except Exception as e:
                logger.warning(f"Failed to evict stale presence record {record.id}: {e}")
        if evicted:
            logger.info(f"Evicted {len(evicted)} stale presence record(s): {', '.join(evicted)}")
        return evicted

    def _set_connected(self, connected: bool) -> None:
        if self.connected == connected:
            return
        self.connected = connected
        if self._on_status_change is not None:
            self._on_status_change(connected)
