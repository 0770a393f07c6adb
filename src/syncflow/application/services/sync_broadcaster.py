"""Fan-out of reconciler events to listeners."""

from __future__ import annotations

import logging

from syncflow.domain.contracts.sync_listener import SyncListenerProtocol
from syncflow.domain.models.notification import NewItemEvent
from syncflow.domain.models.stream import StreamKey

logger = logging.getLogger(__name__)


class SyncEventBroadcaster:
    """Delivers reconciler events to every subscribed listener.

    A listener that raises is logged and skipped; it never interrupts
    reconciliation or the other listeners.
    """

    def __init__(self) -> None:
        self._listeners: list[SyncListenerProtocol] = []

    def subscribe(self, listener: SyncListenerProtocol) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SyncListenerProtocol) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def broadcast_update(self, stream: StreamKey) -> None:
        for listener in list(self._listeners):
            try:
                listener.on_stream_updated(stream)
            except Exception as e:
                logger.error(f"Listener failed handling update of {stream}: {e}", exc_info=True)

    def broadcast_new_item(self, event: NewItemEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener.on_new_item(event)
            except Exception as e:
                logger.error(f"Listener failed handling new item {event.item.id}: {e}", exc_info=True)

    def broadcast_connection_status(self, connected: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener.on_connection_status(connected)
            except Exception as e:
                logger.error(f"Listener failed handling connection status: {e}", exc_info=True)
