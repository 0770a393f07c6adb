"""Subscription lifecycle and snapshot reconciliation for every stream.

Each stream (the active content feed, the open reply thread, the room catalog,
membership, admins and devices) has its own subscription, generation number
and seen-id set. Snapshots are decoded into ordered, typed collections on
``SyncState``; first sightings of peer items become ``NewItemEvent``s.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from functools import partial
from typing import Any

from syncflow.application.services.reconciliation import (
    decode_admins,
    decode_devices,
    decode_membership,
    decode_rooms,
    detect_new_items,
    order_items,
    order_replies,
)
from syncflow.application.services.sync_broadcaster import SyncEventBroadcaster
from syncflow.application.services.sync_state import ConnectionStatus, SyncState
from syncflow.domain import store_paths
from syncflow.domain.contracts.content_switcher import ContentStreamSwitcherProtocol
from syncflow.domain.contracts.realtime_store import RealtimeStoreProtocol, Subscription
from syncflow.domain.errors import ConnectionLost
from syncflow.domain.models.identity import Identity
from syncflow.domain.models.notification import NewItemEvent
from syncflow.domain.models.shared_item import Reply, SharedItem
from syncflow.domain.models.stream import StreamKey, StreamKind, StreamSelector

logger = logging.getLogger(__name__)

DIRECTORY_STREAMS = (StreamKind.ROOMS, StreamKind.MEMBERSHIP, StreamKind.ADMINS, StreamKind.DEVICES)


class StreamState(StrEnum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    LIVE = "live"
    ERROR = "error"


@dataclass(frozen=True)
class ReconcilerSettings:
    """Notification and retry policy."""

    # Notify for every pre-existing item the first time the global feed is
    # subscribed, as older web clients did. Off: first snapshots are silent
    # on every stream.
    legacy_feed_notifies_on_first_snapshot: bool = False
    # Keep seen ids per stream across unsubscribe/resubscribe.
    remember_seen_ids_across_subscriptions: bool = False
    resubscribe_delay_seconds: float = 5.0


@dataclass
class _Stream:
    key: StreamKey
    generation: int
    state: StreamState = StreamState.SUBSCRIBING
    subscription: Subscription | None = None
    seen_ids: set[str] = field(default_factory=set)
    snapshots: int = 0
    last_error: ConnectionLost | None = None


class EventReconciler(ContentStreamSwitcherProtocol):
    """Turns raw store snapshots into reconciled state and new-item events."""

    def __init__(
        self,
        store: RealtimeStoreProtocol,
        viewer: Identity,
        settings: ReconcilerSettings | None = None,
        state: SyncState | None = None,
        broadcaster: SyncEventBroadcaster | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: The realtime store to subscribe to.
            viewer: Identity whose own items never produce notifications.
            settings: Notification and retry policy.
            state: State object to project snapshots onto.
            broadcaster: Fan-out for updates, new items and connection status.
        """
        self._store = store
        self.viewer = viewer
        self.settings = settings or ReconcilerSettings()
        self.state = state or SyncState()
        self.broadcaster = broadcaster or SyncEventBroadcaster()
        self._generations = itertools.count(1)
        self._streams: dict[StreamKey, _Stream] = {}
        self._remembered_seen: dict[StreamKey, set[str]] = {}
        self._retry_tasks: dict[StreamKey, asyncio.Task] = {}
        self._content_key: StreamKey | None = None

    # Lifecycle

    def subscribe_directory(self) -> None:
        """Subscribe the room catalog, membership, admin and device streams."""
        for kind in DIRECTORY_STREAMS:
            key = StreamKey(kind)
            if key not in self._streams:
                self._open(key)

    def switch_content_stream(self, selector: StreamSelector) -> None:
        """Atomically replace the content subscription.

        The old subscription is cancelled and its items cleared before the new
        one is created, so listeners never observe two feeds at once.
        """
        new_key = store_paths.content_stream_key(selector)
        if selector == self.state.content and new_key == self._content_key:
            if new_key is None or new_key in self._streams:
                return
        old_key = self._content_key
        self.close_thread()
        if old_key is not None:
            self._close(old_key)
        self._content_key = new_key
        self.state.content = selector
        self.state.items = []
        logger.info(f"Switched content stream from {old_key} to {new_key or 'waiting'}")
        if new_key is not None:
            self._open(new_key)
        changed = new_key or old_key
        if changed is not None:
            self.broadcaster.broadcast_update(changed)

    def open_thread(self, item_id: str) -> None:
        """Subscribe the reply thread of one item, replacing any open thread."""
        self.close_thread()
        self.state.thread_item_id = item_id
        self._open(StreamKey(StreamKind.REPLIES, item_id))

    def close_thread(self) -> None:
        item_id = self.state.thread_item_id
        if item_id is None:
            return
        self._close(StreamKey(StreamKind.REPLIES, item_id))
        self.state.thread_item_id = None
        self.state.replies = []

    def unsubscribe_all(self) -> None:
        """Detach every subscription, e.g. on logout."""
        for key in list(self._streams):
            self._close(key)
        self._content_key = None
        self.state.thread_item_id = None
        self.state.replies = []
        self.state.items = []
        self.state.content = StreamSelector.waiting()
        logger.info("Unsubscribed all streams")

    def stream_state(self, key: StreamKey) -> StreamState:
        stream = self._streams.get(key)
        return stream.state if stream is not None else StreamState.UNSUBSCRIBED

    def last_error(self, key: StreamKey) -> ConnectionLost | None:
        stream = self._streams.get(key)
        return stream.last_error if stream is not None else None

    @property
    def content_key(self) -> StreamKey | None:
        return self._content_key

    # Subscriptions

    def _open(
        self, key: StreamKey, seen_ids: set[str] | None = None, snapshots: int = 0
    ) -> None:
        generation = next(self._generations)
        if seen_ids is None:
            if self.settings.remember_seen_ids_across_subscriptions:
                seen_ids = self._remembered_seen.setdefault(key, set())
            else:
                seen_ids = set()
        stream = _Stream(key=key, generation=generation, seen_ids=seen_ids, snapshots=snapshots)
        self._streams[key] = stream
        path = store_paths.stream_path(key)
        logger.debug(f"Subscribing {key} at '{path}' (generation {generation})")
        try:
            stream.subscription = self._store.subscribe(
                path,
                partial(self._on_snapshot, key, generation),
                partial(self._on_error, key, generation),
            )
        except Exception as e:
            self._on_error(key, generation, e)

    def _close(self, key: StreamKey) -> None:
        retry = self._retry_tasks.pop(key, None)
        if retry is not None and not retry.done():
            retry.cancel()
        stream = self._streams.pop(key, None)
        if stream is None:
            return
        if stream.subscription is not None:
            stream.subscription.cancel()
        logger.debug(f"Unsubscribed {key} (generation {stream.generation})")

    def _current(self, key: StreamKey, generation: int) -> _Stream | None:
        stream = self._streams.get(key)
        if stream is None or stream.generation != generation:
            logger.debug(f"Ignoring late callback for {key} (generation {generation})")
            return None
        return stream

    def _on_snapshot(self, key: StreamKey, generation: int, raw: Any) -> None:
        stream = self._current(key, generation)
        if stream is None:
            return
        first = stream.snapshots == 0
        stream.snapshots += 1
        stream.state = StreamState.LIVE
        stream.last_error = None
        self._apply(stream, raw, first)
        self._refresh_connection_status()
        self.broadcaster.broadcast_update(key)

    def _on_error(self, key: StreamKey, generation: int, error: Exception) -> None:
        stream = self._current(key, generation)
        if stream is None:
            return
        if stream.subscription is not None:
            stream.subscription.cancel()
            stream.subscription = None
        stream.state = StreamState.ERROR
        stream.last_error = ConnectionLost(f"Subscription to {key} failed: {error}")
        logger.error(f"Subscription to {key} failed: {error}")
        self._set_connection_status(ConnectionStatus.DISCONNECTED)
        self._schedule_resubscribe(stream)

    def _schedule_resubscribe(self, stream: _Stream) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; {stream.key} will not be re-subscribed")
            return
        self._retry_tasks[stream.key] = loop.create_task(
            self._resubscribe_later(stream.key, stream.generation)
        )

    async def _resubscribe_later(self, key: StreamKey, generation: int) -> None:
        await asyncio.sleep(self.settings.resubscribe_delay_seconds)
        stream = self._streams.get(key)
        if stream is None or stream.generation != generation:
            return
        self._retry_tasks.pop(key, None)
        logger.info(f"Re-subscribing {key}")
        # Same logical subscription: seen ids carry over so the retry does not
        # re-announce items that were already reported.
        self._open(key, seen_ids=stream.seen_ids, snapshots=stream.snapshots)

    # Reconciliation

    def _apply(self, stream: _Stream, raw: Any, first: bool) -> None:
        kind = stream.key.kind
        if stream.key.is_content:
            items = order_items(raw)
            self.state.items = items
            self._announce(stream, items, first)
            thread = self.state.thread_item_id
            if thread is not None and not any(item.id == thread for item in items):
                logger.info(f"Closing thread of deleted item {thread}")
                self.close_thread()
        elif kind is StreamKind.REPLIES:
            replies = order_replies(raw, stream.key.target or "")
            self.state.replies = replies
            self._announce(stream, replies, first)
        elif kind is StreamKind.ROOMS:
            self.state.rooms = decode_rooms(raw)
        elif kind is StreamKind.MEMBERSHIP:
            self.state.membership = decode_membership(raw)
        elif kind is StreamKind.ADMINS:
            self.state.admins = decode_admins(raw)
        elif kind is StreamKind.DEVICES:
            self.state.devices = decode_devices(raw)

    def _announce(
        self, stream: _Stream, entries: list[SharedItem] | list[Reply], first: bool
    ) -> None:
        suppress = first and not stream.seen_ids
        if suppress and stream.key.kind is StreamKind.GLOBAL_FEED:
            suppress = not self.settings.legacy_feed_notifies_on_first_snapshot
        for entry in detect_new_items(entries, stream.seen_ids, self.viewer, suppress=suppress):
            logger.debug(f"New item {entry.id} from {entry.sender} on {stream.key}")
            self.broadcaster.broadcast_new_item(NewItemEvent(stream=stream.key, item=entry))

    def _refresh_connection_status(self) -> None:
        states = {stream.state for stream in self._streams.values()}
        if StreamState.ERROR in states:
            self._set_connection_status(ConnectionStatus.DISCONNECTED)
        elif StreamState.LIVE in states:
            self._set_connection_status(ConnectionStatus.CONNECTED)

    def _set_connection_status(self, status: ConnectionStatus) -> None:
        if self.state.connection_status is status:
            return
        self.state.connection_status = status
        logger.info(f"Connection status: {status}")
        if status is not ConnectionStatus.CONNECTING:
            self.broadcaster.broadcast_connection_status(status is ConnectionStatus.CONNECTED)
