"""In-process realtime store with the semantics of a hosted realtime database.

One ``InMemoryRealtimeServer`` holds the data tree; each client gets its own
``InMemoryConnection`` implementing ``RealtimeStoreProtocol``. Snapshots are
delivered asynchronously through the event loop, never from inside the write
that caused them.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Any

from syncflow.domain.clock import Clock, now_ms
from syncflow.domain.contracts.realtime_store import (
    SERVER_TIMESTAMP,
    ErrorCallback,
    PendingAppend,
    SnapshotCallback,
)

logger = logging.getLogger(__name__)

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def split_path(path: str) -> list[str]:
    """Split a slash-separated path, ignoring empty segments."""
    return [segment for segment in path.split("/") if segment]


def _overlaps(a: list[str], b: list[str]) -> bool:
    shorter = min(len(a), len(b))
    return a[:shorter] == b[:shorter]


def _prune(value: Any) -> Any:
    """Drop empty containers the way the hosted store does. Returns None for empty."""
    if isinstance(value, dict):
        pruned = {}
        for key, child in value.items():
            child = _prune(child)
            if child is not None:
                pruned[str(key)] = child
        return pruned or None
    if isinstance(value, list):
        return _prune({str(index): child for index, child in enumerate(value)})
    return value


class PushIdGenerator:
    """Chronologically sortable, collision-resistant child keys."""

    def __init__(self, clock: Clock = now_ms, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._last_time = -1
        self._last_random: list[int] = [0] * 12

    def __call__(self) -> str:
        now = self._clock()
        duplicate = now == self._last_time
        self._last_time = now

        time_chars = []
        for _ in range(8):
            time_chars.append(PUSH_CHARS[now % 64])
            now //= 64
        key = "".join(reversed(time_chars))

        if not duplicate:
            self._last_random = [self._rng.randrange(64) for _ in range(12)]
        else:
            # Same millisecond: increment the random part so keys stay ordered
            index = 11
            while index >= 0 and self._last_random[index] == 63:
                self._last_random[index] = 0
                index -= 1
            if index >= 0:
                self._last_random[index] += 1
        return key + "".join(PUSH_CHARS[value] for value in self._last_random)


@dataclass(eq=False)
class _Listener:
    connection: InMemoryConnection
    path: list[str]
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    active: bool = True
    last_value: Any = field(default=None)
    delivered: bool = False

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self.connection.server._listeners.discard(self)


class InMemoryRealtimeServer:
    """Shared data tree and listener registry for every connection."""

    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._root: dict[str, Any] = {}
        self._listeners: set[_Listener] = set()
        self._pending = 0
        self.push_id = PushIdGenerator(clock)

    def connect(self) -> InMemoryConnection:
        return InMemoryConnection(self)

    def get(self, path: str = "") -> Any:
        """Return a copy of the value at a path, or None."""
        node: Any = self._root
        for segment in split_path(path):
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return copy.deepcopy(node) if node != {} else None

    def set(self, path: str, value: Any) -> None:
        """Replace the value at a path and notify overlapping listeners."""
        segments = split_path(path)
        value = _prune(self._resolve_server_values(copy.deepcopy(value)))
        if not segments:
            self._root = value if isinstance(value, dict) else {}
        else:
            self._assign(segments, value)
        logger.debug(f"Set '{path}'")
        self._notify(segments)

    def update(self, path: str, partial: dict[str, Any]) -> None:
        """Set child keys individually. Keys may themselves be relative paths."""
        segments = split_path(path)
        for key, child in partial.items():
            child = _prune(self._resolve_server_values(copy.deepcopy(child)))
            self._assign(segments + split_path(key), child)
        logger.debug(f"Updated '{path}' ({len(partial)} keys)")
        self._notify(segments)

    async def settle(self) -> None:
        """Wait until every scheduled snapshot and error has been delivered."""
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.sleep(0)

    def _assign(self, segments: list[str], value: Any) -> None:
        parents: list[tuple[dict[str, Any], str]] = []
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[segment] = child
            parents.append((node, segment))
            node = child
        if value is None:
            node.pop(segments[-1], None)
        else:
            node[segments[-1]] = value
        # Remove parents left empty by a deletion
        for parent, segment in reversed(parents):
            if parent[segment]:
                break
            del parent[segment]

    def _resolve_server_values(self, value: Any) -> Any:
        if value == SERVER_TIMESTAMP:
            return self._clock()
        if isinstance(value, dict):
            return {key: self._resolve_server_values(child) for key, child in value.items()}
        return value

    def _notify(self, changed: list[str]) -> None:
        for listener in list(self._listeners):
            if listener.active and _overlaps(listener.path, changed):
                self._schedule_snapshot(listener)

    def _schedule_snapshot(self, listener: _Listener, force: bool = False) -> None:
        value = self.get("/".join(listener.path))
        if not force and listener.delivered and value == listener.last_value:
            return
        listener.last_value = value
        listener.delivered = True
        self._pending += 1
        asyncio.get_running_loop().call_soon(self._deliver_snapshot, listener, value)

    def _schedule_error(self, listener: _Listener, error: Exception) -> None:
        listener.cancel()
        self._pending += 1
        asyncio.get_running_loop().call_soon(self._deliver_error, listener, error)

    def _deliver_snapshot(self, listener: _Listener, value: Any) -> None:
        self._pending -= 1
        if listener.active:
            listener.on_snapshot(value)

    def _deliver_error(self, listener: _Listener, error: Exception) -> None:
        self._pending -= 1
        listener.on_error(error)


class InMemoryConnection:
    """One client's connection to an ``InMemoryRealtimeServer``."""

    def __init__(self, server: InMemoryRealtimeServer) -> None:
        self.server = server
        self.online = True
        # Set to make every write on this connection fail with the given error
        self.write_error: Exception | None = None
        self._disconnect_removals: set[str] = set()

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> _Listener:
        listener = _Listener(self, split_path(path), on_snapshot, on_error)
        if not self.online:
            self.server._schedule_error(listener, ConnectionError("Client is offline"))
            return listener
        self.server._listeners.add(listener)
        self.server._schedule_snapshot(listener, force=True)
        return listener

    async def write(self, path: str, value: Any) -> None:
        self._check_writable()
        self.server.set(path, value)

    async def merge(self, path: str, partial: dict[str, Any]) -> None:
        self._check_writable()
        self.server.update(path, partial)

    def append(self, path: str, value: Any) -> PendingAppend:
        key = self.server.push_id()
        completion = asyncio.get_running_loop().create_future()
        try:
            self._check_writable()
            self.server.set(f"{path}/{key}", value)
        except Exception as e:
            completion.set_exception(e)
        else:
            completion.set_result(None)
        return PendingAppend(key=key, completion=completion)

    async def delete(self, path: str) -> None:
        self._check_writable()
        self.server.set(path, None)

    async def on_disconnect_remove(self, path: str) -> None:
        self._check_writable()
        self._disconnect_removals.add(path)

    async def cancel_on_disconnect(self, path: str) -> None:
        self._disconnect_removals.discard(path)

    def drop(self, error: Exception | None = None) -> None:
        """Simulate an unclean disconnect.

        Registered disconnect removals run on the server and every listener of
        this connection receives an error.
        """
        self.online = False
        for path in sorted(self._disconnect_removals):
            self.server.set(path, None)
        self._disconnect_removals.clear()
        error = error or ConnectionError("Connection lost")
        for listener in list(self.server._listeners):
            if listener.connection is self and listener.active:
                self.server._schedule_error(listener, error)
        logger.info("Connection dropped")

    def reconnect(self) -> None:
        self.online = True
        logger.info("Connection restored")

    def fail_subscriptions(self, path: str, error: Exception) -> None:
        """Deliver an error to this connection's listeners at exactly ``path``."""
        segments = split_path(path)
        for listener in list(self.server._listeners):
            if listener.connection is self and listener.active and listener.path == segments:
                self.server._schedule_error(listener, error)

    def _check_writable(self) -> None:
        if self.write_error is not None:
            raise self.write_error
        if not self.online:
            raise ConnectionError("Client is offline")
