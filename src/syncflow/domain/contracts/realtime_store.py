"""Realtime store contract (protocol)."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

# Placeholder the store replaces with its own clock when the write lands.
SERVER_TIMESTAMP: dict[str, str] = {".sv": "timestamp"}

SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(Protocol):
    """Handle for a live subscription."""

    def cancel(self) -> None:
        """Detach the subscription. Callbacks already in flight may still arrive."""
        ...


@dataclass(frozen=True)
class PendingAppend:
    """Result of an append: the generated key is known before the write lands."""

    key: str
    completion: Awaitable[None]


class RealtimeStoreProtocol(Protocol):
    """Protocol for the hosted realtime database."""

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Subscription:
        """Subscribe to the full value at a path.

        ``on_snapshot`` receives the entire current value on every change, and
        ``None`` when nothing exists at the path.

        Args:
            path: Slash-separated store path.
            on_snapshot: Called with each snapshot.
            on_error: Called once if the subscription fails.

        Returns:
            A subscription handle.
        """
        ...

    async def write(self, path: str, value: Any) -> None:
        """Overwrite the value at a path."""
        ...

    async def merge(self, path: str, partial: dict[str, Any]) -> None:
        """Set individual child keys at a path, leaving siblings untouched."""
        ...

    def append(self, path: str, value: Any) -> PendingAppend:
        """Add a child with a store-generated, roughly time-ordered key."""
        ...

    async def delete(self, path: str) -> None:
        """Remove the value at a path. Removing an absent path is a no-op."""
        ...

    async def on_disconnect_remove(self, path: str) -> None:
        """Ask the store to remove a path if this client disconnects uncleanly."""
        ...

    async def cancel_on_disconnect(self, path: str) -> None:
        """Withdraw a previously registered disconnect removal."""
        ...
