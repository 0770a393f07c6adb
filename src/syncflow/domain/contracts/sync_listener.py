"""Sync listener contract (protocol)."""

from typing import Protocol

from syncflow.domain.models.notification import NewItemEvent
from syncflow.domain.models.stream import StreamKey


class SyncListenerProtocol(Protocol):
    """Protocol for consumers of reconciled state."""

    def on_stream_updated(self, stream: StreamKey) -> None:
        """A stream's reconciled collection changed."""
        ...

    def on_new_item(self, event: NewItemEvent) -> None:
        """An item from a peer was seen for the first time."""
        ...

    def on_connection_status(self, connected: bool) -> None:
        """The overall connection status changed."""
        ...
