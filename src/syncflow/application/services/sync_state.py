"""Reconciled client state."""

from dataclasses import dataclass, field
from enum import StrEnum

from syncflow.domain.models.chat_room import AdminSet, ChatRoom, Membership
from syncflow.domain.models.presence_record import PresenceRecord
from syncflow.domain.models.shared_item import Reply, SharedItem
from syncflow.domain.models.stream import StreamSelector


class ConnectionStatus(StrEnum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass
class SyncState:
    """Projection of the last-observed snapshot of every subscribed stream.

    Nothing here is ever written speculatively; local writes show up only
    once the store echoes them back.
    """

    content: StreamSelector = field(default_factory=StreamSelector.waiting)
    items: list[SharedItem] = field(default_factory=list)
    thread_item_id: str | None = None
    replies: list[Reply] = field(default_factory=list)
    rooms: list[ChatRoom] = field(default_factory=list)
    membership: Membership = field(default_factory=dict)
    admins: AdminSet = field(default_factory=dict)
    devices: list[PresenceRecord] = field(default_factory=list)
    connection_status: ConnectionStatus = ConnectionStatus.CONNECTING

    def find_item(self, item_id: str) -> SharedItem | None:
        return next((item for item in self.items if item.id == item_id), None)
