"""Application services."""

from syncflow.application.services.chat_session import (
    ChatSession,
    DispatchResult,
    SessionCollaborators,
    SessionSettings,
)
from syncflow.application.services.content_dispatch import ContentDispatcher, DispatchPolicy
from syncflow.application.services.event_reconciler import (
    EventReconciler,
    ReconcilerSettings,
    StreamState,
)
from syncflow.application.services.membership_resolver import MembershipService
from syncflow.application.services.presence_manager import (
    PresenceHandle,
    PresenceManager,
    PresenceSettings,
)
from syncflow.application.services.room_router import RoomRouter, active_stream
from syncflow.application.services.sync_broadcaster import SyncEventBroadcaster
from syncflow.application.services.sync_state import ConnectionStatus, SyncState

__all__ = [
    "ChatSession",
    "ConnectionStatus",
    "ContentDispatcher",
    "DispatchPolicy",
    "DispatchResult",
    "EventReconciler",
    "MembershipService",
    "PresenceHandle",
    "PresenceManager",
    "PresenceSettings",
    "ReconcilerSettings",
    "RoomRouter",
    "SessionCollaborators",
    "SessionSettings",
    "StreamState",
    "SyncEventBroadcaster",
    "SyncState",
    "active_stream",
]
