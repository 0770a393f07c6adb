"""Domain models for syncflow."""

from syncflow.domain.models.authorization_tier import AuthorizationTier
from syncflow.domain.models.chat_room import AdminGrant, AdminSet, ChatRoom, Membership, RoomMember
from syncflow.domain.models.identity import Identity
from syncflow.domain.models.media_payload import MediaPayload
from syncflow.domain.models.notification import NewItemEvent, Notification, NotificationLevel
from syncflow.domain.models.presence_record import DeviceClass, PresenceInfo, PresenceRecord
from syncflow.domain.models.shared_item import ContentType, Reply, SharedItem
from syncflow.domain.models.stream import SelectorKind, StreamKey, StreamKind, StreamSelector

__all__ = [
    "AdminGrant",
    "AdminSet",
    "AuthorizationTier",
    "ChatRoom",
    "ContentType",
    "DeviceClass",
    "Identity",
    "MediaPayload",
    "Membership",
    "NewItemEvent",
    "Notification",
    "NotificationLevel",
    "PresenceInfo",
    "PresenceRecord",
    "Reply",
    "RoomMember",
    "SelectorKind",
    "SharedItem",
    "StreamKey",
    "StreamKind",
    "StreamSelector",
]
