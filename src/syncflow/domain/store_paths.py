"""Path layout of the realtime store."""

from syncflow.domain.models.stream import SelectorKind, StreamKey, StreamKind, StreamSelector

DEVICES = "devices"
GLOBAL_FEED = "sharedItems"
ROOM_FEEDS = "roomMessages"
REPLIES = "replies"
ROOMS = "chatRooms"
ROOM_MEMBERS = "roomMembers"
ADMINS = "admins"
UPLOADS = "uploads"


def device_path(device_id: str) -> str:
    return f"{DEVICES}/{device_id}"


def room_feed_path(room_id: str) -> str:
    return f"{ROOM_FEEDS}/{room_id}"


def replies_path(item_id: str) -> str:
    return f"{REPLIES}/{item_id}"


def room_path(room_id: str) -> str:
    return f"{ROOMS}/{room_id}"


def room_members_path(room_id: str) -> str:
    return f"{ROOM_MEMBERS}/{room_id}"


def admin_path(user_id: str) -> str:
    return f"{ADMINS}/{user_id}"


def content_stream_key(selector: StreamSelector) -> StreamKey | None:
    """Map a selector to the content stream it subscribes, or None while waiting."""
    if selector.kind is SelectorKind.GLOBAL:
        return StreamKey(StreamKind.GLOBAL_FEED)
    if selector.kind is SelectorKind.ROOM and selector.room_id:
        return StreamKey(StreamKind.ROOM_FEED, selector.room_id)
    return None


def stream_path(key: StreamKey) -> str:
    """Store path backing a stream."""
    if key.kind is StreamKind.GLOBAL_FEED:
        return GLOBAL_FEED
    if key.kind is StreamKind.ROOM_FEED:
        return room_feed_path(_require_target(key))
    if key.kind is StreamKind.REPLIES:
        return replies_path(_require_target(key))
    if key.kind is StreamKind.ROOMS:
        return ROOMS
    if key.kind is StreamKind.MEMBERSHIP:
        return ROOM_MEMBERS
    if key.kind is StreamKind.ADMINS:
        return ADMINS
    return DEVICES


def _require_target(key: StreamKey) -> str:
    if not key.target:
        raise ValueError(f"Stream {key.kind} requires a target id")
    return key.target
