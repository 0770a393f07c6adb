"""Pure snapshot decoding, ordering and new-item detection.

Snapshots from the store are untrusted nested dicts. Everything passes through
the pydantic models here; entries that do not validate are logged and dropped
so one malformed writer cannot break every client's view.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from syncflow.domain.models.chat_room import AdminGrant, AdminSet, ChatRoom, Membership, RoomMember
from syncflow.domain.models.identity import Identity
from syncflow.domain.models.presence_record import PresenceRecord
from syncflow.domain.models.shared_item import Reply, SharedItem

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
EntryT = TypeVar("EntryT", SharedItem, Reply)


def flatten_snapshot(raw: Any) -> list[dict[str, Any]]:
    """Turn ``{key: value}`` into ``[{"id": key, **value}]``.

    An empty or absent snapshot yields an empty list; non-mapping children are
    dropped.
    """
    if not raw or not isinstance(raw, Mapping):
        return []
    entries: list[dict[str, Any]] = []
    for key, value in raw.items():
        if not isinstance(value, Mapping):
            logger.warning(
                f"Dropping snapshot entry {key!r}: expected an object, "
                f"got {type(value).__name__}"
            )
            continue
        entries.append({**value, "id": str(key)})
    return entries


def decode_entries(
    raw: Any, model: type[ModelT], extra: Mapping[str, Any] | None = None
) -> list[ModelT]:
    """Validate every flattened entry against a model, dropping the invalid ones."""
    decoded: list[ModelT] = []
    for entry in flatten_snapshot(raw):
        if extra:
            entry = {**entry, **extra}
        try:
            decoded.append(model.model_validate(entry))
        except pydantic.ValidationError as e:
            logger.warning(
                f"Dropping malformed {model.__name__} {entry.get('id')!r}: "
                f"{e.error_count()} validation error(s)"
            )
    return decoded


def _order_key(entry: SharedItem | Reply) -> tuple[int, str]:
    # Equal timestamps fall back to the id so every client renders the same order.
    return (entry.timestamp, entry.id)


def order_items(raw: Any) -> list[SharedItem]:
    """Decode a feed snapshot into items sorted by (timestamp, id)."""
    return sorted(decode_entries(raw, SharedItem), key=_order_key)


def order_replies(raw: Any, parent_id: str) -> list[Reply]:
    """Decode a reply-thread snapshot into replies sorted by (timestamp, id)."""
    return sorted(decode_entries(raw, Reply, {"parentId": parent_id}), key=_order_key)


def decode_rooms(raw: Any) -> list[ChatRoom]:
    """Room catalog, newest-created first."""
    return sorted(decode_entries(raw, ChatRoom), key=lambda room: (-room.created_at, room.id))


def decode_devices(raw: Any) -> list[PresenceRecord]:
    """Presence records sorted by display name."""
    return sorted(decode_entries(raw, PresenceRecord), key=lambda r: (r.display_name, r.id))


def decode_membership(raw: Any) -> Membership:
    """``roomId -> userId -> RoomMember``; malformed members are dropped."""
    membership: Membership = {}
    if not raw or not isinstance(raw, Mapping):
        return membership
    for room_id, members in raw.items():
        if not isinstance(members, Mapping):
            logger.warning(f"Dropping membership of room {room_id!r}: expected an object")
            continue
        decoded: dict[str, RoomMember] = {}
        for user_id, value in members.items():
            try:
                decoded[str(user_id)] = RoomMember.model_validate(value)
            except pydantic.ValidationError:
                logger.warning(f"Dropping malformed member {user_id!r} of room {room_id!r}")
        if decoded:
            membership[str(room_id)] = decoded
    return membership


def decode_admins(raw: Any) -> AdminSet:
    """``userId -> AdminGrant``; entries that are not an active grant are dropped."""
    admins: AdminSet = {}
    if not raw or not isinstance(raw, Mapping):
        return admins
    for user_id, value in raw.items():
        try:
            grant = AdminGrant.model_validate(value)
        except pydantic.ValidationError:
            logger.warning(f"Dropping malformed admin entry {user_id!r}")
            continue
        if grant.is_admin:
            admins[str(user_id)] = grant
    return admins


def is_own_item(item: SharedItem | Reply, viewer: Identity) -> bool:
    """Whether the viewer sent the item.

    Compares sender ids when the item carries one, otherwise display names.
    """
    if item.sender_id is not None:
        return item.sender_id == viewer.id
    return item.sender == viewer.display_name


def detect_new_items(
    entries: Iterable[EntryT], seen_ids: set[str], viewer: Identity, suppress: bool = False
) -> list[EntryT]:
    """Record every entry as seen and return the unseen ones sent by peers.

    Notification is edge-triggered on first sight: an id already in
    ``seen_ids`` never comes back, even if its payload changed.

    Args:
        entries: Ordered entries from the latest snapshot.
        seen_ids: The stream's seen set, updated in place.
        viewer: Identity of the local viewer.
        suppress: Mark everything seen without reporting (first snapshot).

    Returns:
        Newly seen peer entries in snapshot order.
    """
    fresh: list[EntryT] = []
    for entry in entries:
        if entry.id in seen_ids:
            continue
        seen_ids.add(entry.id)
        if not suppress and not is_own_item(entry, viewer):
            fresh.append(entry)
    return fresh
