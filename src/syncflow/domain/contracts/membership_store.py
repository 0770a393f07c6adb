"""Membership store contract (protocol)."""

from typing import Protocol

from syncflow.domain.models.chat_room import AdminGrant, RoomMember
from syncflow.domain.models.identity import Identity


class MembershipStoreProtocol(Protocol):
    """Protocol for single-entry writes to rooms, membership and admin sets.

    Every write touches exactly one key so that concurrent writers editing
    unrelated entries never clobber each other. An implementation may add
    version stamps without changing callers.
    """

    async def put_member(self, room_id: str, user_id: str, member: RoomMember) -> None: ...

    async def remove_member(self, room_id: str, user_id: str) -> None: ...

    async def put_admin(self, user_id: str, grant: AdminGrant) -> None: ...

    async def remove_admin(self, user_id: str) -> None: ...

    async def create_room(self, name: str, creator: Identity) -> str:
        """Create a room and return its store-generated id."""
        ...

    async def remove_room(self, room_id: str) -> None:
        """Remove a room with its membership set and message feed."""
        ...
