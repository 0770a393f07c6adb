"""Authorization tiers, room visibility and gated membership mutations."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from syncflow.domain.clock import Clock, now_ms
from syncflow.domain.contracts.membership_store import (
    MembershipStoreProtocol,  # noqa: TC001 - Runtime dependency: used in __init__ signature
)
from syncflow.domain.errors import EmptyContent, Forbidden
from syncflow.domain.models.authorization_tier import AuthorizationTier
from syncflow.domain.models.chat_room import AdminGrant, ChatRoom, RoomMember
from syncflow.domain.models.identity import Identity

logger = logging.getLogger(__name__)


def authorization_tier(
    user_id: str, admin_set: Mapping[str, AdminGrant], super_admin_id: str | None
) -> AuthorizationTier:
    """Derive a user's tier. The super-admin identity wins over the admin set."""
    if super_admin_id is not None and user_id == super_admin_id:
        return AuthorizationTier.SUPER_ADMIN
    grant = admin_set.get(user_id)
    if grant is not None and grant.is_admin:
        return AuthorizationTier.ADMIN
    return AuthorizationTier.MEMBER


def effective_room_ids(
    user_id: str, membership: Mapping[str, Mapping[str, RoomMember]]
) -> frozenset[str]:
    """Ids of every room whose membership set contains the user."""
    return frozenset(room_id for room_id, members in membership.items() if user_id in members)


def visible_rooms(
    tier: AuthorizationTier,
    user_id: str,
    rooms: Iterable[ChatRoom],
    membership: Mapping[str, Mapping[str, RoomMember]],
) -> list[str]:
    """Room ids the viewer may see, newest-created first.

    Admin tiers see every room; members only the rooms they belong to.
    """
    ordered = sorted(rooms, key=lambda room: (-room.created_at, room.id))
    if tier.is_admin:
        return [room.id for room in ordered]
    mine = effective_room_ids(user_id, membership)
    return [room.id for room in ordered if room.id in mine]


def is_unassigned(
    tier: AuthorizationTier, user_id: str, membership: Mapping[str, Mapping[str, RoomMember]]
) -> bool:
    """True for a non-admin who belongs to no room yet."""
    return not tier.is_admin and not effective_room_ids(user_id, membership)


class MembershipService:
    """Tier-gated mutations of rooms, room membership and the admin set.

    Every check happens locally; a rejected call never reaches the store.
    """

    def __init__(self, store: MembershipStoreProtocol, clock: Clock = now_ms) -> None:
        self._store = store
        self._clock = clock

    async def grant_admin(self, actor_tier: AuthorizationTier, user_id: str) -> None:
        self.require_super_admin(actor_tier, "grant admin")
        await self._store.put_admin(user_id, AdminGrant(is_admin=True, assigned_at=self._clock()))
        logger.info(f"Granted admin to {user_id}")

    async def revoke_admin(self, actor_tier: AuthorizationTier, user_id: str) -> None:
        self.require_super_admin(actor_tier, "revoke admin")
        await self._store.remove_admin(user_id)
        logger.info(f"Revoked admin from {user_id}")

    async def add_member(
        self,
        actor_tier: AuthorizationTier,
        room_id: str,
        user_id: str,
        name: str,
        profile_image: str | None = None,
    ) -> None:
        self.require_admin(actor_tier, "add room members")
        member = RoomMember(name=name, profile_image=profile_image, added_at=self._clock())
        await self._store.put_member(room_id, user_id, member)
        logger.info(f"Added {user_id} to room {room_id}")

    async def remove_member(
        self, actor_tier: AuthorizationTier, room_id: str, user_id: str
    ) -> None:
        self.require_admin(actor_tier, "remove room members")
        await self._store.remove_member(room_id, user_id)
        logger.info(f"Removed {user_id} from room {room_id}")

    async def create_room(self, actor_tier: AuthorizationTier, name: str, creator: Identity) -> str:
        self.require_admin(actor_tier, "create rooms")
        name = self.check_room_name(name)
        room_id = await self._store.create_room(name, creator)
        logger.info(f"Created room '{name}' ({room_id})")
        return room_id

    async def delete_room(self, actor_tier: AuthorizationTier, room_id: str) -> None:
        self.require_admin(actor_tier, "delete rooms")
        await self._store.remove_room(room_id)
        logger.info(f"Deleted room {room_id}")

    @staticmethod
    def check_room_name(name: str) -> str:
        name = name.strip()
        if not name:
            raise EmptyContent()
        return name

    @staticmethod
    def require_admin(tier: AuthorizationTier, action: str) -> None:
        if not tier.is_admin:
            logger.warning(f"Rejected attempt to {action} with tier {tier}")
            raise Forbidden(f"Only admins may {action}")

    @staticmethod
    def require_super_admin(tier: AuthorizationTier, action: str) -> None:
        if tier is not AuthorizationTier.SUPER_ADMIN:
            logger.warning(f"Rejected attempt to {action} with tier {tier}")
            raise Forbidden(f"Only the super admin may {action}")
