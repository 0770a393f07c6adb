"""Membership, admin and room catalog writes over the realtime store."""

import logging
from typing import Any

from syncflow.domain import store_paths
from syncflow.domain.contracts.realtime_store import SERVER_TIMESTAMP, RealtimeStoreProtocol
from syncflow.domain.errors import WriteFailed
from syncflow.domain.models.chat_room import AdminGrant, RoomMember
from syncflow.domain.models.identity import Identity

logger = logging.getLogger(__name__)


class RealtimeMembershipStore:
    """Single-key writes so concurrent admins never overwrite each other's edits."""

    def __init__(self, store: RealtimeStoreProtocol) -> None:
        self._store = store

    async def put_member(self, room_id: str, user_id: str, member: RoomMember) -> None:
        await self._guarded(
            f"add {user_id} to {room_id}",
            self._store.merge(
                store_paths.room_members_path(room_id),
                {user_id: member.model_dump(mode="json", by_alias=True, exclude_none=True)},
            ),
        )

    async def remove_member(self, room_id: str, user_id: str) -> None:
        await self._guarded(
            f"remove {user_id} from {room_id}",
            self._store.delete(f"{store_paths.room_members_path(room_id)}/{user_id}"),
        )

    async def put_admin(self, user_id: str, grant: AdminGrant) -> None:
        await self._guarded(
            f"grant admin to {user_id}",
            self._store.merge(
                store_paths.ADMINS, {user_id: grant.model_dump(mode="json", by_alias=True)}
            ),
        )

    async def remove_admin(self, user_id: str) -> None:
        await self._guarded(
            f"revoke admin from {user_id}", self._store.delete(store_paths.admin_path(user_id))
        )

    async def create_room(self, name: str, creator: Identity) -> str:
        record: dict[str, Any] = {
            "name": name,
            "createdBy": creator.id,
            "creatorName": creator.display_name,
            "createdAt": SERVER_TIMESTAMP,
        }
        if creator.avatar_url:
            record["creatorImage"] = creator.avatar_url
        try:
            pending = self._store.append(store_paths.ROOMS, record)
            await pending.completion
        except Exception as e:
            logger.error(f"Failed to create room '{name}': {e}")
            raise WriteFailed(f"Failed to create room {name}") from e
        return pending.key

    async def remove_room(self, room_id: str) -> None:
        # Catalog entry first so no client routes into a room being torn down
        await self._guarded(
            f"remove room {room_id}", self._store.delete(store_paths.room_path(room_id))
        )
        await self._guarded(
            f"remove members of {room_id}",
            self._store.delete(store_paths.room_members_path(room_id)),
        )
        await self._guarded(
            f"remove feed of {room_id}", self._store.delete(store_paths.room_feed_path(room_id))
        )

    @staticmethod
    async def _guarded(action: str, write: Any) -> None:
        try:
            await write
        except Exception as e:
            logger.error(f"Failed to {action}: {e}")
            raise WriteFailed(f"Failed to {action}") from e
