"""Tests for membership writes over the realtime store."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from helpers import FakeClock, user

from syncflow.adapters.memory import InMemoryRealtimeServer
from syncflow.adapters.realtime import RealtimeMembershipStore
from syncflow.domain.errors import WriteFailed
from syncflow.domain.models import AdminGrant, RoomMember


@pytest.mark.asyncio
async def test_members_are_written_one_key_at_a_time() -> None:
    """Given two members added separately, when reading the room, then both entries coexist."""
    server = InMemoryRealtimeServer(clock=FakeClock())
    store = RealtimeMembershipStore(server.connect())

    await store.put_member("general", "a", RoomMember(name="A", added_at=1))
    await store.put_member("general", "b", RoomMember(name="B", added_at=2))
    await store.remove_member("general", "a")

    assert server.get("roomMembers/general") == {"b": {"name": "B", "addedAt": 2}}


@pytest.mark.asyncio
async def test_adding_the_same_member_twice_is_idempotent() -> None:
    """Given a member, when added again with the same data, then the membership is unchanged."""
    server = InMemoryRealtimeServer(clock=FakeClock())
    store = RealtimeMembershipStore(server.connect())
    member = RoomMember(name="A", added_at=1)

    await store.put_member("general", "a", member)
    before = server.get("roomMembers")
    await store.put_member("general", "a", member)

    assert server.get("roomMembers") == before


@pytest.mark.asyncio
async def test_admin_grants_and_revocations() -> None:
    """Given a grant and a revocation, when reading admins, then only the remaining grant is stored."""
    server = InMemoryRealtimeServer(clock=FakeClock())
    store = RealtimeMembershipStore(server.connect())

    await store.put_admin("a", AdminGrant(assigned_at=3))
    await store.put_admin("b", AdminGrant(assigned_at=4))
    await store.remove_admin("a")

    assert server.get("admins") == {"b": {"isAdmin": True, "assignedAt": 4}}


@pytest.mark.asyncio
async def test_create_room_uses_server_time_and_remove_room_cascades() -> None:
    """Given a created room with members and items, when removed, then catalog, members and feed are gone."""
    server = InMemoryRealtimeServer(clock=FakeClock(9_000))
    store = RealtimeMembershipStore(server.connect())

    room_id = await store.create_room("Lobby", user("root", "Root"))
    await store.put_member(room_id, "a", RoomMember(name="A", added_at=1))
    server.set(f"roomMessages/{room_id}/m1", {"content": "hi"})

    assert server.get(f"chatRooms/{room_id}") == {
        "name": "Lobby",
        "createdBy": "root",
        "creatorName": "Root",
        "createdAt": 9_000,
    }

    await store.remove_room(room_id)

    assert server.get("chatRooms") is None
    assert server.get("roomMembers") is None
    assert server.get("roomMessages") is None


@pytest.mark.asyncio
async def test_store_failures_become_write_failed() -> None:
    """Given a store that rejects writes, when adding a member, then WriteFailed chains the cause."""
    backend = MagicMock()
    backend.merge = AsyncMock(side_effect=PermissionError("denied"))
    store = RealtimeMembershipStore(backend)

    with pytest.raises(WriteFailed) as exc_info:
        await store.put_member("general", "a", RoomMember(name="A", added_at=1))

    assert isinstance(exc_info.value.__cause__, PermissionError)
