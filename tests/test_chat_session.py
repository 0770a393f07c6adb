"""End-to-end tests of ChatSession over the in-memory realtime store."""

import asyncio

import pytest
from helpers import FakeClock, StaticAuthProvider

from syncflow.adapters.memory import InMemoryBlobStorage, InMemoryRealtimeServer
from syncflow.application.services import ConnectionStatus, ReconcilerSettings, SessionSettings
from syncflow.domain.errors import ConnectionLost, EmptyContent, Forbidden
from syncflow.domain.models import (
    AuthorizationTier,
    DeviceClass,
    Identity,
    MediaPayload,
    NotificationLevel,
    StreamSelector,
)

ADMIN_SETTINGS = SessionSettings(super_admin_id="root")


def _identity(user_id: str, name: str) -> Identity:
    return Identity(id=user_id, display_name=name, authenticated=True)


A = _identity("a", "A")
B = _identity("b", "B")
ROOT = _identity("root", "Root")


def seed_room(server: InMemoryRealtimeServer, room_id: str, *member_ids: str) -> None:
    server.set(
        f"chatRooms/{room_id}",
        {"name": room_id.title(), "createdBy": "root", "creatorName": "Root", "createdAt": 1},
    )
    for member_id in member_ids:
        server.set(f"roomMembers/{room_id}/{member_id}", {"name": member_id, "addedAt": 1})


@pytest.mark.asyncio
async def test_peer_receives_exactly_one_notification_and_sender_none(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given A and B in room general, when A sends hello at t=1000, then B is notified once and A not at all."""
    seed_room(server, "general", "a", "b")
    alice = await start_session(A)
    bob = await start_session(B)
    assert alice.active_stream == StreamSelector.room("general")
    assert bob.active_stream == StreamSelector.room("general")

    result = await alice.send_text("hello")
    await server.settle()

    assert result.ok
    assert len(bob.new_items) == 1
    received = bob.new_items[0].item
    assert (received.content, received.sender, received.timestamp) == ("hello", "A", 1_000)
    assert received.id == result.item_id
    assert [n.message for n in bob.notifications] == ["New message from A"]
    assert alice.new_items == []
    assert [item.content for item in alice.state.items] == ["hello"]


@pytest.mark.asyncio
async def test_granted_admin_can_add_members_and_member_cannot(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given the super admin grants C, when C and a member add users, then only C's write lands."""
    seed_room(server, "general")
    root = await start_session(ROOT, ADMIN_SETTINGS)
    carol = await start_session(_identity("c", "C"), ADMIN_SETTINGS)
    mallory = await start_session(_identity("m", "M"), ADMIN_SETTINGS)
    assert root.tier is AuthorizationTier.SUPER_ADMIN
    assert carol.tier is AuthorizationTier.MEMBER

    assert (await root.grant_admin("c")).ok
    await server.settle()
    assert carol.tier is AuthorizationTier.ADMIN

    assert (await carol.add_member("general", "x", "X")).ok
    await server.settle()
    denied = await mallory.add_member("general", "y", "Y")
    await server.settle()

    assert isinstance(denied.error, Forbidden)
    assert list(server.get("roomMembers/general")) == ["x"]
    assert mallory.notifications[-1].level is NotificationLevel.ERROR


@pytest.mark.asyncio
async def test_waiting_member_is_routed_as_soon_as_they_are_added(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a member in no room, when an admin adds them, then they leave the waiting state on their own."""
    seed_room(server, "general")
    root = await start_session(ROOT, ADMIN_SETTINGS)
    waiting = await start_session(B, ADMIN_SETTINGS)
    assert waiting.active_stream.is_waiting
    assert waiting.is_unassigned

    rejected = await waiting.send_text("anyone?")
    assert isinstance(rejected.error, Forbidden)

    await root.add_member("general", "b", "B")
    await server.settle()

    assert waiting.active_stream == StreamSelector.room("general")
    assert not waiting.is_unassigned
    assert waiting.visible_rooms == ["general"]


@pytest.mark.asyncio
async def test_member_is_confined_to_their_rooms(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a member of one room, when selecting another room or the global feed, then Forbidden is raised."""
    seed_room(server, "general", "a")
    seed_room(server, "secret")
    alice = await start_session(A)

    with pytest.raises(Forbidden):
        alice.select_room("secret")
    with pytest.raises(Forbidden):
        alice.select_global()
    assert alice.active_stream == StreamSelector.room("general")


@pytest.mark.asyncio
async def test_validation_errors_become_notifications(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given blank text, when sending, then the result carries EmptyContent and an error is shown."""
    seed_room(server, "general", "a")
    alice = await start_session(A)

    result = await alice.send_text("   ")

    assert isinstance(result.error, EmptyContent)
    assert alice.notifications[-1].message == "Content is empty"
    assert server.get("roomMessages") is None


@pytest.mark.asyncio
async def test_writes_are_refused_while_disconnected(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a dropped connection, when sending, then ConnectionLost is returned without writing."""
    seed_room(server, "general", "a", "b")
    connection = server.connect()
    alice = await start_session(A, connection=connection)
    bob = await start_session(B)
    assert any(device.id == "a" for device in bob.state.devices)

    connection.drop()
    await server.settle()

    assert alice.connection_status is ConnectionStatus.DISCONNECTED
    result = await alice.send_text("hello?")
    assert isinstance(result.error, ConnectionLost)
    assert "Connection lost" in [n.message for n in alice.notifications]
    assert server.get("roomMessages") is None
    assert all(device.id != "a" for device in bob.state.devices)


@pytest.mark.asyncio
async def test_local_checks_win_over_disconnection(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a dropped connection, when a member makes rejected calls, then the local reason is reported."""
    seed_room(server, "general", "a")
    connection = server.connect()
    alice = await start_session(A, connection=connection)
    connection.drop()
    await server.settle()
    assert alice.connection_status is ConnectionStatus.DISCONNECTED

    forbidden = await alice.add_member("general", "x", "X")
    empty = await alice.send_text("   ")
    offline = await alice.send_text("hi")

    assert isinstance(forbidden.error, Forbidden)
    assert isinstance(empty.error, EmptyContent)
    assert isinstance(offline.error, ConnectionLost)
    assert alice.notifications[-1].message == "Not connected"


@pytest.mark.asyncio
async def test_admin_who_is_also_a_member_starts_on_global_feed(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given an admin listed in a room, when their session starts, then no room is forced on them."""
    seed_room(server, "general", "c")
    server.set("admins/c", {"isAdmin": True, "assignedAt": 1})

    carol = await start_session(_identity("c", "C"), ADMIN_SETTINGS)

    assert carol.tier is AuthorizationTier.ADMIN
    assert carol.active_stream == StreamSelector.global_feed()
    assert carol.select_room("general") == StreamSelector.room("general")


@pytest.mark.asyncio
async def test_streams_resubscribe_after_reconnect(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a dropped connection, when it comes back, then streams go live again and sending works."""
    seed_room(server, "general", "a")
    connection = server.connect()
    settings = SessionSettings(reconciler=ReconcilerSettings(resubscribe_delay_seconds=0))
    alice = await start_session(A, settings, connection=connection)

    connection.drop()
    connection.reconnect()
    await asyncio.sleep(0.01)
    await server.settle()

    assert alice.connection_status is ConnectionStatus.CONNECTED
    assert alice.notifications[-1].message == "Reconnected"
    assert (await alice.send_text("back")).ok


@pytest.mark.asyncio
async def test_threads_replies_and_cascading_delete(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given an item with a reply thread, when its sender deletes it, then the thread closes everywhere."""
    seed_room(server, "general", "a", "b")
    alice = await start_session(A)
    bob = await start_session(B)
    item_id = (await alice.send_text("question")).item_id
    await server.settle()

    bob.open_thread(item_id)
    alice.open_thread(item_id)
    await server.settle()
    assert (await bob.send_reply("answer")).ok
    await server.settle()

    assert [reply.content for reply in alice.state.replies] == ["answer"]
    assert alice.new_items[-1].item.content == "answer"

    denied = await bob.delete_item(item_id)
    assert isinstance(denied.error, Forbidden)

    assert (await alice.delete_item(item_id)).ok
    await server.settle()

    assert alice.state.items == []
    assert bob.state.thread_item_id is None
    assert server.get(f"replies/{item_id}") is None


@pytest.mark.asyncio
async def test_reply_without_open_thread_is_forbidden(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given no open thread, when replying, then Forbidden is returned."""
    seed_room(server, "general", "a")
    alice = await start_session(A)

    result = await alice.send_reply("hi")

    assert isinstance(result.error, Forbidden)


@pytest.mark.asyncio
async def test_admin_clears_global_feed_and_search_filters_items(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a super admin on the global feed, when items are posted, searched and cleared, then the feed empties."""
    root = await start_session(ROOT, ADMIN_SETTINGS)
    assert root.active_stream == StreamSelector.global_feed()
    await root.send_text("Lunch?")
    await root.send_text("Dinner?")
    await server.settle()

    assert [item.content for item in root.search("lunch")] == ["Lunch?"]

    assert (await root.clear_feed()).ok
    await server.settle()

    assert root.state.items == []
    assert server.get("sharedItems") is None


@pytest.mark.asyncio
async def test_media_is_uploaded_and_shared(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given an image, when sending it, then the feed item points at the uploaded blob."""
    seed_room(server, "general", "a")
    blobs = InMemoryBlobStorage()
    alice = await start_session(A, blob_storage=blobs)

    result = await alice.send_media(MediaPayload("cat.png", "image/png", b"\x89PNG"))
    await server.settle()

    assert result.ok
    item = alice.state.items[0]
    assert item.file_name == "cat.png"
    assert blobs.read(item.content) == b"\x89PNG"


@pytest.mark.asyncio
async def test_login_replaces_device_presence_and_logout_restores_it(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a device session, when logging in and out, then presence follows the active identity."""
    device = Identity(id="device_abc123xyz", display_name="My laptop")
    auth = StaticAuthProvider(login_as=_identity("k1", "Kim"))
    session = await start_session(device, auth_provider=auth)
    assert server.get("devices/device_abc123xyz")["name"] == "My laptop"

    identity = await session.login()
    await server.settle()

    assert identity is not None and identity.id == "k1"
    assert server.get("devices/device_abc123xyz") is None
    assert server.get("devices/k1")["type"] == DeviceClass.USER
    assert session.notifications[-1].message == "Welcome, Kim!"

    await session.logout()
    await server.settle()

    assert auth.logged_out
    assert session.identity == device
    assert server.get("devices/k1") is None
    assert server.get("devices/device_abc123xyz") is not None


@pytest.mark.asyncio
async def test_failed_login_keeps_current_identity(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a cancelled login, when logging in, then the session stays as it was."""
    device = Identity(id="device_1", display_name="PC")
    session = await start_session(device, auth_provider=StaticAuthProvider())

    assert await session.login() is None
    assert session.identity == device
    assert session.notifications[-1].message == "Login failed"


@pytest.mark.asyncio
async def test_stale_devices_are_swept_on_join(
    server: InMemoryRealtimeServer, clock: FakeClock, start_session
) -> None:
    """Given a record whose heartbeat stopped long ago, when a session joins, then it is evicted."""
    server.set("devices/ghost", {"id": "ghost", "name": "Ghost", "type": "mobile", "lastSeen": 0})
    server.set(
        "devices/fresh", {"id": "fresh", "name": "Fresh", "type": "mobile", "lastSeen": 90_000}
    )
    clock.now = 100_000

    await start_session(A)
    await asyncio.sleep(0.01)
    await server.settle()

    assert server.get("devices/ghost") is None
    assert server.get("devices/fresh") is not None


@pytest.mark.asyncio
async def test_notifications_can_be_dismissed(
    server: InMemoryRealtimeServer, start_session
) -> None:
    """Given a notification, when dismissing it, then it is removed."""
    alice = await start_session(A)
    notification = alice.notify("hi", NotificationLevel.INFO)

    alice.dismiss(notification.id)

    assert notification not in alice.notifications
