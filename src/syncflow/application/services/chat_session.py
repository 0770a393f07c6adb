"""Per-viewer orchestration of presence, routing, reconciliation and dispatch."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from syncflow.application.services.content_dispatch import (
    ContentDispatcher,
    DispatchPolicy,
    validate_text,
)
from syncflow.application.services.event_reconciler import EventReconciler, ReconcilerSettings
from syncflow.application.services.feed_search import filter_items
from syncflow.application.services.membership_resolver import (
    MembershipService,
    authorization_tier,
    effective_room_ids,
    is_unassigned,
    visible_rooms,
)
from syncflow.application.services.presence_manager import (
    PresenceHandle,
    PresenceManager,
    PresenceSettings,
)
from syncflow.application.services.room_router import RoomRouter
from syncflow.application.services.sync_broadcaster import SyncEventBroadcaster
from syncflow.application.services.sync_state import ConnectionStatus, SyncState
from syncflow.domain.clock import Clock, now_ms
from syncflow.domain.contracts.auth_provider import AuthProviderProtocol
from syncflow.domain.contracts.blob_storage import BlobStorageProtocol
from syncflow.domain.contracts.membership_store import MembershipStoreProtocol
from syncflow.domain.contracts.profile_store import LocalProfileStoreProtocol
from syncflow.domain.contracts.realtime_store import RealtimeStoreProtocol
from syncflow.domain.contracts.sync_listener import SyncListenerProtocol
from syncflow.domain.errors import CollaboratorError, ConnectionLost, Forbidden, SyncError
from syncflow.domain.models.authorization_tier import AuthorizationTier
from syncflow.domain.models.identity import Identity
from syncflow.domain.models.media_payload import MediaPayload
from syncflow.domain.models.notification import NewItemEvent, Notification, NotificationLevel
from syncflow.domain.models.presence_record import DeviceClass, PresenceInfo
from syncflow.domain.models.shared_item import ContentType, SharedItem
from syncflow.domain.models.stream import StreamKey, StreamKind, StreamSelector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSettings:
    """Everything a session needs from configuration."""

    super_admin_id: str | None = None
    device_class: DeviceClass = DeviceClass.DESKTOP
    presence: PresenceSettings = field(default_factory=PresenceSettings)
    reconciler: ReconcilerSettings = field(default_factory=ReconcilerSettings)
    dispatch: DispatchPolicy = field(default_factory=DispatchPolicy)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a user-initiated write. ``item_id`` carries any id the store generated."""

    item_id: str | None = None
    error: SyncError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SessionCollaborators:
    """External collaborators a session talks to."""

    store: RealtimeStoreProtocol
    blob_storage: BlobStorageProtocol
    membership_store: MembershipStoreProtocol
    auth_provider: AuthProviderProtocol
    profile_store: LocalProfileStoreProtocol


class ChatSession(SyncListenerProtocol):
    """One viewer's live session.

    Collaborator failures on user-initiated writes are turned into error
    notifications and a failed ``DispatchResult``; they never propagate.
    """

    def __init__(
        self,
        collaborators: SessionCollaborators,
        settings: SessionSettings | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._collaborators = collaborators
        self.settings = settings or SessionSettings()
        self._clock = clock
        self.broadcaster = SyncEventBroadcaster()
        self.presence = PresenceManager(
            collaborators.store,
            self.settings.presence,
            clock=clock,
            on_status_change=self._on_presence_status,
        )
        self.dispatcher = ContentDispatcher(
            collaborators.store, collaborators.blob_storage, self.settings.dispatch, clock=clock
        )
        self.membership = MembershipService(collaborators.membership_store, clock=clock)
        self.identity: Identity | None = None
        self.state = SyncState()
        self.reconciler: EventReconciler | None = None
        self.router: RoomRouter | None = None
        self.notifications: list[Notification] = []
        self.new_items: list[NewItemEvent] = []
        self._presence_handle: PresenceHandle | None = None
        self._notification_ids = itertools.count(1)
        self._background: set[asyncio.Task] = set()
        self._swept_on_join = False
        self._was_disconnected = False
        self._admins_loaded = False

    # Lifecycle

    async def start(self) -> Identity:
        """Start as the persisted authenticated user, or as this device."""
        identity = self._collaborators.auth_provider.restore_session()
        if identity is None:
            identity = self._collaborators.profile_store.device_identity()
        await self._start_as(identity)
        return identity

    async def stop(self) -> None:
        """Release presence and detach every subscription."""
        if self._presence_handle is not None:
            await self._presence_handle.release()
            self._presence_handle = None
        if self.reconciler is not None:
            self.reconciler.unsubscribe_all()
        if self.router is not None:
            self.router.reset()
        self.broadcaster.unsubscribe(self)
        for task in list(self._background):
            task.cancel()
        logger.info(f"Stopped session for {self.identity.id if self.identity else 'nobody'}")

    async def login(self) -> Identity | None:
        """Log in through the auth provider and restart the session as that user."""
        try:
            identity = await self._collaborators.auth_provider.login()
        except Exception as e:
            logger.error(f"Login failed: {e}")
            self.notify("Login failed", NotificationLevel.ERROR)
            return None
        await self.stop()
        await self._start_as(identity)
        self.notify(f"Welcome, {identity.display_name}!", NotificationLevel.SUCCESS)
        return identity

    async def logout(self) -> None:
        """Log out and fall back to the device identity."""
        try:
            await self._collaborators.auth_provider.logout()
        except Exception as e:
            logger.error(f"Logout failed: {e}")
            self.notify("Logout failed", NotificationLevel.ERROR)
            return
        await self.stop()
        await self._start_as(self._collaborators.profile_store.device_identity())
        self.notify("Logged out", NotificationLevel.INFO)

    async def _start_as(self, identity: Identity) -> None:
        self.identity = identity
        self.state = SyncState()
        self._swept_on_join = False
        self._was_disconnected = False
        self._admins_loaded = False
        self.reconciler = EventReconciler(
            self._collaborators.store,
            identity,
            self.settings.reconciler,
            state=self.state,
            broadcaster=self.broadcaster,
        )
        self.router = RoomRouter(self.reconciler)
        self.broadcaster.subscribe(self)
        self.reconciler.subscribe_directory()
        self._refresh_route()
        info = PresenceInfo(
            display_name=identity.display_name,
            device_class=DeviceClass.USER if identity.authenticated else self.settings.device_class,
            profile_image=identity.avatar_url,
        )
        self._presence_handle = await self.presence.register(
            identity.id, info, on_tick=self.sweep_stale_devices
        )
        logger.info(f"Started session for {identity.id} as {self.tier}")

    # Derived state

    @property
    def tier(self) -> AuthorizationTier:
        if self.identity is None:
            return AuthorizationTier.MEMBER
        return authorization_tier(self.identity.id, self.state.admins, self.settings.super_admin_id)

    @property
    def effective_room_ids(self) -> frozenset[str]:
        if self.identity is None:
            return frozenset()
        return effective_room_ids(self.identity.id, self.state.membership)

    @property
    def visible_rooms(self) -> list[str]:
        if self.identity is None:
            return []
        return visible_rooms(self.tier, self.identity.id, self.state.rooms, self.state.membership)

    @property
    def is_unassigned(self) -> bool:
        if self.identity is None:
            return True
        return is_unassigned(self.tier, self.identity.id, self.state.membership)

    @property
    def active_stream(self) -> StreamSelector:
        return self.state.content

    @property
    def connection_status(self) -> ConnectionStatus:
        if self.presence.connected is False:
            return ConnectionStatus.DISCONNECTED
        return self.state.connection_status

    def search(self, query: str) -> list[SharedItem]:
        return filter_items(self.state.items, query)

    # Navigation

    def select_room(self, room_id: str) -> StreamSelector:
        return self._require_router().select_room(room_id, self.tier, self.effective_room_ids)

    def select_global(self) -> StreamSelector:
        return self._require_router().select_global(self.tier, self.effective_room_ids)

    def open_thread(self, item_id: str) -> None:
        if self.state.find_item(item_id) is None:
            raise KeyError(f"No item {item_id} in the active stream")
        self._require_reconciler().open_thread(item_id)

    def close_thread(self) -> None:
        self._require_reconciler().close_thread()

    # Writes

    async def send_text(self, text: str) -> DispatchResult:
        identity = self._require_identity()
        target = self.state.content
        return await self._dispatch(
            lambda: self.dispatcher.publish(ContentType.TEXT, text, target, identity),
            "Failed to send",
            check=lambda: self.dispatcher.check_publish(ContentType.TEXT, text, target),
        )

    async def send_media(self, payload: MediaPayload) -> DispatchResult:
        identity = self._require_identity()
        target = self.state.content
        kind = ContentType.VIDEO if payload.mime_type.startswith("video") else ContentType.IMAGE
        return await self._dispatch(
            lambda: self.dispatcher.publish(kind, payload, target, identity),
            "Failed to send file",
            check=lambda: self.dispatcher.check_publish(kind, payload, target),
        )

    async def send_reply(self, text: str) -> DispatchResult:
        identity = self._require_identity()
        parent_id = self.state.thread_item_id

        def check() -> None:
            if parent_id is None:
                raise Forbidden("No thread is open")
            validate_text(text)

        async def publish_reply() -> str:
            if parent_id is None:
                raise Forbidden("No thread is open")
            return await self.dispatcher.publish_reply(parent_id, text, identity)

        return await self._dispatch(publish_reply, "Failed to send reply", check=check)

    async def delete_item(self, item_id: str) -> DispatchResult:
        identity = self._require_identity()
        item = self.state.find_item(item_id)
        if item is None:
            return DispatchResult()
        target, tier = self.state.content, self.tier

        async def delete() -> None:
            await self.dispatcher.delete_item(target, item, identity, tier)

        return await self._dispatch(
            delete,
            "Failed to delete",
            success="Deleted",
            check=lambda: self.dispatcher.check_delete(item, identity, tier),
        )

    async def clear_feed(self) -> DispatchResult:
        item_ids = [item.id for item in self.state.items]
        target, tier = self.state.content, self.tier

        async def clear() -> None:
            await self.dispatcher.clear_stream(target, item_ids, tier)

        return await self._dispatch(
            clear,
            "Failed to clear",
            success="All items were deleted",
            check=lambda: self.dispatcher.check_clear(tier),
        )

    # Administration

    async def grant_admin(self, user_id: str) -> DispatchResult:
        tier = self.tier
        return await self._dispatch(
            lambda: self.membership.grant_admin(tier, user_id),
            "Failed to grant admin",
            check=lambda: self.membership.require_super_admin(tier, "grant admin"),
        )

    async def revoke_admin(self, user_id: str) -> DispatchResult:
        tier = self.tier
        return await self._dispatch(
            lambda: self.membership.revoke_admin(tier, user_id),
            "Failed to revoke admin",
            check=lambda: self.membership.require_super_admin(tier, "revoke admin"),
        )

    async def add_member(
        self, room_id: str, user_id: str, name: str, profile_image: str | None = None
    ) -> DispatchResult:
        tier = self.tier
        return await self._dispatch(
            lambda: self.membership.add_member(tier, room_id, user_id, name, profile_image),
            "Failed to add member",
            check=lambda: self.membership.require_admin(tier, "add room members"),
        )

    async def remove_member(self, room_id: str, user_id: str) -> DispatchResult:
        tier = self.tier
        return await self._dispatch(
            lambda: self.membership.remove_member(tier, room_id, user_id),
            "Failed to remove member",
            check=lambda: self.membership.require_admin(tier, "remove room members"),
        )

    async def create_room(self, name: str) -> DispatchResult:
        identity = self._require_identity()
        tier = self.tier

        def check() -> None:
            self.membership.require_admin(tier, "create rooms")
            self.membership.check_room_name(name)

        return await self._dispatch(
            lambda: self.membership.create_room(tier, name, identity),
            "Failed to create room",
            check=check,
        )

    async def delete_room(self, room_id: str) -> DispatchResult:
        tier = self.tier
        return await self._dispatch(
            lambda: self.membership.delete_room(tier, room_id),
            "Failed to delete room",
            check=lambda: self.membership.require_admin(tier, "delete rooms"),
        )

    async def _dispatch(
        self,
        operation: Callable[[], Awaitable[str | None]],
        failure_message: str,
        success: str | None = None,
        check: Callable[[], object] | None = None,
    ) -> DispatchResult:
        """Run a write, turning every failure into a notification and a failed result.

        ``check`` holds the local tier and validation checks. They run before
        the connection gate so a rejected call reports why it was rejected
        even while disconnected.
        """
        try:
            if check is not None:
                check()
            if self.connection_status is ConnectionStatus.DISCONNECTED:
                raise ConnectionLost("Not connected to the store")
            value = await operation()
        except ConnectionLost as e:
            self.notify("Not connected", NotificationLevel.ERROR)
            return DispatchResult(error=e)
        except CollaboratorError as e:
            self.notify(failure_message, NotificationLevel.ERROR)
            return DispatchResult(error=e)
        except SyncError as e:
            self.notify(str(e), NotificationLevel.ERROR)
            return DispatchResult(error=e)
        if success:
            self.notify(success, NotificationLevel.SUCCESS)
        return DispatchResult(item_id=value if isinstance(value, str) else None)

    # Presence

    async def sweep_stale_devices(self) -> list[str]:
        """Evict peers whose heartbeat stopped."""
        own_id = self.identity.id if self.identity else None
        peers = [record for record in self.state.devices if record.id != own_id]
        return await self.presence.evict_stale(peers)

    def _on_presence_status(self, connected: bool) -> None:
        self._on_connectivity(connected)

    # Notifications

    def notify(self, message: str, level: NotificationLevel) -> Notification:
        notification = Notification(
            id=f"{self._clock()}-{next(self._notification_ids)}", message=message, level=level
        )
        self.notifications.append(notification)
        return notification

    def dismiss(self, notification_id: str) -> None:
        self.notifications = [n for n in self.notifications if n.id != notification_id]

    # SyncListenerProtocol

    def on_stream_updated(self, stream: StreamKey) -> None:
        if stream.kind is StreamKind.ADMINS:
            self._admins_loaded = True
        if stream.kind in (StreamKind.MEMBERSHIP, StreamKind.ADMINS):
            self._refresh_route()
        elif stream.kind is StreamKind.DEVICES and not self._swept_on_join:
            self._swept_on_join = True
            self._run_in_background(self.sweep_stale_devices())

    def on_new_item(self, event: NewItemEvent) -> None:
        self.new_items.append(event)
        self.notify(f"New message from {event.item.sender}", NotificationLevel.INFO)

    def on_connection_status(self, connected: bool) -> None:
        self._on_connectivity(connected)

    def _on_connectivity(self, connected: bool) -> None:
        if not connected and not self._was_disconnected:
            self._was_disconnected = True
            self.notify("Connection lost", NotificationLevel.ERROR)
        elif connected and self._was_disconnected:
            self._was_disconnected = False
            self.notify("Reconnected", NotificationLevel.INFO)

    # Helpers

    def _refresh_route(self) -> None:
        if self.router is None or self.identity is None:
            return
        tier = self.tier
        # Until the admin set has loaded an admin would be routed as a member
        if not self._admins_loaded and tier is not AuthorizationTier.SUPER_ADMIN:
            return
        self.router.refresh(tier, self.effective_room_ids)

    def _run_in_background(self, coro: Awaitable[object]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _require_identity(self) -> Identity:
        if self.identity is None:
            raise RuntimeError("Session has not been started")
        return self.identity

    def _require_router(self) -> RoomRouter:
        if self.router is None:
            raise RuntimeError("Session has not been started")
        return self.router

    def _require_reconciler(self) -> EventReconciler:
        if self.reconciler is None:
            raise RuntimeError("Session has not been started")
        return self.reconciler
