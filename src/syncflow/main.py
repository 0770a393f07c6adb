"""Main entry point: wires a chat session and runs a local loopback demo."""

import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from pathlib import Path

import aiohttp

from syncflow.adapters.config import AppConfig
from syncflow.adapters.http import HttpBlobStorage
from syncflow.adapters.local import (
    LocalProfileStore,
    PersistedSessionAuthProvider,
    detect_device_class,
)
from syncflow.adapters.local.session_auth_provider import reject_login
from syncflow.adapters.memory import InMemoryBlobStorage, InMemoryRealtimeServer
from syncflow.adapters.realtime import RealtimeMembershipStore
from syncflow.application.services import ChatSession, SessionCollaborators, SessionSettings
from syncflow.domain.contracts import (
    AuthProviderProtocol,
    BlobStorageProtocol,
    LocalProfileStoreProtocol,
    RealtimeStoreProtocol,
)
from syncflow.domain.models import Identity

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


def build_chat_session(
    config: AppConfig,
    store: RealtimeStoreProtocol,
    blob_storage: BlobStorageProtocol,
    profile_store: LocalProfileStoreProtocol | None = None,
    auth_provider: AuthProviderProtocol | None = None,
) -> ChatSession:
    """Compose a session from configuration and the two hosted collaborators."""
    device_class = detect_device_class(config.user_agent)
    collaborators = SessionCollaborators(
        store=store,
        blob_storage=blob_storage,
        membership_store=RealtimeMembershipStore(store),
        auth_provider=auth_provider
        or PersistedSessionAuthProvider(config.session_file, reject_login),
        profile_store=profile_store or LocalProfileStore(config.profile_file, device_class),
    )
    settings = SessionSettings(
        super_admin_id=config.super_admin_id,
        device_class=device_class,
        presence=config.presence_settings(),
        reconciler=config.reconciler_settings(),
        dispatch=config.dispatch_policy(),
    )
    return ChatSession(collaborators, settings)


class _FixedProfile:
    """Profile store for the demo peer, which never touches disk."""

    def __init__(self, identity: Identity) -> None:
        self._identity = identity

    def device_identity(self) -> Identity:
        return self._identity


async def main() -> None:
    """Run two sessions against one in-process store and exchange a message."""
    config = AppConfig()
    if config.config_file:
        try:
            config.load_overrides()
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Invalid configuration: {e}")
            sys.exit(1)
    logging.getLogger().setLevel(config.log_level)

    server = InMemoryRealtimeServer()

    async with AsyncExitStack() as stack:
        blob_storage: BlobStorageProtocol
        if config.blob_base_url:
            http_session = await stack.enter_async_context(aiohttp.ClientSession())
            blob_storage = HttpBlobStorage(
                http_session,
                config.blob_base_url,
                auth_token=config.blob_auth_token,
                timeout_seconds=config.blob_upload_timeout,
            )
        else:
            blob_storage = InMemoryBlobStorage()

        session = build_chat_session(config, server.connect(), blob_storage)
        peer = build_chat_session(
            config,
            server.connect(),
            blob_storage,
            profile_store=_FixedProfile(Identity(id="device_loopback", display_name="Loopback")),
            auth_provider=PersistedSessionAuthProvider(
                Path(config.session_file).with_suffix(".loopback.json"), reject_login
            ),
        )

        identity = await session.start()
        peer_identity = await peer.start()
        await server.settle()
        logger.info(f"Running as {identity.display_name} ({identity.id}), tier {session.tier}")

        try:
            if session.tier.is_admin:
                created = await session.create_room("Lobby")
                if created.item_id is not None:
                    await session.add_member(
                        created.item_id, peer_identity.id, peer_identity.display_name
                    )
                    await server.settle()
                    session.select_room(created.item_id)
                    await server.settle()
                    await peer.send_text("Hello from the loopback peer")
                    await server.settle()
                for notification in session.notifications:
                    logger.info(f"[{notification.level}] {notification.message}")
            else:
                logger.info("Not assigned to any room yet; set SUPER_ADMIN_ID to see the global feed")
            logger.info(f"{len(session.state.devices)} device(s) online")
        finally:
            await peer.stop()
            await session.stop()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    run()
