"""Test doubles shared across test modules."""

from syncflow.adapters.memory import InMemoryBlobStorage
from syncflow.adapters.realtime import RealtimeMembershipStore
from syncflow.application.services import ChatSession, SessionCollaborators, SessionSettings
from syncflow.domain.contracts import RealtimeStoreProtocol
from syncflow.domain.models import Identity


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class StaticProfileStore:
    def __init__(self, identity: Identity) -> None:
        self.identity = identity

    def device_identity(self) -> Identity:
        return self.identity


class StaticAuthProvider:
    """Auth provider with a fixed restored session and a scripted login."""

    def __init__(self, restored: Identity | None = None, login_as: Identity | None = None) -> None:
        self.restored = restored
        self.login_as = login_as
        self.logged_out = False

    async def login(self) -> Identity:
        if self.login_as is None:
            raise RuntimeError("login cancelled")
        self.restored = self.login_as
        return self.login_as

    async def logout(self) -> None:
        self.logged_out = True
        self.restored = None

    def restore_session(self) -> Identity | None:
        return self.restored


class RecordingListener:
    """Sync listener that records everything it is told."""

    def __init__(self) -> None:
        self.updates: list = []
        self.new_items: list = []
        self.statuses: list[bool] = []

    def on_stream_updated(self, stream) -> None:  # noqa: ANN001
        self.updates.append(stream)

    def on_new_item(self, event) -> None:  # noqa: ANN001
        self.new_items.append(event)

    def on_connection_status(self, connected: bool) -> None:
        self.statuses.append(connected)


def user(user_id: str, name: str | None = None) -> Identity:
    return Identity(id=user_id, display_name=name or user_id, authenticated=True)


def build_session(
    store: RealtimeStoreProtocol,
    identity: Identity,
    clock: FakeClock,
    settings: SessionSettings | None = None,
    blob_storage: InMemoryBlobStorage | None = None,
    auth_provider: StaticAuthProvider | None = None,
) -> ChatSession:
    collaborators = SessionCollaborators(
        store=store,
        blob_storage=blob_storage or InMemoryBlobStorage(),
        membership_store=RealtimeMembershipStore(store),
        auth_provider=auth_provider or StaticAuthProvider(restored=identity),
        profile_store=StaticProfileStore(identity),
    )
    return ChatSession(collaborators, settings or SessionSettings(), clock=clock)
