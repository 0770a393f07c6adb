"""Shared fixtures: a controllable clock, an in-memory store and a session factory."""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from helpers import FakeClock, build_session

from syncflow.adapters.memory import InMemoryRealtimeServer
from syncflow.application.services import ChatSession, SessionSettings
from syncflow.domain.models import Identity

SessionFactory = Callable[..., Awaitable[ChatSession]]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1_000)


@pytest.fixture
def server(clock: FakeClock) -> InMemoryRealtimeServer:
    return InMemoryRealtimeServer(clock=clock)


@pytest_asyncio.fixture
async def start_session(
    server: InMemoryRealtimeServer, clock: FakeClock
) -> AsyncIterator[SessionFactory]:
    """Start sessions on their own connections and stop them all afterwards."""
    sessions: list[ChatSession] = []

    async def factory(
        identity: Identity, settings: SessionSettings | None = None, **kwargs: Any
    ) -> ChatSession:
        connection = kwargs.pop("connection", None) or server.connect()
        session = build_session(connection, identity, clock, settings, **kwargs)
        await session.start()
        await server.settle()
        sessions.append(session)
        return session

    yield factory

    for session in sessions:
        await session.stop()
