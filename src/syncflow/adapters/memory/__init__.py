"""In-process collaborators for local runs and tests."""

from syncflow.adapters.memory.blob_storage import InMemoryBlobStorage
from syncflow.adapters.memory.realtime_store import (
    InMemoryConnection,
    InMemoryRealtimeServer,
    PushIdGenerator,
)

__all__ = [
    "InMemoryBlobStorage",
    "InMemoryConnection",
    "InMemoryRealtimeServer",
    "PushIdGenerator",
]
