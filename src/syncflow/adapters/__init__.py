"""Adapters layer - external system integrations."""

from syncflow.adapters.config import AppConfig
from syncflow.adapters.http import HttpBlobStorage
from syncflow.adapters.local import (
    LocalProfileStore,
    PersistedSessionAuthProvider,
    detect_device_class,
)
from syncflow.adapters.memory import InMemoryBlobStorage, InMemoryRealtimeServer
from syncflow.adapters.realtime import RealtimeMembershipStore

__all__ = [
    "AppConfig",
    "HttpBlobStorage",
    "InMemoryBlobStorage",
    "InMemoryRealtimeServer",
    "LocalProfileStore",
    "PersistedSessionAuthProvider",
    "RealtimeMembershipStore",
    "detect_device_class",
]
