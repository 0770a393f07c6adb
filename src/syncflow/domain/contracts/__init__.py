"""Contracts (protocols) for collaborators and internal seams."""

from syncflow.domain.contracts.auth_provider import AuthProviderProtocol
from syncflow.domain.contracts.blob_storage import BlobStorageProtocol
from syncflow.domain.contracts.content_switcher import ContentStreamSwitcherProtocol
from syncflow.domain.contracts.membership_store import MembershipStoreProtocol
from syncflow.domain.contracts.profile_store import LocalProfileStoreProtocol
from syncflow.domain.contracts.realtime_store import (
    SERVER_TIMESTAMP,
    PendingAppend,
    RealtimeStoreProtocol,
    Subscription,
)
from syncflow.domain.contracts.sync_listener import SyncListenerProtocol

__all__ = [
    "SERVER_TIMESTAMP",
    "AuthProviderProtocol",
    "BlobStorageProtocol",
    "ContentStreamSwitcherProtocol",
    "LocalProfileStoreProtocol",
    "MembershipStoreProtocol",
    "PendingAppend",
    "RealtimeStoreProtocol",
    "Subscription",
    "SyncListenerProtocol",
]
