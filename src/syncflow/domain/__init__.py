"""Domain layer - models, contracts and errors."""

from syncflow.domain.errors import (
    ConnectionLost,
    EmptyContent,
    Forbidden,
    PayloadTooLarge,
    SyncError,
    UnsupportedType,
    UploadFailed,
    WriteFailed,
)
from syncflow.domain.models import (
    AuthorizationTier,
    ChatRoom,
    ContentType,
    Identity,
    PresenceRecord,
    Reply,
    SharedItem,
    StreamSelector,
)

__all__ = [
    "AuthorizationTier",
    "ChatRoom",
    "ConnectionLost",
    "ContentType",
    "EmptyContent",
    "Forbidden",
    "Identity",
    "PayloadTooLarge",
    "PresenceRecord",
    "Reply",
    "SharedItem",
    "StreamSelector",
    "SyncError",
    "UnsupportedType",
    "UploadFailed",
    "WriteFailed",
]
