"""Error taxonomy for the sync engine.

Validation and authorization errors are raised locally before any collaborator
call. Collaborator errors wrap the underlying exception (``raise ... from e``).
None of these are fatal to a session.
"""


class SyncError(Exception):
    """Base class for every error the sync engine raises on purpose."""


class ConnectionLost(SyncError):
    """A subscription failed or the store is unreachable."""


class Forbidden(SyncError):
    """The viewer's tier does not allow the attempted mutation."""


class ValidationError(SyncError):
    """Input rejected before dispatch."""


class EmptyContent(ValidationError):
    """Text content is empty after trimming."""

    def __init__(self) -> None:
        super().__init__("Content is empty")


class UnsupportedType(ValidationError):
    """Media is neither an image nor a video, or does not match the requested kind."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported media type: {mime_type or 'unknown'}")
        self.mime_type = mime_type


class PayloadTooLarge(ValidationError):
    """Media exceeds the configured size ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"File is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


class CollaboratorError(SyncError):
    """An external collaborator rejected an operation. Not retried automatically."""


class UploadFailed(CollaboratorError):
    """Blob upload failed."""


class WriteFailed(CollaboratorError):
    """Realtime store write failed."""
