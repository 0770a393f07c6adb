"""In-process blob storage."""

import logging

logger = logging.getLogger(__name__)


class InMemoryBlobStorage:
    """Keeps uploaded bytes in a dict and hands out ``memory://`` addresses."""

    def __init__(self) -> None:
        self.blobs: dict[str, tuple[bytes, str]] = {}

    async def upload(self, data: bytes, path: str, content_type: str) -> str:
        self.blobs[path] = (bytes(data), content_type)
        logger.debug(f"Stored {len(data)} bytes at {path}")
        return f"memory://{path}"

    def read(self, address: str) -> bytes:
        """Return the bytes behind an address returned by ``upload``."""
        return self.blobs[address.removeprefix("memory://")][0]
