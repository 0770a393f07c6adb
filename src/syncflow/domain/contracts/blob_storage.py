"""Blob storage contract (protocol)."""

from typing import Protocol


class BlobStorageProtocol(Protocol):
    """Protocol for uploading media bytes."""

    async def upload(self, data: bytes, path: str, content_type: str) -> str:
        """Upload bytes and return an address usable as direct content reference."""
        ...
