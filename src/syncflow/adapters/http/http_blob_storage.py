"""Blob storage over plain HTTP PUT."""

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import aiohttp

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from aiohttp import ClientSession


class HttpBlobStorage:
    """Uploads media with ``PUT {base_url}/{path}`` and returns the public URL."""

    def __init__(
        self,
        session: "ClientSession",
        base_url: str,
        auth_token: str | None = None,
        timeout_seconds: int = 60,
    ) -> None:
        """Initialize with an aiohttp session.

        Args:
            session: Shared aiohttp ClientSession.
            base_url: Storage endpoint; uploaded objects are served from the same URL.
            auth_token: Optional bearer token.
            timeout_seconds: Total timeout per upload.
        """
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{quote(path)}"

    async def upload(self, data: bytes, path: str, content_type: str) -> str:
        """Upload bytes and return their public URL.

        Raises:
            aiohttp.ClientResponseError: When the server rejects the upload.
        """
        url = self.url_for(path)
        headers = {"Content-Type": content_type}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"

        async with self._session.put(
            url, data=data, headers=headers, timeout=self._timeout
        ) as response:
            if response.status not in (200, 201, 204):
                response_text = await response.text()
                logger.warning(f"Blob storage returned status {response.status}: {response_text[:200]}")
                response.raise_for_status()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=response_text[:200],
                )

        logger.info(f"Uploaded {len(data)} bytes to {url}")
        return url
