"""Tests for the HTTP blob storage adapter."""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from syncflow.adapters.http import HttpBlobStorage


def _session(status: int, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    response.raise_for_status = MagicMock(
        side_effect=aiohttp.ClientResponseError(MagicMock(), (), status=status, message=text)
    )
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    session = MagicMock()
    session.put = MagicMock(return_value=context)
    return session


@pytest.mark.asyncio
async def test_upload_puts_bytes_and_returns_public_url() -> None:
    """Given a storage endpoint, when uploading, then the bytes are PUT with content type and token."""
    session = _session(201)
    storage = HttpBlobStorage(session, "https://blobs.example/", auth_token="secret")

    url = await storage.upload(b"abc", "uploads/general/1000_my cat.png", "image/png")

    assert url == "https://blobs.example/uploads/general/1000_my%20cat.png"
    args, kwargs = session.put.call_args
    assert args == (url,)
    assert kwargs["data"] == b"abc"
    assert kwargs["headers"] == {"Content-Type": "image/png", "Authorization": "Bearer secret"}
    assert isinstance(kwargs["timeout"], aiohttp.ClientTimeout)


@pytest.mark.asyncio
async def test_upload_without_token_sends_no_authorization() -> None:
    """Given no token, when uploading, then no Authorization header is sent."""
    session = _session(200)
    storage = HttpBlobStorage(session, "https://blobs.example")

    await storage.upload(b"x", "a.png", "image/png")

    assert "Authorization" not in session.put.call_args.kwargs["headers"]


@pytest.mark.asyncio
async def test_rejected_upload_raises_client_response_error() -> None:
    """Given the server refuses the upload, when uploading, then ClientResponseError is raised."""
    session = _session(403, "forbidden")
    storage = HttpBlobStorage(session, "https://blobs.example")

    with pytest.raises(aiohttp.ClientResponseError) as exc_info:
        await storage.upload(b"x", "a.png", "image/png")

    assert exc_info.value.status == 403
