"""Validation, upload and publishing of new items and replies.

Nothing is written to local state here: the reconciler observing the same
stream is the only way a sender sees their own item.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from syncflow.application.services.reconciliation import is_own_item
from syncflow.domain import store_paths
from syncflow.domain.clock import Clock, now_ms
from syncflow.domain.contracts.blob_storage import (
    BlobStorageProtocol,  # noqa: TC001 - Runtime dependency: used in __init__ signature
)
from syncflow.domain.contracts.realtime_store import SERVER_TIMESTAMP, RealtimeStoreProtocol
from syncflow.domain.errors import (
    EmptyContent,
    Forbidden,
    PayloadTooLarge,
    UnsupportedType,
    UploadFailed,
    WriteFailed,
)
from syncflow.domain.models.authorization_tier import AuthorizationTier
from syncflow.domain.models.identity import Identity
from syncflow.domain.models.media_payload import MediaPayload
from syncflow.domain.models.shared_item import ContentType, SharedItem
from syncflow.domain.models.stream import StreamSelector

logger = logging.getLogger(__name__)

DEFAULT_MAX_MEDIA_BYTES = 100 * 1024 * 1024

_MEDIA_CATEGORIES = {"image": ContentType.IMAGE, "video": ContentType.VIDEO}


@dataclass(frozen=True)
class DispatchPolicy:
    """Size and naming policy for published content."""

    max_media_bytes: int = DEFAULT_MAX_MEDIA_BYTES
    download_name_prefix: str = "syncflow"


def validate_text(text: str) -> str:
    """Reject content that is empty after trimming."""
    if not text or not text.strip():
        raise EmptyContent()
    return text


def validate_media(kind: ContentType, payload: MediaPayload, max_bytes: int) -> ContentType:
    """Check a file's MIME category and size.

    Raises:
        UnsupportedType: Not image/* or video/*, or not the requested kind.
        PayloadTooLarge: Larger than ``max_bytes``; carries the measured size.
    """
    category = payload.mime_type.split("/", 1)[0].lower() if payload.mime_type else ""
    content_type = _MEDIA_CATEGORIES.get(category)
    if content_type is None or content_type is not kind:
        raise UnsupportedType(payload.mime_type)
    size = payload.measured_size
    if size > max_bytes:
        raise PayloadTooLarge(size, max_bytes)
    return content_type


def download_name(item: SharedItem, prefix: str = "syncflow") -> str:
    """File name to save an item's media under."""
    if item.file_name:
        return item.file_name
    extension = "png" if item.type is ContentType.IMAGE else "mp4"
    return f"{prefix}_{item.id}.{extension}"


def _sender_fields(sender: Identity, timestamp: int) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "sender": sender.display_name,
        "senderId": sender.id,
        "timestamp": timestamp,
        "createdAt": SERVER_TIMESTAMP,
    }
    if sender.avatar_url:
        fields["senderImage"] = sender.avatar_url
    return fields


class ContentDispatcher:
    """Write path for items, replies and deletions."""

    def __init__(
        self,
        store: RealtimeStoreProtocol,
        blob_storage: BlobStorageProtocol,
        policy: DispatchPolicy | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._blob_storage = blob_storage
        self.policy = policy or DispatchPolicy()
        self._clock = clock

    async def publish(
        self,
        kind: ContentType | str,
        payload: str | MediaPayload,
        target: StreamSelector,
        sender: Identity,
    ) -> str:
        """Validate, upload if needed, and append a new item to the active stream.

        Args:
            kind: TEXT, IMAGE or VIDEO (case-insensitive).
            payload: The text for TEXT, a MediaPayload otherwise.
            target: The viewer's active stream.
            sender: Identity recorded as the item's sender.

        Returns:
            The store-generated item id.
        """
        content_type, stream_path = self.check_publish(kind, payload, target)
        timestamp = self._clock()

        if isinstance(payload, str):
            record: dict[str, Any] = {"type": content_type.value, "content": payload}
        else:
            address = await self._upload(payload, target, timestamp)
            record = {
                "type": content_type.value,
                "content": address,
                "fileName": payload.file_name,
            }

        record.update(_sender_fields(sender, timestamp))
        item_id = await self._append(stream_path, record)
        logger.info(f"Published {content_type} item {item_id} to '{stream_path}'")
        return item_id

    def check_publish(
        self, kind: ContentType | str, payload: str | MediaPayload, target: StreamSelector
    ) -> tuple[ContentType, str]:
        """Run the local checks of ``publish`` and return the content type and stream path.

        Raises:
            EmptyContent, UnsupportedType, PayloadTooLarge: Invalid payload.
            Forbidden: The viewer is waiting and has no stream to publish to.
        """
        try:
            content_type = ContentType(str(kind).upper())
        except ValueError:
            raise UnsupportedType(str(kind)) from None
        if content_type is ContentType.TEXT:
            if not isinstance(payload, str):
                raise UnsupportedType(getattr(payload, "mime_type", ""))
            validate_text(payload)
        else:
            if not isinstance(payload, MediaPayload):
                raise UnsupportedType("text/plain")
            validate_media(content_type, payload, self.policy.max_media_bytes)
        return content_type, self._target_path(target)

    async def publish_reply(self, parent_id: str, text: str, sender: Identity) -> str:
        """Append a text reply to an item's thread."""
        record: dict[str, Any] = {"content": validate_text(text)}
        record.update(_sender_fields(sender, self._clock()))
        reply_id = await self._append(store_paths.replies_path(parent_id), record)
        logger.info(f"Published reply {reply_id} to item {parent_id}")
        return reply_id

    async def delete_item(
        self,
        target: StreamSelector,
        item: SharedItem,
        actor: Identity,
        tier: AuthorizationTier,
    ) -> None:
        """Delete an item and its reply thread. Allowed for its sender and admins."""
        self.check_delete(item, actor, tier)
        stream_path = self._target_path(target)
        await self._delete(f"{stream_path}/{item.id}")
        await self._delete(store_paths.replies_path(item.id))
        logger.info(f"Deleted item {item.id} from '{stream_path}'")

    async def clear_stream(
        self, target: StreamSelector, item_ids: Iterable[str], tier: AuthorizationTier
    ) -> None:
        """Delete every item of a stream together with their threads. Admins only."""
        self.check_clear(tier)
        stream_path = self._target_path(target)
        for item_id in item_ids:
            await self._delete(store_paths.replies_path(item_id))
        await self._delete(stream_path)
        logger.info(f"Cleared '{stream_path}'")

    @staticmethod
    def check_delete(item: SharedItem, actor: Identity, tier: AuthorizationTier) -> None:
        if not tier.is_admin and not is_own_item(item, actor):
            raise Forbidden("Only the sender or an admin may delete this item")

    @staticmethod
    def check_clear(tier: AuthorizationTier) -> None:
        if not tier.is_admin:
            raise Forbidden("Only admins may clear a feed")

    @staticmethod
    def _target_path(target: StreamSelector) -> str:
        key = store_paths.content_stream_key(target)
        if key is None:
            raise Forbidden("No active stream to publish to")
        return store_paths.stream_path(key)

    async def _upload(self, payload: MediaPayload, target: StreamSelector, timestamp: int) -> str:
        folder = target.room_id or "global"
        path = f"{store_paths.UPLOADS}/{folder}/{timestamp}_{payload.file_name}"
        try:
            address = await self._blob_storage.upload(payload.data, path, payload.mime_type)
        except Exception as e:
            logger.error(f"Upload of {payload.file_name} failed: {e}")
            raise UploadFailed(f"Upload of {payload.file_name} failed") from e
        logger.debug(f"Uploaded {payload.measured_size} bytes to {address}")
        return address

    async def _append(self, path: str, record: dict[str, Any]) -> str:
        try:
            pending = self._store.append(path, record)
            await pending.completion
        except Exception as e:
            logger.error(f"Write to '{path}' failed: {e}")
            raise WriteFailed(f"Write to {path} failed") from e
        return pending.key

    async def _delete(self, path: str) -> None:
        try:
            await self._store.delete(path)
        except Exception as e:
            logger.error(f"Delete of '{path}' failed: {e}")
            raise WriteFailed(f"Delete of {path} failed") from e
