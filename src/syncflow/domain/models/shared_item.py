"""Shared item and reply domain models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ContentType(StrEnum):
    """Kind of content carried by a shared item."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class _FeedEntry(BaseModel):
    """Fields common to shared items and replies."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    content: str
    timestamp: int
    sender: str
    sender_image: str | None = Field(default=None, alias="senderImage")
    sender_id: str | None = Field(default=None, alias="senderId")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")

    @model_validator(mode="before")
    @classmethod
    def resolve_timestamp(cls, data: Any) -> Any:
        """Use the client timestamp, falling back to the server-resolved creation time."""
        if isinstance(data, dict) and data.get("timestamp") is None:
            return {**data, "timestamp": data.get("createdAt")}
        return data

    @field_validator("sender_id", mode="before")
    @classmethod
    def coerce_sender_id(cls, v: Any) -> Any:
        """Numeric ids from the auth provider are stored as-is on the wire."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class SharedItem(_FeedEntry):
    """An immutable item broadcast into the global feed or a room feed."""

    type: ContentType
    file_name: str | None = Field(default=None, alias="fileName")


class Reply(_FeedEntry):
    """A one-level reply under a shared item."""

    parent_id: str = Field(alias="parentId")
