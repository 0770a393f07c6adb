"""Presence record domain model."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DeviceClass(StrEnum):
    """Kind of client behind a presence record."""

    MOBILE = "mobile"
    LAPTOP = "laptop"
    DESKTOP = "desktop"
    USER = "user"


class PresenceRecord(BaseModel):
    """Ephemeral liveness entry for a connected device or user.

    The record key in the store equals ``id``. Only the owner rewrites it
    (heartbeat); other clients may only delete it once it is stale.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    display_name: str = Field(alias="name")
    device_class: DeviceClass = Field(default=DeviceClass.DESKTOP, alias="type")
    profile_image: str | None = Field(default=None, alias="profileImage")
    last_seen: int = Field(alias="lastSeen")

    @model_validator(mode="before")
    @classmethod
    def resolve_last_seen(cls, data: Any) -> Any:
        """Older clients only wrote ``connectedAt``."""
        if (
            isinstance(data, dict)
            and data.get("lastSeen") is None
            and data.get("last_seen") is None
        ):
            return {**data, "lastSeen": data.get("connectedAt")}
        return data


class PresenceInfo(BaseModel):
    """What a client publishes about itself when registering presence."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    device_class: DeviceClass = DeviceClass.DESKTOP
    profile_image: str | None = None
