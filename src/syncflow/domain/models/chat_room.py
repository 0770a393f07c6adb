"""Chat room, membership and admin domain models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChatRoom(BaseModel):
    """A named room. Never mutated after creation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    name: str
    created_by: str = Field(alias="createdBy")
    creator_name: str = Field(alias="creatorName")
    creator_image: str | None = Field(default=None, alias="creatorImage")
    created_at: int = Field(alias="createdAt")


class RoomMember(BaseModel):
    """A user's entry in one room's membership set."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    profile_image: str | None = Field(default=None, alias="profileImage")
    added_at: int = Field(alias="addedAt")


class AdminGrant(BaseModel):
    """A user's entry in the admin set."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    is_admin: bool = Field(default=True, alias="isAdmin")
    assigned_at: int = Field(default=0, alias="assignedAt")

    @model_validator(mode="before")
    @classmethod
    def coerce_flag(cls, data: Any) -> Any:
        """Accept the bare ``true`` flag some writers store."""
        if data is True:
            return {"isAdmin": True, "assignedAt": 0}
        return data


# roomId -> (userId -> RoomMember)
Membership = dict[str, dict[str, RoomMember]]
# userId -> AdminGrant
AdminSet = dict[str, AdminGrant]
