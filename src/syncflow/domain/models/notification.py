"""Notification domain models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from syncflow.domain.models.shared_item import Reply, SharedItem
from syncflow.domain.models.stream import StreamKey


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class Notification(BaseModel):
    """A user-visible, dismissable message."""

    model_config = ConfigDict(frozen=True)

    id: str
    message: str
    level: NotificationLevel


class NewItemEvent(BaseModel):
    """Signal that an item from a peer was seen for the first time on a stream."""

    model_config = ConfigDict(frozen=True)

    stream: StreamKey
    item: SharedItem | Reply
