"""Stream identity and selection domain models."""

from dataclasses import dataclass
from enum import StrEnum


class SelectorKind(StrEnum):
    """Which message stream a viewer is looking at."""

    GLOBAL = "global"
    ROOM = "room"
    WAITING = "waiting"


@dataclass(frozen=True)
class StreamSelector:
    """Resolved choice of the active content stream."""

    kind: SelectorKind
    room_id: str | None = None

    @classmethod
    def global_feed(cls) -> "StreamSelector":
        return cls(SelectorKind.GLOBAL)

    @classmethod
    def room(cls, room_id: str) -> "StreamSelector":
        return cls(SelectorKind.ROOM, room_id)

    @classmethod
    def waiting(cls) -> "StreamSelector":
        return cls(SelectorKind.WAITING)

    @property
    def is_waiting(self) -> bool:
        return self.kind is SelectorKind.WAITING


class StreamKind(StrEnum):
    """Every kind of subscribed collection."""

    GLOBAL_FEED = "global_feed"
    ROOM_FEED = "room_feed"
    REPLIES = "replies"
    ROOMS = "rooms"
    MEMBERSHIP = "membership"
    ADMINS = "admins"
    DEVICES = "devices"


@dataclass(frozen=True)
class StreamKey:
    """Identity of one subscribed stream (kind plus optional target id)."""

    kind: StreamKind
    target: str | None = None

    @property
    def is_content(self) -> bool:
        return self.kind in (StreamKind.GLOBAL_FEED, StreamKind.ROOM_FEED)

    def __str__(self) -> str:
        return f"{self.kind}:{self.target}" if self.target else str(self.kind)
