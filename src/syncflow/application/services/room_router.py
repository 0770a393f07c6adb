"""Selection of the active content stream for a viewer."""

from __future__ import annotations

import logging
from collections.abc import Collection

from syncflow.domain.contracts.content_switcher import (
    ContentStreamSwitcherProtocol,  # noqa: TC001 - Runtime dependency: used in __init__ signature
)
from syncflow.domain.errors import Forbidden
from syncflow.domain.models.authorization_tier import AuthorizationTier
from syncflow.domain.models.stream import SelectorKind, StreamSelector

logger = logging.getLogger(__name__)


def active_stream(
    tier: AuthorizationTier, requested_room_id: str | None, effective_room_ids: Collection[str]
) -> StreamSelector:
    """Resolve which content stream a viewer should see.

    Members are confined to their rooms: a requested room they belong to wins,
    otherwise the first of their rooms (sorted, so every client agrees) is
    picked automatically, and with no rooms at all they wait. Admin tiers see
    whatever they requested, the global feed by default.
    """
    if tier.is_admin:
        if requested_room_id is None:
            return StreamSelector.global_feed()
        return StreamSelector.room(requested_room_id)
    if requested_room_id is not None and requested_room_id in effective_room_ids:
        return StreamSelector.room(requested_room_id)
    if effective_room_ids:
        return StreamSelector.room(sorted(effective_room_ids)[0])
    return StreamSelector.waiting()


class RoomRouter:
    """Keeps the content subscription in line with the viewer's tier and rooms."""

    def __init__(self, switcher: ContentStreamSwitcherProtocol) -> None:
        self._switcher = switcher
        self._requested_room_id: str | None = None
        # The requested room was picked for a member rather than chosen
        self._auto_assigned = False
        self.active: StreamSelector | None = None

    def refresh(
        self, tier: AuthorizationTier, effective_room_ids: Collection[str]
    ) -> StreamSelector:
        """Re-resolve after a tier or membership change; switch only if the result differs.

        A room picked automatically while the viewer was a member is dropped
        once they turn out to be an admin.
        """
        if tier.is_admin and self._auto_assigned:
            self._requested_room_id = None
            self._auto_assigned = False
        selector = active_stream(tier, self._requested_room_id, effective_room_ids)
        if selector.kind is SelectorKind.ROOM and self._requested_room_id != selector.room_id:
            logger.info(f"Auto-assigned to room {selector.room_id}")
            self._requested_room_id = selector.room_id
            self._auto_assigned = True
        if selector != self.active:
            self.active = selector
            self._switcher.switch_content_stream(selector)
        return selector

    def select_room(
        self, room_id: str, tier: AuthorizationTier, effective_room_ids: Collection[str]
    ) -> StreamSelector:
        if not tier.is_admin and room_id not in effective_room_ids:
            raise Forbidden(f"Not a member of room {room_id}")
        self._requested_room_id = room_id
        self._auto_assigned = False
        return self.refresh(tier, effective_room_ids)

    def select_global(
        self, tier: AuthorizationTier, effective_room_ids: Collection[str]
    ) -> StreamSelector:
        if not tier.is_admin:
            raise Forbidden("Only admins may view the global feed")
        self._requested_room_id = None
        self._auto_assigned = False
        return self.refresh(tier, effective_room_ids)

    def reset(self) -> None:
        self._requested_room_id = None
        self._auto_assigned = False
        self.active = None
