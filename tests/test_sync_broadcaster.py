"""Tests for SyncEventBroadcaster."""

from unittest.mock import MagicMock

from helpers import RecordingListener

from syncflow.application.services import SyncEventBroadcaster
from syncflow.domain.models import NewItemEvent, SharedItem, StreamKey, StreamKind


def _event() -> NewItemEvent:
    item = SharedItem(id="k", type="TEXT", content="hi", timestamp=1, sender="A")
    return NewItemEvent(stream=StreamKey(StreamKind.GLOBAL_FEED), item=item)


def test_failing_listener_does_not_block_others() -> None:
    """Given a listener that raises, when broadcasting, then the remaining listeners still receive events."""
    broadcaster = SyncEventBroadcaster()
    failing = MagicMock()
    failing.on_stream_updated.side_effect = RuntimeError("boom")
    failing.on_new_item.side_effect = RuntimeError("boom")
    failing.on_connection_status.side_effect = RuntimeError("boom")
    healthy = RecordingListener()
    broadcaster.subscribe(failing)
    broadcaster.subscribe(healthy)

    broadcaster.broadcast_update(StreamKey(StreamKind.ADMINS))
    broadcaster.broadcast_new_item(_event())
    broadcaster.broadcast_connection_status(False)

    assert healthy.updates == [StreamKey(StreamKind.ADMINS)]
    assert [event.item.id for event in healthy.new_items] == ["k"]
    assert healthy.statuses == [False]


def test_subscribe_is_idempotent_and_unsubscribe_stops_delivery() -> None:
    """Given a listener subscribed twice, when broadcasting before and after unsubscribe, then it hears once."""
    broadcaster = SyncEventBroadcaster()
    listener = RecordingListener()
    broadcaster.subscribe(listener)
    broadcaster.subscribe(listener)

    broadcaster.broadcast_connection_status(True)
    broadcaster.unsubscribe(listener)
    broadcaster.broadcast_connection_status(False)

    assert listener.statuses == [True]
