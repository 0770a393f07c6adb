"""Protocol for switching the active content stream."""

from typing import Protocol

from syncflow.domain.models.stream import StreamSelector


class ContentStreamSwitcherProtocol(Protocol):
    """Protocol for whatever owns the content subscription."""

    def switch_content_stream(self, selector: StreamSelector) -> None:
        """Tear down the current content subscription and start the selected one."""
        ...
