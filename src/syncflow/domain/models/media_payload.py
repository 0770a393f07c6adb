"""Media payload domain model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MediaPayload:
    """A file selected for upload."""

    file_name: str
    mime_type: str
    data: bytes
    size: int | None = None  # declared size; len(data) when absent

    @property
    def measured_size(self) -> int:
        return self.size if self.size is not None else len(self.data)
