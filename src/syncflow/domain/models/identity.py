"""Viewer identity domain model."""

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """The user or device the client acts as.

    Either an authenticated user returned by the auth provider or the local
    device fallback. Treated as opaque and stable across sessions.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    avatar_url: str | None = None
    authenticated: bool = False
