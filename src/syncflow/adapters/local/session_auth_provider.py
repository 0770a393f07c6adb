"""Auth provider that remembers the logged-in user in a local JSON file."""

import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from syncflow.domain.models.identity import Identity

logger = logging.getLogger(__name__)

Authenticator = Callable[[], Awaitable[Identity]]
Revoker = Callable[[], Awaitable[None]]


class StoredUser(BaseModel):
    """The user record kept between runs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    nickname: str
    profile_image: str | None = Field(default=None, alias="profileImage")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        """Provider ids may be numeric."""
        return str(v) if isinstance(v, int) else v

    def to_identity(self) -> Identity:
        return Identity(
            id=self.id,
            display_name=self.nickname,
            avatar_url=self.profile_image,
            authenticated=True,
        )


class PersistedSessionAuthProvider:
    """Wraps an external login flow and persists its result.

    Args:
        path: Session file location.
        authenticate: Runs the provider's login and returns the user.
        revoke: Optional provider-side logout.
    """

    def __init__(
        self, path: str | Path, authenticate: Authenticator, revoke: Revoker | None = None
    ) -> None:
        self._path = Path(path)
        self._authenticate = authenticate
        self._revoke = revoke

    async def login(self) -> Identity:
        identity = await self._authenticate()
        identity = identity.model_copy(update={"authenticated": True})
        stored = StoredUser(
            id=identity.id, nickname=identity.display_name, profile_image=identity.avatar_url
        )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(stored.model_dump_json(by_alias=True), encoding="utf-8")
        logger.info(f"Logged in as {identity.id}")
        return identity

    async def logout(self) -> None:
        if self._revoke is not None:
            await self._revoke()
        self._path.unlink(missing_ok=True)
        logger.info("Logged out")

    def restore_session(self) -> Identity | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoredUser.model_validate(data).to_identity()
        except (OSError, ValueError) as e:
            # pydantic.ValidationError is a ValueError
            logger.warning(f"Ignoring unreadable session {self._path}: {e}")
            return None


async def reject_login() -> Identity:
    """Authenticator for deployments without a login provider."""
    raise RuntimeError("No login provider is configured")
