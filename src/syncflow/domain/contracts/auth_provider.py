"""Authentication collaborator contract (protocol)."""

from typing import Protocol

from syncflow.domain.models.identity import Identity


class AuthProviderProtocol(Protocol):
    """Protocol for the external login provider."""

    async def login(self) -> Identity:
        """Run the provider's login flow and return the authenticated identity."""
        ...

    async def logout(self) -> None:
        """End the provider session and forget the persisted identity."""
        ...

    def restore_session(self) -> Identity | None:
        """Return the previously persisted identity, if any."""
        ...
