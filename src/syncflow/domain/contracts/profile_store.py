"""Local device profile contract (protocol)."""

from typing import Protocol

from syncflow.domain.models.identity import Identity


class LocalProfileStoreProtocol(Protocol):
    """Protocol for the device identity persisted on this machine."""

    def device_identity(self) -> Identity:
        """Return the device id and name, generating and persisting them once."""
        ...
