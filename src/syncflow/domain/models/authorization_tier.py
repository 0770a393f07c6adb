"""Authorization tier domain model."""

from enum import StrEnum


class AuthorizationTier(StrEnum):
    """Authorization level of a viewer."""

    MEMBER = "member"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_admin(self) -> bool:
        """True for ADMIN and SUPER_ADMIN."""
        return self is not AuthorizationTier.MEMBER
