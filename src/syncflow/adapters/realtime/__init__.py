"""Adapters built on the realtime store contract."""

from syncflow.adapters.realtime.membership_store import RealtimeMembershipStore

__all__ = ["RealtimeMembershipStore"]
