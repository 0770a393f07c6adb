"""Adapters for state kept on the local machine."""

from syncflow.adapters.local.device_detection import detect_device_class
from syncflow.adapters.local.profile_store import LocalProfileStore
from syncflow.adapters.local.session_auth_provider import PersistedSessionAuthProvider

__all__ = ["LocalProfileStore", "PersistedSessionAuthProvider", "detect_device_class"]
