"""12-factor configuration adapter using environment variables and TOML config."""

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from syncflow.application.services.content_dispatch import DEFAULT_MAX_MEDIA_BYTES, DispatchPolicy
from syncflow.application.services.event_reconciler import ReconcilerSettings
from syncflow.application.services.presence_manager import PresenceSettings

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Presence
    heartbeat_interval_seconds: float = Field(
        default=30.0, description="Seconds between presence heartbeats"
    )
    stale_threshold_seconds: float = Field(
        default=60.0,
        description="Seconds without a heartbeat after which a device record is evicted",
    )

    # Authorization
    super_admin_id: str | None = Field(
        default=None, description="User id that holds the super-admin tier"
    )

    # Media
    max_media_bytes: int = Field(
        default=DEFAULT_MAX_MEDIA_BYTES,
        description="Largest image or video accepted for upload, in bytes",
    )
    download_name_prefix: str = Field(
        default="syncflow",
        description="Prefix for generated download names of media without a file name",
    )
    blob_base_url: str | None = Field(
        default=None,
        description="Base URL of the HTTP blob storage; in-memory storage is used when unset",
    )
    blob_auth_token: str | None = Field(
        default=None, description="Bearer token sent with blob uploads"
    )
    blob_upload_timeout: int = Field(
        default=60, description="Timeout for blob uploads in seconds"
    )

    # Notifications and subscriptions
    legacy_feed_notifies_on_first_snapshot: bool = Field(
        default=False,
        description="Announce pre-existing global feed items on the first snapshot",
    )
    remember_seen_ids_across_subscriptions: bool = Field(
        default=False,
        description="Keep per-stream seen ids when a stream is unsubscribed and later reopened",
    )
    resubscribe_delay_seconds: float = Field(
        default=5.0, description="Delay before re-subscribing a stream that reported an error"
    )

    # Local persistence
    profile_file: str = Field(
        default=".syncflow/profile.json", description="Where the device identity is stored"
    )
    session_file: str = Field(
        default=".syncflow/session.json",
        description="Where the authenticated user session is stored",
    )
    user_agent: str = Field(
        default="", description="User agent string used to classify this device"
    )

    log_level: str = Field(default="INFO", description="Root log level")

    # Optional TOML file overriding the settings above by section
    config_file: str | None = Field(
        default=None,
        description="Path to a TOML file with [presence], [media], [admin] and [notifications] sections",
    )

    @field_validator("max_media_bytes")
    @classmethod
    def validate_max_media_bytes(cls, v: int) -> int:
        """Validate the media ceiling is positive."""
        if v <= 0:
            raise ValueError("max_media_bytes must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level name."""
        if v.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return v.upper()

    @model_validator(mode="after")
    def validate_presence_timing(self) -> "AppConfig":
        """Validate the heartbeat fires more often than records go stale."""
        self._check_presence_timing()
        return self

    def _check_presence_timing(self) -> None:
        if self.heartbeat_interval_seconds <= 0:
            raise ValueError("heartbeat_interval_seconds must be positive")
        if self.heartbeat_interval_seconds >= self.stale_threshold_seconds:
            raise ValueError(
                "heartbeat_interval_seconds must be less than stale_threshold_seconds"
            )

    @classmethod
    def for_testing(cls, **overrides: Any) -> "AppConfig":
        """Build a config that ignores any local .env file."""
        return cls(_env_file=None, **overrides)

    def load_overrides(self) -> dict[str, Any]:
        """Load the TOML file and apply its sections on top of the current settings."""
        if not self.config_file:
            raise ValueError("config_file must be set to load overrides")

        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        presence = toml_data.get("presence", {})
        if "heartbeat_interval_seconds" in presence:
            self.heartbeat_interval_seconds = presence["heartbeat_interval_seconds"]
        if "stale_threshold_seconds" in presence:
            self.stale_threshold_seconds = presence["stale_threshold_seconds"]

        media = toml_data.get("media", {})
        if "max_media_bytes" in media:
            if media["max_media_bytes"] <= 0:
                raise ValueError("max_media_bytes must be positive")
            self.max_media_bytes = media["max_media_bytes"]
        if "download_name_prefix" in media:
            self.download_name_prefix = media["download_name_prefix"]
        if "blob_base_url" in media:
            self.blob_base_url = media["blob_base_url"]

        admin = toml_data.get("admin", {})
        if "super_admin_id" in admin:
            self.super_admin_id = str(admin["super_admin_id"])

        notifications = toml_data.get("notifications", {})
        for key in (
            "legacy_feed_notifies_on_first_snapshot",
            "remember_seen_ids_across_subscriptions",
            "resubscribe_delay_seconds",
        ):
            if key in notifications:
                setattr(self, key, notifications[key])

        self._check_presence_timing()
        logger.info(f"Loaded configuration overrides from {config_path}")
        return toml_data

    def presence_settings(self) -> PresenceSettings:
        return PresenceSettings(
            heartbeat_interval_ms=int(self.heartbeat_interval_seconds * 1000),
            stale_threshold_ms=int(self.stale_threshold_seconds * 1000),
        )

    def reconciler_settings(self) -> ReconcilerSettings:
        return ReconcilerSettings(
            legacy_feed_notifies_on_first_snapshot=self.legacy_feed_notifies_on_first_snapshot,
            remember_seen_ids_across_subscriptions=self.remember_seen_ids_across_subscriptions,
            resubscribe_delay_seconds=self.resubscribe_delay_seconds,
        )

    def dispatch_policy(self) -> DispatchPolicy:
        return DispatchPolicy(
            max_media_bytes=self.max_media_bytes,
            download_name_prefix=self.download_name_prefix,
        )
