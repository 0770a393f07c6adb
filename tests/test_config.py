"""Tests for configuration adapter."""

from pathlib import Path
from tempfile import NamedTemporaryFile

import pytest

from syncflow.adapters.config import AppConfig


def test_config_loads_defaults() -> None:
    """Given no environment variables, when loading config, then defaults are used."""
    config = AppConfig.for_testing()

    assert config.heartbeat_interval_seconds == 30
    assert config.stale_threshold_seconds == 60
    assert config.max_media_bytes == 100 * 1024 * 1024
    assert config.super_admin_id is None
    assert config.legacy_feed_notifies_on_first_snapshot is False
    assert config.log_level == "INFO"


def test_config_loads_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Given environment variables, when loading config, then they are used."""
    monkeypatch.setenv("SUPER_ADMIN_ID", "4242")
    monkeypatch.setenv("MAX_MEDIA_BYTES", "10485760")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = AppConfig.for_testing()

    assert config.super_admin_id == "4242"
    assert config.max_media_bytes == 10 * 1024 * 1024
    assert config.log_level == "DEBUG"


def test_config_rejects_heartbeat_not_shorter_than_stale_threshold(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Given a heartbeat equal to the stale threshold, when loading config, then validation fails."""
    monkeypatch.setenv("HEARTBEAT_INTERVAL_SECONDS", "60")

    with pytest.raises(ValueError, match="heartbeat_interval_seconds must be less"):
        AppConfig.for_testing()


def test_config_rejects_invalid_values() -> None:
    """Given a zero media ceiling or an unknown log level, when loading config, then validation fails."""
    with pytest.raises(ValueError, match="max_media_bytes must be positive"):
        AppConfig.for_testing(max_media_bytes=0)
    with pytest.raises(ValueError, match="log_level must be one of"):
        AppConfig.for_testing(log_level="chatty")


def test_config_converts_to_application_settings() -> None:
    """Given custom values, when converting, then the application settings carry them in milliseconds."""
    config = AppConfig.for_testing(
        heartbeat_interval_seconds=10,
        stale_threshold_seconds=25,
        max_media_bytes=2048,
        download_name_prefix="flow",
        remember_seen_ids_across_subscriptions=True,
    )

    presence = config.presence_settings()
    assert (presence.heartbeat_interval_ms, presence.stale_threshold_ms) == (10_000, 25_000)
    assert config.dispatch_policy().max_media_bytes == 2048
    assert config.dispatch_policy().download_name_prefix == "flow"
    assert config.reconciler_settings().remember_seen_ids_across_subscriptions is True


def test_config_applies_toml_overrides() -> None:
    """Given a TOML file with sections, when loading overrides, then matching settings change."""
    toml_content = """
[presence]
heartbeat_interval_seconds = 15
stale_threshold_seconds = 45

[media]
max_media_bytes = 1024

[admin]
super_admin_id = 123456

[notifications]
legacy_feed_notifies_on_first_snapshot = true
"""
    with NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
        f.write(toml_content)
        temp_path = f.name

    try:
        config = AppConfig.for_testing(config_file=temp_path)
        config.load_overrides()

        assert config.heartbeat_interval_seconds == 15
        assert config.stale_threshold_seconds == 45
        assert config.max_media_bytes == 1024
        assert config.super_admin_id == "123456"
        assert config.legacy_feed_notifies_on_first_snapshot is True
    finally:
        Path(temp_path).unlink()


def test_config_rejects_toml_overrides_breaking_presence_timing(tmp_path: Path) -> None:
    """Given a TOML heartbeat longer than the threshold, when loading overrides, then ValueError is raised."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("[presence]\nheartbeat_interval_seconds = 90\n")
    config = AppConfig.for_testing(config_file=str(config_path))

    with pytest.raises(ValueError, match="heartbeat_interval_seconds must be less"):
        config.load_overrides()


def test_config_raises_error_when_file_not_found() -> None:
    """Given non-existent config file, when loading overrides, then FileNotFoundError is raised."""
    config = AppConfig.for_testing(config_file="nonexistent.toml")

    with pytest.raises(FileNotFoundError, match="Configuration file not found"):
        config.load_overrides()


def test_config_raises_error_when_config_file_not_set() -> None:
    """Given config_file is None, when loading overrides, then ValueError is raised."""
    config = AppConfig.for_testing(config_file=None)

    with pytest.raises(ValueError, match="config_file must be set"):
        config.load_overrides()
