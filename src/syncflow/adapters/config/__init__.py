"""Configuration adapters."""

from syncflow.adapters.config.app_config import AppConfig

__all__ = ["AppConfig"]
