"""Realtime synchronization and presence engine for multi-room content sharing."""

__version__ = "0.1.0"
