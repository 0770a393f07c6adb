"""Application layer - sync, presence, routing and dispatch use cases."""
