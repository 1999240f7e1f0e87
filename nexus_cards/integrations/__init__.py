"""Adapters for third-party services."""
