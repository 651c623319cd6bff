"""Custom exception hierarchy for mosusync."""

from __future__ import annotations


class MosuSyncError(Exception):
    """Base exception for all mosusync errors."""


class MosuConfigError(MosuSyncError):
    """Invalid or missing configuration."""


class BridgeError(MosuSyncError):
    """Transport-level bridge failure (channel unavailable, broker refused)."""

    def __init__(self, message: str, *, bridge_name: str = "") -> None:
        self.bridge_name = bridge_name
        super().__init__(message)


class BridgePayloadError(BridgeError):
    """A bridge message could not be decoded into a snapshot."""
