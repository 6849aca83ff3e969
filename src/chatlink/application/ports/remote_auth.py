"""Port describing a subordinate remote-auth listener."""

from __future__ import annotations

from typing import Protocol


class RemoteAuthListenerPort(Protocol):
    """Listener that publishes a scannable URL and waits for another device to approve it."""

    async def start(self) -> str:
        """Open the listener and return the URL (containing the fingerprint) to approve."""

    async def wait_for_token(self) -> str:
        """Wait until a handshake completes and return the resulting session token."""

    async def close(self) -> None:
        """Tear the listener down; pending handshakes are abandoned."""


__all__ = ["RemoteAuthListenerPort"]
