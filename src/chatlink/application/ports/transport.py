"""Port describing the gateway connection."""

from __future__ import annotations

from typing import Protocol

from chatlink.domain.session import SessionStatus


class TransportPort(Protocol):
    """Long-lived gateway link driven by the orchestrator."""

    @property
    def status(self) -> SessionStatus:
        """Current link status."""

    @property
    def session_id(self) -> str | None:
        """Gateway session identifier once the link is ready."""

    async def connect(self, token: str) -> None:
        """Open (or reopen) the link for ``token``; raises on failure."""

    def destroy(self) -> None:
        """Tear the link down; must be safe to call when already closed."""


__all__ = ["TransportPort"]
