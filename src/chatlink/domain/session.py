"""Session lifecycle record for one client instance."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle states for the client session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    DISCONNECTED = "disconnected"
    DESTROYED = "destroyed"


@dataclass(frozen=True, slots=True)
class Session:
    """Snapshot of the connection session.

    Transitions return new snapshots; the orchestrator is the only writer.
    """

    token: str | None = None
    status: SessionStatus = SessionStatus.IDLE
    ready_at: datetime | None = None
    session_id: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is SessionStatus.READY

    @property
    def is_destroyed(self) -> bool:
        return self.status is SessionStatus.DESTROYED

    @property
    def ready_timestamp(self) -> float | None:
        """Return ``ready_at`` as a POSIX timestamp, if the session was ever ready."""
        return self.ready_at.timestamp() if self.ready_at is not None else None

    def uptime(self, now: datetime) -> timedelta | None:
        """Return how long the session has been ready as of ``now``."""
        if self.ready_at is None:
            return None
        return now - self.ready_at

    def with_token(self, token: str | None) -> Session:
        return replace(self, token=token)

    def mark_connecting(self, token: str) -> Session:
        return replace(self, token=token, status=SessionStatus.CONNECTING)

    def mark_ready(self, ready_at: datetime, session_id: str | None) -> Session:
        return replace(self, status=SessionStatus.READY, ready_at=ready_at, session_id=session_id)

    def mark_disconnected(self) -> Session:
        return replace(self, status=SessionStatus.DISCONNECTED)

    def mark_idle(self) -> Session:
        """Reset to IDLE ahead of a new login, keeping nothing from the old identity."""
        return replace(self, status=SessionStatus.IDLE, ready_at=None, session_id=None)

    def mark_destroyed(self) -> Session:
        """Terminal state; the token is cleared."""
        return replace(self, token=None, status=SessionStatus.DESTROYED, session_id=None)


__all__ = ["Session", "SessionStatus"]
