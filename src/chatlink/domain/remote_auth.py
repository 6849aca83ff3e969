"""Remote device handshake ("QR") entities and URL parsing."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from chatlink.errors import HandshakeResolvedError, InvalidRemoteAuthUrlError
from chatlink.json_types import JsonValue


class HandshakeResolution(str, Enum):
    """Outcome of one remote-auth exchange."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class RemoteAuthHandshake:
    """Transient state for one handshake; never persisted."""

    fingerprint: str
    handshake_token: str
    resolution: HandshakeResolution = HandshakeResolution.PENDING

    @property
    def pending(self) -> bool:
        return self.resolution is HandshakeResolution.PENDING

    def resolve(self, resolution: HandshakeResolution) -> None:
        if not self.pending:
            raise HandshakeResolvedError(
                f"handshake already {self.resolution.value}; cannot mark it {resolution.value}"
            )
        self.resolution = resolution


HandshakeCall = Callable[[], Awaitable[JsonValue]]


@dataclass(slots=True)
class RemoteAuthDecision:
    """Continuation pair handed to the caller after the handshake token exchange."""

    handshake: RemoteAuthHandshake
    on_accept: HandshakeCall = field(repr=False)
    on_reject: HandshakeCall = field(repr=False)

    async def accept(self) -> JsonValue:
        """Finish the handshake; returns the service payload (it may carry a token)."""
        self.handshake.resolve(HandshakeResolution.ACCEPTED)
        return await self.on_accept()

    async def reject(self) -> JsonValue:
        """Cancel the handshake."""
        self.handshake.resolve(HandshakeResolution.CANCELLED)
        return await self.on_reject()


def parse_remote_auth_url(url: str, *, hosts: Iterable[str], path_prefix: str) -> str:
    """Return the fingerprint embedded in ``url`` or raise ``InvalidRemoteAuthUrlError``."""
    if not isinstance(url, str) or not url:
        raise InvalidRemoteAuthUrlError("remote-auth URL must be a non-empty string")
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise InvalidRemoteAuthUrlError(f"remote-auth URL is malformed: {url!r}") from exc

    allowed = {host.lower() for host in hosts}
    hostname = (parts.hostname or "").lower()
    if parts.scheme not in {"https", "http"} or hostname not in allowed:
        raise InvalidRemoteAuthUrlError(f"remote-auth URL host is not allowed: {hostname or url!r}")
    if not parts.path.startswith(path_prefix):
        raise InvalidRemoteAuthUrlError(f"remote-auth URL path must start with {path_prefix!r}")

    fingerprint = parts.path[len(path_prefix) :].strip("/")
    if not fingerprint:
        raise InvalidRemoteAuthUrlError("remote-auth URL carries no fingerprint")
    return fingerprint


__all__ = [
    "HandshakeCall",
    "HandshakeResolution",
    "RemoteAuthDecision",
    "RemoteAuthHandshake",
    "parse_remote_auth_url",
]
