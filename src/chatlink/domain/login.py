"""Login request variants and token/credential helpers."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from chatlink.errors import InvalidTokenError

if TYPE_CHECKING:
    from chatlink.application.ports.remote_auth import RemoteAuthListenerPort

_SCHEME_PREFIX = re.compile(r"^(?:Bot|Bearer)\s*", re.IGNORECASE)
_TOTP_CODE = re.compile(r"\d{6}")
_BACKUP_CODE = re.compile(r"[a-z0-9]{4}-[a-z0-9]{4}")


@dataclass(frozen=True, slots=True)
class TokenLogin:
    """Log in with a static token (``None`` uses the configured token)."""

    token: str | None = None


@dataclass(frozen=True, slots=True)
class CredentialLogin:
    """Log in with username and password, plus a second factor when the account needs one."""

    username: str
    password: str | None = field(default=None, repr=False)
    mfa_code: str | None = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class RemoteHandshakeLogin:
    """Log in by letting another, already-authenticated device approve a handshake."""

    listener: RemoteAuthListenerPort
    on_url: Callable[[str], None] | None = None


LoginRequest: TypeAlias = TokenLogin | CredentialLogin | RemoteHandshakeLogin


def normalize_token(token: object) -> str:
    """Strip a leading ``Bot``/``Bearer`` scheme; reject empty or non-string tokens."""
    if not isinstance(token, str) or not token:
        raise InvalidTokenError("token must be a non-empty string")
    normalized = _SCHEME_PREFIX.sub("", token, count=1).strip()
    if not normalized:
        raise InvalidTokenError("token must be a non-empty string")
    return normalized


def mask_token(token: str) -> str:
    """Keep the first two dot-separated segments, star out the rest."""
    return ".".join(
        segment if index < 2 else "*" * len(segment)
        for index, segment in enumerate(token.split("."))
    )


def is_valid_mfa_code(code: object) -> bool:
    """Accept a 6-digit TOTP code or a ``xxxx-xxxx`` backup code."""
    if not isinstance(code, str) or not code:
        return False
    return bool(_TOTP_CODE.fullmatch(code) or _BACKUP_CODE.fullmatch(code))


__all__ = [
    "CredentialLogin",
    "LoginRequest",
    "RemoteHandshakeLogin",
    "TokenLogin",
    "is_valid_mfa_code",
    "mask_token",
    "normalize_token",
]
