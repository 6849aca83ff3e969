"""Exception taxonomy shared by the client core."""

from __future__ import annotations

from collections.abc import Mapping

from chatlink.json_types import JsonValue


class ChatlinkError(Exception):
    """Base class for client failures."""


class ConfigurationError(ChatlinkError, ValueError):
    """Raised when shard or client options are invalid at construction."""


class AuthenticationError(ChatlinkError):
    """Base class for login input and login response failures."""


class InvalidTokenError(AuthenticationError):
    """Raised when a login token is empty or not a string."""


class InvalidCredentialError(AuthenticationError):
    """Raised when a username or password is missing or malformed."""


class MfaRequiredError(AuthenticationError):
    """Raised when the account requires a second factor that is missing or malformed."""


class UnknownLoginError(AuthenticationError):
    """Raised when a login response has neither a token nor an MFA ticket."""

    def __init__(self, message: str, *, payload: JsonValue = None) -> None:
        super().__init__(message)
        self.payload = payload


class InvalidRemoteAuthUrlError(AuthenticationError):
    """Raised when a remote-auth URL is not on an allowed host or has no fingerprint."""


class InvalidAuthorizeUrlError(AuthenticationError):
    """Raised when an OAuth2 authorize URL cannot be accepted."""


class HandshakeResolvedError(ChatlinkError):
    """Raised when a remote-auth handshake is accepted or rejected twice."""


class ClientNotReadyError(ChatlinkError):
    """Raised when an operation needs a READY session."""


class ClientDestroyedError(ChatlinkError):
    """Raised when an operation is attempted after destroy()."""


class TransportError(ChatlinkError):
    """Raised when a network round-trip fails without a server response."""


class ApiError(ChatlinkError):
    """Raised when the service answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        method: str,
        path: str,
        payload: JsonValue = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.path = path
        self.payload = payload

    @property
    def error_code(self) -> int | None:
        """Return the service-specific error code when the payload carries one."""
        if isinstance(self.payload, Mapping):
            code = self.payload.get("code")
            if isinstance(code, int):
                return code
        return None


__all__ = [
    "ApiError",
    "AuthenticationError",
    "ChatlinkError",
    "ClientDestroyedError",
    "ClientNotReadyError",
    "ConfigurationError",
    "HandshakeResolvedError",
    "InvalidAuthorizeUrlError",
    "InvalidCredentialError",
    "InvalidRemoteAuthUrlError",
    "InvalidTokenError",
    "MfaRequiredError",
    "TransportError",
    "UnknownLoginError",
]
