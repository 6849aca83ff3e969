"""Login strategies converging on a single session-establishing callback."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from chatlink.application.ports.remote_auth import RemoteAuthListenerPort
from chatlink.application.ports.rest import RestPort
from chatlink.clients import REMOTE_AUTH
from chatlink.domain.login import (
    CredentialLogin,
    LoginRequest,
    RemoteHandshakeLogin,
    TokenLogin,
    is_valid_mfa_code,
    mask_token,
    normalize_token,
)
from chatlink.domain.remote_auth import (
    RemoteAuthDecision,
    RemoteAuthHandshake,
    parse_remote_auth_url,
)
from chatlink.errors import InvalidCredentialError, MfaRequiredError, UnknownLoginError
from chatlink.json_types import JsonValue

logger = logging.getLogger("chatlink.auth")

EstablishSession = Callable[[str], Awaitable[str]]
PasswordSink = Callable[[str], None]
UrlSink = Callable[[str], None]

LOGIN_PATH = "/auth/login"
MFA_TOTP_PATH = "/auth/mfa/totp"
REMOTE_AUTH_PATH = "/users/@me/remote-auth"
REMOTE_AUTH_FINISH_PATH = "/users/@me/remote-auth/finish"
REMOTE_AUTH_CANCEL_PATH = "/users/@me/remote-auth/cancel"


class AuthenticationNegotiator:
    """Resolves a session token by one of three mutually exclusive strategies.

    Every strategy ends in ``establish_session(token)``, which the orchestrator
    supplies; the negotiator itself never touches session state.
    """

    def __init__(
        self,
        rest: RestPort,
        establish_session: EstablishSession,
        *,
        remember_password: PasswordSink | None = None,
        remote_auth_hosts: Iterable[str] = REMOTE_AUTH.hosts,
        remote_auth_prefix: str = REMOTE_AUTH.path_prefix,
    ) -> None:
        self._rest = rest
        self._establish_session = establish_session
        self._remember_password = remember_password
        self._remote_auth_hosts = tuple(remote_auth_hosts)
        self._remote_auth_prefix = remote_auth_prefix

    async def authenticate(self, request: LoginRequest) -> str:
        """Single entry point for every login variant."""
        match request:
            case TokenLogin(token=token):
                return await self.token_login(token)
            case CredentialLogin(username=username, password=password, mfa_code=mfa_code):
                return await self.credential_login(username, password, mfa_code)
            case RemoteHandshakeLogin(listener=listener, on_url=on_url):
                return await self.qr_login(listener, on_url=on_url)
        raise TypeError(f"unsupported login request: {type(request).__name__}")

    async def token_login(self, token: object) -> str:
        normalized = normalize_token(token)
        logger.debug("logging in with token", extra={"data": {"token": mask_token(normalized)}})
        return await self._establish_session(normalized)

    async def credential_login(
        self,
        username: object,
        password: object,
        mfa_code: str | None = None,
    ) -> str:
        """Two-round login: credentials, then (only if asked for) the second factor."""
        if not isinstance(username, str) or not username:
            raise InvalidCredentialError("username must be a non-empty string")
        if not isinstance(password, str) or not password:
            raise InvalidCredentialError("password must be a non-empty string")

        logger.debug("logging in with credentials", extra={"data": {"username": username}})
        data = await self._rest.post(
            LOGIN_PATH,
            {
                "login": username,
                "password": password,
                "undelete": False,
                "captcha_key": None,
                "login_source": None,
                "gift_code_sku_id": None,
            },
            auth=False,
        )
        if self._remember_password is not None:
            self._remember_password(password)

        body = data if isinstance(data, Mapping) else {}
        token = body.get("token")
        if isinstance(token, str) and token:
            return await self.token_login(token)

        ticket = body.get("ticket")
        if isinstance(ticket, str) and ticket and body.get("mfa"):
            return await self._exchange_mfa(ticket, mfa_code)

        raise UnknownLoginError("login response carried neither a token nor an MFA ticket", payload=data)

    async def remote_auth(self, url: str, force_accept: bool = False) -> RemoteAuthDecision | JsonValue:
        """Approve (or hand back the choice to approve) another device's handshake."""
        fingerprint = parse_remote_auth_url(
            url,
            hosts=self._remote_auth_hosts,
            path_prefix=self._remote_auth_prefix,
        )
        data = await self._rest.post(REMOTE_AUTH_PATH, {"fingerprint": fingerprint})
        handshake_token = data.get("handshake_token") if isinstance(data, Mapping) else None
        if not isinstance(handshake_token, str) or not handshake_token:
            raise UnknownLoginError("remote-auth exchange returned no handshake token", payload=data)

        handshake = RemoteAuthHandshake(fingerprint=fingerprint, handshake_token=handshake_token)
        logger.debug("remote-auth handshake opened", extra={"data": {"fingerprint": fingerprint}})

        async def _accept() -> JsonValue:
            return await self._rest.post(
                REMOTE_AUTH_FINISH_PATH,
                {"handshake_token": handshake_token, "temporary_token": False},
            )

        async def _reject() -> JsonValue:
            return await self._rest.post(REMOTE_AUTH_CANCEL_PATH, {"handshake_token": handshake_token})

        decision = RemoteAuthDecision(handshake=handshake, on_accept=_accept, on_reject=_reject)
        if force_accept:
            return await decision.accept()
        return decision

    async def listen_for_token(
        self,
        listener: RemoteAuthListenerPort,
        on_url: UrlSink | None = None,
        *,
        approve: Callable[[str], Awaitable[object]] | None = None,
    ) -> str:
        """Run a subordinate listener until it yields a token; the listener is always closed."""
        try:
            url = await listener.start()
            logger.debug("remote-auth listener ready")
            if on_url is not None:
                on_url(url)
            if approve is not None:
                await approve(url)
            token = await listener.wait_for_token()
        finally:
            await listener.close()
        return normalize_token(token)

    async def create_token(self, listener: RemoteAuthListenerPort) -> str:
        """Mint a fresh token by approving the listener's handshake from this session."""
        return await self.listen_for_token(
            listener,
            approve=lambda url: self.remote_auth(url, force_accept=True),
        )

    async def qr_login(self, listener: RemoteAuthListenerPort, on_url: UrlSink | None = None) -> str:
        """Log in once another device approves the listener's handshake."""
        token = await self.listen_for_token(listener, on_url)
        return await self.token_login(token)

    async def _exchange_mfa(self, ticket: str, mfa_code: str | None) -> str:
        if not is_valid_mfa_code(mfa_code):
            raise MfaRequiredError("a 6-digit code or an xxxx-xxxx backup code is required")
        data = await self._rest.post(
            MFA_TOTP_PATH,
            {
                "code": mfa_code,
                "ticket": ticket,
                "login_source": None,
                "gift_code_sku_id": None,
            },
            auth=False,
        )
        token = data.get("token") if isinstance(data, Mapping) else None
        if not isinstance(token, str) or not token:
            raise UnknownLoginError("MFA exchange returned no token", payload=data)
        return await self.token_login(token)


__all__ = [
    "LOGIN_PATH",
    "MFA_TOTP_PATH",
    "REMOTE_AUTH_CANCEL_PATH",
    "REMOTE_AUTH_FINISH_PATH",
    "REMOTE_AUTH_PATH",
    "AuthenticationNegotiator",
    "EstablishSession",
    "PasswordSink",
    "UrlSink",
]
