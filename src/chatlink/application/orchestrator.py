"""Session orchestrator: login, teardown and periodic upkeep for one client."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from chatlink.application.authenticator import AuthenticationNegotiator, UrlSink
from chatlink.application.maintenance import PeriodicTask
from chatlink.application.ports.remote_auth import RemoteAuthListenerPort
from chatlink.application.ports.rest import RestPort
from chatlink.application.ports.transport import TransportPort
from chatlink.config.client import ClientSettings
from chatlink.domain.gift_codes import extract_gift_codes
from chatlink.domain.login import LoginRequest, mask_token
from chatlink.domain.messages import outdated_message_filter
from chatlink.domain.remote_auth import RemoteAuthDecision
from chatlink.domain.resolvers import resolve_invite_code, resolve_template_code
from chatlink.domain.session import Session, SessionStatus
from chatlink.domain.shards import ShardOverrides, ShardPlan, resolve_shard_plan
from chatlink.errors import (
    ApiError,
    ClientDestroyedError,
    ClientNotReadyError,
    InvalidAuthorizeUrlError,
    TransportError,
)
from chatlink.infrastructure.state.cache_registry import CacheName, CacheRegistry, Cleanup
from chatlink.infrastructure.state.used_codes import UsedCodeSet
from chatlink.json_types import JsonValue

logger = logging.getLogger("chatlink.orchestrator")

Clock = Callable[[], datetime]

SWEEP_UNLIMITED = -1

LOGOUT_PATH = "/auth/logout"
INVITE_CONTEXT_PROPERTIES = "eyJsb2NhdGlvbiI6Ik1hcmtkb3duIExpbmsifQ=="

_AUTHORIZE_PATH = re.compile(r"/?(?:api/)*oauth2/authorize/?", re.IGNORECASE)


def utc_now() -> datetime:
    return datetime.now(UTC)


class SessionOrchestrator:
    """Owns the session state machine and everything torn down with it.

    Login strategies are delegated to :class:`AuthenticationNegotiator`; each one
    ends in :meth:`_establish_session`, which is the only place the transport is
    connected. ``DESTROYED`` is terminal.
    """

    def __init__(
        self,
        rest: RestPort,
        transport: TransportPort,
        *,
        settings: ClientSettings | None = None,
        shard_overrides: ShardOverrides | None = None,
        caches: CacheRegistry | None = None,
        clock: Clock = utc_now,
        owns_rest: bool = False,
    ) -> None:
        self._settings = settings if settings is not None else ClientSettings.defaults()
        self._shard_plan = resolve_shard_plan(
            self._settings.shards,
            self._settings.shard_count,
            shard_overrides,
        )
        self._rest = rest
        self._transport = transport
        self._owns_rest = owns_rest
        self._caches = caches or CacheRegistry()
        self._clock = clock
        self._session = Session()
        self._password: str | None = None
        self._used_codes = UsedCodeSet()
        self._auth = AuthenticationNegotiator(
            rest,
            self._establish_session,
            remember_password=self._remember_password,
            remote_auth_hosts=self._settings.remote_auth_hosts,
        )
        self._timers = self._build_timers()
        self._ensure_maintenance()

    # ------------------------------------------------------------------
    # read-only views

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def session(self) -> Session:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def session_id(self) -> str | None:
        return self._session.session_id

    @property
    def ready_at(self) -> datetime | None:
        return self._session.ready_at

    @property
    def ready_timestamp(self) -> float | None:
        return self._session.ready_timestamp

    @property
    def uptime(self) -> timedelta | None:
        if not self._session.is_ready:
            return None
        return self._session.uptime(self._clock())

    def is_ready(self) -> bool:
        return self._session.is_ready

    @property
    def caches(self) -> CacheRegistry:
        return self._caches

    @property
    def used_codes(self) -> UsedCodeSet:
        return self._used_codes

    @property
    def shard_plan(self) -> ShardPlan:
        return self._shard_plan

    @property
    def timers(self) -> tuple[PeriodicTask, ...]:
        return tuple(self._timers)

    # ------------------------------------------------------------------
    # login

    async def login(self, token: str | None = None) -> str:
        """Connect with ``token`` (default: the configured token)."""
        self._require_alive()
        self._ensure_maintenance()
        return await self._auth.token_login(token if token is not None else self._settings.token_value)

    async def normal_login(
        self,
        username: str,
        password: str | None = None,
        mfa_code: str | None = None,
    ) -> str:
        """Credential login; ``password`` defaults to the last one used or the configured one."""
        self._require_alive()
        self._ensure_maintenance()
        if password is None:
            password = self._password or self._settings.password_value
        return await self._auth.credential_login(username, password, mfa_code)

    async def qr_login(self, listener: RemoteAuthListenerPort, on_url: UrlSink | None = None) -> str:
        self._require_alive()
        self._ensure_maintenance()
        return await self._auth.qr_login(listener, on_url)

    async def authenticate(self, request: LoginRequest) -> str:
        self._require_alive()
        self._ensure_maintenance()
        return await self._auth.authenticate(request)

    async def switch_user(self, token: str) -> str:
        """Drop every cached entity, then log in as another account."""
        self._require_alive()
        removed = self._caches.clear_all()
        self._session = self._session.mark_idle()
        logger.info("switching user", extra={"data": {"cleared": removed}})
        return await self.login(token)

    async def remote_auth(self, url: str, force_accept: bool = False) -> RemoteAuthDecision | JsonValue:
        self._require_ready("remote_auth")
        return await self._auth.remote_auth(url, force_accept)

    async def create_token(self, listener: RemoteAuthListenerPort) -> str:
        self._require_ready("create_token")
        return await self._auth.create_token(listener)

    # ------------------------------------------------------------------
    # teardown

    def destroy(self) -> None:
        """Tear everything down; later calls are no-ops."""
        if self._session.is_destroyed:
            return
        attempted = self._caches.finalizers.run_pending()
        for timer in self._timers:
            timer.cancel()
        try:
            self._transport.destroy()
        except Exception as exc:
            logger.warning(
                "transport teardown failed",
                extra={"data": {"error_type": type(exc).__name__, "error": str(exc)}},
            )
        self._rest.set_token(None)
        self._password = None
        self._session = self._session.mark_destroyed()
        logger.info("client destroyed", extra={"data": {"finalizers_run": attempted}})

    async def logout(self) -> None:
        """Invalidate the session server-side, then destroy; a failed call skips destroy."""
        self._require_alive()
        await self._rest.post(LOGOUT_PATH, {"provider": None, "voip_provider": None})
        self.destroy()

    async def aclose(self) -> None:
        """Destroy, wait for the cancelled timers to settle, then close an owned REST client."""
        self.destroy()
        for timer in self._timers:
            await timer.wait_closed()
        if self._owns_rest:
            await self._rest.aclose()

    async def __aenter__(self) -> SessionOrchestrator:
        self._ensure_maintenance()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # transport callbacks

    def handle_disconnect(self, *, reconnecting: bool) -> None:
        if self._session.is_destroyed:
            return
        if not reconnecting:
            logger.warning("transport closed without reconnect")
            self.destroy()
            return
        if self._session.status in (SessionStatus.READY, SessionStatus.CONNECTING):
            self._session = self._session.mark_disconnected()
            logger.info("transport disconnected; reconnecting")

    def handle_resumed(self, session_id: str | None = None) -> None:
        if self._session.status not in (SessionStatus.DISCONNECTED, SessionStatus.CONNECTING):
            return
        self._session = self._session.mark_ready(
            self._clock(),
            session_id if session_id is not None else self._transport.session_id,
        )
        logger.info("transport resumed", extra={"data": {"session_id": self._session.session_id}})

    # ------------------------------------------------------------------
    # gift codes

    async def redeem_code(
        self,
        text: str,
        channel_id: str | None = None,
        fail_fast: bool = True,
    ) -> bool:
        """Redeem every code in ``text`` at most once; True when one redemption succeeded.

        A code counts as used once the service has answered for it, success or
        not. A transport failure leaves it unmarked. Any other error propagates
        whatever ``fail_fast`` says.
        """
        if not isinstance(text, str):
            raise TypeError(f"text must be a string, got {type(text).__name__}")
        self._ensure_maintenance()
        redeemed = False
        for code in extract_gift_codes(text, self._settings.gift_code_hosts):
            if code in self._used_codes:
                logger.debug("skipping used code", extra={"data": {"code": code}})
                continue
            try:
                await self._rest.post(
                    f"/entitlements/gift-codes/{code}/redeem",
                    {"channel_id": channel_id, "payment_source_id": None},
                )
            except ApiError as exc:
                self._used_codes.add(code)
                logger.info(
                    "code redemption rejected",
                    extra={"data": {"code": code, "status_code": exc.status_code, "error_code": exc.error_code}},
                )
                if fail_fast:
                    raise
            except TransportError as exc:
                logger.warning(
                    "code redemption failed",
                    extra={"data": {"code": code, "error_type": type(exc).__name__, "error": str(exc)}},
                )
                if fail_fast:
                    raise
            else:
                self._used_codes.add(code)
                redeemed = True
                logger.info("code redeemed", extra={"data": {"code": code}})
        return redeemed

    async def auto_redeem(self, content: str, channel_id: str | None = None) -> bool:
        """Best-effort redemption for incoming message content, when enabled."""
        if not self._settings.auto_redeem_codes or not isinstance(content, str):
            return False
        return await self.redeem_code(content, channel_id, fail_fast=False)

    def reset_used_codes(self) -> int:
        dropped = self._used_codes.reset()
        if dropped:
            logger.debug("used codes reset", extra={"data": {"dropped": dropped}})
        return dropped

    # ------------------------------------------------------------------
    # caches

    def sweep_messages(self, lifetime: float | None = None) -> int:
        """Remove messages idle for longer than ``lifetime`` seconds.

        Returns ``SWEEP_UNLIMITED`` without touching the cache when the
        lifetime is not positive.
        """
        if lifetime is None:
            lifetime = self._settings.message_cache_lifetime
        if isinstance(lifetime, bool) or not isinstance(lifetime, (int, float)):
            raise TypeError(f"lifetime must be a number, got {type(lifetime).__name__}")
        if math.isnan(lifetime) or lifetime <= 0:
            return SWEEP_UNLIMITED
        removed = self._caches.sweep(CacheName.MESSAGES, outdated_message_filter(lifetime, self._clock()))
        logger.debug("swept messages", extra={"data": {"removed": removed, "lifetime_seconds": lifetime}})
        return removed

    def register_finalizer(self, owner: object, cleanup: Cleanup, description: str | None = None) -> None:
        self._caches.finalizers.register(owner, cleanup, description)

    # ------------------------------------------------------------------
    # lookups

    async def fetch_invite(self, invite: str, guild_scheduled_event_id: str | None = None) -> JsonValue:
        code = resolve_invite_code(invite)
        return await self._rest.get(
            f"/invites/{code}",
            {
                "with_counts": True,
                "with_expiration": True,
                "guild_scheduled_event_id": guild_scheduled_event_id,
            },
        )

    async def accept_invite(self, invite: str) -> JsonValue:
        code = resolve_invite_code(invite)
        return await self._rest.post(
            f"/invites/{code}",
            {},
            headers={"X-Context-Properties": INVITE_CONTEXT_PROPERTIES},
        )

    async def fetch_guild_template(self, template: str) -> JsonValue:
        code = resolve_template_code(template)
        return await self._rest.get(f"/guilds/templates/{code}")

    async def fetch_webhook(self, webhook_id: str, token: str | None = None) -> JsonValue:
        path = f"/webhooks/{webhook_id}" if token is None else f"/webhooks/{webhook_id}/{token}"
        return await self._rest.get(path, auth=token is None)

    async def fetch_voice_regions(self) -> JsonValue:
        return await self._rest.get("/voice/regions")

    async def fetch_sticker(self, sticker_id: str) -> JsonValue:
        return await self._rest.get(f"/stickers/{sticker_id}")

    async def fetch_premium_sticker_packs(self) -> JsonValue:
        return await self._rest.get("/sticker-packs")

    async def fetch_guild_preview(self, guild_id: str) -> JsonValue:
        return await self._rest.get(f"/guilds/{guild_id}/preview")

    async def fetch_guild_widget(self, guild_id: str) -> JsonValue:
        """Public widget payload; fails unless the guild has the widget enabled."""
        return await self._rest.get(f"/guilds/{guild_id}/widget.json")

    async def authorize_url(self, url: str, **options: Any) -> bool:
        """Approve an OAuth2 application from its authorize URL."""
        if not isinstance(url, str) or not url:
            raise InvalidAuthorizeUrlError("authorize URL must be a non-empty string")
        parts = urlsplit(url)
        hostname = (parts.hostname or "").lower()
        if hostname not in self._settings.authorize_hosts or not _AUTHORIZE_PATH.fullmatch(parts.path):
            raise InvalidAuthorizeUrlError(f"not an OAuth2 authorize URL: {url!r}")
        query = dict(parse_qsl(parts.query, keep_blank_values=True))
        await self._rest.post(
            "/oauth2/authorize",
            {"authorize": True, "permissions": "0", **options},
            query=query,
        )
        return True

    # ------------------------------------------------------------------
    # internal

    async def _establish_session(self, token: str) -> str:
        self._require_alive()
        self._session = self._session.mark_connecting(token)
        self._rest.set_token(token)
        logger.info(
            "connecting",
            extra={"data": {"token": mask_token(token), "shards": list(self._shard_plan.shards)}},
        )
        try:
            await self._transport.connect(token)
        except Exception as exc:
            logger.error(
                "connect failed; destroying client",
                extra={"data": {"error_type": type(exc).__name__, "error": str(exc)}},
            )
            self.destroy()
            raise
        if self._session.is_destroyed:
            raise ClientDestroyedError("client was destroyed while connecting")
        self._session = self._session.mark_ready(self._clock(), self._transport.session_id)
        logger.info("session ready", extra={"data": {"session_id": self._session.session_id}})
        return token

    def _remember_password(self, password: str) -> None:
        self._password = password

    def _require_alive(self) -> None:
        if self._session.is_destroyed:
            raise ClientDestroyedError("client has been destroyed")

    def _require_ready(self, operation: str) -> None:
        self._require_alive()
        if not self._session.is_ready:
            raise ClientNotReadyError(f"{operation} requires a ready session")

    def _build_timers(self) -> list[PeriodicTask]:
        timers = [
            PeriodicTask(
                "chatlink.used-code-reset",
                self._settings.used_code_reset_seconds,
                self.reset_used_codes,
            )
        ]
        if self._settings.message_sweep_interval > 0 and self._settings.message_cache_lifetime > 0:
            timers.append(
                PeriodicTask(
                    "chatlink.message-sweep",
                    self._settings.message_sweep_interval,
                    self.sweep_messages,
                )
            )
        return timers

    def _ensure_maintenance(self) -> None:
        if self._session.is_destroyed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        for timer in self._timers:
            timer.start()


__all__ = ["INVITE_CONTEXT_PROPERTIES", "LOGOUT_PATH", "SWEEP_UNLIMITED", "SessionOrchestrator", "utc_now"]
