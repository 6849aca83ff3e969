"""Client configuration resolved from the environment."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatlink.clients import API, AUTHORIZE, GIFT_CODES, MAINTENANCE, REMOTE_AUTH
from chatlink.config.http import HttpRetrySettings
from chatlink.errors import ConfigurationError


class ClientSettings(BaseSettings):
    """Options for one client instance.

    Only genuinely configurable values live here; endpoint paths and protocol
    constants stay with the code that uses them.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    # --- Credentials ---
    token: SecretStr | None = Field(default=None, alias="CHATLINK_TOKEN")
    password: SecretStr | None = Field(default=None, alias="CHATLINK_PASSWORD")

    # --- HTTP ---
    api_base_url: str = Field(default=API.base_url, alias="CHATLINK_API_BASE_URL")
    http_timeout_seconds: float = Field(
        default=API.timeout_seconds, alias="CHATLINK_HTTP_TIMEOUT_SECONDS", gt=0
    )
    user_agent: str = Field(default=API.user_agent, alias="CHATLINK_USER_AGENT")
    retry: HttpRetrySettings = Field(default_factory=HttpRetrySettings)

    # --- Sharding (explicit options; SHARDS/SHARD_COUNT overrides live in ShardEnvironment) ---
    shards: list[Any] | int | None = Field(default=None, alias="CHATLINK_SHARDS")
    shard_count: int | None = Field(default=None, alias="CHATLINK_SHARD_COUNT")

    # --- Caches / maintenance ---
    message_cache_lifetime: float = Field(default=0.0, alias="CHATLINK_MESSAGE_CACHE_LIFETIME")
    message_sweep_interval: float = Field(
        default=0.0, alias="CHATLINK_MESSAGE_SWEEP_INTERVAL", ge=0
    )
    used_code_reset_seconds: float = Field(
        default=MAINTENANCE.used_code_reset_seconds,
        alias="CHATLINK_USED_CODE_RESET_SECONDS",
        gt=0,
    )

    # --- Codes / remote auth ---
    auto_redeem_codes: bool = Field(default=False, alias="CHATLINK_AUTO_REDEEM_CODES")
    gift_code_hosts: tuple[str, ...] = Field(
        default=GIFT_CODES.hosts, alias="CHATLINK_GIFT_CODE_HOSTS"
    )
    remote_auth_hosts: tuple[str, ...] = Field(
        default=REMOTE_AUTH.hosts, alias="CHATLINK_REMOTE_AUTH_HOSTS"
    )
    authorize_hosts: tuple[str, ...] = Field(
        default=AUTHORIZE.hosts, alias="CHATLINK_AUTHORIZE_HOSTS"
    )

    # --- Validators ---
    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("api_base_url must not be empty")
        return value.strip().rstrip("/")

    @field_validator("gift_code_hosts", "remote_auth_hosts", "authorize_hosts")
    @classmethod
    def _require_hosts(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        hosts = tuple(host.strip().lower() for host in value if host.strip())
        if not hosts:
            raise ValueError("at least one host is required")
        return hosts

    @classmethod
    def defaults(cls) -> ClientSettings:
        """Built-in defaults without consulting the environment or ``.env``."""
        return cls.model_construct(retry=HttpRetrySettings.model_construct())

    # --- Convenience accessors ---
    @property
    def token_value(self) -> str | None:
        return self.token.get_secret_value() if self.token is not None else None

    @property
    def password_value(self) -> str | None:
        return self.password.get_secret_value() if self.password is not None else None


def load_client_settings(**overrides: Any) -> ClientSettings:
    """Build settings from the environment, reporting invalid values as ``ConfigurationError``."""
    try:
        instance = ClientSettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid client settings: {exc}") from exc
    logging.getLogger("chatlink.settings").debug("client settings loaded: %r", instance)
    return instance


__all__ = ["ClientSettings", "load_client_settings"]
