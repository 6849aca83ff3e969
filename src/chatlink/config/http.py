"""Retry/backoff configuration for the REST adapter."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatlink.infrastructure.http.retry import RetryPolicy

DEFAULT_HTTP_RETRY_ATTEMPTS = 3
DEFAULT_HTTP_RETRY_INITIAL_MS = 500
DEFAULT_HTTP_RETRY_MAX_MS = 10000
DEFAULT_HTTP_RETRY_JITTER = 0.2


class HttpRetrySettings(BaseSettings):
    """Retry policy applied to rate-limited or failed REST calls."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    attempts: int = Field(
        default=DEFAULT_HTTP_RETRY_ATTEMPTS,
        alias="CHATLINK_HTTP_RETRY_ATTEMPTS",
        ge=1,
    )
    initial_ms: int = Field(
        default=DEFAULT_HTTP_RETRY_INITIAL_MS,
        alias="CHATLINK_HTTP_RETRY_INITIAL_MS",
        ge=0,
    )
    max_ms: int = Field(
        default=DEFAULT_HTTP_RETRY_MAX_MS,
        alias="CHATLINK_HTTP_RETRY_MAX_MS",
        ge=0,
    )
    jitter: float = Field(
        default=DEFAULT_HTTP_RETRY_JITTER,
        alias="CHATLINK_HTTP_RETRY_JITTER",
        ge=0.0,
        le=1.0,
    )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.attempts,
            initial_ms=self.initial_ms,
            max_ms=self.max_ms,
            jitter=self.jitter,
        )


__all__ = ["HttpRetrySettings"]
