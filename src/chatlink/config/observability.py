"""Observability configuration."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilitySettings(BaseSettings):
    """Flags controlling log level and format."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="CHATLINK_LOG_LEVEL")
    log_json: bool = Field(default=False, alias="CHATLINK_LOG_JSON")
    service_name: str = Field(default="chatlink", alias="CHATLINK_SERVICE_NAME")


__all__ = ["ObservabilitySettings"]
