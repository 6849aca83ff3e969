"""Out-of-band shard assignment read from the process environment."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatlink.domain.shards import ShardOverrides


class ShardEnvironment(BaseSettings):
    """``SHARDS`` (JSON list or index) and ``SHARD_COUNT`` set by a process supervisor."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
    )

    shards: list[Any] | int | None = Field(default=None, alias="SHARDS")
    shard_count: int | None = Field(default=None, alias="SHARD_COUNT")

    def to_overrides(self) -> ShardOverrides:
        return ShardOverrides(shards=self.shards, shard_count=self.shard_count)


__all__ = ["ShardEnvironment"]
