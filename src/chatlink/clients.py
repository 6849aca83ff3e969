"""Shared client defaults (base URLs, hosts, timeouts) for the messaging service."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ApiDefaults:
    base_url: str = "https://discord.com/api/v9"
    timeout_seconds: float = 15.0
    user_agent: str = "chatlink (https://github.com/chatlink/chatlink)"


@dataclass(frozen=True, slots=True)
class RemoteAuthDefaults:
    hosts: tuple[str, ...] = ("discord.com", "discordapp.com")
    path_prefix: str = "/ra/"


@dataclass(frozen=True, slots=True)
class GiftCodeDefaults:
    hosts: tuple[str, ...] = ("discord.gift", "discord.com/gifts", "discordapp.com/gifts")


@dataclass(frozen=True, slots=True)
class AuthorizeDefaults:
    hosts: tuple[str, ...] = ("discord.com", "canary.discord.com", "ptb.discord.com")


@dataclass(frozen=True, slots=True)
class MaintenanceDefaults:
    used_code_reset_seconds: float = 3600.0


# Instances
API = ApiDefaults()
REMOTE_AUTH = RemoteAuthDefaults()
GIFT_CODES = GiftCodeDefaults()
AUTHORIZE = AuthorizeDefaults()
MAINTENANCE = MaintenanceDefaults()

__all__ = [
    "API",
    "AUTHORIZE",
    "GIFT_CODES",
    "MAINTENANCE",
    "REMOTE_AUTH",
    "ApiDefaults",
    "AuthorizeDefaults",
    "GiftCodeDefaults",
    "MaintenanceDefaults",
    "RemoteAuthDefaults",
]
