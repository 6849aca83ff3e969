from __future__ import annotations

import pytest

from chatlink.config.client import ClientSettings, load_client_settings
from chatlink.config.http import HttpRetrySettings
from chatlink.config.observability import ObservabilitySettings
from chatlink.config.shards import ShardEnvironment
from chatlink.errors import ConfigurationError


def test_defaults_match_service(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CHATLINK_TOKEN", "CHATLINK_API_BASE_URL", "CHATLINK_AUTO_REDEEM_CODES"):
        monkeypatch.delenv(name, raising=False)
    settings = ClientSettings(_env_file=None)

    assert settings.token_value is None
    assert settings.api_base_url == "https://discord.com/api/v9"
    assert settings.used_code_reset_seconds == 3600
    assert settings.message_cache_lifetime == 0
    assert not settings.auto_redeem_codes
    assert "discord.gift" in settings.gift_code_hosts


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATLINK_TOKEN", "env.token")
    monkeypatch.setenv("CHATLINK_PASSWORD", "hunter2")
    monkeypatch.setenv("CHATLINK_API_BASE_URL", "https://api.local/v9/")
    monkeypatch.setenv("CHATLINK_MESSAGE_CACHE_LIFETIME", "120")
    monkeypatch.setenv("CHATLINK_AUTHORIZE_HOSTS", '["Discord.com "]')

    settings = load_client_settings(_env_file=None)

    assert settings.token_value == "env.token"
    assert settings.password_value == "hunter2"
    assert "hunter2" not in repr(settings)
    assert settings.api_base_url == "https://api.local/v9"
    assert settings.message_cache_lifetime == 120
    assert settings.authorize_hosts == ("discord.com",)


def test_invalid_values_raise_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATLINK_USED_CODE_RESET_SECONDS", "0")
    with pytest.raises(ConfigurationError):
        load_client_settings(_env_file=None)


def test_empty_host_list_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        load_client_settings(_env_file=None, CHATLINK_GIFT_CODE_HOSTS=[" "])


def test_retry_settings_build_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATLINK_HTTP_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("CHATLINK_HTTP_RETRY_JITTER", "0")
    policy = HttpRetrySettings(_env_file=None).retry_policy
    assert policy.attempts == 5
    assert policy.jitter == 0


def test_shard_environment_reads_supervisor_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHARDS", "[0, 2]")
    monkeypatch.setenv("SHARD_COUNT", "4")
    overrides = ShardEnvironment().to_overrides()
    assert overrides.shards == [0, 2]
    assert overrides.shard_count == 4


def test_observability_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATLINK_LOG_LEVEL", "debug")
    monkeypatch.setenv("CHATLINK_LOG_JSON", "true")
    settings = ObservabilitySettings(_env_file=None)
    assert settings.log_level == "debug"
    assert settings.log_json
