from __future__ import annotations

from typing import Any

import pytest

from chatlink.application.authenticator import (
    LOGIN_PATH,
    MFA_TOTP_PATH,
    REMOTE_AUTH_FINISH_PATH,
    REMOTE_AUTH_PATH,
    AuthenticationNegotiator,
)
from chatlink.domain.login import CredentialLogin, RemoteHandshakeLogin, TokenLogin
from chatlink.domain.remote_auth import RemoteAuthDecision
from chatlink.errors import (
    InvalidCredentialError,
    InvalidRemoteAuthUrlError,
    InvalidTokenError,
    MfaRequiredError,
    UnknownLoginError,
)

pytestmark = pytest.mark.anyio("asyncio")


class Recorder:
    def __init__(self) -> None:
        self.tokens: list[str] = []
        self.passwords: list[str] = []

    async def establish(self, token: str) -> str:
        self.tokens.append(token)
        return token

    def remember(self, password: str) -> None:
        self.passwords.append(password)


def _negotiator(rest: Any, recorder: Recorder) -> AuthenticationNegotiator:
    return AuthenticationNegotiator(rest, recorder.establish, remember_password=recorder.remember)


async def test_token_login_strips_prefix(fakes: Any) -> None:
    recorder = Recorder()
    negotiator = _negotiator(fakes.Rest(), recorder)

    assert await negotiator.authenticate(TokenLogin("Bot abc.def")) == "abc.def"
    assert recorder.tokens == ["abc.def"]


async def test_token_login_rejects_empty_before_any_call(fakes: Any) -> None:
    rest = fakes.Rest()
    recorder = Recorder()
    with pytest.raises(InvalidTokenError):
        await _negotiator(rest, recorder).token_login("")
    assert rest.calls == []
    assert recorder.tokens == []


async def test_credentials_returning_token_skip_second_round(fakes: Any) -> None:
    rest = fakes.Rest({LOGIN_PATH: {"token": "direct.token"}})
    recorder = Recorder()

    assert await _negotiator(rest, recorder).credential_login("user", "pw") == "direct.token"
    assert rest.paths() == [LOGIN_PATH]
    assert rest.calls[0][3]["auth"] is False
    assert recorder.passwords == ["pw"]


async def test_invalid_mfa_code_stops_after_first_round(fakes: Any) -> None:
    rest = fakes.Rest({LOGIN_PATH: {"ticket": "t1", "mfa": True}})
    recorder = Recorder()

    with pytest.raises(MfaRequiredError):
        await _negotiator(rest, recorder).authenticate(CredentialLogin("user", "pw", "abc"))

    assert rest.paths() == [LOGIN_PATH]
    assert recorder.tokens == []


async def test_mfa_exchange_feeds_token_login(fakes: Any) -> None:
    rest = fakes.Rest(
        {
            LOGIN_PATH: {"ticket": "t1", "mfa": True},
            MFA_TOTP_PATH: {"token": "Bot mfa.token"},
        }
    )
    recorder = Recorder()

    token = await _negotiator(rest, recorder).credential_login("user", "pw", "123456")

    assert token == "mfa.token"
    assert recorder.tokens == ["mfa.token"]
    _, path, body, options = rest.calls[1]
    assert path == MFA_TOTP_PATH
    assert body["code"] == "123456"
    assert body["ticket"] == "t1"
    assert options["auth"] is False


async def test_unexpected_login_response_raises_unknown(fakes: Any) -> None:
    rest = fakes.Rest({LOGIN_PATH: {"captcha_key": ["captcha-required"]}})
    with pytest.raises(UnknownLoginError) as excinfo:
        await _negotiator(rest, Recorder()).credential_login("user", "pw")
    assert excinfo.value.payload == {"captcha_key": ["captcha-required"]}


async def test_mfa_exchange_without_token_raises_unknown(fakes: Any) -> None:
    rest = fakes.Rest({LOGIN_PATH: {"ticket": "t1", "mfa": True}, MFA_TOTP_PATH: {}})
    with pytest.raises(UnknownLoginError):
        await _negotiator(rest, Recorder()).credential_login("user", "pw", "ab12-cd34")


@pytest.mark.parametrize(("username", "password"), [("", "pw"), ("user", ""), ("user", None), (None, "pw")])
async def test_missing_credentials_are_rejected(fakes: Any, username: Any, password: Any) -> None:
    rest = fakes.Rest()
    with pytest.raises(InvalidCredentialError):
        await _negotiator(rest, Recorder()).credential_login(username, password)
    assert rest.calls == []


async def test_remote_auth_returns_uninvoked_decision(fakes: Any) -> None:
    rest = fakes.Rest({REMOTE_AUTH_PATH: {"handshake_token": "hs-1"}})

    decision = await _negotiator(rest, Recorder()).remote_auth("https://discord.com/ra/abc123")

    assert isinstance(decision, RemoteAuthDecision)
    assert decision.handshake.fingerprint == "abc123"
    assert rest.calls == [("POST", REMOTE_AUTH_PATH, {"fingerprint": "abc123"}, rest.calls[0][3])]
    assert decision.handshake.pending


async def test_remote_auth_force_accept_finishes_handshake(fakes: Any) -> None:
    rest = fakes.Rest({REMOTE_AUTH_PATH: {"handshake_token": "hs-1"}, REMOTE_AUTH_FINISH_PATH: None})

    await _negotiator(rest, Recorder()).remote_auth("https://discord.com/ra/abc123", force_accept=True)

    assert rest.paths() == [REMOTE_AUTH_PATH, REMOTE_AUTH_FINISH_PATH]
    assert rest.calls[1][2] == {"handshake_token": "hs-1", "temporary_token": False}


async def test_remote_auth_rejects_foreign_host(fakes: Any) -> None:
    rest = fakes.Rest()
    with pytest.raises(InvalidRemoteAuthUrlError):
        await _negotiator(rest, Recorder()).remote_auth("https://evil.example/ra/abc123")
    assert rest.calls == []


async def test_qr_login_closes_listener_and_logs_in(fakes: Any) -> None:
    listener = fakes.Listener()
    urls: list[str] = []
    recorder = Recorder()

    token = await _negotiator(fakes.Rest(), recorder).authenticate(
        RemoteHandshakeLogin(listener, on_url=urls.append)
    )

    assert token == "qr.token.value"
    assert urls == [listener.url]
    assert listener.closed


async def test_listener_is_closed_when_it_fails(fakes: Any) -> None:
    class BrokenListener(fakes.Listener):
        async def wait_for_token(self) -> str:
            raise ConnectionError("socket closed")

    listener = BrokenListener()
    with pytest.raises(ConnectionError):
        await _negotiator(fakes.Rest(), Recorder()).qr_login(listener)
    assert listener.closed


async def test_create_token_approves_listener_handshake(fakes: Any) -> None:
    rest = fakes.Rest({REMOTE_AUTH_PATH: {"handshake_token": "hs-2"}, REMOTE_AUTH_FINISH_PATH: None})
    listener = fakes.Listener(url="https://discord.com/ra/fresh", token="fresh.token")
    recorder = Recorder()

    assert await _negotiator(rest, recorder).create_token(listener) == "fresh.token"
    assert rest.calls[0][2] == {"fingerprint": "fresh"}
    assert recorder.tokens == []
    assert listener.closed
