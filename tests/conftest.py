from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from chatlink.application.ports.remote_auth import RemoteAuthListenerPort
from chatlink.application.ports.rest import QueryParams, RestPort
from chatlink.application.ports.transport import TransportPort
from chatlink.domain.session import SessionStatus
from chatlink.json_types import JsonValue


class FakeRest(RestPort):
    """Records calls; answers from per-path responses (values or exceptions)."""

    def __init__(self, responses: Mapping[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[tuple[str, str, Any, dict[str, Any]]] = []
        self.token: str | None = None
        self.closed = False

    async def post(
        self,
        path: str,
        body: Mapping[str, JsonValue] | None = None,
        *,
        auth: bool = True,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> JsonValue:
        self.calls.append(("POST", path, body, {"auth": auth, "query": query, "headers": headers}))
        return self._answer(path)

    async def get(
        self,
        path: str,
        query: QueryParams | None = None,
        *,
        auth: bool = True,
    ) -> JsonValue:
        self.calls.append(("GET", path, None, {"auth": auth, "query": query}))
        return self._answer(path)

    def set_token(self, token: str | None) -> None:
        self.token = token

    async def aclose(self) -> None:
        self.closed = True

    def paths(self) -> list[str]:
        return [path for _, path, _, _ in self.calls]

    def _answer(self, path: str) -> JsonValue:
        response = self.responses.get(path)
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class FakeTransport(TransportPort):
    def __init__(self, *, error: Exception | None = None, session_id: str = "gw-session") -> None:
        self._error = error
        self._session_id = session_id
        self._status = SessionStatus.IDLE
        self.connected_with: list[str] = []
        self.destroy_calls = 0
        self.on_connect: Any = None

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def session_id(self) -> str | None:
        return self._session_id if self._status is SessionStatus.READY else None

    async def connect(self, token: str) -> None:
        if self.on_connect is not None:
            self.on_connect(token)
        self.connected_with.append(token)
        if self._error is not None:
            raise self._error
        self._status = SessionStatus.READY

    def destroy(self) -> None:
        self.destroy_calls += 1
        self._status = SessionStatus.DESTROYED


class FakeListener(RemoteAuthListenerPort):
    def __init__(self, url: str = "https://discord.com/ra/fp-1", token: str = "Bot qr.token.value") -> None:
        self.url = url
        self.token = token
        self.started = False
        self.closed = False

    async def start(self) -> str:
        self.started = True
        return self.url

    async def wait_for_token(self) -> str:
        return self.token

    async def close(self) -> None:
        self.closed = True


class FrozenClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 10, 17, 12, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_rest() -> FakeRest:
    return FakeRest()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fakes() -> Any:
    """Expose the fake classes to test modules without a tests package import."""

    class _Fakes:
        Rest = FakeRest
        Transport = FakeTransport
        Listener = FakeListener
        Clock = FrozenClock

    return _Fakes
