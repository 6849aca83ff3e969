"""REST adapter backed by HTTPX."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from chatlink.application.ports.rest import QueryParams, RestPort
from chatlink.clients import API
from chatlink.errors import ApiError, TransportError
from chatlink.infrastructure.http.retry import RetryPolicy, backoff_ms, retry_after_ms
from chatlink.json_types import JsonValue

logger = logging.getLogger("chatlink.http")

Sleep = Callable[[float], Awaitable[None]]

_RETRYABLE_STATUS_FLOOR = 500


class HttpRestClient(RestPort):
    """Dispatches JSON requests to the service API.

    Rate-limited responses (429) are retried for every method. Server errors and
    transport failures are retried only for GET: a POST may already have been
    processed, and login, redemption and handshake calls must not be replayed.
    """

    def __init__(
        self,
        *,
        base_url: str = API.base_url,
        timeout: float = API.timeout_seconds,
        user_agent: str = API.user_agent,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be provided")
        normalized_base = base_url.rstrip("/")
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(
            base_url=normalized_base,
            timeout=timeout,
        )
        self._user_agent = user_agent
        self._token = token
        self._retry_policy = retry_policy or RetryPolicy(attempts=3, initial_ms=500, max_ms=10000, jitter=0.2)
        self._sleep = sleep

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def post(
        self,
        path: str,
        body: Mapping[str, JsonValue] | None = None,
        *,
        auth: bool = True,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> JsonValue:
        return await self._request(
            "POST",
            path,
            json_payload=dict(body) if body is not None else {},
            params=query,
            auth=auth,
            extra_headers=headers,
            idempotent=False,
        )

    async def get(
        self,
        path: str,
        query: QueryParams | None = None,
        *,
        auth: bool = True,
    ) -> JsonValue:
        return await self._request(
            "GET",
            path,
            json_payload=None,
            params=query,
            auth=auth,
            extra_headers=None,
            idempotent=True,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpRestClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # internal

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_payload: dict[str, JsonValue] | None,
        params: QueryParams | None,
        auth: bool,
        extra_headers: Mapping[str, str] | None,
        idempotent: bool,
    ) -> JsonValue:
        path = path if path.startswith("/") else f"/{path}"
        headers = self._headers(auth=auth, extra=extra_headers)
        query = _clean_params(params)
        reasons: list[str] = []
        start = time.perf_counter()

        tracer = trace.get_tracer("chatlink.http")
        with tracer.start_as_current_span(
            "chatlink.http.request",
            kind=SpanKind.CLIENT,
            attributes={
                "http.method": method,
                "http.target": path,
                "chatlink.auth": auth,
            },
        ) as span:
            for attempt in range(self._retry_policy.attempts):
                try:
                    response = await self._client.request(
                        method,
                        path,
                        json=json_payload,
                        params=query,
                        headers=headers,
                    )
                except httpx.HTTPError as exc:
                    reasons.append(exc.__class__.__name__)
                    if idempotent and self._should_retry(attempt):
                        await self._backoff(attempt, None)
                        continue
                    span.set_status(Status(StatusCode.ERROR, exc.__class__.__name__))
                    logger.warning(
                        "request failed without response",
                        extra={
                            "data": {
                                "method": method,
                                "path": path,
                                "attempts": attempt + 1,
                                "retry_reasons": tuple(reasons),
                                "error_type": type(exc).__name__,
                                "error": str(exc),
                            }
                        },
                    )
                    raise TransportError(f"{method} {path} failed: {exc}") from exc

                status = response.status_code
                payload = _decode(response)
                if status == httpx.codes.TOO_MANY_REQUESTS and self._should_retry(attempt):
                    reasons.append("http_429")
                    await self._backoff(attempt, _retry_after(response, payload, self._retry_policy))
                    continue
                if status >= _RETRYABLE_STATUS_FLOOR and idempotent and self._should_retry(attempt):
                    reasons.append(f"http_{status}")
                    await self._backoff(attempt, None)
                    continue

                elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
                span.set_attributes({"http.status_code": status, "chatlink.attempts": attempt + 1})
                log_data = {
                    "method": method,
                    "path": path,
                    "status_code": status,
                    "attempts": attempt + 1,
                    "retry_reasons": tuple(reasons),
                    "latency_ms_total": elapsed_ms,
                }
                if status >= httpx.codes.BAD_REQUEST:
                    span.set_status(Status(StatusCode.ERROR, f"http_{status}"))
                    logger.info("request rejected", extra={"data": log_data})
                    raise ApiError(
                        f"{method} {path} returned {status}: {_summarize(payload)}",
                        status_code=status,
                        method=method,
                        path=path,
                        payload=payload,
                    )
                logger.debug("request complete", extra={"data": log_data})
                return payload

        raise TransportError(f"{method} {path} failed after {self._retry_policy.attempts} attempts: {reasons}")

    def _headers(self, *, auth: bool, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }
        if auth and self._token:
            headers["Authorization"] = self._token
        if extra:
            headers.update(extra)
        return headers

    def _should_retry(self, attempt: int) -> bool:
        return attempt + 1 < self._retry_policy.attempts

    async def _backoff(self, attempt: int, delay_ms: int | None) -> None:
        wait = delay_ms if delay_ms is not None else backoff_ms(attempt, self._retry_policy)
        await self._sleep(wait / 1000)


def _decode(response: httpx.Response) -> JsonValue:
    if not response.content:
        return None
    try:
        return response.json()  # type: ignore[no-any-return]
    except ValueError:
        return response.text


def _retry_after(response: httpx.Response, payload: JsonValue, policy: RetryPolicy) -> int | None:
    header = retry_after_ms(response.headers.get("Retry-After"), policy)
    if header is not None:
        return header
    if isinstance(payload, dict):
        value = payload.get("retry_after")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return retry_after_ms(str(value), policy)
    return None


def _clean_params(params: QueryParams | None) -> dict[str, Any] | None:
    if not params:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        cleaned[key] = str(value).lower() if isinstance(value, bool) else value
    return cleaned or None


def _summarize(payload: JsonValue) -> str:
    if isinstance(payload, dict) and "message" in payload:
        summary: object = payload["message"]
    else:
        summary = payload
    text = str(summary)
    return text if len(text) <= 500 else text[:500] + "…"


__all__ = ["HttpRestClient"]
