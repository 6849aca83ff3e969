"""Runtime wiring: read configuration once and assemble a client."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from chatlink.application.orchestrator import Clock, SessionOrchestrator, utc_now
from chatlink.application.ports.transport import TransportPort
from chatlink.config.client import ClientSettings, load_client_settings
from chatlink.config.observability import ObservabilitySettings
from chatlink.config.shards import ShardEnvironment
from chatlink.infrastructure.http.rest_client import HttpRestClient
from chatlink.infrastructure.state.cache_registry import CacheRegistry
from chatlink.observability.logging import configure_logging
from chatlink.observability.tracing import configure_tracing

logger = logging.getLogger("chatlink.runtime")


@dataclass(frozen=True, slots=True)
class RuntimeContext:
    """Components assembled for one client process."""

    settings: ClientSettings
    rest: HttpRestClient
    caches: CacheRegistry
    orchestrator: SessionOrchestrator


def configure_observability(settings: ObservabilitySettings | None = None) -> ObservabilitySettings:
    """Apply logging and (opt-in) tracing from the environment."""
    resolved = settings or ObservabilitySettings()
    configure_logging(root_default=resolved.log_level, json_enabled=resolved.log_json or None)
    configure_tracing(service_name=resolved.service_name)
    return resolved


def build_runtime(
    transport: TransportPort,
    settings: ClientSettings | None = None,
    *,
    shard_environment: ShardEnvironment | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock = utc_now,
) -> RuntimeContext:
    """Construct an orchestrator bound to ``transport``.

    The environment is read here and nowhere else; the core only sees the
    resulting settings objects.
    """
    resolved = settings or load_client_settings()
    shard_env = shard_environment or ShardEnvironment()
    logger.info(
        "building client runtime",
        extra={"data": {"api_base_url": resolved.api_base_url, "has_token": resolved.token is not None}},
    )

    rest = HttpRestClient(
        base_url=resolved.api_base_url,
        timeout=resolved.http_timeout_seconds,
        user_agent=resolved.user_agent,
        client=http_client,
        retry_policy=resolved.retry.retry_policy,
    )
    caches = CacheRegistry()
    orchestrator = SessionOrchestrator(
        rest,
        transport,
        settings=resolved,
        shard_overrides=shard_env.to_overrides(),
        caches=caches,
        clock=clock,
        owns_rest=True,
    )
    return RuntimeContext(settings=resolved, rest=rest, caches=caches, orchestrator=orchestrator)


__all__ = ["RuntimeContext", "build_runtime", "configure_observability"]
