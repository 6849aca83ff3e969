"""Logging setup: structured-extras formatter, trace context filter, dictConfig builder."""

from __future__ import annotations

import json
import logging
import os
import time
import traceback
import types
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from enum import Enum
from logging.config import dictConfig
from typing import Any

from opentelemetry import baggage, trace

_PACKAGE_LOGGER_ROOT = "chatlink"


def _level(env_var: str, default: str) -> str:
    return os.getenv(env_var, default).upper()


def _should_emit_json_payload(json_enabled: bool | None = None) -> bool:
    if json_enabled is not None:
        return json_enabled
    flag = (os.getenv("CHATLINK_LOG_JSON") or "").strip().lower()
    if flag in {"1", "true", "yes", "on"}:
        return True
    if flag in {"0", "false", "no", "off"}:
        return False
    # Managed runtimes parse JSON lines into structured payloads.
    return bool(os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"))


def _compact_json(value: Any, *, limit: int = 512) -> str:
    encoded = json.dumps(value, sort_keys=True, separators=(",", ":"))
    if len(encoded) <= limit:
        return encoded
    return encoded[:limit] + "... (truncated)"


def _structured_payload(record: logging.LogRecord) -> dict[str, Any]:
    record_dict = record.__dict__
    record_data = record_dict.get("data")
    record_otel = record_dict.get("otel")

    message = record.getMessage()
    sanitized_data: Any | None = None
    if record_data:
        sanitized_data = _sanitize_for_json(record_data)
        message = f"{message} | data={_compact_json(sanitized_data)}"

    payload: dict[str, Any] = {
        "message": message,
        "severity": record.levelname,
        "logger": record.name,
        "timestamp": (
            f"{time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created))}"
            f".{int(record.msecs):03d}Z"
        ),
    }
    if record.exc_info:
        payload["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip("\n")
    if record.stack_info:
        payload["stack_info"] = str(record.stack_info)
    if sanitized_data is not None:
        payload["data"] = sanitized_data
    if record_otel:
        payload["otel"] = _sanitize_for_json(record_otel)
    return payload


class ExtrasFormatter(logging.Formatter):
    """Append structured `data` payloads when present; emit JSON lines when enabled."""

    def __init__(self, *args: Any, json_enabled: bool | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._json_enabled = json_enabled

    def format(self, record: logging.LogRecord) -> str:
        if _should_emit_json_payload(self._json_enabled):
            return json.dumps(_structured_payload(record), sort_keys=True, separators=(",", ":"))

        formatted = super().format(record)
        record_data = record.__dict__.get("data")
        if record_data:
            try:
                encoded = json.dumps(record_data, sort_keys=True, separators=(",", ":"))
            except TypeError:
                encoded = _compact_json(_sanitize_for_json(record_data))
            return f"{formatted} | data={encoded}"
        return formatted


class OtelContextLogFilter(logging.Filter):
    """Attach the current OpenTelemetry trace/span ids and baggage as ``record.otel``."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - thin wrapper
        otel: dict[str, Any] = {}
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            otel["trace_id"] = f"{span_context.trace_id:032x}"
            otel["span_id"] = f"{span_context.span_id:016x}"

        baggage_values = baggage.get_all()
        if baggage_values:
            otel["baggage"] = {key: str(value) for key, value in baggage_values.items()}

        if otel:
            record.__dict__["otel"] = otel
        return True


def build_log_config(
    *,
    root_level_env: str = "CHATLINK_LOG_LEVEL",
    root_default: str = "INFO",
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
    json_enabled: bool | None = None,
) -> dict[str, Any]:
    """Return a dictConfig-compatible logging configuration."""
    loggers: dict[str, dict[str, Any]] = {
        "httpx": {
            "level": _level("HTTPX_LOG_LEVEL", "WARNING"),
            "handlers": ["console"],
            "propagate": False,
        },
        "httpcore": {
            "level": _level("HTTPX_LOG_LEVEL", "WARNING"),
            "handlers": ["console"],
            "propagate": False,
        },
    }
    if extra_loggers:
        loggers.update(extra_loggers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ExtrasFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "json_enabled": json_enabled,
            }
        },
        "filters": {
            "otel_context": {"()": OtelContextLogFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stdout",
                "filters": ["otel_context"],
            }
        },
        "root": {
            "level": _level(root_level_env, root_default),
            "handlers": ["console"],
        },
        "loggers": loggers,
    }


def configure_logging(
    *,
    root_level_env: str = "CHATLINK_LOG_LEVEL",
    root_default: str = "INFO",
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
    json_enabled: bool | None = None,
) -> None:
    """Apply the logging config."""
    logger = logging.getLogger("chatlink.observability.logging")
    start = time.monotonic()
    config = build_log_config(
        root_level_env=root_level_env,
        root_default=root_default,
        extra_loggers=extra_loggers,
        json_enabled=json_enabled,
    )
    dictConfig(config)
    _reset_package_logger_levels(
        root_level=logging.getLogger().level,
        explicit_loggers=set(config.get("loggers", {})),
    )
    logger.debug(
        "configured logging",
        extra={"data": {"elapsed_s": round(time.monotonic() - start, 3)}},
    )


def _reset_package_logger_levels(*, root_level: int, explicit_loggers: set[str]) -> None:
    package_logger = logging.getLogger(_PACKAGE_LOGGER_ROOT)
    package_logger.setLevel(root_level)
    package_logger.propagate = True

    for name, entry in logging.Logger.manager.loggerDict.items():
        if not isinstance(entry, logging.Logger):
            continue
        if name.startswith(f"{_PACKAGE_LOGGER_ROOT}.") and name not in explicit_loggers:
            entry.setLevel(logging.NOTSET)


def _sanitize_for_json(value: Any, depth: int = 10, max_items: int = 200) -> Any:
    """Return a JSON-serializable copy; fallback to string for unknowns."""

    if depth <= 0:
        return "<depth_exceeded>"

    if isinstance(value, Enum):
        return _sanitize_for_json(value.value, depth - 1, max_items)

    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes len={len(value)}>"

    if isinstance(value, (types.BuiltinFunctionType, types.FunctionType, types.MethodType)):
        return f"<callable {value.__name__}>"
    if callable(value):
        return f"<callable {value.__class__.__name__}>"

    if is_dataclass(value) and not isinstance(value, type):
        return _sanitize_for_json(asdict(value), depth - 1, max_items)

    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for idx, (k, v) in enumerate(value.items()):
            if idx >= max_items:
                result["<truncated>"] = f"...{len(value) - idx} more"
                break
            result[str(k)] = _sanitize_for_json(v, depth - 1, max_items)
        return result

    if isinstance(value, (list, tuple, set, frozenset)):
        out = []
        iterable = list(value)
        for idx, item in enumerate(iterable):
            if idx >= max_items:
                out.append(f"... {len(iterable) - idx} more")
                break
            out.append(_sanitize_for_json(item, depth - 1, max_items))
        return out

    try:
        return str(value)
    except Exception:  # pragma: no cover - very rare
        return "<unrepresentable>"


__all__ = ["ExtrasFormatter", "OtelContextLogFilter", "build_log_config", "configure_logging"]
