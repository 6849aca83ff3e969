"""Retry helpers for REST calls."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int
    initial_ms: int
    max_ms: int
    jitter: float  # fraction of backoff to add/subtract


def backoff_ms(attempt: int, policy: RetryPolicy) -> int:
    """Exponential backoff with jitter (attempt is zero-based)."""
    expo = policy.initial_ms * math.pow(2, attempt)
    capped = min(expo, policy.max_ms)
    jitter_span = capped * policy.jitter
    return int(max(0, capped + random.uniform(-jitter_span, jitter_span)))  # noqa: S311 - non-crypto backoff jitter


def retry_after_ms(header_value: str | None, policy: RetryPolicy) -> int | None:
    """Parse a ``Retry-After`` header (seconds), capped by the policy maximum."""
    if not header_value:
        return None
    try:
        seconds = float(header_value)
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return int(min(seconds * 1000, policy.max_ms))


__all__ = ["RetryPolicy", "backoff_ms", "retry_after_ms"]
