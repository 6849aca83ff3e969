"""Shard plan resolution.

The raw options accept the shapes callers commonly pass (a list, a single
index, or only a count). ``resolve_shard_plan`` turns them into one canonical
plan before any connection attempt is made.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from chatlink.errors import ConfigurationError

RawShards = int | Sequence[object] | None


@dataclass(frozen=True, slots=True)
class ShardOverrides:
    """Out-of-band shard assignment (usually injected by a process supervisor)."""

    shards: RawShards = None
    shard_count: int | None = None


@dataclass(frozen=True, slots=True)
class ShardPlan:
    """Ordered, deduplicated shard indices plus the total shard count."""

    shards: tuple[int, ...]
    shard_count: int

    def __post_init__(self) -> None:
        if not self.shards:
            raise ConfigurationError("shard plan must contain at least one shard")
        if self.shard_count < 1:
            raise ConfigurationError("shard_count must be a positive integer")

    def __contains__(self, shard_id: object) -> bool:
        return shard_id in self.shards

    def __len__(self) -> int:
        return len(self.shards)


def resolve_shard_plan(
    shards: RawShards = None,
    shard_count: int | None = None,
    overrides: ShardOverrides | None = None,
) -> ShardPlan:
    """Normalize raw shard options into a :class:`ShardPlan`."""
    overrides = overrides or ShardOverrides()

    if shards is None and overrides.shards is not None:
        shards = overrides.shards

    if shard_count is None:
        if overrides.shard_count is not None:
            shard_count = overrides.shard_count
        elif _is_sequence(shards):
            shard_count = len(shards)  # type: ignore[arg-type]

    if shards is None:
        count = 1 if shard_count is None else shard_count
        _require_positive_count(count)
        shards = list(range(count))
    elif _is_index(shards):
        shards = [shards]
    elif not _is_sequence(shards):
        raise ConfigurationError(
            f"shards must be a non-negative integer or a list of them, got {type(shards).__name__}"
        )

    if shard_count is None:
        shard_count = 1
    _require_positive_count(shard_count)

    indices = _dedupe_indices(shards)  # type: ignore[arg-type]
    if not indices:
        raise ConfigurationError("no valid shard indices were provided")
    return ShardPlan(shards=indices, shard_count=int(shard_count))


def _dedupe_indices(values: Sequence[object]) -> tuple[int, ...]:
    seen: dict[int, None] = {}
    for value in values:
        if not _is_index(value):
            continue
        seen.setdefault(int(value), None)  # type: ignore[call-overload]
    return tuple(seen)


def _is_index(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return math.isfinite(value) and value >= 0 and value.is_integer()
    return False


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _require_positive_count(count: object) -> None:
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ConfigurationError(f"shard_count must be a positive integer, got {count!r}")


__all__ = ["RawShards", "ShardOverrides", "ShardPlan", "resolve_shard_plan"]
