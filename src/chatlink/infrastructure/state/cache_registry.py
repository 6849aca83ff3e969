"""In-memory named caches and the finalizer list that backs them."""

from __future__ import annotations

import itertools
import logging
import weakref
from collections.abc import Callable, Iterable, Iterator, MutableMapping
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger("chatlink.caches")

K = TypeVar("K")
V = TypeVar("V")

Cleanup = Callable[[], None]


class CacheName(str, Enum):
    """Caches owned by the client core."""

    USERS = "users"
    GUILDS = "guilds"
    CHANNELS = "channels"
    RELATIONSHIPS = "relationships"
    SESSIONS = "sessions"
    VOICE_STATES = "voice_states"
    MESSAGES = "messages"


DEFAULT_CACHE_NAMES: tuple[str, ...] = tuple(name.value for name in CacheName)


class Cache(MutableMapping[K, V], Generic[K, V]):
    """Insertion-ordered mapping with bulk removal helpers."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[K, V] = {}

    def __getitem__(self, key: K) -> V:
        return self._entries[key]

    def __setitem__(self, key: K, value: V) -> None:
        self._entries[key] = value

    def __delitem__(self, key: K) -> None:
        del self._entries[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Cache(name={self.name!r}, size={len(self._entries)})"

    def sweep(self, predicate: Callable[[K, V], bool]) -> int:
        """Remove entries matching ``predicate``; returns how many were removed."""
        doomed = [key for key, value in self._entries.items() if predicate(key, value)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> int:  # type: ignore[override]
        """Remove every entry; returns how many were removed."""
        removed = len(self._entries)
        self._entries.clear()
        return removed


class FinalizerRegistry:
    """Cleanup actions tied to the lifetime of cache-owning objects.

    Each registration is a :class:`weakref.finalize`, so a cleanup runs at most
    once whether it fires on garbage collection or from :meth:`run_pending`.
    The cleanup must not hold a reference to its owner or the owner never dies.
    """

    def __init__(self) -> None:
        self._pending: dict[int, weakref.finalize] = {}
        self._ids = itertools.count()

    def register(
        self,
        owner: object,
        cleanup: Cleanup,
        description: str | None = None,
    ) -> weakref.finalize:
        entry_id = next(self._ids)
        finalizer = weakref.finalize(owner, self._finalize, entry_id, cleanup, description)
        finalizer.atexit = False
        self._pending[entry_id] = finalizer
        return finalizer

    def run_pending(self) -> int:
        """Fire every pending cleanup now; returns how many were attempted."""
        pending = list(self._pending.values())
        attempted = 0
        for finalizer in pending:
            if finalizer.alive:
                attempted += 1
                finalizer()
        self._pending.clear()
        return attempted

    def __len__(self) -> int:
        return len(self._pending)

    def _finalize(self, entry_id: int, cleanup: Cleanup, description: str | None) -> None:
        try:
            cleanup()
        except Exception as exc:
            logger.warning(
                "cleanup failed",
                extra={
                    "data": {
                        "item": description or "an unknown item",
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    }
                },
            )
        else:
            if description:
                logger.debug("cleanup finished", extra={"data": {"item": description}})
        finally:
            self._pending.pop(entry_id, None)


class CacheRegistry:
    """Holds the named caches and exposes bulk clear/sweep to the orchestrator."""

    def __init__(self, names: Iterable[str] = DEFAULT_CACHE_NAMES) -> None:
        self._caches: dict[str, Cache[Any, Any]] = {_key(name): Cache(_key(name)) for name in names}
        if not self._caches:
            raise ValueError("cache registry needs at least one cache")
        self.finalizers = FinalizerRegistry()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._caches)

    def cache(self, name: str) -> Cache[Any, Any]:
        try:
            return self._caches[_key(name)]
        except KeyError:
            raise KeyError(f"unknown cache {name!r}") from None

    def clear(self, name: str) -> int:
        return self.cache(name).clear()

    def sweep(self, name: str, predicate: Callable[[Any, Any], bool]) -> int:
        return self.cache(name).sweep(predicate)

    def clear_all(self) -> dict[str, int]:
        """Clear every named cache; returns removed counts keyed by cache name."""
        return {name: cache.clear() for name, cache in self._caches.items()}

    def sizes(self) -> dict[str, int]:
        return {name: len(cache) for name, cache in self._caches.items()}


def _key(name: str) -> str:
    return name.value if isinstance(name, CacheName) else name


__all__ = [
    "DEFAULT_CACHE_NAMES",
    "Cache",
    "CacheName",
    "CacheRegistry",
    "Cleanup",
    "FinalizerRegistry",
]
