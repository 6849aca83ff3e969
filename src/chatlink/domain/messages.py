"""Cached message entries swept by age."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from chatlink.json_types import JsonValue


@dataclass(frozen=True, slots=True)
class CachedMessage:
    """A message held in the ``messages`` cache.

    Only the timestamps matter to the client core; ``payload`` is the raw
    gateway object and is never interpreted here.
    """

    message_id: str
    channel_id: str
    created_at: datetime
    edited_at: datetime | None = None
    payload: Mapping[str, JsonValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.message_id:
            raise ValueError("message_id must not be empty")
        if self.edited_at is not None and self.edited_at < self.created_at:
            raise ValueError("edited_at must not precede created_at")

    @property
    def last_activity(self) -> datetime:
        """Return the edit time when present, else the creation time."""
        return self.edited_at if self.edited_at is not None else self.created_at


def outdated_message_filter(
    lifetime_seconds: float,
    now: datetime,
) -> Callable[[str, CachedMessage], bool]:
    """Return a sweep predicate matching messages idle for longer than ``lifetime_seconds``."""

    def _predicate(_key: str, message: CachedMessage) -> bool:
        # float seconds so an infinite lifetime matches nothing
        return (now - message.last_activity).total_seconds() > lifetime_seconds

    return _predicate


__all__ = ["CachedMessage", "outdated_message_filter"]
