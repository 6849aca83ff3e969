"""Redeemed one-time code tracking."""

from __future__ import annotations

from collections.abc import Iterator


class UsedCodeSet:
    """Codes already attempted within the current reset window.

    The set is cleared wholesale by the orchestrator's maintenance timer; there
    is no per-code expiry.
    """

    def __init__(self) -> None:
        self._codes: dict[str, None] = {}

    def __contains__(self, code: object) -> bool:
        return code in self._codes

    def __iter__(self) -> Iterator[str]:
        return iter(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def add(self, code: str) -> None:
        self._codes.setdefault(code, None)

    def reset(self) -> int:
        """Forget every code; returns how many were dropped."""
        dropped = len(self._codes)
        self._codes.clear()
        return dropped


__all__ = ["UsedCodeSet"]
