"""Interval tasks for cache and idempotency-window upkeep."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger("chatlink.maintenance")

Tick = Callable[[], Awaitable[object] | object]


class PeriodicTask:
    """Run ``tick`` every ``interval_seconds`` on the running event loop.

    The task runs independently of the connection state. ``start()`` and
    ``cancel()`` are both idempotent; a failing tick is logged and the loop
    keeps going.
    """

    def __init__(self, name: str, interval_seconds: float, tick: Tick) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self._interval = interval_seconds
        self._tick = tick
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        task = self._task
        return bool(not self._cancelled and task is not None and not task.done())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> bool:
        """Schedule the loop; returns False when already running or cancelled."""
        if self._cancelled or self.running:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return True

    def cancel(self) -> bool:
        """Stop the loop for good; returns False when it was already cancelled."""
        if self._cancelled:
            return False
        self._cancelled = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        return True

    async def wait_closed(self) -> None:
        """Wait until a cancelled loop has actually finished."""
        task = self._task
        if not self._cancelled or task is None:
            return
        await asyncio.wait([task])
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                result = self._tick()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("periodic task tick failed", extra={"data": {"task": self.name}})


__all__ = ["PeriodicTask", "Tick"]
