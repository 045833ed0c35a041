"""Cancellable periodic background task used by the sweeps."""

from __future__ import annotations

import asyncio
import logging
import contextlib
from typing import Any
from collections.abc import Callable, Awaitable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``callback`` every ``interval_s`` seconds until stopped.

    The first run happens one interval after ``start()``. A callback that
    raises is logged and the loop keeps going; only ``stop()`` ends it.
    """

    def __init__(self, name: str, *, interval_s: float, callback: Callable[[], Awaitable[Any]]) -> None:
        if interval_s <= 0:
            raise ValueError(f"{name}: interval_s must be positive, got {interval_s}")
        self.name = name
        self.interval_s = float(interval_s)
        self._callback = callback
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._stop_event.clear()
            self._task = asyncio.create_task(self._loop(), name=self.name)
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_s)
            if self._stop_event.is_set():
                break
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("periodic task %s failed; continuing", self.name)


__all__ = ["PeriodicTask"]
