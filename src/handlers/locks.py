"""TTL-bounded dedup locks for background jobs.

At most one execution per job key runs at a time. A second caller finds the
lock held and skips. Locks expire after their TTL so a holder that never
releases cannot wedge the key.
"""

from __future__ import annotations

import time
import logging
from typing import Any
from collections.abc import Callable, Awaitable

from src.state.lock import DedupLock
from src.runtime.periodic import PeriodicTask
from src.config.scheduler import DEFAULT_LOCK_KEY_PREFIX, DEFAULT_LOCK_SWEEP_INTERVAL_S

logger = logging.getLogger(__name__)

TimeFn = Callable[[], float]


class DedupLockRegistry:
    def __init__(
        self,
        *,
        key_prefix: str = DEFAULT_LOCK_KEY_PREFIX,
        sweep_interval_s: float = DEFAULT_LOCK_SWEEP_INTERVAL_S,
        now_fn: TimeFn | None = None,
    ) -> None:
        self._prefix = key_prefix
        self._now = now_fn or time.monotonic
        self._locks: dict[str, DedupLock] = {}
        self._sweeper = PeriodicTask("lock-sweep", interval_s=sweep_interval_s, callback=self._sweep_async)

    def _lock_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(self._lock_key(key))
        return lock is not None and not lock.expired(self._now())

    async def with_lock(self, key: str, ttl_seconds: float, action: Callable[[], Awaitable[Any]]) -> bool:
        """Run ``action`` while holding the lock for ``key``.

        Returns False without running ``action`` when a live lock already
        exists. The lock is released on every exit path; errors raised by
        ``action`` propagate after release.
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        lock_key = self._lock_key(key)
        now = self._now()
        existing = self._locks.get(lock_key)
        if existing is not None:
            if not existing.expired(now):
                logger.info("Lock %s already held, skipping execution", lock_key)
                return False
            logger.info("Lock %s expired after %ss, reclaiming", lock_key, existing.ttl_seconds)

        lock = DedupLock(key=lock_key, acquired_at=now, ttl_seconds=float(ttl_seconds))
        self._locks[lock_key] = lock
        logger.info("Acquired lock %s for %ss", lock_key, ttl_seconds)

        try:
            await action()
        finally:
            # A holder that outlived its TTL may have been replaced; leave the newer lock alone.
            if self._locks.get(lock_key) is lock:
                del self._locks[lock_key]
                logger.info("Released lock %s", lock_key)
            else:
                logger.warning("Lock %s was reclaimed before release", lock_key)
        return True

    def sweep_expired(self) -> int:
        now = self._now()
        expired = [lock_key for lock_key, lock in self._locks.items() if lock.expired(now)]
        for lock_key in expired:
            del self._locks[lock_key]
            logger.info("Cleaned up expired lock %s", lock_key)
        return len(expired)

    async def _sweep_async(self) -> None:
        self.sweep_expired()

    def stats(self) -> dict[str, Any]:
        now = self._now()
        return {
            "held": sorted(lock_key for lock_key, lock in self._locks.items() if not lock.expired(now)),
            "total": len(self._locks),
        }

    def start(self) -> None:
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()


__all__ = ["DedupLockRegistry"]
