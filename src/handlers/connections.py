"""WebSocket connection admission control and reclamation.

`ConnectionGovernor` owns the registry of live realtime connections. Callers ask
`can_admit` before upgrading a socket, `admit` once they commit to it, `touch`
on every inbound message and `remove` on disconnect. Two periodic sweeps close
idle connections and shed the oldest connections when the server nears its cap.

Registry mutations never await, so they are atomic with respect to the event
loop. Only transport closes suspend, and those run after the registry is
already consistent.
"""

from __future__ import annotations

import time
import logging
import dataclasses
from typing import Any
from collections.abc import Callable

from fastapi.websockets import WebSocketState

from src.runtime.periodic import PeriodicTask
from src.state.settings import AdmissionSettings
from src.state.admission import AdmissionDecision
from src.state.connection import TrackedConnection
from src.config.limits import (
    ADMISSION_REASON_RATE_LIMIT,
    ADMISSION_REASON_GLOBAL_LIMIT,
    ADMISSION_REASON_SOURCE_LIMIT,
)
from src.config.websocket import (
    WS_CLOSE_IDLE_CODE,
    WS_CLOSE_IDLE_REASON,
    WS_CLOSE_EMERGENCY_CODE,
    WS_CLOSE_EMERGENCY_REASON,
    WS_CLOSE_SERVER_CLEANUP_CODE,
    WS_CLOSE_SERVER_CLEANUP_REASON,
)

logger = logging.getLogger(__name__)

TimeFn = Callable[[], float]

_ALLOWED = AdmissionDecision(allowed=True)


def _is_open(handle: Any) -> bool:
    # Starlette sockets expose both sides' state; anything else is assumed open.
    for attr in ("client_state", "application_state"):
        state = getattr(handle, attr, None)
        if state is not None and state != WebSocketState.CONNECTED:
            return False
    return True


class ConnectionGovernor:
    def __init__(self, policy: AdmissionSettings, *, now_fn: TimeFn | None = None) -> None:
        for name in ("emergency_high_water_fraction", "emergency_eviction_fraction"):
            value = getattr(policy, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        self.policy = policy
        self._now = now_fn or time.monotonic
        self._trusted = frozenset(policy.trusted_sources)
        self._connections: dict[str, TrackedConnection] = {}
        self._source_counts: dict[str, int] = {}
        self._last_admission: dict[str, float] = {}
        # source_key -> (error count, time the counting window opened)
        self._errors: dict[str, tuple[int, float]] = {}
        self._idle_sweeper = PeriodicTask(
            "idle-sweep",
            interval_s=policy.idle_sweep_interval_s,
            callback=self.sweep_idle,
        )
        self._emergency_sweeper = PeriodicTask(
            "emergency-sweep",
            interval_s=policy.emergency_sweep_interval_s,
            callback=self.emergency_cleanup,
        )

    @property
    def count(self) -> int:
        return len(self._connections)

    def contains(self, conn_id: str) -> bool:
        return conn_id in self._connections

    def source_count(self, source_key: str) -> int:
        return self._source_counts.get(source_key, 0)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def can_admit(self, source_key: str) -> AdmissionDecision:
        """Decide whether a new connection from ``source_key`` would be accepted.

        Checks run global cap, then per-source cap, then the minimum interval
        since the source's last accepted admission. Nothing is mutated.
        """
        if not source_key:
            raise ValueError("source_key must be a non-empty string")

        if len(self._connections) >= self.policy.max_connections:
            return AdmissionDecision(allowed=False, reason=ADMISSION_REASON_GLOBAL_LIMIT)

        if source_key in self._trusted:
            return _ALLOWED

        now = self._now()
        if self.source_count(source_key) >= self.effective_source_limit(source_key, now=now):
            return AdmissionDecision(allowed=False, reason=ADMISSION_REASON_SOURCE_LIMIT)

        last = self._last_admission.get(source_key)
        if last is not None and (now - last) * 1000.0 < self.policy.min_admission_interval_ms:
            return AdmissionDecision(allowed=False, reason=ADMISSION_REASON_RATE_LIMIT)

        return _ALLOWED

    def admit(self, conn_id: str, source_key: str, handle: Any) -> bool:
        return self.try_admit(conn_id, source_key, handle).allowed

    def try_admit(self, conn_id: str, source_key: str, handle: Any) -> AdmissionDecision:
        """Register the connection if allowed and return the decision that applied."""
        if conn_id in self._connections:
            raise ValueError(f"connection id {conn_id!r} is already registered")

        decision = self.can_admit(source_key)
        if not decision.allowed:
            logger.warning("Connection rejected: %s from %s (%s)", conn_id, source_key, decision.reason)
            return decision

        now = self._now()
        self._connections[conn_id] = TrackedConnection(
            id=conn_id,
            source_key=source_key,
            created_at=now,
            last_activity=now,
            handle=handle,
        )
        self._source_counts[source_key] = self._source_counts.get(source_key, 0) + 1
        self._last_admission[source_key] = now
        logger.info("Connection accepted: %s from %s (total: %s)", conn_id, source_key, len(self._connections))
        return _ALLOWED

    def remove(self, conn_id: str) -> None:
        conn = self._connections.pop(conn_id, None)
        if conn is None:
            return

        remaining = self._source_counts.get(conn.source_key, 0) - 1
        if remaining <= 0:
            self._source_counts.pop(conn.source_key, None)
        else:
            self._source_counts[conn.source_key] = remaining
        logger.info("Connection removed: %s from %s (total: %s)", conn_id, conn.source_key, len(self._connections))

    def touch(self, conn_id: str) -> None:
        conn = self._connections.get(conn_id)
        if conn is not None:
            conn.last_activity = max(conn.created_at, self._now())

    # ------------------------------------------------------------------
    # Per-source error accounting
    # ------------------------------------------------------------------

    def record_error(self, source_key: str) -> None:
        """Count a protocol error against ``source_key``, shrinking its cap."""
        now = self._now()
        count, opened_at = self._errors.get(source_key, (0, now))
        if self._error_window_expired(opened_at, now):
            count, opened_at = 0, now
        self._errors[source_key] = (count + 1, opened_at)

    def effective_source_limit(self, source_key: str, *, now: float | None = None) -> int:
        cap = self.policy.max_connections_per_source
        entry = self._errors.get(source_key)
        if entry is None:
            return cap
        count, opened_at = entry
        if self._error_window_expired(opened_at, self._now() if now is None else now):
            return cap
        floor = min(self.policy.min_source_limit, cap)
        return max(cap - count * self.policy.source_error_penalty, floor)

    def _error_window_expired(self, opened_at: float, now: float) -> bool:
        return (now - opened_at) * 1000.0 >= self.policy.source_error_reset_ms

    def _purge_expired_errors(self, now: float) -> None:
        expired = [key for key, (_, opened_at) in self._errors.items() if self._error_window_expired(opened_at, now)]
        for key in expired:
            del self._errors[key]

    # ------------------------------------------------------------------
    # Reclamation
    # ------------------------------------------------------------------

    async def sweep_idle(self) -> int:
        now = self._now()
        self._purge_expired_errors(now)

        idle_timeout_ms = self.policy.idle_timeout_ms
        if idle_timeout_ms <= 0:
            return 0

        victims = [
            conn for conn in self._connections.values() if (now - conn.last_activity) * 1000.0 > idle_timeout_ms
        ]
        if not victims:
            return 0

        for conn in victims:
            self.remove(conn.id)
        for conn in victims:
            await self._request_close(conn, code=WS_CLOSE_IDLE_CODE, reason=WS_CLOSE_IDLE_REASON)

        logger.info("Cleaned up %s idle connections", len(victims))
        return len(victims)

    async def emergency_cleanup(self) -> int:
        total = len(self._connections)
        if total <= self.policy.max_connections * self.policy.emergency_high_water_fraction:
            return 0

        logger.warning("Emergency cleanup triggered - %s connections", total)
        evict = int(total * self.policy.emergency_eviction_fraction)
        if self.policy.emergency_eviction_fraction > 0:
            evict = max(1, evict)
        oldest_first = sorted(self._connections.values(), key=lambda conn: conn.created_at)
        victims = oldest_first[:evict]

        for conn in victims:
            self.remove(conn.id)
        for conn in victims:
            await self._request_close(conn, code=WS_CLOSE_EMERGENCY_CODE, reason=WS_CLOSE_EMERGENCY_REASON)

        logger.warning("Emergency cleanup removed %s connections", len(victims))
        return len(victims)

    async def force_cleanup(self) -> None:
        victims = list(self._connections.values())
        logger.info("Force cleanup of %s connections", len(victims))

        self._connections.clear()
        self._source_counts.clear()
        self._last_admission.clear()
        self._errors.clear()

        for conn in victims:
            await self._request_close(
                conn,
                code=WS_CLOSE_SERVER_CLEANUP_CODE,
                reason=WS_CLOSE_SERVER_CLEANUP_REASON,
            )

    async def _request_close(self, conn: TrackedConnection, *, code: int, reason: str) -> None:
        if not _is_open(conn.handle):
            return
        try:
            await conn.handle.close(code=code, reason=reason)
        except Exception:
            logger.warning("Failed to close connection %s (%s)", conn.id, reason, exc_info=True)

    # ------------------------------------------------------------------
    # Introspection and lifecycle
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        oldest = min((conn.created_at for conn in self._connections.values()), default=None)
        return {
            "total": len(self._connections),
            "per_source": dict(self._source_counts),
            "oldest_created_at": oldest,
            "policy": dataclasses.asdict(self.policy),
        }

    def start(self) -> None:
        self._idle_sweeper.start()
        self._emergency_sweeper.start()

    async def stop(self) -> None:
        await self._idle_sweeper.stop()
        await self._emergency_sweeper.stop()


__all__ = ["ConnectionGovernor"]
