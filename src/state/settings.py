"""Runtime settings (dataclasses only)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AdmissionSettings:
    max_connections: int
    max_connections_per_source: int
    min_admission_interval_ms: float
    idle_timeout_ms: float
    emergency_high_water_fraction: float
    emergency_eviction_fraction: float
    idle_sweep_interval_s: float
    emergency_sweep_interval_s: float
    trusted_sources: tuple[str, ...] = ()
    source_error_penalty: int = 2
    min_source_limit: int = 5
    source_error_reset_ms: float = 300_000.0


@dataclass(frozen=True, slots=True)
class WebSocketSettings:
    recv_tick_s: float
    trust_forwarded_for: bool


@dataclass(frozen=True, slots=True)
class SchedulerSettings:
    lock_sweep_interval_s: float
    lock_key_prefix: str


@dataclass(frozen=True, slots=True)
class AppSettings:
    admission: AdmissionSettings
    websocket: WebSocketSettings
    scheduler: SchedulerSettings


__all__ = [
    "AdmissionSettings",
    "AppSettings",
    "SchedulerSettings",
    "WebSocketSettings",
]
