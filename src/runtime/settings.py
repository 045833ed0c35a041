"""Load runtime settings.

Env var names and defaults live in `src/config/*`; this module parses the
environment into the structured dataclasses the rest of the server uses.
"""

from __future__ import annotations

import os

from src.state.settings import AppSettings, AdmissionSettings, SchedulerSettings, WebSocketSettings
from src.config.scheduler import (
    ENV_LOCK_KEY_PREFIX,
    DEFAULT_LOCK_KEY_PREFIX,
    ENV_LOCK_SWEEP_INTERVAL_S,
    DEFAULT_LOCK_SWEEP_INTERVAL_S,
)
from src.config.websocket import (
    ENV_WS_RECV_TICK_S,
    DEFAULT_WS_RECV_TICK_S,
    ENV_WS_TRUST_FORWARDED_FOR,
    DEFAULT_WS_TRUST_FORWARDED_FOR,
)
from src.config.limits import (
    ENV_MIN_SOURCE_LIMIT,
    ENV_TRUSTED_SOURCES,
    DEFAULT_MIN_SOURCE_LIMIT,
    DEFAULT_TRUSTED_SOURCES,
    ENV_SOURCE_ERROR_PENALTY,
    ENV_SOURCE_ERROR_RESET_MS,
    ENV_IDLE_SWEEP_INTERVAL_S,
    DEFAULT_SOURCE_ERROR_PENALTY,
    ENV_CONNECTION_RATE_LIMIT_MS,
    DEFAULT_SOURCE_ERROR_RESET_MS,
    DEFAULT_IDLE_SWEEP_INTERVAL_S,
    ENV_CONNECTION_IDLE_TIMEOUT_MS,
    ENV_EMERGENCY_SWEEP_INTERVAL_S,
    ENV_MAX_CONCURRENT_CONNECTIONS,
    ENV_MAX_CONNECTIONS_PER_SOURCE,
    DEFAULT_CONNECTION_RATE_LIMIT_MS,
    ENV_EMERGENCY_EVICTION_FRACTION,
    DEFAULT_CONNECTION_IDLE_TIMEOUT_MS,
    DEFAULT_EMERGENCY_SWEEP_INTERVAL_S,
    DEFAULT_MAX_CONCURRENT_CONNECTIONS,
    DEFAULT_MAX_CONNECTIONS_PER_SOURCE,
    ENV_EMERGENCY_HIGH_WATER_FRACTION,
    DEFAULT_EMERGENCY_EVICTION_FRACTION,
    DEFAULT_EMERGENCY_HIGH_WATER_FRACTION,
)


def _str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _positive_float_env(name: str, default: float) -> float:
    value = _float_env(name, default)
    return value if value > 0 else default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _validate_fraction(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be a fraction between 0 and 1, got {value}")
    return value


def _load_admission_settings() -> AdmissionSettings:
    return AdmissionSettings(
        max_connections=max(1, _int_env(ENV_MAX_CONCURRENT_CONNECTIONS, DEFAULT_MAX_CONCURRENT_CONNECTIONS)),
        max_connections_per_source=max(
            1, _int_env(ENV_MAX_CONNECTIONS_PER_SOURCE, DEFAULT_MAX_CONNECTIONS_PER_SOURCE)
        ),
        min_admission_interval_ms=max(
            0.0, _float_env(ENV_CONNECTION_RATE_LIMIT_MS, DEFAULT_CONNECTION_RATE_LIMIT_MS)
        ),
        idle_timeout_ms=_float_env(ENV_CONNECTION_IDLE_TIMEOUT_MS, DEFAULT_CONNECTION_IDLE_TIMEOUT_MS),
        emergency_high_water_fraction=_validate_fraction(
            ENV_EMERGENCY_HIGH_WATER_FRACTION,
            _float_env(ENV_EMERGENCY_HIGH_WATER_FRACTION, DEFAULT_EMERGENCY_HIGH_WATER_FRACTION),
        ),
        emergency_eviction_fraction=_validate_fraction(
            ENV_EMERGENCY_EVICTION_FRACTION,
            _float_env(ENV_EMERGENCY_EVICTION_FRACTION, DEFAULT_EMERGENCY_EVICTION_FRACTION),
        ),
        idle_sweep_interval_s=_positive_float_env(ENV_IDLE_SWEEP_INTERVAL_S, DEFAULT_IDLE_SWEEP_INTERVAL_S),
        emergency_sweep_interval_s=_positive_float_env(
            ENV_EMERGENCY_SWEEP_INTERVAL_S, DEFAULT_EMERGENCY_SWEEP_INTERVAL_S
        ),
        trusted_sources=_list_env(ENV_TRUSTED_SOURCES, DEFAULT_TRUSTED_SOURCES),
        source_error_penalty=max(0, _int_env(ENV_SOURCE_ERROR_PENALTY, DEFAULT_SOURCE_ERROR_PENALTY)),
        min_source_limit=max(1, _int_env(ENV_MIN_SOURCE_LIMIT, DEFAULT_MIN_SOURCE_LIMIT)),
        source_error_reset_ms=_float_env(ENV_SOURCE_ERROR_RESET_MS, DEFAULT_SOURCE_ERROR_RESET_MS),
    )


def _load_websocket_settings() -> WebSocketSettings:
    return WebSocketSettings(
        recv_tick_s=_positive_float_env(ENV_WS_RECV_TICK_S, DEFAULT_WS_RECV_TICK_S),
        trust_forwarded_for=_bool_env(ENV_WS_TRUST_FORWARDED_FOR, DEFAULT_WS_TRUST_FORWARDED_FOR),
    )


def _load_scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(
        lock_sweep_interval_s=_positive_float_env(ENV_LOCK_SWEEP_INTERVAL_S, DEFAULT_LOCK_SWEEP_INTERVAL_S),
        lock_key_prefix=_str_env(ENV_LOCK_KEY_PREFIX, DEFAULT_LOCK_KEY_PREFIX),
    )


def load_settings() -> AppSettings:
    return AppSettings(
        admission=_load_admission_settings(),
        websocket=_load_websocket_settings(),
        scheduler=_load_scheduler_settings(),
    )


__all__ = ["load_settings"]
