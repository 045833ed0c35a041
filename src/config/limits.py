"""Admission control configuration (env var names and defaults only)."""

from __future__ import annotations

ENV_MAX_CONCURRENT_CONNECTIONS = "MAX_CONCURRENT_CONNECTIONS"
ENV_MAX_CONNECTIONS_PER_SOURCE = "MAX_CONNECTIONS_PER_SOURCE"
ENV_CONNECTION_RATE_LIMIT_MS = "CONNECTION_RATE_LIMIT_MS"
ENV_CONNECTION_IDLE_TIMEOUT_MS = "CONNECTION_IDLE_TIMEOUT_MS"
ENV_EMERGENCY_HIGH_WATER_FRACTION = "EMERGENCY_HIGH_WATER_FRACTION"
ENV_EMERGENCY_EVICTION_FRACTION = "EMERGENCY_EVICTION_FRACTION"
ENV_IDLE_SWEEP_INTERVAL_S = "IDLE_SWEEP_INTERVAL_S"
ENV_EMERGENCY_SWEEP_INTERVAL_S = "EMERGENCY_SWEEP_INTERVAL_S"
ENV_TRUSTED_SOURCES = "TRUSTED_SOURCES"
ENV_SOURCE_ERROR_PENALTY = "SOURCE_ERROR_PENALTY"
ENV_MIN_SOURCE_LIMIT = "MIN_SOURCE_LIMIT"
ENV_SOURCE_ERROR_RESET_MS = "SOURCE_ERROR_RESET_MS"

# The per-source cap was raised well above an abuse-guard level after the
# dashboard frontend tripped it with legitimate reconnect storms. Tune per deploy.
DEFAULT_MAX_CONCURRENT_CONNECTIONS = 5000
DEFAULT_MAX_CONNECTIONS_PER_SOURCE = 100
DEFAULT_CONNECTION_RATE_LIMIT_MS = 100
DEFAULT_CONNECTION_IDLE_TIMEOUT_MS = 600_000

# Emergency load shedding kicks in above 80% of the global cap and drops the
# oldest 30% of current connections.
DEFAULT_EMERGENCY_HIGH_WATER_FRACTION = 0.8
DEFAULT_EMERGENCY_EVICTION_FRACTION = 0.3

DEFAULT_IDLE_SWEEP_INTERVAL_S = 60.0
DEFAULT_EMERGENCY_SWEEP_INTERVAL_S = 30.0

DEFAULT_TRUSTED_SOURCES: tuple[str, ...] = ()

# Each recorded protocol error shrinks a source's cap by this many slots,
# never below MIN_SOURCE_LIMIT. Counts are forgotten after the reset window.
DEFAULT_SOURCE_ERROR_PENALTY = 2
DEFAULT_MIN_SOURCE_LIMIT = 5
DEFAULT_SOURCE_ERROR_RESET_MS = 300_000

# Rejection reasons reported by AdmissionDecision.reason
ADMISSION_REASON_GLOBAL_LIMIT = "global limit"
ADMISSION_REASON_SOURCE_LIMIT = "source limit"
ADMISSION_REASON_RATE_LIMIT = "rate limit"

__all__ = [
    "ADMISSION_REASON_GLOBAL_LIMIT",
    "ADMISSION_REASON_RATE_LIMIT",
    "ADMISSION_REASON_SOURCE_LIMIT",
    "DEFAULT_CONNECTION_IDLE_TIMEOUT_MS",
    "DEFAULT_CONNECTION_RATE_LIMIT_MS",
    "DEFAULT_EMERGENCY_EVICTION_FRACTION",
    "DEFAULT_EMERGENCY_HIGH_WATER_FRACTION",
    "DEFAULT_EMERGENCY_SWEEP_INTERVAL_S",
    "DEFAULT_IDLE_SWEEP_INTERVAL_S",
    "DEFAULT_MAX_CONCURRENT_CONNECTIONS",
    "DEFAULT_MAX_CONNECTIONS_PER_SOURCE",
    "DEFAULT_MIN_SOURCE_LIMIT",
    "DEFAULT_SOURCE_ERROR_PENALTY",
    "DEFAULT_SOURCE_ERROR_RESET_MS",
    "DEFAULT_TRUSTED_SOURCES",
    "ENV_CONNECTION_IDLE_TIMEOUT_MS",
    "ENV_CONNECTION_RATE_LIMIT_MS",
    "ENV_EMERGENCY_EVICTION_FRACTION",
    "ENV_EMERGENCY_HIGH_WATER_FRACTION",
    "ENV_EMERGENCY_SWEEP_INTERVAL_S",
    "ENV_IDLE_SWEEP_INTERVAL_S",
    "ENV_MAX_CONCURRENT_CONNECTIONS",
    "ENV_MAX_CONNECTIONS_PER_SOURCE",
    "ENV_MIN_SOURCE_LIMIT",
    "ENV_SOURCE_ERROR_PENALTY",
    "ENV_SOURCE_ERROR_RESET_MS",
    "ENV_TRUSTED_SOURCES",
]
