"""Configuration module exports (env var names and defaults only)."""

from .limits import (
    ADMISSION_REASON_RATE_LIMIT,
    ADMISSION_REASON_GLOBAL_LIMIT,
    ADMISSION_REASON_SOURCE_LIMIT,
    DEFAULT_MAX_CONCURRENT_CONNECTIONS,
)

__all__ = [
    "ADMISSION_REASON_GLOBAL_LIMIT",
    "ADMISSION_REASON_RATE_LIMIT",
    "ADMISSION_REASON_SOURCE_LIMIT",
    "DEFAULT_MAX_CONCURRENT_CONNECTIONS",
]
