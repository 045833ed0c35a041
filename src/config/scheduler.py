"""Background job dedup lock configuration (env var names and defaults only)."""

from __future__ import annotations

ENV_LOCK_SWEEP_INTERVAL_S = "LOCK_SWEEP_INTERVAL_S"
ENV_LOCK_KEY_PREFIX = "LOCK_KEY_PREFIX"

DEFAULT_LOCK_SWEEP_INTERVAL_S = 30.0
DEFAULT_LOCK_KEY_PREFIX = "scheduler:"

__all__ = [
    "DEFAULT_LOCK_KEY_PREFIX",
    "DEFAULT_LOCK_SWEEP_INTERVAL_S",
    "ENV_LOCK_KEY_PREFIX",
    "ENV_LOCK_SWEEP_INTERVAL_S",
]
