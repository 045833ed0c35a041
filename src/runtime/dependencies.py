"""Runtime dependency construction (admission governor + job locks)."""

from __future__ import annotations

import logging

from src.state import RuntimeDeps
from src.state.settings import AppSettings
from src.handlers.locks import DedupLockRegistry
from src.handlers.connections import ConnectionGovernor

from .settings import load_settings

logger = logging.getLogger(__name__)


def build_runtime_deps(settings: AppSettings | None = None) -> RuntimeDeps:
    settings = settings or load_settings()

    governor = ConnectionGovernor(settings.admission)
    locks = DedupLockRegistry(
        key_prefix=settings.scheduler.lock_key_prefix,
        sweep_interval_s=settings.scheduler.lock_sweep_interval_s,
    )
    logger.info(
        "admission: global=%s per_source=%s rate_limit_ms=%s idle_timeout_ms=%s",
        settings.admission.max_connections,
        settings.admission.max_connections_per_source,
        settings.admission.min_admission_interval_ms,
        settings.admission.idle_timeout_ms,
    )

    return RuntimeDeps(governor=governor, locks=locks, settings=settings)


__all__ = ["RuntimeDeps", "build_runtime_deps"]
