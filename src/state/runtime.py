"""Typed runtime state objects for dependency wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from src.state.settings import AppSettings
    from src.handlers.locks import DedupLockRegistry
    from src.handlers.connections import ConnectionGovernor


@dataclass(slots=True)
class RuntimeDeps:
    governor: ConnectionGovernor
    locks: DedupLockRegistry
    settings: AppSettings

    def start(self) -> None:
        self.governor.start()
        self.locks.start()

    async def shutdown(self) -> None:
        try:
            await self.governor.stop()
            await self.governor.force_cleanup()
        except Exception:
            logger.exception("governor shutdown failed")
        try:
            await self.locks.stop()
        except Exception:
            logger.exception("lock registry shutdown failed")


__all__ = ["RuntimeDeps"]
