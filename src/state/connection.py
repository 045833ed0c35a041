"""Registry entry for one admitted realtime connection."""

from __future__ import annotations

from typing import Any
from dataclasses import field, dataclass


@dataclass(slots=True)
class TrackedConnection:
    id: str
    source_key: str
    created_at: float
    last_activity: float
    # Transport handle; the governor only ever asks it to close.
    handle: Any = field(repr=False)


__all__ = ["TrackedConnection"]
