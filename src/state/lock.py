"""Dedup lock record (dataclass only)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DedupLock:
    key: str
    acquired_at: float
    ttl_seconds: float

    def expired(self, now: float) -> bool:
        return (now - self.acquired_at) >= self.ttl_seconds


__all__ = ["DedupLock"]
