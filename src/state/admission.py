"""Admission decision returned by the connection governor."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    allowed: bool
    reason: str | None = None


__all__ = ["AdmissionDecision"]
