"""Per-connection state for the JSON envelope spoken on /ws."""

from __future__ import annotations

from dataclasses import dataclass

from src.config.websocket import WS_UNKNOWN_REQUEST_ID


@dataclass(slots=True)
class EnvelopeState:
    session_id: str
    source_key: str
    request_id: str = WS_UNKNOWN_REQUEST_ID
    messages: int = 0


__all__ = ["EnvelopeState"]
