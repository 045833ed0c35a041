"""Source key derivation for per-origin admission accounting."""

from __future__ import annotations

from fastapi import WebSocket

UNKNOWN_SOURCE_KEY = "unknown"


def get_source_key(ws: WebSocket, *, trust_forwarded_for: bool = False) -> str:
    if trust_forwarded_for:
        # Left-most hop is the original client when the proxy appends.
        forwarded = (ws.headers.get("x-forwarded-for") or "").split(",")[0].strip()
        if forwarded:
            return forwarded
    client = ws.client
    if client is not None and client.host:
        return client.host
    return UNKNOWN_SOURCE_KEY


__all__ = ["UNKNOWN_SOURCE_KEY", "get_source_key"]
