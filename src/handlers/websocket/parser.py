"""Client message parsing/validation for the /ws envelope."""

from __future__ import annotations

import json
from typing import Any

from src.config.websocket import WS_KEY_TYPE, WS_KEY_PAYLOAD, WS_KEY_REQUEST_ID, WS_UNKNOWN_REQUEST_ID


def parse_client_message(raw: str) -> dict[str, Any]:
    """Validate one inbound frame and return it normalized.

    Clients send ``{"type": ..., "request_id"?: ..., "payload"?: {...}}``. The
    session id is always the server-assigned connection id, so any
    client-supplied one is ignored.
    """
    try:
        msg = json.loads(raw)
    except Exception as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc

    if not isinstance(msg, dict):
        raise ValueError("message must be a JSON object")

    msg_type = msg.get(WS_KEY_TYPE)
    if not isinstance(msg_type, str) or not msg_type.strip():
        raise ValueError("message missing non-empty 'type'")

    request_id = msg.get(WS_KEY_REQUEST_ID)
    if request_id is None:
        request_id = WS_UNKNOWN_REQUEST_ID
    elif not isinstance(request_id, str) or not request_id.strip():
        raise ValueError("message 'request_id' must be a non-empty string")

    payload = msg.get(WS_KEY_PAYLOAD, {})
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValueError("message 'payload' must be an object")

    return {
        WS_KEY_TYPE: msg_type.strip(),
        WS_KEY_REQUEST_ID: request_id.strip(),
        WS_KEY_PAYLOAD: payload,
    }


__all__ = ["parse_client_message"]
