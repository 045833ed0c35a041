"""Primary WebSocket connection handler orchestration."""

from __future__ import annotations

import uuid
import logging

from fastapi import WebSocket

from src.state import EnvelopeState
from src.state.runtime import RuntimeDeps
from src.config.websocket import WS_ERROR_INTERNAL

from .source import get_source_key
from .errors import send_error, reject_connection
from .message_loop import run_message_loop

logger = logging.getLogger(__name__)


async def _admit_connection(ws: WebSocket, runtime_deps: RuntimeDeps) -> EnvelopeState | None:
    governor = runtime_deps.governor
    source_key = get_source_key(ws, trust_forwarded_for=runtime_deps.settings.websocket.trust_forwarded_for)

    conn_id = uuid.uuid4().hex
    decision = governor.try_admit(conn_id, source_key, ws)
    if not decision.allowed:
        logger.warning("WebSocket rejected from %s: %s", source_key, decision.reason)
        await reject_connection(ws, decision, source_key=source_key)
        return None

    try:
        await ws.accept()
    except Exception:
        governor.remove(conn_id)
        raise
    return EnvelopeState(session_id=conn_id, source_key=source_key)


async def handle_websocket_connection(ws: WebSocket, runtime_deps: RuntimeDeps) -> None:
    state = await _admit_connection(ws, runtime_deps)
    if state is None:
        return

    try:
        await run_message_loop(ws, state, runtime_deps)
    except Exception:
        runtime_deps.governor.record_error(state.source_key)
        logger.exception("WebSocket connection %s failed", state.session_id)
        await send_error(
            ws,
            session_id=state.session_id,
            request_id=state.request_id,
            error_code=WS_ERROR_INTERNAL,
            message="internal server error",
        )
        raise
    finally:
        runtime_deps.governor.remove(state.session_id)
        logger.info(
            "WebSocket connection closed session_id=%s messages=%s. Active: %s",
            state.session_id,
            state.messages,
            runtime_deps.governor.count,
        )


__all__ = ["handle_websocket_connection"]
