"""WebSocket message loop for /ws."""

from __future__ import annotations

import asyncio
import logging
import contextlib
from typing import Any, Literal

from fastapi import WebSocket, WebSocketDisconnect

from src.state import EnvelopeState
from src.state.runtime import RuntimeDeps
from src.config.websocket import WS_ERROR_INVALID_MESSAGE, WS_CLOSE_CLIENT_REQUEST_CODE

from .parser import parse_client_message
from .errors import send_error, safe_send_envelope

logger = logging.getLogger(__name__)


async def _recv_frame(ws: WebSocket, tick_s: float) -> dict[str, Any] | None:
    try:
        return await asyncio.wait_for(ws.receive(), timeout=tick_s)
    except TimeoutError:
        return None


def _status_payload(runtime_deps: RuntimeDeps, state: EnvelopeState) -> dict[str, Any]:
    governor = runtime_deps.governor
    return {
        "connection_id": state.session_id,
        "source": state.source_key,
        "messages": state.messages,
        "active_connections": governor.count,
        "source_connections": governor.source_count(state.source_key),
    }


async def _handle_control_message(
    ws: WebSocket,
    msg_type: str,
    runtime_deps: RuntimeDeps,
    state: EnvelopeState,
) -> Literal["none", "continue", "close"]:
    session_id = state.session_id
    request_id = state.request_id
    if msg_type == "ping":
        await safe_send_envelope(ws, msg_type="pong", session_id=session_id, request_id=request_id, payload={})
        return "continue"
    if msg_type == "pong":
        return "continue"
    if msg_type == "status":
        await safe_send_envelope(
            ws,
            msg_type="status",
            session_id=session_id,
            request_id=request_id,
            payload=_status_payload(runtime_deps, state),
        )
        return "continue"
    if msg_type == "end":
        await safe_send_envelope(ws, msg_type="session_end", session_id=session_id, request_id=request_id, payload={})
        with contextlib.suppress(Exception):
            await ws.close(code=WS_CLOSE_CLIENT_REQUEST_CODE)
        return "close"
    return "none"


async def _parse_or_send_error(
    ws: WebSocket,
    raw: str,
    runtime_deps: RuntimeDeps,
    state: EnvelopeState,
) -> dict[str, Any] | None:
    try:
        return parse_client_message(raw)
    except ValueError as exc:
        runtime_deps.governor.record_error(state.source_key)
        await send_error(
            ws,
            session_id=state.session_id,
            request_id=state.request_id,
            error_code=WS_ERROR_INVALID_MESSAGE,
            message=str(exc),
            reason_code="invalid_message",
        )
        return None


async def _reject_binary_frame(ws: WebSocket, runtime_deps: RuntimeDeps, state: EnvelopeState) -> None:
    runtime_deps.governor.record_error(state.source_key)
    await send_error(
        ws,
        session_id=state.session_id,
        request_id=state.request_id,
        error_code=WS_ERROR_INVALID_MESSAGE,
        message="binary frames are not supported; send JSON text",
        reason_code="binary_frame",
    )


async def run_message_loop(ws: WebSocket, state: EnvelopeState, runtime_deps: RuntimeDeps) -> None:
    """Serve one admitted connection until it closes or the governor evicts it."""
    governor = runtime_deps.governor
    tick_s = runtime_deps.settings.websocket.recv_tick_s

    try:
        while True:
            frame = await _recv_frame(ws, tick_s)
            if frame is not None and frame["type"] == "websocket.disconnect":
                return
            if not governor.contains(state.session_id):
                logger.info("Connection %s no longer tracked; leaving message loop", state.session_id)
                return
            if frame is None:
                continue

            governor.touch(state.session_id)
            state.messages += 1

            raw = frame.get("text")
            if raw is None:
                await _reject_binary_frame(ws, runtime_deps, state)
                continue

            msg = await _parse_or_send_error(ws, raw, runtime_deps, state)
            if msg is None:
                continue

            msg_type = msg["type"]
            state.request_id = msg["request_id"]

            control = await _handle_control_message(ws, msg_type, runtime_deps, state)
            if control == "close":
                return
            if control == "continue":
                continue

            await send_error(
                ws,
                session_id=state.session_id,
                request_id=state.request_id,
                error_code=WS_ERROR_INVALID_MESSAGE,
                message=f"message type '{msg_type}' is not supported",
                reason_code="unknown_message_type",
            )
    except WebSocketDisconnect:
        return


__all__ = ["run_message_loop"]
