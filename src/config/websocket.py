"""WebSocket protocol configuration and constants."""

from __future__ import annotations

WS_ENDPOINT_PATH = "/ws"

# Envelope keys
WS_KEY_TYPE = "type"
WS_KEY_SESSION_ID = "session_id"
WS_KEY_REQUEST_ID = "request_id"
WS_KEY_PAYLOAD = "payload"

WS_UNKNOWN_SESSION_ID = "unknown"
WS_UNKNOWN_REQUEST_ID = "unknown"

# Close codes
WS_CLOSE_CLIENT_REQUEST_CODE = 1000
WS_CLOSE_IDLE_CODE = 1000
WS_CLOSE_SERVER_CLEANUP_CODE = 1001
WS_CLOSE_EMERGENCY_CODE = 1008
WS_CLOSE_BUSY_CODE = 4002

WS_CLOSE_IDLE_REASON = "idle timeout"
WS_CLOSE_EMERGENCY_REASON = "emergency cleanup"
WS_CLOSE_SERVER_CLEANUP_REASON = "server cleanup"

# Receive loop: how long a single receive waits before re-checking that the
# governor still tracks the connection.
ENV_WS_RECV_TICK_S = "WS_RECV_TICK_S"
DEFAULT_WS_RECV_TICK_S = 5.0

# Use the first X-Forwarded-For hop as the source key (only behind a trusted proxy).
ENV_WS_TRUST_FORWARDED_FOR = "WS_TRUST_FORWARDED_FOR"
DEFAULT_WS_TRUST_FORWARDED_FOR = False

# Errors (payload.code values)
WS_ERROR_SERVER_AT_CAPACITY = "server_at_capacity"
WS_ERROR_SOURCE_LIMIT = "source_limit_exceeded"
WS_ERROR_RATE_LIMITED = "rate_limited"
WS_ERROR_INVALID_MESSAGE = "invalid_message"
WS_ERROR_INTERNAL = "internal_error"

__all__ = [
    "DEFAULT_WS_RECV_TICK_S",
    "DEFAULT_WS_TRUST_FORWARDED_FOR",
    "ENV_WS_RECV_TICK_S",
    "ENV_WS_TRUST_FORWARDED_FOR",
    "WS_CLOSE_BUSY_CODE",
    "WS_CLOSE_CLIENT_REQUEST_CODE",
    "WS_CLOSE_EMERGENCY_CODE",
    "WS_CLOSE_EMERGENCY_REASON",
    "WS_CLOSE_IDLE_CODE",
    "WS_CLOSE_IDLE_REASON",
    "WS_CLOSE_SERVER_CLEANUP_CODE",
    "WS_CLOSE_SERVER_CLEANUP_REASON",
    "WS_ENDPOINT_PATH",
    "WS_ERROR_INTERNAL",
    "WS_ERROR_INVALID_MESSAGE",
    "WS_ERROR_RATE_LIMITED",
    "WS_ERROR_SERVER_AT_CAPACITY",
    "WS_ERROR_SOURCE_LIMIT",
    "WS_KEY_PAYLOAD",
    "WS_KEY_REQUEST_ID",
    "WS_KEY_SESSION_ID",
    "WS_KEY_TYPE",
    "WS_UNKNOWN_REQUEST_ID",
    "WS_UNKNOWN_SESSION_ID",
]
