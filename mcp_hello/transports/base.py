# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Transport interface shared by the stdio, Streaming HTTP and SSE transports,
plus the HTTP helpers the two HTTP transports have in common.
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from mcp_hello.core.errors import INTERNAL_ERROR, MCPServerError, PayloadTooLarge, sanitize_error_for_user
from mcp_hello.core.logging import get_service_logger
from mcp_hello.protocol import ProtocolHandler, build_error, error_response
from mcp_hello.sessions import END_OF_STREAM, Session

logger = get_service_logger("transport")

SESSION_HEADER = "Mcp-Session-Id"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class TransportState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class Transport(ABC):
    """
    Binds the protocol handler to one kind of connection.

    Subclasses implement open() and _on_close(); close() is idempotent and
    runs _on_close() exactly once.
    """

    name: str = "transport"

    def __init__(self, protocol: ProtocolHandler):
        self.protocol = protocol
        self.state = TransportState.UNCONNECTED

    @property
    def is_closed(self) -> bool:
        return self.state is TransportState.CLOSED

    @abstractmethod
    async def open(self) -> None:
        """Attach to the underlying connection(s)."""

    async def close(self) -> None:
        if self.state is TransportState.CLOSED:
            return
        self.state = TransportState.CLOSED
        logger.info(f"Closing {self.name} transport")
        await self._on_close()

    async def _on_close(self) -> None:
        """Release transport resources."""

    async def dispatch(self, message: Any, session: Optional[Session] = None) -> Optional[Dict[str, Any]]:
        """Run one message through the protocol handler; never raises."""
        try:
            return await self.protocol.handle(message, session)
        except Exception as e:
            logger.exception(f"{self.name} transport failed to handle message")
            request_id = message.get("id") if isinstance(message, dict) else None
            return build_error(request_id, INTERNAL_ERROR, "Internal error", {"reason": sanitize_error_for_user(e)})


# =============================================================================
# HTTP HELPERS
# =============================================================================

async def read_body(request: Request, max_bytes: int) -> bytes:
    """
    Read a request body, enforcing the message size limit.

    Raises:
        PayloadTooLarge: declared or actual size exceeds max_bytes
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLarge(max_bytes)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise PayloadTooLarge(max_bytes)
    return bytes(body)


def rpc_error_json(
    error: MCPServerError,
    request_id: Any = None,
    status_code: Optional[int] = None
) -> JSONResponse:
    """JSON-RPC error body with the error's HTTP status."""
    return JSONResponse(
        content=error_response(request_id, error),
        status_code=status_code or error.status_code,
    )


def format_sse(event: str, data: Any, event_id: Optional[str] = None) -> str:
    """Render one Server-Sent Event frame. Strings are sent verbatim."""
    if isinstance(data, str):
        payload = data
    else:
        payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event}")
    for line in payload.splitlines() or [""]:
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


def format_sse_comment(text: str) -> str:
    return f": {text}\n\n"


async def iter_session_events(session: Session, ping_as_comment: bool = False) -> AsyncIterator[str]:
    """Yield a session's queued events as SSE frames until it closes."""
    while True:
        event = await session.next_event()
        if event is END_OF_STREAM:
            return
        name, data = event
        if name == "ping" and ping_as_comment:
            yield format_sse_comment(f"ping {data.get('timestamp', '')}")
        else:
            yield format_sse(name, data)
