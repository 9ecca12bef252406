# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Event-Stream Transport

GET {sse_path} opens a long-lived event stream and allocates a session.
The first events tell the client its session id and where to POST:

    event: connected
    data: {"sessionId": "..."}

    event: endpoint
    data: /messages?sessionId=...

Client messages are POSTed to {messages_path}; the POST is acknowledged
with 202 and the JSON-RPC response is delivered on the stream.
"""

from typing import Any, AsyncIterator, Dict, Optional, Tuple

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from mcp_hello.core.config import Config
from mcp_hello.core.errors import InvalidSession, MCPServerError, TooManyConnections
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.protocol import ProtocolHandler, parse_message
from mcp_hello.sessions import Session, SessionRegistry
from mcp_hello.transports.base import (
    SESSION_HEADER,
    SSE_HEADERS,
    Transport,
    TransportState,
    iter_session_events,
    read_body,
    rpc_error_json,
)

logger = get_service_logger("transport.sse")

SESSION_KIND = "sse"
EVENTS_ALIAS_PATH = "/mcp/events"


class SSETransport(Transport):
    """Multi-session transport: one event stream plus a POST endpoint per session."""

    name = "sse"

    def __init__(self, protocol: ProtocolHandler, sessions: SessionRegistry, config: Config):
        super().__init__(protocol)
        self.sessions = sessions
        self.config = config
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.router.add_api_route(self.config.sse_path, self.handle_connect, methods=["GET"])
        if EVENTS_ALIAS_PATH not in (self.config.sse_path, self.config.mcp_path):
            self.router.add_api_route(EVENTS_ALIAS_PATH, self.handle_connect, methods=["GET"])
        self.router.add_api_route(self.config.messages_path, self.handle_message, methods=["POST"])

    async def open(self) -> None:
        self.state = TransportState.CONNECTED
        logger.info(f"SSE transport ready on {self.config.sse_path}")

    async def _on_close(self) -> None:
        for session in self.sessions:
            if session.kind == SESSION_KIND:
                self.sessions.remove(session.session_id)

    def endpoint_for(self, session_id: str) -> str:
        return f"{self.config.messages_path}?sessionId={session_id}"

    # ------------------------------------------------------------------
    # Stream
    # ------------------------------------------------------------------

    def connect(self) -> Session:
        """
        Allocate a session for a new event stream.

        Raises:
            TooManyConnections: capacity reached
        """
        self.sessions.admit(self.config.max_sessions)
        session = self.sessions.create(SESSION_KIND)
        session.stream_attached = True
        session.push_event("connected", {"sessionId": session.session_id})
        session.push_event("endpoint", self.endpoint_for(session.session_id))
        session.start_keepalive(self.config.keepalive_interval)
        log_event(logger, "SSE connection established", level="INFO", session_id=session.session_id)
        return session

    async def event_stream(self, session: Session) -> AsyncIterator[str]:
        """Frames for one connection; the session ends with the stream."""
        try:
            async for frame in iter_session_events(session):
                yield frame
        finally:
            log_event(logger, "SSE connection closed", level="INFO", session_id=session.session_id)
            self.sessions.remove(session.session_id)

    async def handle_connect(self, request: Request) -> Response:
        if self.is_closed:
            return JSONResponse(content={"error": "Server is shutting down"}, status_code=503)
        try:
            session = self.connect()
        except TooManyConnections:
            return JSONResponse(content={"error": "Too many connections"}, status_code=503)

        return StreamingResponse(
            self.event_stream(session),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, SESSION_HEADER: session.session_id},
        )

    # ------------------------------------------------------------------
    # Client messages
    # ------------------------------------------------------------------

    async def submit(self, session_id: Optional[str], body: bytes) -> Tuple[int, Dict[str, Any]]:
        """
        Handle one POSTed message for a session.

        The response is queued on the session's stream, never returned in
        the HTTP body.

        Returns:
            (HTTP status, JSON body) for the POST itself

        Raises:
            InvalidSession: no live SSE session with that id
        """
        session = self.sessions.get(session_id)
        if session is None or session.kind != SESSION_KIND:
            raise InvalidSession(session_id, message="Session not found", status_code=404)

        try:
            message = parse_message(body)
        except MCPServerError as e:
            return e.status_code, {"error": e.message}

        session.touch()
        response = await self.dispatch(message, session)

        if response is not None:
            if self.sessions.get(session.session_id) is not session:
                # Stream went away while the request was in flight
                log_event(
                    logger, "Dropping response for closed session", level="DEBUG",
                    session_id=session.session_id,
                )
            else:
                session.push(response)
        return 202, {"status": "accepted"}

    async def handle_message(self, request: Request) -> Response:
        session_id = request.query_params.get("sessionId") or request.headers.get(SESSION_HEADER)
        try:
            body = await read_body(request, self.config.max_message_bytes)
            status, content = await self.submit(session_id, body)
        except InvalidSession as e:
            return JSONResponse(content={"error": e.message}, status_code=e.status_code)
        except MCPServerError as e:
            return rpc_error_json(e)
        return JSONResponse(content=content, status_code=status)
