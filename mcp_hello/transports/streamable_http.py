# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Streaming HTTP Transport

POST {mcp_path} is classified as:
1. known Mcp-Session-Id header  -> continue that session
2. initialize request           -> admit, create a session, return its id
3. known capability method      -> stateless one-shot call
4. anything else                -> 400 Bad Request

GET opens the server-to-client push stream of an existing session and
DELETE terminates one. When the push stream's connection goes away the
session is removed even if the client never sent DELETE.
"""

from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from mcp_hello.core.config import Config
from mcp_hello.core.errors import (
    BadRequest,
    InvalidSession,
    MCPServerError,
    TooManyConnections,
    TransportFailure,
)
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.protocol import (
    STATELESS_METHODS,
    ProtocolHandler,
    error_response,
    is_client_error,
    is_initialize_request,
    message_method,
    parse_message,
)
from mcp_hello.sessions import Session, SessionRegistry
from mcp_hello.transports.base import (
    SESSION_HEADER,
    SSE_HEADERS,
    Transport,
    TransportState,
    format_sse,
    iter_session_events,
    read_body,
    rpc_error_json,
)

logger = get_service_logger("transport.http")

SESSION_KIND = "streamable-http"


def wants_event_stream(request: Request) -> bool:
    """Client accepts text/event-stream but not plain JSON."""
    accept = request.headers.get("accept", "")
    return "text/event-stream" in accept and "application/json" not in accept


class StreamableHTTPTransport(Transport):
    """Multi-session transport over discrete HTTP requests."""

    name = "streamable-http"

    def __init__(self, protocol: ProtocolHandler, sessions: SessionRegistry, config: Config):
        super().__init__(protocol)
        self.sessions = sessions
        self.config = config
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self) -> None:
        path = self.config.mcp_path
        self.router.add_api_route(path, self.handle_post, methods=["POST"])
        self.router.add_api_route(path, self.handle_get, methods=["GET"])
        self.router.add_api_route(path, self.handle_delete, methods=["DELETE"])

    async def open(self) -> None:
        self.state = TransportState.CONNECTED
        logger.info(f"Streaming HTTP transport ready on {self.config.mcp_path}")

    async def _on_close(self) -> None:
        for session in self.sessions:
            if session.kind == SESSION_KIND:
                self.sessions.remove(session.session_id)

    # ------------------------------------------------------------------
    # Session lookup
    # ------------------------------------------------------------------

    def _find_session(self, session_id: Optional[str]) -> Optional[Session]:
        session = self.sessions.get(session_id)
        if session is None or session.kind != SESSION_KIND:
            return None
        return session

    def require_session(self, session_id: Optional[str]) -> Session:
        """
        Raises:
            InvalidSession: id missing or not a live session of this transport
        """
        session = self._find_session(session_id)
        if session is None:
            raise InvalidSession(session_id)
        return session

    # ------------------------------------------------------------------
    # POST
    # ------------------------------------------------------------------

    async def handle_post(self, request: Request) -> Response:
        if self.is_closed:
            return rpc_error_json(TransportFailure("Server is shutting down"), status_code=503)

        try:
            body = await read_body(request, self.config.max_message_bytes)
            message = parse_message(body)
        except MCPServerError as e:
            return rpc_error_json(e)

        session_id = request.headers.get(SESSION_HEADER)
        session = self._find_session(session_id)

        if session is not None:
            session.touch()
            return await self._respond(request, message, session)

        if is_initialize_request(message):
            return await self._initialize(request, message)

        if message_method(message) in STATELESS_METHODS and "id" in message:
            if session_id:
                log_event(logger, "Unknown session, serving statelessly", level="DEBUG", session_id=session_id)
            return await self._respond(request, message, None)

        request_id = message.get("id") if isinstance(message, dict) else None
        if session_id:
            return rpc_error_json(InvalidSession(session_id), request_id)
        return rpc_error_json(
            BadRequest("Expected an initialize request, a session id, or a capability request"),
            request_id,
        )

    async def _initialize(self, request: Request, message: Dict[str, Any]) -> Response:
        try:
            self.sessions.admit(self.config.max_sessions)
        except TooManyConnections as e:
            return rpc_error_json(e, message.get("id"))

        session = self.sessions.create(SESSION_KIND)
        response = await self.dispatch(message, session)

        if response is None or "error" in response:
            self.sessions.remove(session.session_id)
            return JSONResponse(content=response, status_code=400)

        if self.sessions.get(session.session_id) is not session:
            # Torn down (e.g. shutdown) while the handshake ran
            return rpc_error_json(InvalidSession(session.session_id), message.get("id"))

        log_event(
            logger, "Streaming session initialized", level="INFO",
            session_id=session.session_id, protocol_version=session.protocol_version,
        )
        return self._reply(request, response, 200, session.session_id)

    async def _respond(self, request: Request, message: Any, session: Optional[Session]) -> Response:
        response = await self.dispatch(message, session)
        session_id = session.session_id if session is not None else None
        if response is None:
            return Response(status_code=202)
        status = 400 if is_client_error(response) else 200
        return self._reply(request, response, status, session_id)

    def _reply(
        self,
        request: Request,
        response: Dict[str, Any],
        status: int,
        session_id: Optional[str]
    ) -> Response:
        headers = {SESSION_HEADER: session_id} if session_id else {}
        if wants_event_stream(request):
            async def single_event() -> AsyncIterator[str]:
                yield format_sse("message", response)

            return StreamingResponse(
                single_event(),
                status_code=status,
                media_type="text/event-stream",
                headers={**SSE_HEADERS, **headers},
            )
        return JSONResponse(content=response, status_code=status, headers=headers)

    # ------------------------------------------------------------------
    # GET / DELETE
    # ------------------------------------------------------------------

    async def handle_get(self, request: Request) -> Response:
        try:
            session = self.require_session(request.headers.get(SESSION_HEADER))
        except InvalidSession as e:
            return rpc_error_json(e)

        if session.stream_attached:
            return JSONResponse(
                content=error_response(None, BadRequest("Session already has an open stream")),
                status_code=409,
            )

        self.attach_stream(session)
        return StreamingResponse(
            self.event_stream(session),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, SESSION_HEADER: session.session_id},
        )

    def attach_stream(self, session: Session) -> None:
        session.stream_attached = True
        session.start_keepalive(self.config.keepalive_interval)
        log_event(logger, "Push stream opened", level="INFO", session_id=session.session_id)

    async def event_stream(self, session: Session) -> AsyncIterator[str]:
        """Push stream for one session; its end removes the session."""
        try:
            async for frame in iter_session_events(session, ping_as_comment=True):
                yield frame
        finally:
            log_event(logger, "Push stream closed", level="INFO", session_id=session.session_id)
            self.sessions.remove(session.session_id)

    async def handle_delete(self, request: Request) -> Response:
        session_id = request.headers.get(SESSION_HEADER)
        try:
            session = self.require_session(session_id)
        except InvalidSession as e:
            return rpc_error_json(e)

        self.sessions.remove(session.session_id)
        return JSONResponse(content={"sessionId": session.session_id, "terminated": True})

    # ------------------------------------------------------------------
    # Server-initiated messages
    # ------------------------------------------------------------------

    def notify(self, session_id: str, message: Dict[str, Any]) -> bool:
        """
        Queue a server-initiated message on a session's push stream.

        Raises:
            InvalidSession: no such session
        """
        session = self.require_session(session_id)
        return session.push(message)
