# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application for the HTTP transport.
Mounts the Streaming HTTP and SSE routers side by side over one shared
session registry, plus a health endpoint.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mcp_hello.core.config import Config
from mcp_hello.core.errors import MCPServerError
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.protocol import ProtocolHandler
from mcp_hello.sessions import SessionRegistry
from mcp_hello.transports.base import SESSION_HEADER, Transport, rpc_error_json
from mcp_hello.transports.sse import SSETransport
from mcp_hello.transports.streamable_http import StreamableHTTPTransport

logger = get_service_logger("app")

LOCAL_HOSTS = ["localhost", "127.0.0.1", "::1"]


def is_valid_origin(origin: str, allowed_origins: List[str]) -> bool:
    """Validate Origin header to prevent DNS rebinding attacks"""
    try:
        hostname = urlparse(origin).hostname
    except ValueError:
        return False

    allowed_hosts = list(LOCAL_HOSTS)
    for allowed in allowed_origins:
        if allowed == "*":
            return True
        parsed = urlparse(allowed)
        allowed_hosts.append(parsed.hostname or allowed)
    return hostname in allowed_hosts


def create_app(
    config: Config,
    protocol: ProtocolHandler,
    sessions: Optional[SessionRegistry] = None
) -> FastAPI:
    """
    Build the HTTP application.

    Both transports are reachable on the same port; the transports list is
    exposed on app.state so the server can close them on shutdown.
    """
    sessions = sessions if sessions is not None else SessionRegistry()
    streamable = StreamableHTTPTransport(protocol, sessions, config)
    sse = SSETransport(protocol, sessions, config)
    transports: List[Transport] = [streamable, sse]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for transport in transports:
            await transport.open()
        logger.info(f"{config.server_name} v{config.server_version} listening on {config.base_url}")
        yield
        for transport in transports:
            await transport.close()

    app = FastAPI(
        title=config.server_name,
        description="MCP Hello World server (Streaming HTTP and SSE transports)",
        version=config.server_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.sessions = sessions
    app.state.transports = transports
    app.state.streamable = streamable
    app.state.sse = sse

    if config.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins or ["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=[SESSION_HEADER],
        )

    @app.middleware("http")
    async def check_origin(request: Request, call_next):
        origin = request.headers.get("origin")
        if config.validate_origin and origin and not is_valid_origin(origin, config.allowed_origins):
            log_event(logger, "Rejected request origin", level="WARNING", origin=origin, path=request.url.path)
            return JSONResponse(content={"error": "Invalid Origin header"}, status_code=403)

        start = time.monotonic()
        response = await call_next(request)
        log_event(
            logger, "HTTP request", level="DEBUG",
            method=request.method, path=request.url.path, status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return response

    @app.exception_handler(MCPServerError)
    async def mcp_error_handler(request: Request, exc: MCPServerError):
        return rpc_error_json(exc)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "connections": len(sessions),
            "sessions": sessions.counts_by_kind(),
        }

    app.include_router(streamable.router)
    app.include_router(sse.router)
    return app
