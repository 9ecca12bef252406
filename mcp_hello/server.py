# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP server lifecycle.

Wires registry -> dispatcher -> protocol handler -> sessions -> transport,
runs until EOF (stdio) or a shutdown signal, then tears everything down
exactly once.
"""

import asyncio
import signal
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import uvicorn

from mcp_hello.app import create_app
from mcp_hello.catalog import build_registry
from mcp_hello.core.config import Config
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.dispatch import Dispatcher
from mcp_hello.protocol import ProtocolHandler
from mcp_hello.sessions import SessionRegistry
from mcp_hello.transports.base import Transport
from mcp_hello.transports.stdio import StdioTransport

logger = get_service_logger("server")

EXIT_OK = 0
EXIT_FATAL = 1


class EmbeddedUvicornServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to MCPServer."""

    @contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass


class MCPServer:
    """Owns every long-lived object of one server process."""

    def __init__(self, config: Config):
        self.config = config
        self.registry = build_registry(validate_arguments=config.validate_arguments)
        self.dispatcher = Dispatcher(self.registry)
        self.protocol = ProtocolHandler(self.dispatcher, config.server_name, config.server_version)
        self.sessions = SessionRegistry()
        self.transports: List[Transport] = []
        self.exit_code = EXIT_OK

        self._stop: Optional[asyncio.Event] = None
        self._shutdown_started = False
        self._uvicorn: Optional[EmbeddedUvicornServer] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._sweeper_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """Serve until EOF, a signal or a fatal error. Returns the exit code."""
        loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        self._install_signal_handlers(loop)
        loop.set_exception_handler(self._on_loop_error)

        log_event(
            logger, "Starting MCP server", level="INFO",
            server_name=self.config.server_name, version=self.config.server_version,
            transport=self.config.transport,
        )

        waiter: Optional[asyncio.Task] = None
        try:
            if self.config.is_http:
                waiter = await self._start_http()
            else:
                waiter = await self._start_stdio()

            stop_waiter = asyncio.create_task(self._stop.wait(), name="shutdown-wait")
            await asyncio.wait({waiter, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
            stop_waiter.cancel()

            if waiter.done() and not waiter.cancelled() and waiter.exception() is not None:
                log_event(logger, "Transport failed", level="ERROR", reason=str(waiter.exception()))
                self.exit_code = EXIT_FATAL
        finally:
            await self.shutdown()
            if waiter is not None:
                await asyncio.gather(waiter, return_exceptions=True)
            self._remove_signal_handlers(loop)

        return self.exit_code

    async def _start_stdio(self) -> asyncio.Task:
        transport = StdioTransport(self.protocol, max_message_bytes=self.config.max_message_bytes)
        self.transports = [transport]
        await transport.open()
        return asyncio.create_task(transport.wait_closed(), name="stdio-wait")

    async def _start_http(self) -> asyncio.Task:
        app = create_app(self.config, self.protocol, self.sessions)
        self.transports = list(app.state.transports)

        uv_config = uvicorn.Config(
            app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
            log_config=None,
            timeout_graceful_shutdown=self.config.shutdown_timeout,
        )
        self._uvicorn = EmbeddedUvicornServer(uv_config)
        self._serve_task = asyncio.create_task(self._uvicorn.serve(), name="uvicorn")

        if self.config.session_idle_timeout > 0:
            self._sweeper_task = asyncio.create_task(self._sweep_idle_sessions(), name="session-sweeper")
        return self._serve_task

    async def _sweep_idle_sessions(self) -> None:
        """Periodically clean up idle sessions"""
        while True:
            await asyncio.sleep(self.config.session_sweep_interval)
            expired = self.sessions.expire_idle(self.config.session_idle_timeout)
            if expired:
                log_event(logger, "Expired idle sessions", level="INFO", count=len(expired))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def request_shutdown(self, reason: str = "requested") -> None:
        """Ask run() to stop. Safe to call from signal handlers, repeatedly."""
        log_event(logger, "Shutdown requested", level="INFO", reason=reason)
        if self._stop is not None:
            self._stop.set()

    async def shutdown(self) -> None:
        """
        Stop accepting connections, close every session and the transport.

        Idempotent: only the first call does any work.
        """
        if self._shutdown_started:
            return
        self._shutdown_started = True
        logger.info("Shutting down MCP server")

        if self._uvicorn is not None:
            self._uvicorn.should_exit = True

        closed = self.sessions.close_all()

        for transport in self.transports:
            try:
                await transport.close()
            except Exception:
                logger.exception(f"Failed to close {transport.name} transport")

        if self._sweeper_task is not None:
            self._sweeper_task.cancel()
            await asyncio.gather(self._sweeper_task, return_exceptions=True)

        if self._serve_task is not None and not self._serve_task.done():
            try:
                await asyncio.wait_for(asyncio.shield(self._serve_task), self.config.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning("HTTP server did not stop in time, forcing exit")
                self._uvicorn.force_exit = True
                await asyncio.gather(self._serve_task, return_exceptions=True)

        log_event(logger, "MCP server stopped", level="INFO", sessions_closed=closed)

    # ------------------------------------------------------------------
    # Signals and fatal errors
    # ------------------------------------------------------------------

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread
                logger.debug(f"Signal handler for {sig.name} not installed")

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    def _on_loop_error(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exception = context.get("exception")
        log_event(
            logger, "Fatal error", level="CRITICAL",
            reason=context.get("message"), error=repr(exception) if exception else None,
        )
        self.exit_code = EXIT_FATAL
        self.request_shutdown("fatal error")
