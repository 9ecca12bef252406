# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Stream Transport
Newline-delimited JSON-RPC over standard input / standard output.

One implicit session lives as long as the process. Lines are handled
strictly one at a time, so responses leave in the order requests arrived.
Nothing but protocol messages is ever written to the output stream.
"""

import asyncio
import sys
from typing import Any, BinaryIO, Dict, Optional

from mcp_hello.core.errors import BadRequest, ParseError
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.protocol import ProtocolHandler, encode_message, error_response, parse_message
from mcp_hello.sessions import Session
from mcp_hello.transports.base import Transport, TransportState

logger = get_service_logger("transport.stdio")

STDIO_SESSION_ID = "stdio"


async def connect_stdin(limit: int) -> asyncio.StreamReader:
    """Wrap the process's standard input in an asyncio StreamReader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class StdioTransport(Transport):
    """Single-session transport over a bidirectional byte stream."""

    name = "stdio"

    def __init__(
        self,
        protocol: ProtocolHandler,
        reader: Optional[asyncio.StreamReader] = None,
        output: Optional[BinaryIO] = None,
        max_message_bytes: int = 4 * 1024 * 1024
    ):
        super().__init__(protocol)
        self._reader = reader
        self._output = output
        self.max_message_bytes = max_message_bytes
        self.session = Session(STDIO_SESSION_ID, "stdio")
        self._task: Optional[asyncio.Task] = None
        self.messages_handled = 0

    async def open(self) -> None:
        if self.state is not TransportState.UNCONNECTED:
            raise RuntimeError(f"stdio transport cannot be opened from state {self.state.value}")

        if self._reader is None:
            self._reader = await connect_stdin(self.max_message_bytes)
        if self._output is None:
            self._output = sys.stdout.buffer

        self.state = TransportState.CONNECTED
        self._task = asyncio.create_task(self._read_loop(), name="stdio-reader")
        logger.info("STDIO transport connected")

    async def wait_closed(self) -> None:
        """Wait until the input reaches EOF or the transport is closed."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _read_loop(self) -> None:
        try:
            while self.state is TransportState.CONNECTED:
                line = await self._read_line()
                if line is None:
                    self._write(error_response(None, BadRequest(
                        "Message exceeds maximum size",
                        details={"max_message_bytes": self.max_message_bytes},
                    )))
                    continue

                if not line:
                    logger.info("STDIO input closed")
                    break

                line = line.strip()
                if line:
                    await self._handle_line(line)
        except (ConnectionError, OSError) as e:
            log_event(logger, "STDIO transport failure", level="ERROR", reason=str(e))
        finally:
            await self.close()

    async def _read_line(self) -> Optional[bytes]:
        """
        Read the next newline-terminated line.

        Returns:
            The line, b"" at EOF, or None if the line exceeded the reader's
            limit and was discarded up to and including its newline
        """
        try:
            return await self._reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            # EOF; a final line without newline is still a line
            return e.partial
        except asyncio.LimitOverrunError as e:
            await self._reader.readexactly(e.consumed)
            await self._discard_rest_of_line()
            return None

    async def _discard_rest_of_line(self) -> None:
        while True:
            try:
                await self._reader.readuntil(b"\n")
                return
            except asyncio.LimitOverrunError as e:
                await self._reader.readexactly(e.consumed)
            except asyncio.IncompleteReadError:
                return

    async def _handle_line(self, line: bytes) -> None:
        try:
            message: Any = parse_message(line)
        except ParseError as e:
            self._write(error_response(None, e))
            return

        response = await self.dispatch(message, self.session)
        self.messages_handled += 1
        if response is not None and self.state is TransportState.CONNECTED:
            self._write(response)

    def _write(self, message: Dict[str, Any]) -> None:
        self._output.write((encode_message(message) + "\n").encode("utf-8"))
        self._output.flush()

    async def _on_close(self) -> None:
        self.session.close()
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        log_event(logger, "STDIO transport closed", level="INFO", messages_handled=self.messages_handled)
