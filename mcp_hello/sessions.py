# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Session Registry - the authoritative store of live transport sessions.

Responsibilities:
- Create sessions with ULID ids (timestamp + randomness, never reused)
- Look sessions up by id for the HTTP transports
- Dispose of sessions exactly once: cancel the keep-alive, end the
  outbound stream, run close callbacks

All mutation goes through create() and remove(). Both run to completion on
the event loop thread without suspending, so no task can observe a
half-inserted or half-removed session.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ulid import ULID

from mcp_hello.core.errors import TooManyConnections
from mcp_hello.core.logging import get_service_logger, log_event

logger = get_service_logger("sessions")

Event = Tuple[str, Any]

# Queued after the last event; tells the stream reader to finish
END_OF_STREAM = None


class Session:
    """Server-side state for one logical client connection."""

    def __init__(self, session_id: str, kind: str):
        self.session_id = session_id
        self.kind = kind
        self.created_at = datetime.now(timezone.utc)
        self.last_activity = time.monotonic()
        self.initialized = False
        self.protocol_version: Optional[str] = None
        self.client_info: Dict[str, Any] = {}
        self.stream_attached = False
        self.closed = False
        self._outbox: "asyncio.Queue[Optional[Event]]" = asyncio.Queue()
        self._keepalive_task: Optional[asyncio.Task] = None
        self._close_callbacks: List[Callable[["Session"], None]] = []

    def __repr__(self) -> str:
        return f"Session(id={self.session_id!r}, kind={self.kind!r}, closed={self.closed})"

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_activity

    # ------------------------------------------------------------------
    # Outbound stream
    # ------------------------------------------------------------------

    def push(self, message: Dict[str, Any]) -> bool:
        """Queue a JSON-RPC message for the session's stream."""
        return self.push_event("message", message)

    def push_event(self, event: str, data: Any) -> bool:
        """Queue a named event. Returns False once the session is closed."""
        if self.closed:
            return False
        self._outbox.put_nowait((event, data))
        return True

    async def next_event(self) -> Optional[Event]:
        """Wait for the next queued event; None means the stream is over."""
        if self.closed and self._outbox.empty():
            return END_OF_STREAM
        return await self._outbox.get()

    @property
    def pending(self) -> int:
        return self._outbox.qsize()

    # ------------------------------------------------------------------
    # Keep-alive
    # ------------------------------------------------------------------

    def start_keepalive(self, interval: float) -> None:
        """Emit a ping event every interval seconds until the session closes."""
        if self.closed or self._keepalive_task is not None:
            return
        self._keepalive_task = asyncio.create_task(
            self._keepalive(interval), name=f"keepalive-{self.session_id}"
        )

    async def _keepalive(self, interval: float) -> None:
        while not self.closed:
            await asyncio.sleep(interval)
            self.push_event("ping", {"timestamp": datetime.now(timezone.utc).isoformat()})

    @property
    def keepalive_running(self) -> bool:
        return self._keepalive_task is not None and not self._keepalive_task.done()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def add_close_callback(self, callback: Callable[["Session"], None]) -> None:
        self._close_callbacks.append(callback)

    def close(self) -> bool:
        """
        Release the session's resources. Idempotent.

        Returns:
            True if this call closed the session, False if it was already closed
        """
        if self.closed:
            return False
        self.closed = True

        if self._keepalive_task is not None and not self._keepalive_task.done():
            self._keepalive_task.cancel()
        self._outbox.put_nowait(END_OF_STREAM)

        for callback in self._close_callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception(f"Close callback failed for session {self.session_id}")
        self._close_callbacks.clear()
        return True


class SessionRegistry:
    """Mapping of session id to live Session."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def ids(self) -> List[str]:
        return list(self._sessions)

    def counts_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for session in self._sessions.values():
            counts[session.kind] = counts.get(session.kind, 0) + 1
        return counts

    def admit(self, max_sessions: int) -> None:
        """
        Admission check for a new session.

        Raises:
            TooManyConnections: the registry already holds max_sessions
        """
        if len(self._sessions) >= max_sessions:
            log_event(
                logger, "Session rejected: capacity reached", level="WARNING",
                active_sessions=len(self._sessions), max_sessions=max_sessions,
            )
            raise TooManyConnections(max_sessions)

    def create(self, kind: str) -> Session:
        """Create and register a new session."""
        session_id = str(ULID())
        while session_id in self._sessions:
            session_id = str(ULID())

        session = Session(session_id, kind)
        self._sessions[session_id] = session
        log_event(
            logger, "Session created", level="INFO",
            session_id=session_id, kind=kind, active_sessions=len(self._sessions),
        )
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def remove(self, session_id: Optional[str]) -> bool:
        """
        Remove and close a session. Removing an absent id is a no-op.

        Returns:
            True if a session was removed
        """
        if not session_id:
            return False
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        session.close()
        log_event(
            logger, "Session removed", level="INFO",
            session_id=session_id, kind=session.kind, active_sessions=len(self._sessions),
        )
        return True

    def expire_idle(self, max_idle: float) -> List[str]:
        """
        Remove sessions idle for longer than max_idle seconds.

        Sessions with an open stream are skipped; the stream ending removes them.
        """
        expired = [
            s.session_id for s in self._sessions.values()
            if not s.stream_attached and s.idle_seconds() > max_idle
        ]
        for session_id in expired:
            self.remove(session_id)
            logger.info(f"Cleaned up expired session: {session_id}")
        return expired

    def close_all(self) -> int:
        """
        Close every session. A failing session is logged and skipped.

        Returns:
            Number of sessions removed
        """
        removed = 0
        for session_id in list(self._sessions):
            try:
                if self.remove(session_id):
                    removed += 1
            except Exception:
                logger.exception(f"Failed to close session {session_id}")
                self._sessions.pop(session_id, None)
        return removed
