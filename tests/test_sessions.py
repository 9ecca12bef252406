# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for Session and SessionRegistry"""

import asyncio

import pytest
from ulid import ULID

from mcp_hello.core.errors import TooManyConnections
from mcp_hello.sessions import END_OF_STREAM, Session, SessionRegistry


# ============================================================================
# Registry lifecycle
# ============================================================================

@pytest.mark.asyncio
async def test_create_get_remove(sessions):
    """Test create -> get -> remove -> not found"""
    session = sessions.create("streamable-http")

    assert sessions.get(session.session_id) is session
    assert session.session_id in sessions
    assert len(sessions) == 1

    assert sessions.remove(session.session_id) is True
    assert sessions.get(session.session_id) is None
    assert session.closed is True


@pytest.mark.asyncio
async def test_remove_twice_is_noop(sessions):
    session = sessions.create("sse")

    assert sessions.remove(session.session_id) is True
    assert sessions.remove(session.session_id) is False
    assert sessions.remove(None) is False


@pytest.mark.asyncio
async def test_session_ids_are_ulids(sessions):
    ids = [sessions.create("sse").session_id for _ in range(5)]

    assert len(set(ids)) == 5
    for session_id in ids:
        assert str(ULID.from_str(session_id)) == session_id


def test_get_missing(sessions):
    assert sessions.get("01ARZ3NDEKTSV4RRFFQ69G5FAV") is None
    assert sessions.get("") is None
    assert sessions.get(None) is None


@pytest.mark.asyncio
async def test_admission_control(sessions):
    sessions.create("sse")
    sessions.create("sse")

    sessions.admit(3)
    with pytest.raises(TooManyConnections) as exc_info:
        sessions.admit(2)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_counts_by_kind(sessions):
    sessions.create("sse")
    sessions.create("streamable-http")
    sessions.create("sse")

    assert sessions.counts_by_kind() == {"sse": 2, "streamable-http": 1}


@pytest.mark.asyncio
async def test_close_all_continues_past_failures(sessions):
    """Test a failing close callback does not stop the rest"""
    first = sessions.create("sse")
    second = sessions.create("sse")
    seen = []

    def failing(session):
        raise RuntimeError("callback failed")

    first.add_close_callback(failing)
    second.add_close_callback(seen.append)

    assert sessions.close_all() == 2
    assert len(sessions) == 0
    assert seen == [second]
    assert first.closed and second.closed


@pytest.mark.asyncio
async def test_expire_idle(sessions):
    stale = sessions.create("streamable-http")
    fresh = sessions.create("streamable-http")
    stale.last_activity -= 120

    expired = sessions.expire_idle(60)

    assert expired == [stale.session_id]
    assert sessions.get(fresh.session_id) is fresh
    assert stale.closed


@pytest.mark.asyncio
async def test_expire_idle_skips_attached_streams(sessions):
    """Test a session with an open stream is not expired, however old its last activity"""
    streaming = sessions.create("sse")
    streaming.stream_attached = True
    abandoned = sessions.create("streamable-http")
    streaming.last_activity -= 7200
    abandoned.last_activity -= 7200

    expired = sessions.expire_idle(3600)

    assert expired == [abandoned.session_id]
    assert sessions.get(streaming.session_id) is streaming
    assert not streaming.closed


# ============================================================================
# Session outbox and keep-alive
# ============================================================================

@pytest.mark.asyncio
async def test_events_delivered_in_order():
    session = Session("s1", "sse")
    session.push({"id": 1})
    session.push_event("endpoint", "/messages?sessionId=s1")
    session.close()

    assert await session.next_event() == ("message", {"id": 1})
    assert await session.next_event() == ("endpoint", "/messages?sessionId=s1")
    assert await session.next_event() is END_OF_STREAM
    assert await session.next_event() is END_OF_STREAM


@pytest.mark.asyncio
async def test_push_after_close_rejected():
    session = Session("s1", "sse")
    session.close()
    assert session.push({"id": 1}) is False


@pytest.mark.asyncio
async def test_close_is_idempotent():
    session = Session("s1", "sse")
    calls = []
    session.add_close_callback(calls.append)

    assert session.close() is True
    assert session.close() is False
    assert calls == [session]


@pytest.mark.asyncio
async def test_keepalive_pings_then_stops_on_close():
    """Test keep-alive emits pings and never outlives the session"""
    session = Session("s1", "sse")
    session.start_keepalive(0.01)

    event = await asyncio.wait_for(session.next_event(), timeout=1.0)
    assert event[0] == "ping"
    assert "timestamp" in event[1]

    session.close()
    await asyncio.sleep(0.05)
    assert session.keepalive_running is False


@pytest.mark.asyncio
async def test_next_event_wakes_on_close():
    session = Session("s1", "streamable-http")
    waiter = asyncio.create_task(session.next_event())
    await asyncio.sleep(0)

    session.close()

    assert await asyncio.wait_for(waiter, timeout=1.0) is END_OF_STREAM
