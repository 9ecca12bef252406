# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for JSON-RPC protocol handling"""

import pytest

from conftest import initialize_request, rpc
from mcp_hello.core.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    UNKNOWN_CAPABILITY,
    ParseError,
)
from mcp_hello.protocol import (
    LATEST_PROTOCOL_VERSION,
    build_error,
    build_notification,
    build_result,
    encode_message,
    is_client_error,
    is_initialize_request,
    parse_message,
)
from mcp_hello.sessions import Session


# ============================================================================
# Builders and helpers
# ============================================================================

def test_build_result():
    assert build_result(7, {"ok": True}) == {"jsonrpc": "2.0", "id": 7, "result": {"ok": True}}


def test_build_error_omits_empty_data():
    error = build_error(1, METHOD_NOT_FOUND, "Method not found: x")
    assert error["error"] == {"code": METHOD_NOT_FOUND, "message": "Method not found: x"}


def test_build_notification():
    notification = build_notification("notifications/message", {"level": "info"})
    assert notification["method"] == "notifications/message"
    assert "id" not in notification  # Notifications don't have IDs


def test_parse_message_rejects_garbage():
    with pytest.raises(ParseError):
        parse_message(b"{not json")
    with pytest.raises(ParseError):
        parse_message(b"\xff\xfe")


def test_encode_message_is_single_line():
    line = encode_message({"jsonrpc": "2.0", "id": 1, "result": {"text": "a\nb"}})
    assert "\n" not in line


def test_is_client_error():
    assert is_client_error(build_error(1, PARSE_ERROR, "Parse error"))
    assert is_client_error(build_error(1, METHOD_NOT_FOUND, "nope"))
    assert not is_client_error(build_error(1, UNKNOWN_CAPABILITY, "Unknown tool: x"))
    assert not is_client_error(build_result(1, {}))
    assert not is_client_error(None)


def test_is_initialize_request():
    assert is_initialize_request(initialize_request())
    assert not is_initialize_request(rpc("initialize", request_id=None))
    assert not is_initialize_request(rpc("tools/list"))


# ============================================================================
# Lifecycle
# ============================================================================

@pytest.mark.asyncio
async def test_initialize_negotiates_requested_version(protocol):
    """Test a supported protocol version is echoed back"""
    session = Session("s1", "streamable-http")

    response = await protocol.handle(initialize_request(version="2025-03-26"), session)

    result = response["result"]
    assert result["protocolVersion"] == "2025-03-26"
    assert result["serverInfo"] == {"name": "mcp-hello-world-server", "version": "1.0.0"}
    assert set(result["capabilities"]) >= {"tools", "resources", "prompts"}
    assert session.protocol_version == "2025-03-26"
    assert session.client_info["name"] == "pytest-client"


@pytest.mark.asyncio
async def test_initialize_unknown_version_falls_back(protocol):
    response = await protocol.handle(initialize_request(version="1999-01-01"))
    assert response["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION


@pytest.mark.asyncio
async def test_initialized_notification_marks_session(protocol):
    session = Session("s1", "sse")

    response = await protocol.handle(rpc("notifications/initialized", request_id=None), session)

    assert response is None
    assert session.initialized is True


@pytest.mark.asyncio
async def test_cancelled_notification_tolerates_bad_params(protocol):
    message = {"jsonrpc": "2.0", "method": "notifications/cancelled", "params": "oops"}
    assert await protocol.handle(message) is None


@pytest.mark.asyncio
async def test_client_response_is_ignored(protocol):
    assert await protocol.handle({"jsonrpc": "2.0", "id": 3, "result": {}}) is None


@pytest.mark.asyncio
async def test_ping(protocol):
    response = await protocol.handle(rpc("ping", request_id="abc"))
    assert response == {"jsonrpc": "2.0", "id": "abc", "result": {}}


# ============================================================================
# Errors
# ============================================================================

@pytest.mark.asyncio
async def test_non_object_message(protocol):
    response = await protocol.handle([rpc("ping")])
    assert response["id"] is None
    assert response["error"]["code"] == INVALID_REQUEST


@pytest.mark.asyncio
async def test_wrong_jsonrpc_version(protocol):
    response = await protocol.handle({"jsonrpc": "1.0", "id": 1, "method": "ping"})
    assert response["error"]["code"] == INVALID_REQUEST


@pytest.mark.asyncio
async def test_unknown_method(protocol):
    response = await protocol.handle(rpc("tools/destroy"))
    assert response["error"]["code"] == METHOD_NOT_FOUND
    assert "tools/destroy" in response["error"]["message"]


@pytest.mark.asyncio
async def test_unknown_tool_is_error_response(protocol):
    """Test UnknownCapability becomes a JSON-RPC error, not an exception"""
    response = await protocol.handle(rpc("tools/call", {"name": "__nonexistent__", "arguments": {}}, 9))

    assert response["id"] == 9
    assert response["error"]["code"] == UNKNOWN_CAPABILITY
    assert "result" not in response


@pytest.mark.asyncio
async def test_invalid_arguments_response(protocol):
    response = await protocol.handle(rpc("tools/call", {"name": "say_hello", "arguments": {}}))
    assert response["error"]["code"] == INVALID_PARAMS
    assert response["error"]["data"] == {"field": "name"}


@pytest.mark.asyncio
async def test_malformed_params_response(protocol):
    response = await protocol.handle(rpc("resources/read", {"url": "data://users"}))
    assert response["error"]["code"] == INVALID_REQUEST


@pytest.mark.asyncio
async def test_unexpected_failure_is_internal_error(protocol, monkeypatch):
    async def broken(params):
        raise RuntimeError("boom")

    monkeypatch.setattr(protocol.dispatcher, "list_tools", broken)

    response = await protocol.handle(rpc("tools/list"))

    assert response["error"]["code"] == INTERNAL_ERROR
    assert response["error"]["message"] == "Internal error"


# ============================================================================
# Capability calls
# ============================================================================

@pytest.mark.asyncio
async def test_tools_call_round_trip(protocol):
    response = await protocol.handle(rpc("tools/call", {"name": "say_hello", "arguments": {"name": "Alice"}}))
    assert "Alice" in response["result"]["content"][0]["text"]


@pytest.mark.asyncio
async def test_prompts_get(protocol):
    response = await protocol.handle(rpc("prompts/get", {"name": "greeting", "arguments": {"name": "Bob"}}))
    assert response["result"]["description"] == "Friendly greeting for Bob"
