# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures for the MCP Hello World server tests.

Everything is built in-process: no ports are bound and no subprocesses
are started.
"""

from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from mcp_hello.app import create_app
from mcp_hello.catalog import build_registry
from mcp_hello.core.config import Config
from mcp_hello.dispatch import Dispatcher
from mcp_hello.protocol import ProtocolHandler
from mcp_hello.sessions import SessionRegistry


def rpc(method: str, params: Optional[Dict[str, Any]] = None, request_id: Any = 1) -> Dict[str, Any]:
    """Build a JSON-RPC request (or a notification when request_id is None)."""
    message: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if request_id is not None:
        message["id"] = request_id
    if params is not None:
        message["params"] = params
    return message


def initialize_request(request_id: Any = 1, version: str = "2025-06-18") -> Dict[str, Any]:
    return rpc("initialize", {
        "protocolVersion": version,
        "capabilities": {},
        "clientInfo": {"name": "pytest-client", "version": "0.0.1"},
    }, request_id)


@pytest.fixture
def config():
    """HTTP config with short keep-alive for stream tests"""
    return Config(transport="http", keepalive_interval=0.05, max_sessions=5)


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def dispatcher(registry):
    return Dispatcher(registry)


@pytest.fixture
def protocol(dispatcher):
    return ProtocolHandler(dispatcher, "mcp-hello-world-server", "1.0.0")


@pytest.fixture
def sessions():
    return SessionRegistry()


@pytest.fixture
def app(config, protocol, sessions):
    return create_app(config, protocol, sessions)


@pytest.fixture
def client(app):
    """Test client without lifespan; transports stay usable"""
    return TestClient(app)
