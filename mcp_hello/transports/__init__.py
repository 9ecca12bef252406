# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Transports bind the protocol handler to a connection type:
- stdio: newline-delimited JSON over stdin/stdout
- streamable_http: POST/GET/DELETE on one endpoint with Mcp-Session-Id
- sse: long-lived event stream plus a POST endpoint per session
"""

from mcp_hello.transports.base import Transport, TransportState
from mcp_hello.transports.sse import SSETransport
from mcp_hello.transports.stdio import StdioTransport
from mcp_hello.transports.streamable_http import StreamableHTTPTransport

__all__ = [
    "Transport",
    "TransportState",
    "SSETransport",
    "StdioTransport",
    "StreamableHTTPTransport",
]
