# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for the MCP server.

This package contains:
- config: Configuration management
- errors: Custom exceptions
- logging: Structured logging
"""

from mcp_hello.core.config import get_config, load_config, Config
from mcp_hello.core.errors import (
    MCPServerError,
    BadRequest,
    UnknownCapability,
    InvalidArguments,
    InvalidSession,
    TooManyConnections,
    TransportFailure,
)
from mcp_hello.core.logging import get_logger, configure_logging

__all__ = [
    "get_config",
    "load_config",
    "Config",
    "MCPServerError",
    "BadRequest",
    "UnknownCapability",
    "InvalidArguments",
    "InvalidSession",
    "TooManyConnections",
    "TransportFailure",
    "get_logger",
    "configure_logging",
]
