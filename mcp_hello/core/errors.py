# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for the MCP server.

All exceptions inherit from MCPServerError for consistent error handling.
Each error carries both an HTTP status (used by the HTTP transports) and a
JSON-RPC error code (used on every transport).
"""

from typing import Optional, Any


# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Implementation-defined server error codes
CAPACITY_ERROR = -32000
SESSION_ERROR = -32001
UNKNOWN_CAPABILITY = -32002


class MCPServerError(Exception):
    """Base exception for all MCP server errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: int = INTERNAL_ERROR,
        details: Optional[dict] = None
    ):
        """
        Initialize MCP server error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            code: JSON-RPC error code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_rpc_error(self) -> dict:
        """Convert error to a JSON-RPC error object."""
        error: dict = {"code": self.code, "message": self.message}
        if self.details:
            error["data"] = self.details
        return error


class ParseError(MCPServerError):
    """Message is not valid JSON."""

    def __init__(self, message: str = "Parse error", details: Optional[dict] = None):
        super().__init__(message, status_code=400, code=PARSE_ERROR, details=details)


class BadRequest(MCPServerError):
    """Malformed request envelope (missing or wrong-typed required field)."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize bad request error.

        Args:
            message: Error message
            field: Envelope field that failed validation
            details: Additional error details
        """
        super().__init__(message, status_code=400, code=INVALID_REQUEST, details=details)
        self.field = field


class MethodNotFound(MCPServerError):
    """JSON-RPC method is not implemented."""

    def __init__(self, method: str):
        super().__init__(
            f"Method not found: {method}",
            status_code=400,
            code=METHOD_NOT_FOUND,
        )
        self.method = method


class UnknownCapability(MCPServerError):
    """Tool, resource or prompt is not registered."""

    def __init__(self, kind: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize unknown capability error.

        Args:
            kind: Capability kind ("tool", "resource", "prompt")
            identifier: Name or URI that was requested
            details: Additional error details
        """
        message = f"Unknown {kind}: {identifier}"
        super().__init__(message, status_code=404, code=UNKNOWN_CAPABILITY, details=details)
        self.kind = kind
        self.identifier = identifier


class InvalidArguments(MCPServerError):
    """Arguments failed validation against the declared schema."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        if field and details is None:
            details = {"field": field}
        super().__init__(message, status_code=400, code=INVALID_PARAMS, details=details)
        self.field = field


class InvalidSession(MCPServerError):
    """Session id absent, unknown or expired."""

    def __init__(
        self,
        session_id: Optional[str],
        message: Optional[str] = None,
        status_code: int = 400
    ):
        if message is None:
            message = "Missing session ID" if not session_id else f"Invalid or unknown session ID: {session_id}"
        super().__init__(message, status_code=status_code, code=SESSION_ERROR)
        self.session_id = session_id


class TooManyConnections(MCPServerError):
    """Admission control rejected a new session."""

    def __init__(self, limit: int):
        super().__init__(
            "Too many connections",
            status_code=503,
            code=CAPACITY_ERROR,
            details={"max_sessions": limit},
        )
        self.limit = limit


class TransportFailure(MCPServerError):
    """Underlying I/O failed (socket reset, write failure)."""

    def __init__(self, message: str, session_id: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=500, code=INTERNAL_ERROR, details=details)
        self.session_id = session_id


class ConfigurationError(MCPServerError):
    """Configuration error."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize configuration error.

        Args:
            message: Configuration error message
            config_file: Configuration file path
            details: Additional error details
        """
        super().__init__(message, status_code=500, details=details)
        self.config_file = config_file


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.
    Removes stack traces and sensitive information.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip()

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg


def error_details(error: Any) -> dict:
    """Extract a loggable summary from any exception."""
    if isinstance(error, MCPServerError):
        return {"error": error.__class__.__name__, "error_message": error.message, "code": error.code}
    return {"error": error.__class__.__name__, "error_message": str(error)}


class PayloadTooLarge(MCPServerError):
    """Message exceeds the configured size limit."""

    def __init__(self, limit: int):
        super().__init__(
            "Message exceeds maximum size",
            status_code=413,
            code=INVALID_REQUEST,
            details={"max_message_bytes": limit},
        )
        self.limit = limit
