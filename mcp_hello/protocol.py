# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
JSON-RPC 2.0 handling for the MCP protocol.

Decodes one message, routes it to the Dispatcher and builds the response.
Errors raised below this layer are turned into JSON-RPC error objects here;
transports decide how to put them on the wire.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional, Union, TYPE_CHECKING

from mcp_hello.core.errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    BadRequest,
    MCPServerError,
    MethodNotFound,
    ParseError,
    error_details,
    sanitize_error_for_user,
)
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.dispatch import Dispatcher
from mcp_hello.models import RequestContext

if TYPE_CHECKING:
    from mcp_hello.sessions import Session

logger = get_service_logger("protocol")

JSONRPC_VERSION = "2.0"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

# method -> (dispatcher operation, capability kind)
CAPABILITY_METHODS: Dict[str, tuple] = {
    "tools/list": ("list_tools", "list"),
    "tools/call": ("call_tool", "tool"),
    "resources/list": ("list_resources", "list"),
    "resources/read": ("read_resource", "resource"),
    "prompts/list": ("list_prompts", "list"),
    "prompts/get": ("get_prompt", "prompt"),
}

# Methods that can be answered without a session
STATELESS_METHODS = frozenset(CAPABILITY_METHODS) | {"ping"}

CLIENT_ERROR_CODES = frozenset([PARSE_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND])

RequestId = Union[str, int, None]


# =============================================================================
# MESSAGE BUILDERS
# =============================================================================

def build_result(request_id: RequestId, result: Dict[str, Any]) -> Dict[str, Any]:
    """Build JSON-RPC success response"""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def build_error(
    request_id: RequestId,
    code: int,
    message: str,
    data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Build JSON-RPC error response"""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def build_notification(method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build JSON-RPC notification (no id)"""
    notification: Dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        notification["params"] = params
    return notification


def error_response(request_id: RequestId, error: MCPServerError) -> Dict[str, Any]:
    rpc_error = error.to_rpc_error()
    return build_error(request_id, rpc_error["code"], rpc_error["message"], rpc_error.get("data"))


def parse_message(raw: Union[bytes, str]) -> Any:
    """
    Decode one JSON message.

    Raises:
        ParseError: not valid UTF-8 JSON
    """
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(details={"reason": str(e)})


def encode_message(message: Dict[str, Any]) -> str:
    """Serialise a message as a single line of compact JSON."""
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False)


def is_client_error(response: Optional[Dict[str, Any]]) -> bool:
    """True when the response reports a malformed message rather than a call failure."""
    if not response or "error" not in response:
        return False
    return response["error"].get("code") in CLIENT_ERROR_CODES


def is_request(message: Any) -> bool:
    return isinstance(message, dict) and "method" in message and "id" in message


def is_initialize_request(message: Any) -> bool:
    return is_request(message) and message.get("method") == "initialize"


def message_method(message: Any) -> Optional[str]:
    if isinstance(message, dict) and isinstance(message.get("method"), str):
        return message["method"]
    return None


# =============================================================================
# HANDLER
# =============================================================================

class ProtocolHandler:
    """Routes decoded JSON-RPC messages to the Dispatcher."""

    def __init__(self, dispatcher: Dispatcher, server_name: str, server_version: str):
        self.dispatcher = dispatcher
        self.server_info = {"name": server_name, "version": server_version}
        self.capabilities = {
            "tools": {"listChanged": False},
            "resources": {"subscribe": False, "listChanged": False},
            "prompts": {"listChanged": False},
            "logging": {},
        }
        self._notifications: Dict[str, Callable[[Dict[str, Any], Optional["Session"]], None]] = {
            "notifications/initialized": self._on_initialized,
            "notifications/cancelled": self._on_cancelled,
        }

    async def handle(self, message: Any, session: Optional["Session"] = None) -> Optional[Dict[str, Any]]:
        """
        Handle one JSON-RPC message.

        Returns:
            The response to send, or None for notifications and client responses
        """
        if not isinstance(message, dict):
            return error_response(None, BadRequest("Request must be a JSON object"))

        request_id = message.get("id")
        if message.get("jsonrpc") != JSONRPC_VERSION:
            return error_response(request_id, BadRequest("Invalid JSON-RPC version", field="jsonrpc"))

        method = message.get("method")
        if method is None and ("result" in message or "error" in message):
            # Response to a server-initiated request; nothing to answer
            return None
        if not isinstance(method, str):
            return error_response(request_id, BadRequest("Missing or invalid method", field="method"))

        if "id" not in message:
            self._handle_notification(method, message, session)
            return None

        try:
            result = await self._handle_request(method, message.get("params"), session)
        except MCPServerError as e:
            log_event(
                logger, "Request failed", level="WARNING",
                method=method, session_id=getattr(session, "session_id", None), **error_details(e),
            )
            return error_response(request_id, e)
        except Exception as e:
            logger.exception(f"Unhandled error while handling {method}")
            return build_error(request_id, INTERNAL_ERROR, "Internal error", {"reason": sanitize_error_for_user(e)})

        return build_result(request_id, result)

    async def _handle_request(self, method: str, params: Any, session: Optional["Session"]) -> Dict[str, Any]:
        if method == "initialize":
            return self._initialize(params, session)
        if method == "ping":
            return {}

        route = CAPABILITY_METHODS.get(method)
        if route is None:
            raise MethodNotFound(method)

        operation, kind = route
        context = RequestContext(
            capability_kind=kind,
            session_id=getattr(session, "session_id", None),
        )
        log_event(logger, "Dispatching request", level="DEBUG", method=method, **context.as_log_fields())

        handler: Callable[[Any], Awaitable[Dict[str, Any]]] = getattr(self.dispatcher, operation)
        return await handler(params)

    def _initialize(self, params: Any, session: Optional["Session"]) -> Dict[str, Any]:
        if params is not None and not isinstance(params, dict):
            raise BadRequest("Request params must be an object", field="params")
        params = params or {}

        requested = params.get("protocolVersion")
        if requested in SUPPORTED_PROTOCOL_VERSIONS:
            version = requested
        else:
            version = LATEST_PROTOCOL_VERSION

        client_info = params.get("clientInfo") or {}
        if session is not None:
            session.protocol_version = version
            session.client_info = client_info if isinstance(client_info, dict) else {}

        log_event(
            logger, "Client initializing", level="INFO",
            requested_version=requested, negotiated_version=version,
            session_id=getattr(session, "session_id", None),
        )
        return {
            "protocolVersion": version,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info,
        }

    def _handle_notification(self, method: str, message: Dict[str, Any], session: Optional["Session"]) -> None:
        handler = self._notifications.get(method)
        if handler is None:
            logger.debug(f"Ignoring notification: {method}")
            return
        params = message.get("params")
        handler(params if isinstance(params, dict) else {}, session)

    def _on_initialized(self, params: Dict[str, Any], session: Optional["Session"]) -> None:
        if session is not None:
            session.initialized = True
        logger.debug("Client initialized")

    def _on_cancelled(self, params: Dict[str, Any], session: Optional["Session"]) -> None:
        log_event(
            logger, "Client cancelled request", level="INFO",
            cancelled_request=params.get("requestId"),
            reason=params.get("reason", "No reason provided"),
        )
