# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Capability Registry
Holds the tool, resource and prompt catalog and executes entries by name.

Entries are added to a registration table at startup; the table is
read-only once the server is running.
"""

import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from mcp_hello.core.errors import ConfigurationError, MCPServerError, UnknownCapability, sanitize_error_for_user
from mcp_hello.core.logging import get_service_logger, log_event
from mcp_hello.models import (
    PromptDefinition,
    PromptResult,
    ResourceDefinition,
    ResourceResult,
    ToolDefinition,
    ToolResult,
)
from mcp_hello.validators import validate_against_schema, validate_prompt_arguments

logger = get_service_logger("registry")

Arguments = Dict[str, Any]
Validator = Callable[[Arguments], None]
ToolHandler = Callable[[Arguments], Union[ToolResult, Awaitable[ToolResult]]]
ResourceReader = Callable[[str], Union[ResourceResult, Awaitable[ResourceResult]]]
PromptHandler = Callable[[Arguments], Union[PromptResult, Awaitable[PromptResult]]]


@dataclass(frozen=True)
class ToolEntry:
    definition: ToolDefinition
    handler: ToolHandler
    validator: Optional[Validator] = None


@dataclass(frozen=True)
class ResourceEntry:
    definition: ResourceDefinition
    reader: ResourceReader


@dataclass(frozen=True)
class PromptEntry:
    definition: PromptDefinition
    handler: PromptHandler
    validator: Optional[Validator] = None


async def _call(func: Callable, *args: Any) -> Any:
    """Call a handler that may be sync or async."""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class CapabilityRegistry:
    """
    Static catalog of tools, resources and prompts.

    Listing preserves declaration order. Argument validation is on by
    default; with it off, handlers receive whatever arguments arrived and
    missing ones read as None.
    """

    def __init__(self, validate_arguments: bool = True):
        self.validate_arguments = validate_arguments
        self._tools: Dict[str, ToolEntry] = {}
        self._resources: Dict[str, ResourceEntry] = {}
        self._prompts: Dict[str, PromptEntry] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_tool(
        self,
        definition: ToolDefinition,
        handler: ToolHandler,
        validator: Optional[Validator] = None
    ) -> None:
        """Register a tool with this server"""
        if definition.name in self._tools:
            raise ConfigurationError(f"Tool already registered: {definition.name}")
        self._tools[definition.name] = ToolEntry(definition, handler, validator)
        logger.debug(f"Registered tool: {definition.name}")

    def register_resource(self, definition: ResourceDefinition, reader: ResourceReader) -> None:
        """Register a resource with this server"""
        if definition.uri in self._resources:
            raise ConfigurationError(f"Resource already registered: {definition.uri}")
        self._resources[definition.uri] = ResourceEntry(definition, reader)
        logger.debug(f"Registered resource: {definition.uri}")

    def register_prompt(
        self,
        definition: PromptDefinition,
        handler: PromptHandler,
        validator: Optional[Validator] = None
    ) -> None:
        """Register a prompt with this server"""
        if definition.name in self._prompts:
            raise ConfigurationError(f"Prompt already registered: {definition.name}")
        self._prompts[definition.name] = PromptEntry(definition, handler, validator)
        logger.debug(f"Registered prompt: {definition.name}")

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_tools(self) -> List[ToolDefinition]:
        return [entry.definition for entry in self._tools.values()]

    def list_resources(self) -> List[ResourceDefinition]:
        return [entry.definition for entry in self._resources.values()]

    def list_prompts(self) -> List[PromptDefinition]:
        return [entry.definition for entry in self._prompts.values()]

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def invoke_tool(self, name: str, arguments: Optional[Arguments] = None) -> ToolResult:
        """
        Execute a tool.

        Raises:
            UnknownCapability: tool is not registered
            InvalidArguments: validation is enabled and the arguments fail it
        """
        entry = self._tools.get(name)
        if entry is None:
            raise UnknownCapability("tool", name)

        arguments = arguments or {}
        if self.validate_arguments:
            validate_against_schema(arguments, entry.definition.input_schema)
            if entry.validator:
                entry.validator(arguments)

        start = time.monotonic()
        try:
            result = await _call(entry.handler, arguments)
        except MCPServerError:
            raise
        except Exception as e:
            logger.exception(f"Tool execution failed: {name}")
            return ToolResult.text(f"Tool execution failed: {sanitize_error_for_user(e)}", is_error=True)

        if isinstance(result, str):
            result = ToolResult.text(result)

        log_event(
            logger, "Tool executed", level="DEBUG",
            tool=name, duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return result

    async def read_resource(self, uri: str) -> ResourceResult:
        """
        Read a resource.

        Raises:
            UnknownCapability: URI is not registered
        """
        entry = self._resources.get(uri)
        if entry is None:
            raise UnknownCapability("resource", uri, details={"available": list(self._resources)})

        result = await _call(entry.reader, uri)
        log_event(logger, "Resource read", level="DEBUG", uri=uri)
        return result

    async def get_prompt(self, name: str, arguments: Optional[Arguments] = None) -> PromptResult:
        """
        Generate a prompt.

        Raises:
            UnknownCapability: prompt is not registered
            InvalidArguments: validation is enabled and the arguments fail it
        """
        entry = self._prompts.get(name)
        if entry is None:
            raise UnknownCapability("prompt", name)

        arguments = arguments or {}
        if self.validate_arguments:
            validate_prompt_arguments(arguments, entry.definition.arguments)
            if entry.validator:
                entry.validator(arguments)

        result = await _call(entry.handler, arguments)
        log_event(logger, "Prompt generated", level="DEBUG", prompt=name)
        return result
