# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for the Capability Registry and the Hello World catalog"""

import json

import pytest

from mcp_hello.catalog import (
    CONFIG_URI,
    USERS_URI,
    WELCOME_MESSAGE,
    WELCOME_URI,
    build_registry,
)
from mcp_hello.core.errors import ConfigurationError, InvalidArguments, UnknownCapability
from mcp_hello.models import ToolDefinition, ToolResult
from mcp_hello.registry import CapabilityRegistry


# ============================================================================
# Listing
# ============================================================================

def test_list_tools_declaration_order(registry):
    """Test tools are listed in registration order"""
    assert [t.name for t in registry.list_tools()] == ["say_hello", "get_time"]


def test_list_resources_declaration_order(registry):
    """Test resources are listed in registration order"""
    assert [r.uri for r in registry.list_resources()] == [USERS_URI, CONFIG_URI, WELCOME_URI]


def test_list_prompts_declaration_order(registry):
    assert [p.name for p in registry.list_prompts()] == ["greeting", "introduction"]


def test_listing_is_deterministic(registry):
    """Test repeated listing returns identical sequences"""
    assert registry.list_tools() == registry.list_tools()
    assert registry.list_resources() == registry.list_resources()
    assert registry.list_prompts() == registry.list_prompts()


def test_tool_wire_format_uses_camel_case(registry):
    """Test tool definitions serialise with inputSchema"""
    wire = registry.list_tools()[0].to_wire()

    assert wire["name"] == "say_hello"
    assert "inputSchema" in wire
    assert wire["inputSchema"]["required"] == ["name"]
    assert "input_schema" not in wire


def test_duplicate_registration_rejected():
    """Test registering the same tool twice fails"""
    registry = CapabilityRegistry()
    definition = ToolDefinition(name="echo", description="Echo")
    registry.register_tool(definition, lambda args: ToolResult.text("x"))

    with pytest.raises(ConfigurationError):
        registry.register_tool(definition, lambda args: ToolResult.text("y"))


# ============================================================================
# Tools
# ============================================================================

@pytest.mark.asyncio
async def test_say_hello_greets_by_name(registry):
    """Test say_hello with a name returns a greeting containing it"""
    result = await registry.invoke_tool("say_hello", {"name": "Alice"})

    assert not result.is_error
    assert len(result.content) == 1
    assert "Alice" in result.content[0].text
    assert result.content[0].text == "Hello, Alice! Welcome to the MCP Hello World Server."


@pytest.mark.asyncio
async def test_say_hello_custom_message(registry):
    result = await registry.invoke_tool("say_hello", {"name": "Bob", "message": "Good morning"})
    assert result.content[0].text == "Good morning, Bob!"


@pytest.mark.asyncio
async def test_get_time(registry):
    result = await registry.invoke_tool("get_time", {})
    assert result.content[0].text.startswith("Current server time: ")
    assert result.content[0].text.endswith("Z")


@pytest.mark.parametrize("name,arguments", [
    ("say_hello", {"name": "Alice"}),
    ("get_time", {}),
])
@pytest.mark.asyncio
async def test_every_tool_round_trips(registry, name, arguments):
    """Test every registered tool returns non-empty, non-error content"""
    result = await registry.invoke_tool(name, arguments)
    assert len(result.content) >= 1
    assert result.is_error is False


@pytest.mark.asyncio
async def test_missing_required_argument_rejected(registry):
    """Test say_hello without name fails validation"""
    with pytest.raises(InvalidArguments) as exc_info:
        await registry.invoke_tool("say_hello", {})

    assert exc_info.value.field == "name"


@pytest.mark.asyncio
async def test_validation_failure_does_not_invoke_handler():
    """Test the handler is not called when validation fails"""
    calls = []
    registry = CapabilityRegistry(validate_arguments=True)
    registry.register_tool(
        ToolDefinition(
            name="needs_x",
            description="Requires x",
            input_schema={"type": "object", "properties": {"x": {"type": "string"}}, "required": ["x"]},
        ),
        lambda args: calls.append(args) or ToolResult.text("ran"),
    )

    with pytest.raises(InvalidArguments):
        await registry.invoke_tool("needs_x", {})
    assert calls == []


@pytest.mark.asyncio
async def test_validation_disabled_reaches_handler():
    """Test the handler runs when validation is disabled"""
    registry = build_registry(validate_arguments=False)

    result = await registry.invoke_tool("say_hello", {})

    assert not result.is_error
    assert result.content[0].text.startswith("Hello, None!")


@pytest.mark.asyncio
async def test_name_length_limits(registry):
    with pytest.raises(InvalidArguments):
        await registry.invoke_tool("say_hello", {"name": ""})
    with pytest.raises(InvalidArguments):
        await registry.invoke_tool("say_hello", {"name": "x" * 101})
    with pytest.raises(InvalidArguments):
        await registry.invoke_tool("say_hello", {"name": "Alice", "message": "m" * 501})


@pytest.mark.asyncio
async def test_wrong_argument_type_rejected(registry):
    with pytest.raises(InvalidArguments):
        await registry.invoke_tool("say_hello", {"name": 42})


@pytest.mark.asyncio
async def test_unknown_tool(registry):
    """Test unknown tool name raises UnknownCapability"""
    with pytest.raises(UnknownCapability) as exc_info:
        await registry.invoke_tool("__nonexistent__", {})

    assert exc_info.value.kind == "tool"
    assert exc_info.value.identifier == "__nonexistent__"


@pytest.mark.asyncio
async def test_handler_exception_becomes_error_result():
    """Test a failing handler yields isError instead of raising"""
    def explode(args):
        raise RuntimeError("disk on fire")

    registry = CapabilityRegistry()
    registry.register_tool(ToolDefinition(name="explode", description="Fails"), explode)

    result = await registry.invoke_tool("explode", {})

    assert result.is_error is True
    assert "disk on fire" in result.content[0].text


@pytest.mark.asyncio
async def test_async_handler_supported():
    async def handler(args):
        return "plain string"

    registry = CapabilityRegistry()
    registry.register_tool(ToolDefinition(name="async_tool", description="Async"), handler)

    result = await registry.invoke_tool("async_tool")

    assert result.content[0].text == "plain string"


# ============================================================================
# Resources
# ============================================================================

@pytest.mark.asyncio
async def test_read_users_resource(registry):
    """Test data://users returns the sample users as JSON"""
    result = await registry.read_resource(USERS_URI)

    contents = result.contents[0]
    assert contents.mime_type == "application/json"
    users = json.loads(contents.text)
    assert [u["name"] for u in users] == ["Alice", "Bob"]


@pytest.mark.asyncio
async def test_read_config_resource(registry):
    result = await registry.read_resource(CONFIG_URI)
    data = json.loads(result.contents[0].text)
    assert data["features"] == ["tools", "resources", "prompts"]


@pytest.mark.asyncio
async def test_read_welcome_resource(registry):
    result = await registry.read_resource(WELCOME_URI)
    assert result.contents[0].text == WELCOME_MESSAGE
    assert result.contents[0].mime_type == "text/plain"


@pytest.mark.asyncio
async def test_unknown_resource(registry):
    """Test unknown URI raises UnknownCapability with no partial result"""
    with pytest.raises(UnknownCapability) as exc_info:
        await registry.read_resource("data://missing")

    assert exc_info.value.details["available"] == [USERS_URI, CONFIG_URI, WELCOME_URI]


# ============================================================================
# Prompts
# ============================================================================

@pytest.mark.asyncio
async def test_greeting_prompt_styles(registry):
    """Test greeting prompt text follows the requested style"""
    formal = await registry.get_prompt("greeting", {"name": "Alice", "style": "formal"})
    default = await registry.get_prompt("greeting", {"name": "Alice"})

    assert formal.description == "Formal greeting for Alice"
    assert "formal greeting for Alice" in formal.messages[0].content.text
    assert formal.messages[0].role == "user"
    assert default.description == "Friendly greeting for Alice"


@pytest.mark.asyncio
async def test_introduction_prompt_default_audience(registry):
    result = await registry.get_prompt("introduction", {})
    assert result.description == "Introduction to MCP for developers"


@pytest.mark.asyncio
async def test_prompt_invalid_choice(registry):
    with pytest.raises(InvalidArguments):
        await registry.get_prompt("greeting", {"name": "Alice", "style": "shouty"})
    with pytest.raises(InvalidArguments):
        await registry.get_prompt("introduction", {"audience": "robots"})


@pytest.mark.asyncio
async def test_prompt_missing_required_argument(registry):
    with pytest.raises(InvalidArguments):
        await registry.get_prompt("greeting", {})


@pytest.mark.asyncio
async def test_prompt_validation_disabled_falls_back():
    registry = build_registry(validate_arguments=False)
    result = await registry.get_prompt("greeting", {"style": "shouty"})
    assert result.description == "Friendly greeting for there"


@pytest.mark.asyncio
async def test_unknown_prompt(registry):
    with pytest.raises(UnknownCapability):
        await registry.get_prompt("__nonexistent__", {})
